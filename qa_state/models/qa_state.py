"""
QaState model and the mixins that turn a record into a QA-tracked item.

One QaState row per item, referenced by the item's ``qa_state_id`` column
(1:1, owned by the item). Progress values are stored per scenario in JSON
columns so an item type can add scenarios without a schema change.

    QaItemMixin        attribute bag + identity, usable on any object
    QaStateOwnerMixin  qa_state_id FK + qa_state relationship for db.Model items
"""

from datetime import datetime, timezone

from sqlalchemy.orm import declared_attr

from qa_state.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class QaState(db.Model):
    """Persisted QA status and progress of a single item."""

    __tablename__ = "qa_states"

    id = db.Column(db.Integer, primary_key=True)
    item_type = db.Column(db.String(80), nullable=False, index=True)
    status = db.Column(db.String(80), nullable=True, index=True)

    # {scenario: 0..100}
    progress = db.Column(db.JSON, nullable=False, default=dict)
    # {language: {scenario: 0..100}}
    translation_progress = db.Column(db.JSON, nullable=False, default=dict)
    # {flag: true | false | null}
    manual_flags = db.Column(db.JSON, nullable=False, default=dict)
    # {attribute: true | false | null}
    attribute_approvals = db.Column(db.JSON, nullable=False, default=dict)
    attribute_proofs = db.Column(db.JSON, nullable=False, default=dict)
    approval_progress = db.Column(db.Integer, nullable=True)
    proofing_progress = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def validation_progress(self, scenario):
        return (self.progress or {}).get(scenario)

    def to_dict(self):
        return {
            "id": self.id,
            "item_type": self.item_type,
            "status": self.status,
            "progress": dict(self.progress or {}),
            "translation_progress": {
                lang: dict(values) for lang, values in (self.translation_progress or {}).items()
            },
            "manual_flags": dict(self.manual_flags or {}),
            "attribute_approvals": dict(self.attribute_approvals or {}),
            "attribute_proofs": dict(self.attribute_proofs or {}),
            "approval_progress": self.approval_progress,
            "proofing_progress": self.proofing_progress,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<QaState {self.id} {self.item_type} status={self.status}>"


class QaItemMixin:
    """Attribute bag and identity of a QA-tracked item.

    ``__qa_item_type__`` is set by ``register_item_type``. Subclasses with
    per-language content override ``qa_value`` and set
    ``qa_supports_edited_view``.
    """

    __qa_item_type__ = None
    qa_supports_edited_view = False

    @property
    def qa_item_type(self):
        return self.__qa_item_type__

    def qa_identity(self):
        pk = getattr(self, "id", None)
        return f"{self.qa_item_type}:{pk if pk is not None else 'new'}"

    def qa_value(self, attribute, language=None, edited=False):
        return getattr(self, attribute, None)

    def qa_values(self, attributes, language=None, edited=False):
        """Ordered name → value mapping of ``attributes``."""
        return {name: self.qa_value(name, language, edited) for name in attributes}

    def qa_fingerprint_values(self, attributes):
        """Values that identify the item's content for cache addressing."""
        return self.qa_values(attributes)


class QaStateOwnerMixin(QaItemMixin):
    """Adds the qa_state_id foreign key and relationship to a db.Model."""

    @declared_attr
    def qa_state_id(cls):
        return db.Column(
            db.Integer,
            db.ForeignKey("qa_states.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        )

    @declared_attr
    def qa_state(cls):
        return db.relationship(
            "QaState",
            cascade="all, delete-orphan",
            single_parent=True,
            lazy="joined",
        )
