"""
ContentItem — editorial content tracked through the QA process.

Source-language text lives in the regular columns; other languages are kept
in ``translations`` as ``{language: {attribute: text}}``. Reading an attribute
in another language falls back to the source text unless the edited view is
requested, which returns only what was actually written in that language.

QA process:
    scenarios   draft → reviewable → publishable
    statuses    archived (manual), temporary, draft, reviewable, publishable
"""

from datetime import datetime, timezone

from qa_state.models import db
from qa_state.models.qa_state import QaStateOwnerMixin
from qa_state.services.qa_config import QaConfig, Status, register_item_type
from qa_state.services.qa_rules import matches, max_length, required

# ── Constants ─────────────────────────────────────────────────────────────────

SOURCE_LANGUAGE = "en"
LANGUAGES = ("en", "es", "de")
TRANSLATABLE_ATTRIBUTES = frozenset({"title", "summary", "body"})

SCENARIOS = ("draft", "reviewable", "publishable")

CONTENT_ITEM_QA = QaConfig(
    item_type="content_item",
    scenarios=SCENARIOS,
    statuses=(
        Status.manual("archived", "Archived"),
        Status.automatic("temporary", "Temporary"),
        Status.automatic("draft", "Draft", ("draft",)),
        Status.automatic("reviewable", "Reviewable", ("draft", "reviewable")),
        Status.automatic("publishable", "Publishable", ("draft", "reviewable", "publishable")),
    ),
    rules=(
        required("title", on=SCENARIOS),
        max_length("title", 255, on=SCENARIOS),
        required("slug, summary", on=("reviewable", "publishable")),
        matches("slug", r"[a-z0-9]+(?:-[a-z0-9]+)*", on=("reviewable", "publishable")),
        max_length("summary", 500, on=("reviewable", "publishable")),
        required("body", on=("publishable",)),
    ),
    manual_flags=("previewing_welcome", "candidate_for_public_status"),
    source_language=SOURCE_LANGUAGE,
    languages=LANGUAGES,
)


def _utcnow():
    return datetime.now(timezone.utc)


class ContentItem(QaStateOwnerMixin, db.Model):
    """A piece of editorial content (article, page, snippet)."""

    __tablename__ = "content_items"

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(255), nullable=True, index=True)
    title = db.Column(db.String(255), nullable=True)
    summary = db.Column(db.Text, nullable=True)
    body = db.Column(db.Text, nullable=True)
    translations = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    qa_supports_edited_view = True

    def qa_value(self, attribute, language=None, edited=False):
        if attribute not in TRANSLATABLE_ATTRIBUTES or language in (None, SOURCE_LANGUAGE):
            return getattr(self, attribute, None)
        translated = (self.translations or {}).get(language, {}).get(attribute)
        if translated not in (None, ""):
            return translated
        if edited:
            return None
        return getattr(self, attribute, None)

    def qa_fingerprint_values(self, attributes):
        values = self.qa_values(attributes)
        values["translations"] = self.translations or {}
        return values

    def set_translation(self, language, attribute, text):
        if attribute not in TRANSLATABLE_ATTRIBUTES:
            raise ValueError(f"'{attribute}' is not translatable")
        translations = {lang: dict(values) for lang, values in (self.translations or {}).items()}
        translations.setdefault(language, {})[attribute] = text
        self.translations = translations

    def to_dict(self):
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "summary": self.summary,
            "body": self.body,
            "translations": self.translations or {},
            "qa_state_id": self.qa_state_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


register_item_type(ContentItem, CONTENT_ITEM_QA)
