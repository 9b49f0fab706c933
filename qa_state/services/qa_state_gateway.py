"""
QaState persistence through Flask-SQLAlchemy.

The QA engine only talks to this gateway:
    load(item)    -> QaState | None
    create(state) -> id
    save(state)   -> bool      (False on database error, session rolled back)
    reload(item)
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from qa_state.models import db
from qa_state.models.qa_state import QaState

logger = logging.getLogger(__name__)


class SqlAlchemyQaStateGateway:
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def load(self, item) -> QaState | None:
        state = getattr(item, "qa_state", None)
        if state is not None:
            return state
        state_id = getattr(item, "qa_state_id", None)
        if state_id is None:
            return None
        return self.session.get(QaState, state_id)

    def create(self, state: QaState) -> int:
        self.session.add(state)
        self.session.flush()
        return state.id

    def attach(self, item, state: QaState) -> None:
        """Store the reference to ``state`` on its owning item."""
        item.qa_state = state
        item.qa_state_id = state.id
        if getattr(item, "id", None) is not None:
            self.session.add(item)

    def save(self, state: QaState) -> bool:
        try:
            self.session.add(state)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Saving qa state %s failed", state.id)
            return False
        return True

    def reload(self, item) -> None:
        """Discard unsaved changes of the item and its state."""
        with self.session.no_autoflush:
            self.session.refresh(item)
            state = getattr(item, "qa_state", None)
            if state is not None:
                self.session.refresh(state)
