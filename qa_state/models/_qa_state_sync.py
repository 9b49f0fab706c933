"""Create the QaState of a new item before its first flush.

Items normally get their QaState lazily through ``QaStateTracker.qa_state()``.
This listener also covers items that are saved without ever being refreshed,
so every stored item references exactly one QaState row.
"""

import logging

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_registered = False


def _ensure_qa_states(session, flush_context, instances):
    from qa_state.models.qa_state import QaState, QaStateOwnerMixin

    for obj in list(session.new):
        if not isinstance(obj, QaStateOwnerMixin):
            continue
        if obj.qa_state is not None or obj.qa_state_id is not None:
            continue
        obj.qa_state = QaState(item_type=obj.qa_item_type)
        logger.debug("Initiated qa state for new %s", obj.qa_item_type)


def register_all():
    """Register the before_flush listener once per process."""
    global _registered
    if _registered:
        return
    event.listen(Session, "before_flush", _ensure_qa_states)
    _registered = True
