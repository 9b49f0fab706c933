"""
Automatic status determination.

Statuses are walked in their declared order. An automatic status with
required scenarios is valid when every one of them is at 100% progress; the
walk stops at the first such status that is not valid and returns the last
status reached before it. Manual statuses and automatic statuses without
scenarios are never a stopping point but do become the candidate when the
walk passes them.

    temporary()  draft(draft)  reviewable(draft, reviewable)  publishable(...)
    draft=100, reviewable=100, publishable=40  ->  "reviewable"
    draft=80                                   ->  "temporary"
"""

from __future__ import annotations

import logging
from typing import Callable

from qa_state.services.qa_config import QaConfig, Status

logger = logging.getLogger(__name__)


class StatusEngine:
    """Derives statuses from a ``progress(scenario) -> int`` callable."""

    def __init__(self, config: QaConfig, progress: Callable[[str], int]):
        self.config = config
        self.progress = progress

    def valid_status(self, status: str | Status) -> bool:
        status = self.config.status(status if isinstance(status, str) else status.name)
        return all(self.progress(scenario) == 100 for scenario in status.scenarios)

    def determine_automatic_status(self) -> str | None:
        last_valid = None
        for status in self.config.statuses:
            if status.is_automatic and status.scenarios:
                if not self.valid_status(status):
                    logger.debug("Status %s not reached; stopping at %s", status.name, last_valid)
                    return last_valid
            last_valid = status.name
        return last_valid

    def may_set_automatically(self, current: str | None) -> bool:
        """Whether automatic determination may replace ``current``.

        Unset and unknown statuses count as replaceable; only a known manual
        status is protected.
        """
        if current is None or not self.config.has_status(current):
            return True
        return self.config.status(current).is_automatic

    def label_of(self, name: str | None) -> str | None:
        if name is None or not self.config.has_status(name):
            return None
        return self.config.status(name).label
