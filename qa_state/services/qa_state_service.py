"""
QA State Service — refresh orchestration for one item.

Ties together attribute resolution, validation progress, status
determination, the memoization cache and the persistence gateway:

  - qa_attributes / calculate_validation_progress / valid_status
  - determine_automatic_status / set_automatic_status (manual statuses kept)
  - refresh_qa_state: progress of every scenario + status, saved at once
  - refresh_translation_progress: per-language progress on the edited view
  - manual status, manual flags, per-attribute approval and proofing marks

Usage:
    from qa_state.services.qa_state_service import QaStateTracker

    tracker = QaStateTracker(item)
    state = tracker.refresh_qa_state(language="es")
    state.status, state.progress        # "draft", {"draft": 100, ...}

One tracker serves one item and must not run two refreshes at the same time:
the language switch and the execution token live on the tracker.
"""

from __future__ import annotations

import logging
import time

from qa_state.core.exceptions import StateSaveError, UnknownAttributeError
from qa_state.models.qa_state import QaState
from qa_state.services.attribute_resolver import AttributeResolver
from qa_state.services.cache_service import QaMemoCache
from qa_state.services.language import LanguageContext
from qa_state.services.qa_config import QaConfig, get_qa_config
from qa_state.services.qa_state_gateway import SqlAlchemyQaStateGateway
from qa_state.services.status_engine import StatusEngine
from qa_state.services.validation_progress import ValidationProgressCalculator, percentage

logger = logging.getLogger(__name__)

_UNSET = object()


class QaStateTracker:
    def __init__(
        self,
        item,
        config: QaConfig | None = None,
        gateway=None,
        cache: QaMemoCache | None = None,
        language_context: LanguageContext | None = None,
    ):
        self.item = item
        self.config = config or get_qa_config(item.qa_item_type)
        self.gateway = gateway or SqlAlchemyQaStateGateway()
        self.cache = cache or QaMemoCache()
        self.language_context = language_context or LanguageContext(self.config.source_language)
        self.resolver = AttributeResolver(self.config, self.cache)
        self.calculator = ValidationProgressCalculator(self.config, self.resolver, self.cache)
        self.status_engine = StatusEngine(self.config, self.calculate_validation_progress)

    # ── Attributes & progress ────────────────────────────────────────────

    def qa_attributes(self, scenario: str | None = None) -> set[str]:
        """Attributes governed in ``scenario``; every QA attribute when None."""
        return self.resolver.attributes_for(self.item, scenario)

    def reset_execution_key(self) -> str:
        return self.cache.reset_execution_key()

    def calculate_invalid_fields(self, scenario: str) -> int:
        return self.calculator.calculate_invalid_fields(
            self.item, scenario, self.language_context.current(),
        )

    def memoized_invalid_fields(self, scenario: str) -> int:
        return self.calculator.memoized_invalid_fields(
            self.item, scenario, self.language_context.current(),
        )

    def calculate_validation_progress(self, scenario: str) -> int:
        return self.calculator.calculate_validation_progress(
            self.item, scenario, self.language_context.current(),
        )

    def calculate_translation_progress(self, scenario: str, language: str) -> int:
        return self.calculator.calculate_validation_progress(
            self.item, scenario, language, translation=True,
        )

    def _mark_progress(self, marks) -> int | None:
        attributes = self.qa_attributes()
        if not attributes:
            return None
        marked = sum(1 for attribute in attributes if (marks or {}).get(attribute) is True)
        return percentage(marked, len(attributes))

    def calculate_approval_progress(self) -> int | None:
        return self._mark_progress(self.qa_state().attribute_approvals)

    def calculate_proofing_progress(self) -> int | None:
        return self._mark_progress(self.qa_state().attribute_proofs)

    # ── Status ───────────────────────────────────────────────────────────

    def valid_status(self, status) -> bool:
        return self.status_engine.valid_status(status)

    def determine_automatic_status(self) -> str | None:
        return self.status_engine.determine_automatic_status()

    def set_automatic_status(self, status=_UNSET) -> bool:
        """Apply automatic determination unless a manual status is set.

        Returns True when the status was (re)assigned.
        """
        state = self.qa_state()
        if not self.status_engine.may_set_automatically(state.status):
            logger.debug(
                "Keeping manual status %s of %s", state.status, self.item.qa_identity(),
            )
            return False
        if status is _UNSET:
            status = self.determine_automatic_status()
        state.status = status
        return True

    def set_manual_status(self, status: str) -> QaState:
        self.config.status(status)
        state = self.qa_state()
        state.status = status
        return state

    def get_status_label(self) -> str | None:
        state = self.gateway.load(self.item)
        if state is None:
            return None
        return self.status_engine.label_of(state.status)

    # ── Manual flags & attribute marks ───────────────────────────────────

    def set_manual_flag(self, flag: str, value: bool | None) -> QaState:
        self.config.ensure_manual_flag(flag)
        state = self.qa_state()
        flags = dict(state.manual_flags or {})
        flags[flag] = None if value is None else bool(value)
        state.manual_flags = flags
        return state

    def mark_attribute(self, attribute: str, approved=_UNSET, proofed=_UNSET) -> QaState:
        if attribute not in self.qa_attributes():
            raise UnknownAttributeError(attribute)
        state = self.qa_state()
        if approved is not _UNSET:
            approvals = dict(state.attribute_approvals or {})
            approvals[attribute] = None if approved is None else bool(approved)
            state.attribute_approvals = approvals
            state.approval_progress = self.calculate_approval_progress()
        if proofed is not _UNSET:
            proofs = dict(state.attribute_proofs or {})
            proofs[attribute] = None if proofed is None else bool(proofed)
            state.attribute_proofs = proofs
            state.proofing_progress = self.calculate_proofing_progress()
        return state

    # ── Persistence ──────────────────────────────────────────────────────

    def qa_state(self) -> QaState:
        """Return the item's QaState, creating it on first access."""
        state = self.gateway.load(self.item)
        if state is None:
            state = QaState(item_type=self.config.item_type)
            self.gateway.create(state)
            self.gateway.attach(self.item, state)
            logger.info("Created qa state %s for %s", state.id, self.item.qa_identity())
        return state

    def save(self, state: QaState | None = None) -> QaState:
        state = state or self.qa_state()
        if not self.gateway.save(state):
            raise StateSaveError(self.item.qa_identity())
        return state

    def reload(self) -> QaState | None:
        self.gateway.reload(self.item)
        return self.gateway.load(self.item)

    # ── Refresh ──────────────────────────────────────────────────────────

    def _requested_scenarios(self, scenarios) -> tuple[str, ...]:
        if scenarios is None:
            return tuple(self.config.scenarios)
        return tuple(self.config.ensure_scenario(s) for s in scenarios)

    def refresh_qa_state(self, scenarios=None, language: str | None = None) -> QaState:
        """Recalculate progress and automatic status, then save.

        Everything is calculated before the QaState is touched, so a failing
        scenario leaves the stored state unchanged.

        Raises:
            NoAssociatedRulesError, UnknownScenarioError, StateSaveError
        """
        t0 = time.perf_counter()
        scenarios = self._requested_scenarios(scenarios)

        with self.language_context.switched(language) as active_language:
            self.reset_execution_key()
            progress = {
                scenario: self.calculate_validation_progress(scenario)
                for scenario in scenarios
            }
            status = self.determine_automatic_status()

        state = self.qa_state()
        state.progress = {**(state.progress or {}), **progress}
        self.set_automatic_status(status)
        if state.attribute_approvals:
            state.approval_progress = self.calculate_approval_progress()
        if state.attribute_proofs:
            state.proofing_progress = self.calculate_proofing_progress()
        self.save(state)

        logger.info(
            "Refreshed qa state of %s: status=%s progress=%s",
            self.item.qa_identity(), state.status, progress,
            extra={
                "item_type": self.config.item_type,
                "item_id": getattr(self.item, "id", None),
                "status": state.status,
                "language": active_language,
                "duration_ms": (time.perf_counter() - t0) * 1000,
            },
        )
        return state

    def refresh_translation_progress(self, languages=None, scenarios=None) -> QaState:
        """Recalculate per-language progress on the edited (non-fallback) view.

        Raises:
            UnknownLanguageError, UnknownScenarioError, StateSaveError
        """
        scenarios = self._requested_scenarios(scenarios)
        if languages is None:
            languages = [
                lang for lang in self.config.languages if lang != self.config.source_language
            ]
        else:
            languages = [self.config.ensure_language(lang) for lang in languages]

        self.reset_execution_key()
        calculated = {
            lang: {
                scenario: self.calculate_translation_progress(scenario, lang)
                for scenario in scenarios
            }
            for lang in languages
        }

        state = self.qa_state()
        merged = {lang: dict(values) for lang, values in (state.translation_progress or {}).items()}
        for lang, values in calculated.items():
            merged.setdefault(lang, {}).update(values)
        state.translation_progress = merged
        self.save(state)

        logger.info(
            "Refreshed translation progress of %s for %s",
            self.item.qa_identity(), ", ".join(languages) or "-",
            extra={"item_type": self.config.item_type, "item_id": getattr(self.item, "id", None)},
        )
        return state
