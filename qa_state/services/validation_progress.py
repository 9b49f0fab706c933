"""
Validation progress per scenario.

    progress = round_half_up(100 * (total - invalid) / total)

where ``total`` is the number of attributes the scenario governs and
``invalid`` the number of those that fail validation. Each attribute is
validated on its own against an isolated snapshot of the item, so recorded
errors and the scenario tag never reach the caller's live item.

Translation variant: with ``translation=True`` the snapshot is built from the
item's edited view (per-language content without source-language fallback)
when the item offers one. Otherwise a field showing fallback text would be
counted as translated.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from qa_state.core.exceptions import NoAssociatedRulesError
from qa_state.services.attribute_resolver import AttributeResolver
from qa_state.services.cache_service import QaMemoCache
from qa_state.services.qa_config import QaConfig
from qa_state.services.qa_rules import ItemSnapshot, validate_snapshot

logger = logging.getLogger(__name__)


def percentage(part: int, total: int) -> int:
    """Share of ``part`` in ``total`` as 0-100, rounding halves away from zero."""
    if total <= 0:
        raise ValueError("total must be positive")
    value = Decimal(part * 100) / Decimal(total)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ValidationProgressCalculator:
    def __init__(
        self,
        config: QaConfig,
        resolver: AttributeResolver | None = None,
        cache: QaMemoCache | None = None,
    ):
        self.config = config
        self.cache = cache or (resolver.cache if resolver else QaMemoCache())
        self.resolver = resolver or AttributeResolver(config, self.cache)

    def _use_edited_view(self, item, translation: bool) -> bool:
        return translation and bool(getattr(item, "qa_supports_edited_view", False))

    def calculate_invalid_fields(self, item, scenario, language=None, translation=False) -> int:
        """Validate every governed attribute individually and count failures."""
        attributes = self.resolver.attributes_for(item, scenario)
        edited = self._use_edited_view(item, translation)
        snapshot = ItemSnapshot.of(item, attributes, language=language, edited=edited)
        snapshot.scenario = scenario

        rules = self.config.rules_of(item)
        invalid = 0
        for attribute in sorted(attributes):
            result = validate_snapshot(snapshot, rules, (attribute,))
            if not result.valid:
                invalid += 1
        return invalid

    def memoized_invalid_fields(self, item, scenario, language=None, translation=False) -> int:
        """``calculate_invalid_fields`` cached for the current execution epoch.

        Raises ExecutionKeyNotInitializedError until the cache's execution
        key has been reset.
        """
        edited = self._use_edited_view(item, translation)
        key = (
            f"{self.cache.execution_key(item, self.config.attributes)}"
            f"|invalid:{scenario}|lang:{language or ''}|edited:{int(edited)}"
        )
        return self.cache.remember_execution(
            key, lambda: self.calculate_invalid_fields(item, scenario, language, translation),
        )

    def calculate_validation_progress(self, item, scenario, language=None, translation=False) -> int:
        """Percentage 0-100 of the governed attributes that validate.

        Uses the execution-scoped memo when a refresh pass is active.

        Raises:
            NoAssociatedRulesError: the scenario governs no attributes.
            UnknownScenarioError: the scenario is not configured.
        """
        attributes = self.resolver.attributes_for(item, scenario)
        total = len(attributes)
        if total == 0:
            raise NoAssociatedRulesError(scenario)

        if self.cache.execution_token is not None:
            invalid = self.memoized_invalid_fields(item, scenario, language, translation)
        else:
            invalid = self.calculate_invalid_fields(item, scenario, language, translation)

        progress = percentage(total - invalid, total)
        logger.debug(
            "Validation progress %s scenario=%s lang=%s: %s/%s valid -> %s%%",
            item.qa_identity(), scenario, language, total - invalid, total, progress,
        )
        return progress
