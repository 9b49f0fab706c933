"""
Scenario → governed attribute resolution.

The attribute set of a scenario is the union of the attributes of every rule
that applies to that scenario. It depends only on the rule registry, never
on current attribute values, so results are memoized under the item's
content-addressed owner key plus a digest of the rules.
"""

from __future__ import annotations

from qa_state.services.cache_service import QaMemoCache
from qa_state.services.qa_config import QaConfig


class AttributeResolver:
    def __init__(self, config: QaConfig, cache: QaMemoCache | None = None):
        self.config = config
        self.cache = cache or QaMemoCache()

    def scenario_specific_attributes(self, item, scenario: str) -> set[str]:
        """Uncached resolution for one known scenario."""
        self.config.ensure_scenario(scenario)
        attributes = set()
        for r in self.config.rules_of(item):
            if r.applies_to(scenario):
                attributes |= r.attributes
        return attributes

    def attributes_for(self, item, scenario: str | None = None) -> set[str]:
        """Governed attributes of ``scenario``; all scenarios when None."""
        if scenario is None:
            result = set()
            for known in self.config.scenarios:
                result |= self.attributes_for(item, known)
            return result

        self.config.ensure_scenario(scenario)
        key = (
            f"{self.cache.owner_key(item, self.config.attributes)}"
            f"|rules:{self.config.rules_digest}|scenario:{scenario}"
        )
        cached = self.cache.remember_owner(
            key, lambda: sorted(self.scenario_specific_attributes(item, scenario)),
        )
        return set(cached)
