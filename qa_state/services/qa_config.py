"""
QA configuration per item type.

Each item type registers, once at import time, the model class that stores
its items and a ``QaConfig`` describing:
  - the ordered scenarios the item moves through,
  - the ordered statuses (automatic ones derived from scenario completion,
    manual ones assigned by editors),
  - the validation rules (the rule registry),
  - manual flags and the languages tracked for translation progress.

Usage:
    from qa_state.services.qa_config import QaConfig, Status, register_item_type

    register_item_type(ContentItem, QaConfig(
        item_type="content_item",
        scenarios=("draft", "reviewable"),
        statuses=(Status.automatic("draft", "Draft", ("draft",)), ...),
        rules=(required("title", on="draft"), ...),
    ))
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
from dataclasses import dataclass, field

from qa_state.core.exceptions import (
    NotFoundError,
    UnknownLanguageError,
    UnknownManualFlagError,
    UnknownScenarioError,
    UnknownStatusError,
)
from qa_state.services.qa_rules import ValidationRule

logger = logging.getLogger(__name__)


class StatusKind(str, enum.Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


@dataclass(frozen=True)
class Status:
    name: str
    label: str
    scenarios: tuple[str, ...] = ()
    kind: StatusKind = StatusKind.AUTOMATIC

    @classmethod
    def automatic(cls, name, label, scenarios=()):
        return cls(name=name, label=label, scenarios=tuple(scenarios), kind=StatusKind.AUTOMATIC)

    @classmethod
    def manual(cls, name, label, scenarios=()):
        return cls(name=name, label=label, scenarios=tuple(scenarios), kind=StatusKind.MANUAL)

    @property
    def is_automatic(self) -> bool:
        return self.kind is StatusKind.AUTOMATIC

    def to_dict(self):
        return {
            "name": self.name,
            "label": self.label,
            "scenarios": list(self.scenarios),
            "kind": self.kind.value,
        }


def _digest_rules(rules) -> str:
    pairs = sorted((sorted(r.attributes), sorted(r.scenarios)) for r in rules)
    return hashlib.sha1(json.dumps(pairs).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class QaConfig:
    """Immutable QA configuration for one item type."""

    item_type: str
    scenarios: tuple[str, ...]
    statuses: tuple[Status, ...]
    rules: tuple[ValidationRule, ...]
    manual_flags: tuple[str, ...] = ()
    source_language: str = "en"
    languages: tuple[str, ...] = ("en",)
    _status_index: dict = field(init=False, repr=False, compare=False)
    _rules_digest: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        index = {}
        for status in self.statuses:
            if status.name in index:
                raise ValueError(f"Duplicate status '{status.name}' for {self.item_type}")
            for scenario in status.scenarios:
                if scenario not in self.scenarios:
                    raise UnknownScenarioError(scenario, self.scenarios)
            index[status.name] = status
        object.__setattr__(self, "_status_index", index)
        object.__setattr__(self, "_rules_digest", _digest_rules(self.rules))

    # ── Lookups ──────────────────────────────────────────────────────────

    def ensure_scenario(self, scenario: str) -> str:
        if scenario not in self.scenarios:
            raise UnknownScenarioError(scenario, self.scenarios)
        return scenario

    def status(self, name: str) -> Status:
        try:
            return self._status_index[name]
        except KeyError:
            raise UnknownStatusError(name, tuple(self._status_index)) from None

    def has_status(self, name: str | None) -> bool:
        return name in self._status_index

    def ensure_language(self, language: str) -> str:
        if language not in self.languages:
            raise UnknownLanguageError(language, self.languages)
        return language

    def ensure_manual_flag(self, flag: str) -> str:
        if flag not in self.manual_flags:
            raise UnknownManualFlagError(flag)
        return flag

    def rules_of(self, item=None) -> tuple[ValidationRule, ...]:
        """Rule registry lookup; every item of the type shares the same rules."""
        return self.rules

    @property
    def rules_digest(self) -> str:
        """Stable hash of which attributes each rule governs in which scenarios."""
        return self._rules_digest

    @property
    def attributes(self) -> frozenset[str]:
        """Every attribute governed by at least one rule."""
        result = set()
        for r in self.rules:
            result |= r.attributes
        return frozenset(result)


# ── Item type registry ───────────────────────────────────────────────────

_REGISTRY: dict[str, tuple[type, QaConfig]] = {}


def register_item_type(model_cls, config: QaConfig) -> None:
    """Associate a model class with its QA configuration."""
    existing = _REGISTRY.get(config.item_type)
    if existing is not None and existing[0] is not model_cls:
        raise ValueError(
            f"Item type '{config.item_type}' already registered for {existing[0].__name__}"
        )
    model_cls.__qa_item_type__ = config.item_type
    _REGISTRY[config.item_type] = (model_cls, config)
    logger.debug("Registered qa item type %s -> %s", config.item_type, model_cls.__name__)


def get_qa_config(item_type: str) -> QaConfig:
    try:
        return _REGISTRY[item_type][1]
    except KeyError:
        raise NotFoundError(resource="QA item type", resource_id=item_type) from None


def get_item_model(item_type: str):
    try:
        return _REGISTRY[item_type][0]
    except KeyError:
        raise NotFoundError(resource="QA item type", resource_id=item_type) from None


def registered_item_types() -> list[str]:
    return sorted(_REGISTRY)
