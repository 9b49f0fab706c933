"""
Validation rules and the per-attribute validation capability.

A rule states which attributes it governs and in which scenarios it applies:

    required(("title", "slug"), on=("draft", "reviewable"))
    max_length("title", 255, on=("draft", "reviewable", "publishable"))

Validation never runs against the live item. The progress calculator copies
the item's attribute values into an ``ItemSnapshot``, tags it with the
scenario and validates that copy; recorded errors stay on the snapshot.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable


def _as_frozenset(value: str | Iterable[str]) -> frozenset[str]:
    if isinstance(value, str):
        return frozenset(part.strip() for part in value.split(",") if part.strip())
    return frozenset(value)


@dataclass(frozen=True)
class ValidationRule:
    """Immutable association of governed attributes and scenarios."""

    attributes: frozenset[str]
    scenarios: frozenset[str]
    check: Callable[[Any], bool] = field(compare=False)
    message: str = "is invalid"

    def applies_to(self, scenario: str) -> bool:
        return scenario in self.scenarios


def rule(attributes, on, check, message="is invalid") -> ValidationRule:
    """Build a rule from a comma-separated string or an iterable of names."""
    return ValidationRule(
        attributes=_as_frozenset(attributes),
        scenarios=_as_frozenset(on),
        check=check,
        message=message,
    )


def _is_empty(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def required(attributes, on) -> ValidationRule:
    return rule(attributes, on, lambda value: not _is_empty(value), "cannot be blank")


def max_length(attributes, length: int, on) -> ValidationRule:
    """Empty values pass; combine with ``required`` to forbid them."""
    return rule(
        attributes, on,
        lambda value: _is_empty(value) or len(str(value)) <= length,
        f"is too long (maximum is {length} characters)",
    )


def matches(attributes, pattern: str, on) -> ValidationRule:
    """Empty values pass; combine with ``required`` to forbid them."""
    compiled = re.compile(pattern)
    return rule(
        attributes, on,
        lambda value: _is_empty(value) or compiled.fullmatch(str(value)) is not None,
        "is invalid",
    )


# ── Validation capability ────────────────────────────────────────────────


@dataclass
class ItemSnapshot:
    """Value copy of an item's attribute bag used for isolated validation."""

    identity: str
    values: dict[str, Any]
    language: str | None = None
    scenario: str | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def of(cls, item, attributes: Iterable[str], language=None, edited=False) -> "ItemSnapshot":
        values = item.qa_values(sorted(attributes), language=language, edited=edited)
        return cls(
            identity=item.qa_identity(),
            values=copy.deepcopy(dict(values)),
            language=language,
        )

    def add_error(self, attribute: str, message: str) -> None:
        self.errors.setdefault(attribute, []).append(message)

    def has_errors(self, attribute: str | None = None) -> bool:
        if attribute is None:
            return bool(self.errors)
        return bool(self.errors.get(attribute))


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    failed_attributes: frozenset[str]


def validate_snapshot(
    snapshot: ItemSnapshot,
    rules: Iterable[ValidationRule],
    attributes: Iterable[str],
) -> ValidationResult:
    """Run the rules of the snapshot's scenario against ``attributes`` only.

    Returns the attributes that failed at least one applicable rule.
    """
    wanted = set(attributes)
    failed = set()
    for r in rules:
        if snapshot.scenario is not None and not r.applies_to(snapshot.scenario):
            continue
        for attribute in r.attributes & wanted:
            if not r.check(snapshot.values.get(attribute)):
                snapshot.add_error(attribute, r.message)
                failed.add(attribute)
    return ValidationResult(valid=not failed, failed_attributes=frozenset(failed))
