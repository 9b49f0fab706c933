"""
QA-state exception hierarchy.

Services raise these types; the blueprint registers handlers against them
once and maps them to consistent HTTP status codes.

Usage:
    from qa_state.core.exceptions import NotFoundError, NoAssociatedRulesError

    raise NotFoundError(resource="ContentItem", resource_id=42)
    raise NoAssociatedRulesError("publishable")
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "ContentItem").
        resource_id: The PK or key that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


# ── QA engine errors ─────────────────────────────────────────────────────


class QaStateError(Exception):
    """Base class for errors raised by the QA-state engine."""


class NoAssociatedRulesError(QaStateError):
    """Raised when a scenario governs no attributes.

    Progress for such a scenario is undefined (0/0), so it is reported as a
    configuration error instead of a 0% or 100% value.
    """

    def __init__(self, scenario: str) -> None:
        self.scenario = scenario
        super().__init__(f"The scenario '{scenario}' has no associated validation rules")


class ExecutionKeyNotInitializedError(QaStateError):
    """Raised when execution-scoped cache entries are read before a refresh
    pass generated its execution token."""

    def __init__(self) -> None:
        super().__init__(
            "Execution key not initialized; call reset_execution_key() "
            "before reading memoized invalid field counts"
        )


class StateSaveError(QaStateError):
    """Raised when the persistence gateway fails to write a QaState."""

    def __init__(self, identity: str, reason: str | None = None) -> None:
        self.identity = identity
        self.reason = reason
        msg = f"Could not save qa state for {identity}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnknownScenarioError(QaStateError):
    def __init__(self, scenario: str, known: tuple = ()) -> None:
        self.scenario = scenario
        msg = f"Unknown scenario '{scenario}'"
        if known:
            msg += f" (known: {', '.join(known)})"
        super().__init__(msg)


class UnknownStatusError(QaStateError):
    def __init__(self, status: str, known: tuple = ()) -> None:
        self.status = status
        msg = f"Unknown status '{status}'"
        if known:
            msg += f" (known: {', '.join(known)})"
        super().__init__(msg)


class UnknownManualFlagError(QaStateError):
    def __init__(self, flag: str) -> None:
        self.flag = flag
        super().__init__(f"Unknown manual flag '{flag}'")


class UnknownAttributeError(QaStateError):
    def __init__(self, attribute: str) -> None:
        self.attribute = attribute
        super().__init__(f"Attribute '{attribute}' is not part of the qa process")


class UnknownLanguageError(QaStateError):
    def __init__(self, language: str, known: tuple = ()) -> None:
        self.language = language
        msg = f"Unknown language '{language}'"
        if known:
            msg += f" (known: {', '.join(known)})"
        super().__init__(msg)
