"""Exception types raised by the PPL simulator engine."""

from __future__ import annotations


class EngineError(Exception):
    """Base class for engine failures."""


class InvalidChoiceIndex(EngineError, ValueError):
    """Raised when a caller picks an option the event does not have."""

    def __init__(self, event_id: str, index: object, count: int) -> None:
        super().__init__(
            f"Event '{event_id}' has {count} option(s); choice index {index!r} is out of range."
        )
        self.event_id = event_id
        self.index = index
        self.count = count


class UnknownEventError(EngineError, ValueError):
    """Raised when an event id is neither pending nor in the catalog."""


class UnknownActionError(EngineError, ValueError):
    """Raised when a daily action name is not recognised."""


class ConditionEvaluationError(EngineError):
    """A catalog condition raised while being evaluated."""

    def __init__(self, event_id: str, cause: BaseException) -> None:
        super().__init__(f"Condition for event '{event_id}' failed: {cause!r}")
        self.event_id = event_id
        self.cause = cause


class MalformedImpact(EngineError):
    """An impact could not be computed or carried a non-numeric delta."""
