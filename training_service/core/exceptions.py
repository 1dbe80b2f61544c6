"""Domain errors raised by the training progress engine.

Every error carries a stable ``code`` so callers can tell the kinds apart
after they cross the HTTP boundary, plus the status code the API renders it
with. Only ``LedgerUnavailable`` is retried automatically.
"""

from typing import Any, Dict


class TrainingError(Exception):
    """Base class for typed engine failures."""

    code = "TrainingError"
    status_code = 400
    retryable = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "detail": self.message}
        if self.context:
            payload["context"] = self.context
        return payload


class InvalidSelection(TrainingError):
    """Selected option index is outside the question's option range."""

    code = "InvalidSelection"
    status_code = 422


class IncompleteAttempt(TrainingError):
    """Completion was requested for an attempt that left questions unanswered."""

    code = "IncompleteAttempt"
    status_code = 409


class UnknownCourse(TrainingError):
    code = "UnknownCourse"
    status_code = 404


class UnknownTopic(TrainingError):
    code = "UnknownTopic"
    status_code = 404


class UnknownQuestion(TrainingError):
    code = "UnknownQuestion"
    status_code = 404


class PredecessorIncomplete(TrainingError):
    """Sequential progression requires the previous topic first."""

    code = "PredecessorIncomplete"
    status_code = 409


class AlreadyEnrolled(TrainingError):
    code = "AlreadyEnrolled"
    status_code = 409


class LedgerUnavailable(TrainingError):
    """Progress storage failed or timed out; the write outcome is unknown."""

    code = "LedgerUnavailable"
    status_code = 503
    retryable = True


class CatalogUnavailable(TrainingError):
    code = "CatalogUnavailable"
    status_code = 503
