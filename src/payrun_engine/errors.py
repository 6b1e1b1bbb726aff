"""Error taxonomy for pay run operations.

Business outcomes (not found, invalid transition, failed validation, not
editable) are expected results and are translated to structured responses by
the API layer. ``PersistenceError`` is the only unexpected failure; it is
raised after the enclosing transaction has been rolled back.
"""

from __future__ import annotations

from typing import Any


class PayRunError(Exception):
    """Base class for pay run errors."""

    code = "PAY_RUN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class NotFoundError(PayRunError):
    """Raised when a command targets a period, run, item or employee that does not exist."""

    code = "NOT_FOUND"


class InvalidTransitionError(PayRunError):
    """Raised when a status change is not an edge of the run state machine."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = str(from_status)
        self.to_status = str(to_status)
        self.reason = reason
        msg = f"Invalid transition from '{self.from_status}' to '{self.to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(
            msg,
            {"from_status": self.from_status, "to_status": self.to_status, "reason": reason},
        )


class ValidationFailedError(PayRunError):
    """Raised when approval is blocked by run validation errors."""

    code = "VALIDATION_FAILED"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            "Validation failed: " + "; ".join(self.errors),
            {"errors": self.errors},
        )


class NotEditableError(PayRunError):
    """Raised when a mutation targets a run that is not in Draft."""

    code = "NOT_EDITABLE"

    def __init__(self, status: str, action: str):
        self.status = str(status)
        self.action = action
        super().__init__(
            f"Run is '{self.status}', cannot {action}. Only Draft runs are editable.",
            {"status": self.status, "action": action},
        )


class PersistenceError(PayRunError):
    """Raised when the underlying transaction or lock fails. State is rolled back."""

    code = "PERSISTENCE_FAILURE"
