"""Pay run state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from payrun_engine.errors import InvalidTransitionError


class PayRunStatus(str, Enum):
    """Pay run status values."""

    DRAFT = "Draft"
    APPROVED = "Approved"
    POSTED = "Posted"

    def __str__(self) -> str:
        return self.value


class PayRunStateMachine:
    """State machine for pay run status transitions.

    Allowed transitions:
    - Draft → Approved (guarded by run validation)
    - Approved → Posted
    - Approved → Draft (rollback, only with explicit opt-in; clears approval)

    Posted is terminal. A request for the current status is a no-op.
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayRunStatus.DRAFT: [PayRunStatus.APPROVED],
        PayRunStatus.APPROVED: [PayRunStatus.POSTED],
        PayRunStatus.POSTED: [],  # Terminal state
    }

    ROLLBACK_TRANSITIONS: dict[str, list[str]] = {
        PayRunStatus.APPROVED: [PayRunStatus.DRAFT],
    }

    # Statuses where items can be added, edited or deleted
    ITEMS_MUTABLE = {
        PayRunStatus.DRAFT,
    }

    @classmethod
    def parse_status(cls, value: str, from_status: str) -> PayRunStatus:
        """Parse a requested status name, raising InvalidTransitionError for unknown values."""
        try:
            return PayRunStatus(value)
        except ValueError:
            raise InvalidTransitionError(from_status, value, "Unknown target status") from None

    @classmethod
    def is_noop(cls, from_status: str, to_status: str) -> bool:
        """Check if a requested transition leaves the status unchanged."""
        return from_status == to_status

    @classmethod
    def can_transition(
        cls, from_status: str, to_status: str, allow_approved_to_draft: bool = False
    ) -> bool:
        """Check if a transition is valid (same-state requests count as valid no-ops)."""
        if cls.is_noop(from_status, to_status):
            return True
        if to_status in cls.VALID_TRANSITIONS.get(from_status, []):
            return True
        if allow_approved_to_draft:
            return to_status in cls.ROLLBACK_TRANSITIONS.get(from_status, [])
        return False

    @classmethod
    def validate_transition(
        cls, from_status: str, to_status: str, allow_approved_to_draft: bool = False
    ) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status, allow_approved_to_draft):
            allowed = ["Draft→Approved", "Approved→Posted"]
            if allow_approved_to_draft:
                allowed.append("Approved→Draft")
            raise InvalidTransitionError(
                from_status,
                to_status,
                f"Allowed: {', '.join(allowed)}, or no-op",
            )

    @classmethod
    def can_modify_items(cls, status: str) -> bool:
        """Check if items can be added, edited or deleted in this status."""
        return status in cls.ITEMS_MUTABLE

    @classmethod
    def is_rollback(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition is a rollback (Approved → Draft)."""
        return from_status == PayRunStatus.APPROVED and to_status == PayRunStatus.DRAFT

    @classmethod
    def requires_validation(cls, from_status: str, to_status: str) -> bool:
        """Check if the run validator must pass before this transition."""
        return from_status == PayRunStatus.DRAFT and to_status == PayRunStatus.APPROVED

    @classmethod
    def get_next_statuses(
        cls, current_status: str, allow_approved_to_draft: bool = False
    ) -> list[str]:
        """Get list of valid next statuses from current status."""
        statuses = list(cls.VALID_TRANSITIONS.get(current_status, []))
        if allow_approved_to_draft:
            statuses.extend(cls.ROLLBACK_TRANSITIONS.get(current_status, []))
        return statuses
