"""Tests for pay run state machine."""

import pytest

from payrun_engine.errors import InvalidTransitionError
from payrun_engine.services.state_machine import PayRunStateMachine, PayRunStatus


class TestPayRunStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that forward transitions are allowed."""
        assert PayRunStateMachine.can_transition("Draft", "Approved") is True
        assert PayRunStateMachine.can_transition("Approved", "Posted") is True

    def test_invalid_transitions(self):
        """Test that skipping or leaving Posted is blocked."""
        # Can't skip approval
        assert PayRunStateMachine.can_transition("Draft", "Posted") is False

        # Posted is terminal
        assert PayRunStateMachine.can_transition("Posted", "Draft") is False
        assert PayRunStateMachine.can_transition("Posted", "Approved") is False

    def test_same_state_is_noop(self):
        """Requesting the current status is a valid no-op, even for Posted."""
        for status in PayRunStatus:
            assert PayRunStateMachine.is_noop(status.value, status.value) is True
            assert PayRunStateMachine.can_transition(status.value, status.value) is True

    def test_rollback_requires_opt_in(self):
        """Approved → Draft is only allowed with the explicit flag."""
        assert PayRunStateMachine.can_transition("Approved", "Draft") is False
        assert (
            PayRunStateMachine.can_transition("Approved", "Draft", allow_approved_to_draft=True)
            is True
        )
        # The flag does not open any other backwards edge
        assert (
            PayRunStateMachine.can_transition("Posted", "Draft", allow_approved_to_draft=True)
            is False
        )
        assert (
            PayRunStateMachine.can_transition("Posted", "Approved", allow_approved_to_draft=True)
            is False
        )

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            PayRunStateMachine.validate_transition("Draft", "Posted")

        assert exc_info.value.from_status == "Draft"
        assert exc_info.value.to_status == "Posted"
        assert exc_info.value.code == "INVALID_TRANSITION"

    def test_parse_status(self):
        assert PayRunStateMachine.parse_status("Approved", "Draft") is PayRunStatus.APPROVED

        with pytest.raises(InvalidTransitionError) as exc_info:
            PayRunStateMachine.parse_status("Paid", "Draft")
        assert exc_info.value.reason == "Unknown target status"

    def test_is_rollback(self):
        assert PayRunStateMachine.is_rollback("Approved", "Draft") is True
        assert PayRunStateMachine.is_rollback("Draft", "Approved") is False

    def test_requires_validation(self):
        """Only Draft → Approved is gated by the validator."""
        assert PayRunStateMachine.requires_validation("Draft", "Approved") is True
        assert PayRunStateMachine.requires_validation("Approved", "Posted") is False
        assert PayRunStateMachine.requires_validation("Approved", "Draft") is False

    def test_can_modify_items(self):
        assert PayRunStateMachine.can_modify_items("Draft") is True
        assert PayRunStateMachine.can_modify_items("Approved") is False
        assert PayRunStateMachine.can_modify_items("Posted") is False

    def test_get_next_statuses(self):
        assert PayRunStateMachine.get_next_statuses("Draft") == ["Approved"]
        assert PayRunStateMachine.get_next_statuses("Approved") == ["Posted"]
        assert PayRunStateMachine.get_next_statuses(
            "Approved", allow_approved_to_draft=True
        ) == ["Posted", "Draft"]
        assert PayRunStateMachine.get_next_statuses("Posted") == []
