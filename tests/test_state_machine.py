"""Tests for pay cycle state machine."""

import pytest

from payroll_cycle.errors import ErrorKind
from payroll_cycle.services.state_machine import (
    CycleStateMachine,
    CycleStatus,
    InvalidTransitionError,
)


class TestCycleStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # scheduled → closing
        assert CycleStateMachine.can_transition("scheduled", "closing") is True

        # closing → closed
        assert CycleStateMachine.can_transition("closing", "closed") is True

        # closing → scheduled (abort)
        assert CycleStateMachine.can_transition("closing", "scheduled") is True

        # closed → scheduled (next payday)
        assert CycleStateMachine.can_transition("closed", "scheduled") is True

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # Can't close without closing
        assert CycleStateMachine.can_transition("scheduled", "closed") is False

        # Can't reopen a closed payday
        assert CycleStateMachine.can_transition("closed", "closing") is False

        # Unknown status
        assert CycleStateMachine.can_transition("paid", "scheduled") is False

    def test_validate_transition_raises(self):
        """Test that validate_transition raises on invalid transition."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            CycleStateMachine.validate_transition("scheduled", "closed")

        assert exc_info.value.from_status == "scheduled"
        assert exc_info.value.to_status == "closed"
        assert exc_info.value.kind == ErrorKind.INVALID_STATE
        assert "allowed next: closing" in str(exc_info.value)

    def test_validate_transition_passes(self):
        """Test that validate_transition passes on valid transition."""
        CycleStateMachine.validate_transition("scheduled", "closing")

    def test_is_abort(self):
        assert CycleStateMachine.is_abort("closing", "scheduled") is True
        assert CycleStateMachine.is_abort("closed", "scheduled") is False

    def test_get_next_statuses(self):
        """Test getting valid next statuses."""
        assert CycleStateMachine.get_next_statuses("closing") == [
            CycleStatus.CLOSED,
            CycleStatus.SCHEDULED,
        ]
        assert CycleStateMachine.get_next_statuses("unknown") == []
