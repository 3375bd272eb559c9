"""Pay cycle state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from payroll_cycle.errors import InvalidStateError


class CycleStatus(str, Enum):
    """Pay cycle status values."""

    SCHEDULED = "scheduled"
    CLOSING = "closing"
    CLOSED = "closed"


class InvalidTransitionError(InvalidStateError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class CycleStateMachine:
    """State machine for pay cycle close-out.

    Allowed transitions:
    - scheduled → closing
    - closing → closed
    - closing → scheduled (close aborted before the pointer moved)
    - closed → scheduled (pointer advanced to the next payday)
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        CycleStatus.SCHEDULED: [CycleStatus.CLOSING],
        CycleStatus.CLOSING: [CycleStatus.CLOSED, CycleStatus.SCHEDULED],
        CycleStatus.CLOSED: [CycleStatus.SCHEDULED],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            allowed = ", ".join(cls.get_next_statuses(from_status)) or "none"
            raise InvalidTransitionError(
                from_status, to_status, reason=f"allowed next: {allowed}"
            )

    @classmethod
    def is_abort(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition abandons a close in progress."""
        return from_status == CycleStatus.CLOSING and to_status == CycleStatus.SCHEDULED

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])
