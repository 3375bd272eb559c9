"""Error taxonomy shared by calculators, repositories and services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Classification of failures surfaced in results."""

    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    INVALID_STATE = "invalid_state"
    PARTIAL_FAILURE = "partial_failure"
    SOURCE_FAILURE = "source_failure"
    LOCKED = "locked"


class PayrollCycleError(Exception):
    """Base class for all payroll cycle errors."""

    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, message: str, kind: ErrorKind | None = None):
        if kind is not None:
            self.kind = kind
        self.message = message
        super().__init__(message)


class RecordNotFoundError(PayrollCycleError):
    """Raised when a record or setting does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, table: str, record_id: str):
        self.table = table
        self.record_id = record_id
        super().__init__(f"{table} record '{record_id}' not found")


class InvalidInputError(PayrollCycleError):
    """Raised for unparsable dates and other malformed input."""

    kind = ErrorKind.INVALID_INPUT


class InvalidStateError(PayrollCycleError):
    """Raised when a record's state does not permit the operation."""

    kind = ErrorKind.INVALID_STATE


class StaleRecordError(InvalidStateError):
    """Raised when a compare-and-set update finds the record already changed."""

    def __init__(self, table: str, record_id: str, field_name: str, expected: object, actual: object):
        self.table = table
        self.record_id = record_id
        self.field_name = field_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{table} record '{record_id}' changed: expected {field_name}={expected!r}, "
            f"found {actual!r}"
        )


class CycleLockedError(PayrollCycleError):
    """Raised when another close holds the processing flag."""

    kind = ErrorKind.LOCKED

    def __init__(self, holder: str):
        self.holder = holder
        super().__init__(f"Payroll processing already in progress ({holder})")


@dataclass(frozen=True)
class ItemError:
    """A failure attached to one record inside a batch or report."""

    kind: ErrorKind
    record_id: str | None
    message: str

    @classmethod
    def from_exception(cls, record_id: str | None, exc: Exception) -> ItemError:
        kind = exc.kind if isinstance(exc, PayrollCycleError) else ErrorKind.PARTIAL_FAILURE
        return cls(kind=kind, record_id=record_id, message=str(exc))
