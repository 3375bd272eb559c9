"""Type definitions for the scheduling pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

CENT = Decimal("0.01")
ZERO = Decimal("0")


def round2(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class OrderStatus(str, Enum):
    """Uniform order status values."""

    ACTIVE = "Active"
    CLOSED = "Closed"
    CANCELLED = "Cancelled"


class PTOStatus(str, Enum):
    """PTO request status values."""

    PENDING = "Pending"
    APPROVED = "Approved"
    CANCELLED = "Cancelled"
    DENIED = "Denied"


class InstallmentStatus(str, Enum):
    """Position of an installment relative to an order's progress."""

    PAID = "paid"
    DUE = "due"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class PayCycle:
    """Persisted pointer into the payday lattice."""

    frequency_days: int
    anchor_payday: date
    next_payday: date
    last_processed_payday: date | None = None

    def advanced_past(self, payday: date) -> PayCycle:
        """Return the cycle after closing ``payday``."""
        return replace(
            self,
            last_processed_payday=payday,
            next_payday=payday + timedelta(days=self.frequency_days),
        )

    def is_on_lattice(self, day: date) -> bool:
        return (day - self.anchor_payday).days % self.frequency_days == 0


@dataclass(frozen=True)
class PayPeriod:
    """The 14 worked days a payday compensates (inclusive bounds)."""

    start: date
    end: date

    @property
    def key(self) -> str:
        return f"{self.start.isoformat()}_{self.end.isoformat()}"

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class PaydayEntry:
    """One payday in a rendered series."""

    payday: date
    period: PayPeriod
    is_current: bool = False
    is_next: bool = False


@dataclass
class UniformOrderRecord:
    """A uniform order amortized over several paydays."""

    order_id: str
    employee_id: str
    employee_name: str
    total_cost: Decimal
    payment_schedule_count: int
    first_deduction_date: date | None
    checks_completed: int = 0
    status: str = OrderStatus.ACTIVE.value
    location: str = ""
    notes: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == OrderStatus.ACTIVE.value

    @property
    def is_complete(self) -> bool:
        return self.checks_completed >= self.payment_schedule_count


@dataclass(frozen=True)
class OrderLineItem:
    """One line of a uniform order."""

    order_id: str
    description: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return round2(self.unit_price * self.quantity)


@dataclass
class PTORecord:
    """A paid-time-off request scheduled for payout."""

    pto_id: str
    employee_id: str
    employee_name: str
    hours_requested: Decimal
    start_date: date | None
    end_date: date | None
    payout_period: date | None
    paid_out: bool = False
    status: str = PTOStatus.PENDING.value
    location: str = ""


@dataclass(frozen=True)
class OvertimeRecord:
    """Overtime summary for one employee and pay period."""

    employee_id: str
    employee_name: str
    location: str
    period_start: date
    period_end: date
    total_hours: Decimal
    regular_hours: Decimal
    ot_hours: Decimal
    week1_ot: Decimal = ZERO
    week2_ot: Decimal = ZERO
    hours_location_a: Decimal = ZERO
    hours_location_b: Decimal = ZERO
    is_multi_location: bool = False


@dataclass(frozen=True)
class LocationHours:
    """Hours one employee worked at each location during a period."""

    employee_id: str
    employee_name: str
    period_start: date
    period_end: date
    hours_location_a: Decimal
    hours_location_b: Decimal
    total_ot_hours: Decimal = ZERO

    @property
    def is_multi_location(self) -> bool:
        return self.hours_location_a > 0 and self.hours_location_b > 0


@dataclass(frozen=True)
class LocationSplit:
    """Regular/OT hours attributed to one location."""

    location: str
    hours: Decimal
    regular_hours: Decimal
    ot_hours: Decimal


@dataclass(frozen=True)
class LocationAllocation:
    """Per-employee split between two locations plus the resulting transfer."""

    employee_id: str
    employee_name: str
    location_a: LocationSplit
    location_b: LocationSplit
    paid_from: str
    transfer_from: str
    transfer_to: str
    transfer_hours: Decimal

    @property
    def total_hours(self) -> Decimal:
        return self.location_a.hours + self.location_b.hours


@dataclass(frozen=True)
class Installment:
    """One scheduled deduction of a uniform order."""

    index: int
    due_date: date
    amount: Decimal
    is_final: bool
    status: InstallmentStatus

    @property
    def number(self) -> int:
        return self.index + 1


@dataclass(frozen=True)
class DueInstallment:
    """The installment of an order that falls on a target payday."""

    order: UniformOrderRecord
    index: int
    due_date: date
    amount: Decimal
    remaining_balance: Decimal
    is_final: bool

    @property
    def number(self) -> int:
        return self.index + 1

    @property
    def checks_after_payment(self) -> int:
        # The final installment absorbs any missed checks.
        if self.is_final:
            return self.order.payment_schedule_count
        return self.order.checks_completed + 1


@dataclass
class SkipOutcome:
    """Result of pushing an order's schedule back one cycle."""

    order_id: str
    old_first_deduction: date
    new_first_deduction: date
    checks_completed: int
    notes: str
    changes: dict[str, object] = field(default_factory=dict)
