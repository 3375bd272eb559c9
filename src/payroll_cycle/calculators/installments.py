"""Installment matching for amortized uniform orders."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

from payroll_cycle.calculators.calendar import DEFAULT_FREQUENCY_DAYS, require_calendar_day
from payroll_cycle.calculators.types import (
    ZERO,
    DueInstallment,
    Installment,
    InstallmentStatus,
    OrderLineItem,
    OrderStatus,
    SkipOutcome,
    UniformOrderRecord,
    round2,
)
from payroll_cycle.errors import InvalidStateError


def installment_amounts(total_cost: Decimal, count: int) -> list[Decimal]:
    """Cent-exact plan: equal rounded installments, the last absorbs the remainder."""
    if count <= 0:
        raise InvalidStateError(f"payment schedule count must be positive, got {count}")
    per = round2(total_cost / count)
    return [per] * (count - 1) + [round2(total_cost - per * (count - 1))]


def order_total_from_line_items(line_items: Iterable[OrderLineItem]) -> Decimal:
    """Order total as the sum of quantity x unit price."""
    return round2(sum((item.line_total for item in line_items), ZERO))


def _append_note(notes: str, line: str) -> str:
    return f"{notes}\n{line}" if notes else line


class InstallmentMatcher:
    """Decides which installment of an order falls on a payday.

    Installment ``i`` (0-based) is dated ``first_deduction_date + i * 14 days``
    and is due on a target payday only when the dates are the same calendar
    day and ``i >= checks_completed``; paid installments never match again.

    Amounts:
    - regular installment: ``round2(total / count)``
    - final installment: ``round2(total - checks_completed * per)``
    """

    def __init__(self, frequency_days: int = DEFAULT_FREQUENCY_DAYS):
        self.frequency_days = frequency_days

    @staticmethod
    def validate(order: UniformOrderRecord) -> None:
        """Raise InvalidStateError when the schedule invariants are broken."""
        if order.payment_schedule_count <= 0:
            raise InvalidStateError(
                f"Order {order.order_id} has payment schedule count "
                f"{order.payment_schedule_count}"
            )
        if order.checks_completed < 0:
            raise InvalidStateError(
                f"Order {order.order_id} has negative checks completed"
            )
        if order.checks_completed > order.payment_schedule_count:
            raise InvalidStateError(
                f"Order {order.order_id} has {order.checks_completed} checks completed "
                f"but only {order.payment_schedule_count} scheduled"
            )

    @staticmethod
    def per_installment(order: UniformOrderRecord) -> Decimal:
        return round2(order.total_cost / order.payment_schedule_count)

    def installment_dates(self, order: UniformOrderRecord) -> list[date]:
        """All deduction dates for the order, first to last."""
        if order.first_deduction_date is None:
            return []
        first = require_calendar_day(order.first_deduction_date)
        step = timedelta(days=self.frequency_days)
        return [first + step * i for i in range(order.payment_schedule_count)]

    def match(self, order: UniformOrderRecord, target: date) -> DueInstallment | None:
        """Installment of ``order`` due on ``target``, or None."""
        if not order.is_active or order.first_deduction_date is None:
            return None
        self.validate(order)
        if order.is_complete:
            return None

        target_day = require_calendar_day(target)
        count = order.payment_schedule_count
        per = self.per_installment(order)
        already_paid = per * order.checks_completed

        for index, due_date in enumerate(self.installment_dates(order)):
            if due_date != target_day or index < order.checks_completed:
                continue
            is_final = index == count - 1
            amount = round2(order.total_cost - already_paid) if is_final else per
            remaining = round2(order.total_cost - already_paid - amount)
            return DueInstallment(
                order=order,
                index=index,
                due_date=due_date,
                amount=amount,
                remaining_balance=max(remaining, ZERO),
                is_final=is_final,
            )
        return None

    def schedule(self, order: UniformOrderRecord) -> list[Installment]:
        """Full installment plan with paid/due/upcoming status."""
        self.validate(order)
        amounts = installment_amounts(order.total_cost, order.payment_schedule_count)
        installments: list[Installment] = []
        for index, due_date in enumerate(self.installment_dates(order)):
            if index < order.checks_completed:
                status = InstallmentStatus.PAID
            elif index == order.checks_completed:
                status = InstallmentStatus.DUE
            else:
                status = InstallmentStatus.UPCOMING
            installments.append(
                Installment(
                    index=index,
                    due_date=due_date,
                    amount=amounts[index],
                    is_final=index == len(amounts) - 1,
                    status=status,
                )
            )
        return installments

    def skip(self, order: UniformOrderRecord, effective_date: date) -> SkipOutcome:
        """Push the order's whole schedule back one cycle.

        ``checks_completed`` is left alone; an audit line is appended to notes.
        """
        if not order.is_active:
            raise InvalidStateError(
                f"Cannot skip payment on order {order.order_id} with status '{order.status}'"
            )
        if order.first_deduction_date is None:
            raise InvalidStateError(
                f"Order {order.order_id} has no first deduction date"
            )

        effective = require_calendar_day(effective_date)
        old_first = require_calendar_day(order.first_deduction_date)
        new_first = old_first + timedelta(days=self.frequency_days)
        notes = _append_note(
            order.notes,
            f"{effective.isoformat()}: payment skipped, first deduction moved "
            f"{old_first.isoformat()} -> {new_first.isoformat()}",
        )
        return SkipOutcome(
            order_id=order.order_id,
            old_first_deduction=old_first,
            new_first_deduction=new_first,
            checks_completed=order.checks_completed,
            notes=notes,
            changes={"first_deduction_date": new_first, "notes": notes},
        )

    @staticmethod
    def payment_changes(due: DueInstallment, paid_on: date) -> dict[str, object]:
        """Field updates that record payment of ``due``."""
        order = due.order
        checks = due.checks_after_payment
        changes: dict[str, object] = {
            "checks_completed": checks,
            "notes": _append_note(
                order.notes,
                f"{paid_on.isoformat()}: check {due.number}/{order.payment_schedule_count} "
                f"${due.amount}",
            ),
        }
        if checks >= order.payment_schedule_count:
            changes["status"] = OrderStatus.CLOSED.value
        return changes
