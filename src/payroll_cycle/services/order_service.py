"""Uniform order operations outside the close-out."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from payroll_cycle.calculators.installments import (
    InstallmentMatcher,
    order_total_from_line_items,
)
from payroll_cycle.calculators.types import (
    Installment,
    OrderLineItem,
    SkipOutcome,
    UniformOrderRecord,
)
from payroll_cycle.repositories.base import UNIFORM_ORDER_TABLE, ObligationRepository


@dataclass(frozen=True)
class OrderSchedule:
    """An order with its line items and full installment plan."""

    order: UniformOrderRecord
    line_items: list[OrderLineItem]
    installments: list[Installment]

    @property
    def line_item_total(self) -> Decimal:
        return order_total_from_line_items(self.line_items)

    @property
    def remaining_balance(self) -> Decimal:
        return sum(
            (i.amount for i in self.installments if i.index >= self.order.checks_completed),
            Decimal("0"),
        )


class OrderService:
    """Skip a payment or inspect an order's plan."""

    def __init__(self, repository: ObligationRepository, matcher: InstallmentMatcher | None = None):
        self.repository = repository
        self.matcher = matcher or InstallmentMatcher()

    async def skip_payment(self, order_id: str, effective_date: date) -> SkipOutcome:
        """Move the order's schedule back one cycle.

        Raises RecordNotFoundError, InvalidStateError (order not Active or
        undated) or StaleRecordError (order changed since it was read).
        """
        order = await self.repository.get_order(order_id)
        outcome = self.matcher.skip(order, effective_date)
        await self.repository.update_fields(
            UNIFORM_ORDER_TABLE,
            order_id,
            outcome.changes,
            expected={
                "first_deduction_date": order.first_deduction_date,
                "checks_completed": order.checks_completed,
            },
        )
        return outcome

    async def order_schedule(self, order_id: str) -> OrderSchedule:
        order = await self.repository.get_order(order_id)
        return OrderSchedule(
            order=order,
            line_items=await self.repository.list_line_items(order_id),
            installments=self.matcher.schedule(order),
        )
