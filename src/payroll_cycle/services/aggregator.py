"""Consolidated obligation report for one payday."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import TypeVar

from payroll_cycle.calculators.allocation import LocationAllocator
from payroll_cycle.calculators.calendar import pay_period_for, require_calendar_day
from payroll_cycle.calculators.installments import InstallmentMatcher
from payroll_cycle.calculators.types import (
    ZERO,
    DueInstallment,
    LocationAllocation,
    OvertimeRecord,
    PayPeriod,
    PTORecord,
    PTOStatus,
)
from payroll_cycle.errors import ErrorKind, InvalidInputError, InvalidStateError, ItemError
from payroll_cycle.repositories.base import (
    OVERTIME_TABLE,
    TIME_BY_LOCATION_TABLE,
    ObligationRepository,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SOURCE_OVERTIME = "overtime"
SOURCE_UNIFORM = "uniform"
SOURCE_PTO = "pto"
SOURCE_TRANSFERS = "transfers"

EXCLUDED_PTO_STATUSES = {PTOStatus.CANCELLED.value, PTOStatus.DENIED.value}


@dataclass(frozen=True)
class SourceWarning:
    """A gap in the report: a source or a single record could not be read."""

    source: str
    message: str
    record_id: str | None = None
    kind: ErrorKind = ErrorKind.SOURCE_FAILURE


@dataclass(frozen=True)
class ReportSummary:
    """Totals across the four obligation collections."""

    employee_count: int = 0
    overtime_count: int = 0
    total_ot_hours: Decimal = ZERO
    total_week1_ot: Decimal = ZERO
    total_week2_ot: Decimal = ZERO
    uniform_count: int = 0
    total_uniform_deductions: Decimal = ZERO
    pto_count: int = 0
    total_pto_hours: Decimal = ZERO
    transfer_count: int = 0
    total_transfer_hours: Decimal = ZERO


@dataclass(frozen=True)
class CycleReport:
    """Read-only view of everything falling due on ``payday``."""

    payday: date
    period: PayPeriod
    overtime: tuple[OvertimeRecord, ...] = ()
    uniform_deductions: tuple[DueInstallment, ...] = ()
    pto_payouts: tuple[PTORecord, ...] = ()
    transfers: tuple[LocationAllocation, ...] = ()
    summary: ReportSummary = field(default_factory=ReportSummary)
    warnings: tuple[SourceWarning, ...] = ()

    @property
    def employee_ids(self) -> set[str]:
        ids = {r.employee_id for r in self.overtime}
        ids.update(d.order.employee_id for d in self.uniform_deductions)
        ids.update(p.employee_id for p in self.pto_payouts)
        ids.update(t.employee_id for t in self.transfers)
        return ids

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0


@dataclass(frozen=True)
class ReportResult:
    """Outcome of building a report; only bad input makes it unsuccessful."""

    success: bool
    report: CycleReport | None = None
    error: ItemError | None = None


def _sum(values: Sequence[Decimal]) -> Decimal:
    return sum(values, ZERO)


class CycleAggregator:
    """Builds a CycleReport from four independent sources.

    Sources (each isolated; a failing source becomes an empty collection
    plus a SourceWarning):
    1) overtime summaries for the pay period with OT hours
    2) uniform installments due on the payday (all Active orders)
    3) PTO payouts whose payout period is the payday
    4) multi-location hour transfers for the pay period

    Collections are sorted by (location, name); transfers by name only.
    """

    def __init__(
        self,
        repository: ObligationRepository,
        matcher: InstallmentMatcher | None = None,
        allocator: LocationAllocator | None = None,
    ):
        self.repository = repository
        self.matcher = matcher or InstallmentMatcher()
        self.allocator = allocator or LocationAllocator()

    async def build_report(self, payday: object) -> ReportResult:
        """Parse ``payday`` and compile; unparsable input is the only failure."""
        try:
            day = require_calendar_day(payday)
        except InvalidInputError as e:
            return ReportResult(success=False, error=ItemError.from_exception(None, e))
        return ReportResult(success=True, report=await self.compile(day))

    async def compile(self, payday: date) -> CycleReport:
        period = pay_period_for(payday)
        warnings: list[SourceWarning] = []

        overtime = await self._collect(
            SOURCE_OVERTIME, lambda: self._overtime(period), warnings
        )
        uniform = await self._collect(
            SOURCE_UNIFORM, lambda: self._uniform(payday, warnings), warnings
        )
        pto = await self._collect(SOURCE_PTO, lambda: self._pto(payday), warnings)
        transfers = await self._collect(
            SOURCE_TRANSFERS, lambda: self._transfers(period, warnings), warnings
        )

        report = CycleReport(
            payday=payday,
            period=period,
            overtime=tuple(overtime),
            uniform_deductions=tuple(uniform),
            pto_payouts=tuple(pto),
            transfers=tuple(transfers),
            warnings=tuple(warnings),
        )
        return replace(report, summary=self._summarize(report))

    async def _collect(
        self,
        source: str,
        loader: Callable[[], Awaitable[list[T]]],
        warnings: list[SourceWarning],
    ) -> list[T]:
        try:
            return await loader()
        except Exception as e:
            logger.exception("Report source '%s' failed", source)
            warnings.append(SourceWarning(source=source, message=str(e) or type(e).__name__))
            return []

    # === Sources ===

    async def _overtime(self, period: PayPeriod) -> list[OvertimeRecord]:
        records = await self.repository.query_by_period(OVERTIME_TABLE, period)
        with_ot = [r for r in records if r.ot_hours > 0]
        return sorted(with_ot, key=lambda r: (r.location, r.employee_name, r.employee_id))

    async def _uniform(
        self, payday: date, warnings: list[SourceWarning]
    ) -> list[DueInstallment]:
        due: list[DueInstallment] = []
        for order in await self.repository.list_active_orders():
            try:
                installment = self.matcher.match(order, payday)
            except (InvalidStateError, InvalidInputError) as e:
                logger.warning("Skipping order %s: %s", order.order_id, e)
                warnings.append(
                    SourceWarning(
                        source=SOURCE_UNIFORM,
                        message=str(e),
                        record_id=order.order_id,
                        kind=e.kind,
                    )
                )
                continue
            if installment is not None:
                due.append(installment)
        return sorted(
            due,
            key=lambda d: (d.order.location, d.order.employee_name, d.order.order_id),
        )

    async def _pto(self, payday: date) -> list[PTORecord]:
        requests = await self.repository.list_pto_for_payout(payday)
        payable = [
            p
            for p in requests
            if p.payout_period == payday
            and not p.paid_out
            and p.status not in EXCLUDED_PTO_STATUSES
        ]
        return sorted(payable, key=lambda p: (p.location, p.employee_name, p.pto_id))

    async def _transfers(
        self, period: PayPeriod, warnings: list[SourceWarning]
    ) -> list[LocationAllocation]:
        allocations: list[LocationAllocation] = []
        for hours in await self.repository.query_by_period(TIME_BY_LOCATION_TABLE, period):
            if not hours.is_multi_location:
                continue
            try:
                allocations.append(self.allocator.allocate(hours))
            except InvalidInputError as e:
                warnings.append(
                    SourceWarning(
                        source=SOURCE_TRANSFERS,
                        message=str(e),
                        record_id=hours.employee_id,
                        kind=e.kind,
                    )
                )
        return sorted(allocations, key=lambda a: (a.employee_name, a.employee_id))

    @staticmethod
    def _summarize(report: CycleReport) -> ReportSummary:
        return ReportSummary(
            employee_count=len(report.employee_ids),
            overtime_count=len(report.overtime),
            total_ot_hours=_sum([r.ot_hours for r in report.overtime]),
            total_week1_ot=_sum([r.week1_ot for r in report.overtime]),
            total_week2_ot=_sum([r.week2_ot for r in report.overtime]),
            uniform_count=len(report.uniform_deductions),
            total_uniform_deductions=_sum([d.amount for d in report.uniform_deductions]),
            pto_count=len(report.pto_payouts),
            total_pto_hours=_sum([p.hours_requested for p in report.pto_payouts]),
            transfer_count=len(report.transfers),
            total_transfer_hours=_sum([t.transfer_hours for t in report.transfers]),
        )
