"""Cycle close-out: mark obligations paid and advance the payday pointer."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from payroll_cycle.calculators.calendar import require_calendar_day
from payroll_cycle.calculators.installments import InstallmentMatcher
from payroll_cycle.calculators.types import ZERO, DueInstallment, PTORecord
from payroll_cycle.errors import CycleLockedError, InvalidInputError, ItemError
from payroll_cycle.repositories.base import (
    PTO_TABLE,
    UNIFORM_ORDER_TABLE,
    BatchUpdateResult,
    ObligationRepository,
)
from payroll_cycle.services.aggregator import CycleAggregator, SourceWarning
from payroll_cycle.services.cycle_service import CycleService
from payroll_cycle.services.locking_service import LockingService
from payroll_cycle.services.state_machine import CycleStateMachine, CycleStatus

logger = logging.getLogger(__name__)


@dataclass
class CloseResult:
    """Summary of one close-out."""

    payday: date | None
    success: bool
    status: str = CycleStatus.SCHEDULED.value
    next_payday: date | None = None
    orders_marked: list[str] = field(default_factory=list)
    orders_skipped: list[str] = field(default_factory=list)
    orders_failed: list[str] = field(default_factory=list)
    pto_marked: list[str] = field(default_factory=list)
    pto_failed: list[str] = field(default_factory=list)
    total_uniform_collected: Decimal = ZERO
    total_pto_hours: Decimal = ZERO
    reclosed: bool = False
    errors: list[ItemError] = field(default_factory=list)
    warnings: list[SourceWarning] = field(default_factory=list)

    @property
    def marked(self) -> int:
        return len(self.orders_marked)

    @property
    def skipped(self) -> int:
        return len(self.orders_skipped)

    @property
    def error_ids(self) -> list[str]:
        return [e.record_id for e in self.errors if e.record_id is not None]

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0


class CycleCloser:
    """Closes a payday.

    Steps, under the processing flag:
    1) recompute the payday's obligations (same as the report)
    2) record each due uniform installment not excluded; each order is a
       compare-and-set on ``checks_completed`` so it applies at most once
    3) mark matched PTO requests paid out in one batch
    4) advance the PayCycle to ``payday + frequency`` regardless of 2/3
    5) return a CloseResult with per-item errors

    Closing a payday at or before the last processed one is allowed, logged
    and reported as ``reclosed``.
    """

    def __init__(
        self,
        repository: ObligationRepository,
        cycle_service: CycleService,
        locking_service: LockingService,
        aggregator: CycleAggregator | None = None,
        matcher: InstallmentMatcher | None = None,
    ):
        self.repository = repository
        self.cycle_service = cycle_service
        self.locking_service = locking_service
        self.matcher = matcher or InstallmentMatcher()
        self.aggregator = aggregator or CycleAggregator(repository, matcher=self.matcher)
        self.status: str = CycleStatus.SCHEDULED.value

    def _transition(self, to_status: CycleStatus) -> None:
        CycleStateMachine.validate_transition(self.status, to_status)
        if CycleStateMachine.is_abort(self.status, to_status):
            logger.warning("Close aborted; payday pointer left unchanged")
        self.status = to_status.value

    async def close_cycle(
        self,
        payday: object,
        excluded_order_ids: Iterable[str] = (),
        today: date | None = None,
        actor: str = "system",
    ) -> CloseResult:
        try:
            day = require_calendar_day(payday)
        except InvalidInputError as e:
            return CloseResult(
                payday=None, success=False, errors=[ItemError.from_exception(None, e)]
            )

        try:
            async with self.locking_service.held(actor):
                return await self._close(day, set(excluded_order_ids), today or date.today())
        except CycleLockedError as e:
            logger.warning("Close of %s refused: %s", day, e)
            return CloseResult(
                payday=day, success=False, errors=[ItemError.from_exception(None, e)]
            )

    async def _close(self, payday: date, excluded: set[str], today: date) -> CloseResult:
        cycle = await self.cycle_service.load(today)
        self._transition(CycleStatus.CLOSING)
        result = CloseResult(payday=payday, success=True, status=self.status)

        try:
            if not cycle.is_on_lattice(payday):
                logger.warning(
                    "Closing %s, which is not on the payday lattice anchored at %s",
                    payday,
                    cycle.anchor_payday,
                )
            if cycle.last_processed_payday is not None and payday <= cycle.last_processed_payday:
                result.reclosed = True
                logger.warning(
                    "Payday %s is at or before the last processed payday %s; re-closing",
                    payday,
                    cycle.last_processed_payday,
                )

            report = await self.aggregator.compile(payday)
            result.warnings.extend(report.warnings)

            await self._record_uniform_payments(report.uniform_deductions, payday, excluded, result)
            await self._mark_pto_paid(report.pto_payouts, result)

            advanced = cycle.advanced_past(payday)
            await self.cycle_service.save(advanced)
        except Exception:
            self._transition(CycleStatus.SCHEDULED)
            raise

        self._transition(CycleStatus.CLOSED)
        logger.info(
            "Closed payday %s: %d order(s) marked, %d PTO request(s) paid, next payday %s",
            payday,
            result.marked,
            len(result.pto_marked),
            advanced.next_payday,
        )
        self._transition(CycleStatus.SCHEDULED)

        result.next_payday = advanced.next_payday
        result.status = CycleStatus.CLOSED.value
        return result

    async def _record_uniform_payments(
        self,
        due_installments: Iterable[DueInstallment],
        payday: date,
        excluded: set[str],
        result: CloseResult,
    ) -> None:
        for due in due_installments:
            order_id = due.order.order_id
            if order_id in excluded:
                result.orders_skipped.append(order_id)
                continue
            try:
                await self.repository.update_fields(
                    UNIFORM_ORDER_TABLE,
                    order_id,
                    self.matcher.payment_changes(due, payday),
                    expected={"checks_completed": due.order.checks_completed},
                )
            except Exception as e:
                logger.exception("Recording payment for order %s failed", order_id)
                result.orders_failed.append(order_id)
                result.errors.append(ItemError.from_exception(order_id, e))
            else:
                result.orders_marked.append(order_id)
                result.total_uniform_collected += due.amount

    async def _mark_pto_paid(self, payouts: Iterable[PTORecord], result: CloseResult) -> None:
        ids = [p.pto_id for p in payouts]
        if not ids:
            return
        hours = {p.pto_id: p.hours_requested for p in payouts}

        try:
            batch = await self.repository.batch_update(PTO_TABLE, ids, {"paid_out": True})
        except Exception as e:
            logger.exception("Marking PTO paid out failed")
            batch = BatchUpdateResult(
                failed_ids=ids, errors=[ItemError.from_exception(pto_id, e) for pto_id in ids]
            )

        if batch.is_partial:
            logger.warning(
                "PTO batch partially applied: %d marked, failed %s",
                len(batch.succeeded_ids),
                ", ".join(batch.failed_ids),
            )
        result.pto_marked.extend(batch.succeeded_ids)
        result.pto_failed.extend(batch.failed_ids)
        result.errors.extend(batch.errors)
        result.total_pto_hours += sum((hours[i] for i in batch.succeeded_ids), ZERO)
