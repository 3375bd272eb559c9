"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from payroll_cycle.calculators.types import (
    DueInstallment,
    Installment,
    LocationAllocation,
    PaydayEntry,
    PayPeriod,
    PayCycle,
)
from payroll_cycle.errors import ItemError
from payroll_cycle.services.aggregator import CycleReport, SourceWarning
from payroll_cycle.services.closer import CloseResult
from payroll_cycle.services.order_service import OrderSchedule


# ============================================================================
# Cycle schemas
# ============================================================================


class PayPeriodResponse(BaseModel):
    """Inclusive bounds of a pay period."""

    model_config = ConfigDict(from_attributes=True)

    start: date
    end: date


class PayCycleResponse(BaseModel):
    """Schema for the current pay cycle."""

    frequency_days: int
    anchor_payday: date
    next_payday: date
    last_processed_payday: date | None = None
    next_period: PayPeriodResponse

    @classmethod
    def from_cycle(cls, cycle: PayCycle, next_period: PayPeriod) -> PayCycleResponse:
        return cls(
            frequency_days=cycle.frequency_days,
            anchor_payday=cycle.anchor_payday,
            next_payday=cycle.next_payday,
            last_processed_payday=cycle.last_processed_payday,
            next_period=PayPeriodResponse.model_validate(next_period),
        )


class PaydayEntryResponse(BaseModel):
    """One payday in a series."""

    payday: date
    period: PayPeriodResponse
    is_current: bool
    is_next: bool

    @classmethod
    def from_entry(cls, entry: PaydayEntry) -> PaydayEntryResponse:
        return cls(
            payday=entry.payday,
            period=PayPeriodResponse.model_validate(entry.period),
            is_current=entry.is_current,
            is_next=entry.is_next,
        )


class PaydaySeriesResponse(BaseModel):
    """Schema for listing paydays."""

    items: list[PaydayEntryResponse]
    total: int


# ============================================================================
# Report schemas
# ============================================================================


class OvertimeLine(BaseModel):
    """Overtime for one employee."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    employee_name: str
    location: str
    total_hours: Decimal
    regular_hours: Decimal
    ot_hours: Decimal
    week1_ot: Decimal
    week2_ot: Decimal
    is_multi_location: bool


class UniformDeductionLine(BaseModel):
    """Installment due for one order."""

    order_id: str
    employee_id: str
    employee_name: str
    location: str
    installment_number: int
    payment_schedule_count: int
    amount: Decimal
    remaining_balance: Decimal
    is_final: bool

    @classmethod
    def from_due(cls, due: DueInstallment) -> UniformDeductionLine:
        return cls(
            order_id=due.order.order_id,
            employee_id=due.order.employee_id,
            employee_name=due.order.employee_name,
            location=due.order.location,
            installment_number=due.number,
            payment_schedule_count=due.order.payment_schedule_count,
            amount=due.amount,
            remaining_balance=due.remaining_balance,
            is_final=due.is_final,
        )


class PTOPayoutLine(BaseModel):
    """PTO request paid on the payday."""

    model_config = ConfigDict(from_attributes=True)

    pto_id: str
    employee_id: str
    employee_name: str
    location: str
    hours_requested: Decimal
    start_date: date | None = None
    end_date: date | None = None
    status: str


class LocationSplitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    location: str
    hours: Decimal
    regular_hours: Decimal
    ot_hours: Decimal


class TransferLine(BaseModel):
    """Hours moved onto the paying location."""

    employee_id: str
    employee_name: str
    location_a: LocationSplitResponse
    location_b: LocationSplitResponse
    paid_from: str
    transfer_from: str
    transfer_to: str
    transfer_hours: Decimal

    @classmethod
    def from_allocation(cls, allocation: LocationAllocation) -> TransferLine:
        return cls(
            employee_id=allocation.employee_id,
            employee_name=allocation.employee_name,
            location_a=LocationSplitResponse.model_validate(allocation.location_a),
            location_b=LocationSplitResponse.model_validate(allocation.location_b),
            paid_from=allocation.paid_from,
            transfer_from=allocation.transfer_from,
            transfer_to=allocation.transfer_to,
            transfer_hours=allocation.transfer_hours,
        )


class WarningResponse(BaseModel):
    source: str
    kind: str
    message: str
    record_id: str | None = None


class ReportSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_count: int
    overtime_count: int
    total_ot_hours: Decimal
    total_week1_ot: Decimal
    total_week2_ot: Decimal
    uniform_count: int
    total_uniform_deductions: Decimal
    pto_count: int
    total_pto_hours: Decimal
    transfer_count: int
    total_transfer_hours: Decimal


class CycleReportResponse(BaseModel):
    """Schema for a payday's obligation report."""

    payday: date
    period: PayPeriodResponse
    overtime: list[OvertimeLine]
    uniform_deductions: list[UniformDeductionLine]
    pto_payouts: list[PTOPayoutLine]
    transfers: list[TransferLine]
    summary: ReportSummaryResponse
    warnings: list[WarningResponse]

    @classmethod
    def from_report(cls, report: CycleReport) -> CycleReportResponse:
        return cls(
            payday=report.payday,
            period=PayPeriodResponse.model_validate(report.period),
            overtime=[OvertimeLine.model_validate(r) for r in report.overtime],
            uniform_deductions=[
                UniformDeductionLine.from_due(d) for d in report.uniform_deductions
            ],
            pto_payouts=[PTOPayoutLine.model_validate(p) for p in report.pto_payouts],
            transfers=[TransferLine.from_allocation(t) for t in report.transfers],
            summary=ReportSummaryResponse.model_validate(report.summary),
            warnings=[_warning(w) for w in report.warnings],
        )


def _warning(warning: SourceWarning) -> WarningResponse:
    return WarningResponse(
        source=warning.source,
        kind=warning.kind.value,
        message=warning.message,
        record_id=warning.record_id,
    )


# ============================================================================
# Close schemas
# ============================================================================


class CloseRequest(BaseModel):
    """Schema for closing a payday."""

    excluded_order_ids: list[str] = Field(default_factory=list)
    actor: str = "api"


class ItemErrorResponse(BaseModel):
    kind: str
    record_id: str | None = None
    message: str

    @classmethod
    def from_error(cls, error: ItemError) -> ItemErrorResponse:
        return cls(kind=error.kind.value, record_id=error.record_id, message=error.message)


class CloseResponse(BaseModel):
    """Schema for close-out result."""

    payday: date | None
    success: bool
    status: str
    next_payday: date | None = None
    marked: int
    skipped: int
    orders_marked: list[str]
    orders_skipped: list[str]
    orders_failed: list[str]
    pto_marked: list[str]
    pto_failed: list[str]
    total_uniform_collected: Decimal
    total_pto_hours: Decimal
    reclosed: bool
    errors: list[ItemErrorResponse]
    warnings: list[WarningResponse]

    @classmethod
    def from_result(cls, result: CloseResult) -> CloseResponse:
        return cls(
            payday=result.payday,
            success=result.success,
            status=result.status,
            next_payday=result.next_payday,
            marked=result.marked,
            skipped=result.skipped,
            orders_marked=result.orders_marked,
            orders_skipped=result.orders_skipped,
            orders_failed=result.orders_failed,
            pto_marked=result.pto_marked,
            pto_failed=result.pto_failed,
            total_uniform_collected=result.total_uniform_collected,
            total_pto_hours=result.total_pto_hours,
            reclosed=result.reclosed,
            errors=[ItemErrorResponse.from_error(e) for e in result.errors],
            warnings=[_warning(w) for w in result.warnings],
        )


# ============================================================================
# Order schemas
# ============================================================================


class InstallmentResponse(BaseModel):
    index: int
    number: int
    due_date: date
    amount: Decimal
    is_final: bool
    status: str

    @classmethod
    def from_installment(cls, installment: Installment) -> InstallmentResponse:
        return cls(
            index=installment.index,
            number=installment.number,
            due_date=installment.due_date,
            amount=installment.amount,
            is_final=installment.is_final,
            status=installment.status.value,
        )


class LineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    description: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderScheduleResponse(BaseModel):
    """Schema for an order's installment plan."""

    order_id: str
    employee_id: str
    employee_name: str
    status: str
    total_cost: Decimal
    payment_schedule_count: int
    checks_completed: int
    first_deduction_date: date | None
    remaining_balance: Decimal
    line_item_total: Decimal
    line_items: list[LineItemResponse]
    installments: list[InstallmentResponse]
    notes: str

    @classmethod
    def from_schedule(cls, schedule: OrderSchedule) -> OrderScheduleResponse:
        order = schedule.order
        return cls(
            order_id=order.order_id,
            employee_id=order.employee_id,
            employee_name=order.employee_name,
            status=order.status,
            total_cost=order.total_cost,
            payment_schedule_count=order.payment_schedule_count,
            checks_completed=order.checks_completed,
            first_deduction_date=order.first_deduction_date,
            remaining_balance=schedule.remaining_balance,
            line_item_total=schedule.line_item_total,
            line_items=[LineItemResponse.model_validate(i) for i in schedule.line_items],
            installments=[InstallmentResponse.from_installment(i) for i in schedule.installments],
            notes=order.notes,
        )


class SkipRequest(BaseModel):
    """Schema for skipping an order's payment."""

    effective_date: date


class SkipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    old_first_deduction: date
    new_first_deduction: date
    checks_completed: int
    notes: str


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
