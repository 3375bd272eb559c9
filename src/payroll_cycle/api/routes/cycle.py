"""Pay cycle API endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status

from payroll_cycle.api.dependencies import Services
from payroll_cycle.api.schemas import (
    CloseRequest,
    CloseResponse,
    CycleReportResponse,
    ErrorResponse,
    PayCycleResponse,
    PaydayEntryResponse,
    PaydaySeriesResponse,
)
from payroll_cycle.calculators.calendar import pay_period_for, payday_series
from payroll_cycle.errors import ErrorKind

router = APIRouter(prefix="/cycle", tags=["cycle"])

AsOf = Annotated[date | None, Query(description="Evaluate as of this day (default: today)")]


@router.get("", response_model=PayCycleResponse)
async def get_cycle(services: Services, as_of: AsOf = None) -> PayCycleResponse:
    """Current pay cycle with the next payday normalized past today."""
    cycle = await services.cycle_service.load(as_of)
    return PayCycleResponse.from_cycle(cycle, pay_period_for(cycle.next_payday))


@router.get("/paydays", response_model=PaydaySeriesResponse)
async def list_paydays(
    services: Services,
    history: Annotated[int, Query(ge=0, le=52)] = 6,
    future: Annotated[int, Query(ge=0, le=52)] = 6,
    as_of: AsOf = None,
) -> PaydaySeriesResponse:
    """Past and upcoming paydays, oldest first."""
    cycle = await services.cycle_service.load(as_of)
    entries = payday_series(
        cycle.anchor_payday,
        cycle.frequency_days,
        as_of or date.today(),
        history,
        future,
    )
    return PaydaySeriesResponse(
        items=[PaydayEntryResponse.from_entry(e) for e in entries],
        total=len(entries),
    )


@router.get(
    "/paydays/{payday}/report",
    response_model=CycleReportResponse,
    responses={400: {"model": ErrorResponse}},
)
async def get_report(
    services: Services,
    payday: Annotated[str, Path()],
) -> CycleReportResponse:
    """Everything falling due on ``payday``."""
    result = await services.aggregator.build_report(payday)
    if not result.success or result.report is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.error.message if result.error else "Invalid payday",
        )
    return CycleReportResponse.from_report(result.report)


@router.post(
    "/paydays/{payday}/close",
    response_model=CloseResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def close_payday(
    services: Services,
    payday: Annotated[str, Path()],
    payload: CloseRequest | None = None,
    as_of: AsOf = None,
) -> CloseResponse:
    """Mark the payday's obligations paid and advance the cycle."""
    payload = payload or CloseRequest()
    result = await services.closer.close_cycle(
        payday,
        excluded_order_ids=payload.excluded_order_ids,
        today=as_of,
        actor=payload.actor,
    )
    if not result.success:
        error = result.errors[0] if result.errors else None
        locked = error is not None and error.kind == ErrorKind.LOCKED
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT if locked else status.HTTP_400_BAD_REQUEST,
            detail=error.message if error else "Close failed",
        )
    return CloseResponse.from_result(result)
