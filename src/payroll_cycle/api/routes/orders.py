"""Uniform order API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path

from payroll_cycle.api.dependencies import Services
from payroll_cycle.api.schemas import (
    ErrorResponse,
    OrderScheduleResponse,
    SkipRequest,
    SkipResponse,
)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get(
    "/{order_id}/schedule",
    response_model=OrderScheduleResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_order_schedule(
    services: Services,
    order_id: Annotated[str, Path()],
) -> OrderScheduleResponse:
    """Installment plan of an order."""
    schedule = await services.orders.order_schedule(order_id)
    return OrderScheduleResponse.from_schedule(schedule)


@router.post(
    "/{order_id}/skip",
    response_model=SkipResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def skip_order_payment(
    services: Services,
    order_id: Annotated[str, Path()],
    payload: SkipRequest,
) -> SkipResponse:
    """Push an order's schedule back one cycle."""
    outcome = await services.orders.skip_payment(order_id, payload.effective_date)
    return SkipResponse.model_validate(outcome)
