"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from payroll_cycle.api.dependencies import DbSession
from payroll_cycle.repositories.sql import SqlSettingsStore
from payroll_cycle.services.locking_service import LockingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status; ``processing`` is true while an unexpired close-out flag is held."""

    status: str
    checked_at: datetime
    database: str
    processing: bool = False


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    database = "healthy"
    processing = False
    try:
        await db.execute(text("SELECT 1"))
        processing = await LockingService(SqlSettingsStore(db)).is_locked()
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        database = "unhealthy"

    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        checked_at=datetime.now(timezone.utc),
        database=database,
        processing=processing,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check() -> dict[str, str]:
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
