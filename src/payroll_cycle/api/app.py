"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from payroll_cycle import __version__
from payroll_cycle.api.routes import cycle_router, health_router, orders_router
from payroll_cycle.config import configure_logging
from payroll_cycle.database import create_schema, dispose_db
from payroll_cycle.errors import ErrorKind, PayrollCycleError

_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.LOCKED: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    configure_logging()
    await create_schema()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Payroll Cycle API",
        description="Biweekly payday scheduling and cycle close-out",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(PayrollCycleError)
    async def payroll_cycle_exception_handler(
        request: Request, exc: PayrollCycleError
    ) -> JSONResponse:
        """Map domain errors onto HTTP status codes."""
        return JSONResponse(
            status_code=_STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST),
            content={"detail": exc.message, "code": exc.kind.value},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    app.include_router(health_router)
    app.include_router(cycle_router, prefix="/api/v1")
    app.include_router(orders_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
