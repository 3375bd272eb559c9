"""API routes."""

from payroll_cycle.api.routes.cycle import router as cycle_router
from payroll_cycle.api.routes.health import router as health_router
from payroll_cycle.api.routes.orders import router as orders_router

__all__ = ["cycle_router", "health_router", "orders_router"]
