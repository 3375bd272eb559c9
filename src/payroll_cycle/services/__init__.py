"""Payroll cycle services."""

from payroll_cycle.services.aggregator import CycleAggregator, CycleReport, ReportResult
from payroll_cycle.services.closer import CloseResult, CycleCloser
from payroll_cycle.services.cycle_service import CycleService
from payroll_cycle.services.locking_service import LockingService
from payroll_cycle.services.order_service import OrderService
from payroll_cycle.services.state_machine import (
    CycleStateMachine,
    CycleStatus,
    InvalidTransitionError,
)

__all__ = [
    "CloseResult",
    "CycleAggregator",
    "CycleCloser",
    "CycleReport",
    "CycleService",
    "CycleStateMachine",
    "CycleStatus",
    "InvalidTransitionError",
    "LockingService",
    "OrderService",
    "ReportResult",
]
