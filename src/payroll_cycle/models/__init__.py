"""ORM models backing the SQL repositories."""

from payroll_cycle.models.base import Base, TimestampMixin
from payroll_cycle.models.obligations import (
    OvertimeSummary,
    PTORequestRow,
    TimeByLocation,
    UniformOrder,
    UniformOrderLineItem,
)
from payroll_cycle.models.settings import PayrollSetting

__all__ = [
    "Base",
    "OvertimeSummary",
    "PTORequestRow",
    "PayrollSetting",
    "TimeByLocation",
    "TimestampMixin",
    "UniformOrder",
    "UniformOrderLineItem",
]
