"""Storage collaborators."""

from payroll_cycle.repositories.base import (
    BatchUpdateResult,
    ObligationRepository,
    SettingsStore,
)
from payroll_cycle.repositories.sql import SqlObligationRepository, SqlSettingsStore

__all__ = [
    "BatchUpdateResult",
    "ObligationRepository",
    "SettingsStore",
    "SqlObligationRepository",
    "SqlSettingsStore",
]
