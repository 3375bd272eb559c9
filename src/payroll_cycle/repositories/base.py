"""Protocols for the storage collaborators.

The engine never talks to storage directly; it is handed a SettingsStore
and an ObligationRepository. Implementations must return domain records
with dates already normalized to calendar days.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Protocol

from payroll_cycle.calculators.types import (
    LocationHours,
    OrderLineItem,
    OvertimeRecord,
    PayPeriod,
    PTORecord,
    UniformOrderRecord,
)
from payroll_cycle.errors import ItemError

OVERTIME_TABLE = "overtime_summary"
TIME_BY_LOCATION_TABLE = "time_by_location"
UNIFORM_ORDER_TABLE = "uniform_order"
PTO_TABLE = "pto_request"

# Setting names
NEXT_PAYROLL_DATE = "next_payroll_date"
LAST_PAYROLL_PROCESSED = "last_payroll_processed"
PAYROLL_FREQUENCY = "payroll_frequency"
PAYROLL_ANCHOR_DATE = "payroll_anchor_date"
DEFAULT_OT_RATE = "default_ot_rate"
LOCATION_A_NAME = "location_a_name"
LOCATION_B_NAME = "location_b_name"
PAYROLL_PROCESSING = "payroll_processing"


@dataclass(frozen=True)
class BatchUpdateResult:
    """Outcome of updating many records with per-record isolation."""

    succeeded_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)
    errors: list[ItemError] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.succeeded_ids) and bool(self.failed_ids)


class SettingsStore(Protocol):
    """Named configuration values, stored as strings."""

    async def get(self, name: str) -> str | None:
        """Return the value, or None when the setting does not exist."""
        ...

    async def set(self, name: str, value: str) -> None:
        ...

    async def delete(self, name: str) -> None:
        ...

    async def updated_at(self, name: str) -> datetime | None:
        ...


class ObligationRepository(Protocol):
    """Read/update access to the obligation tables."""

    async def query_by_period(
        self, table: str, period: PayPeriod
    ) -> Sequence[OvertimeRecord] | Sequence[LocationHours]:
        """Records of ``table`` (overtime or time-by-location) for ``period``."""
        ...

    async def list_active_orders(self) -> list[UniformOrderRecord]:
        ...

    async def get_order(self, order_id: str) -> UniformOrderRecord:
        """Raises RecordNotFoundError when missing."""
        ...

    async def list_line_items(self, order_id: str) -> list[OrderLineItem]:
        ...

    async def list_pto_for_payout(self, payday: date) -> list[PTORecord]:
        """PTO requests whose payout period is ``payday``, unfiltered by status."""
        ...

    async def update_fields(
        self,
        table: str,
        record_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> None:
        """Update one record.

        ``expected`` is a compare-and-set guard: the update applies only if
        every listed field still holds the given value, otherwise
        StaleRecordError is raised and nothing changes.
        """
        ...

    async def batch_update(
        self, table: str, record_ids: Sequence[str], fields: Mapping[str, Any]
    ) -> BatchUpdateResult:
        ...
