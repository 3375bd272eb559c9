"""Pytest fixtures for payroll cycle tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Mapping, Sequence
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_cycle.config import Settings
from payroll_cycle.models import (
    Base,
    OvertimeSummary,
    PTORequestRow,
    TimeByLocation,
    UniformOrder,
    UniformOrderLineItem,
)
from payroll_cycle.errors import ErrorKind, ItemError
from payroll_cycle.repositories.base import BatchUpdateResult
from payroll_cycle.repositories.sql import SqlObligationRepository

# In-memory SQLite shared by every session of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ANCHOR = date(2025, 11, 28)


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the process environment."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        anchor_payday=ANCHOR,
        frequency_days=14,
        timezone="America/Chicago",
        processing_lock_ttl_seconds=600,
        location_a_name="Downtown",
        location_b_name="Airport",
        default_ot_rate=Decimal("1.5"),
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
    )


@pytest_asyncio.fixture
async def engine():
    """Create test database engine with all tables."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Row builders
# =============================================================================


def make_order(order_id: str = "UO-1", **overrides: Any) -> UniformOrder:
    values: dict[str, Any] = {
        "order_id": order_id,
        "employee_id": "E-1",
        "employee_name": "Ada Park",
        "location": "Downtown",
        "total_cost": Decimal("100.00"),
        "payment_schedule_count": 3,
        "first_deduction_date": ANCHOR,
        "checks_completed": 0,
        "status": "Active",
        "notes": "",
    }
    values.update(overrides)
    return UniformOrder(**values)


def make_pto(pto_id: str = "PTO-1", **overrides: Any) -> PTORequestRow:
    values: dict[str, Any] = {
        "pto_id": pto_id,
        "employee_id": "E-2",
        "employee_name": "Ben Ortiz",
        "location": "Airport",
        "hours_requested": Decimal("16.00"),
        "start_date": date(2025, 12, 1),
        "end_date": date(2025, 12, 2),
        "payout_period": date(2025, 12, 12),
        "paid_out": False,
        "status": "Approved",
    }
    values.update(overrides)
    return PTORequestRow(**values)


def make_overtime(employee_id: str = "E-3", **overrides: Any) -> OvertimeSummary:
    # Period settled by the 2025-12-12 payday
    values: dict[str, Any] = {
        "employee_id": employee_id,
        "employee_name": "Cara Liu",
        "location": "Downtown",
        "period_start": date(2025, 11, 23),
        "period_end": date(2025, 12, 6),
        "total_hours": Decimal("88.00"),
        "regular_hours": Decimal("80.00"),
        "ot_hours": Decimal("8.00"),
        "week1_ot": Decimal("5.00"),
        "week2_ot": Decimal("3.00"),
    }
    values.update(overrides)
    return OvertimeSummary(**values)


def make_time_by_location(employee_id: str = "E-4", **overrides: Any) -> TimeByLocation:
    values: dict[str, Any] = {
        "employee_id": employee_id,
        "employee_name": "Dev Shah",
        "period_start": date(2025, 11, 23),
        "period_end": date(2025, 12, 6),
        "hours_location_a": Decimal("30.00"),
        "hours_location_b": Decimal("50.00"),
        "total_ot_hours": Decimal("0"),
    }
    values.update(overrides)
    return TimeByLocation(**values)


def make_line_item(order_id: str = "UO-1", **overrides: Any) -> UniformOrderLineItem:
    values: dict[str, Any] = {
        "order_id": order_id,
        "description": "Polo shirt",
        "quantity": 2,
        "unit_price": Decimal("25.00"),
    }
    values.update(overrides)
    return UniformOrderLineItem(**values)


async def seed(session: AsyncSession, *rows: Any) -> None:
    session.add_all(rows)
    await session.flush()


# =============================================================================
# Collaborator doubles
# =============================================================================


class InMemorySettingsStore:
    """Dictionary-backed SettingsStore."""

    def __init__(self, values: Mapping[str, str] | None = None):
        self.values: dict[str, str] = dict(values or {})
        self.stamps: dict[str, datetime] = {}
        self.writes: list[tuple[str, str | None]] = []

    async def get(self, name: str) -> str | None:
        return self.values.get(name)

    async def set(self, name: str, value: str) -> None:
        self.values[name] = value
        self.stamps[name] = datetime.now(timezone.utc)
        self.writes.append((name, value))

    async def delete(self, name: str) -> None:
        self.values.pop(name, None)
        self.stamps.pop(name, None)
        self.writes.append((name, None))

    async def updated_at(self, name: str) -> datetime | None:
        return self.stamps.get(name)


class FlakyRepository:
    """Wraps a repository and fails chosen sources or records."""

    def __init__(
        self,
        inner: SqlObligationRepository,
        failing_tables: Sequence[str] = (),
        failing_ids: Sequence[str] = (),
        fail_orders: bool = False,
        fail_batches: bool = False,
    ):
        self.inner = inner
        self.failing_tables = set(failing_tables)
        self.failing_ids = set(failing_ids)
        self.fail_orders = fail_orders
        self.fail_batches = fail_batches

    async def query_by_period(self, table, period):
        if table in self.failing_tables:
            raise ConnectionError(f"{table} unavailable")
        return await self.inner.query_by_period(table, period)

    async def list_active_orders(self):
        if self.fail_orders:
            raise ConnectionError("uniform_order unavailable")
        return await self.inner.list_active_orders()

    async def get_order(self, order_id):
        return await self.inner.get_order(order_id)

    async def list_line_items(self, order_id):
        return await self.inner.list_line_items(order_id)

    async def list_pto_for_payout(self, payday):
        return await self.inner.list_pto_for_payout(payday)

    async def update_fields(self, table, record_id, fields, expected=None):
        if record_id in self.failing_ids:
            raise ConnectionError(f"write to {record_id} timed out")
        await self.inner.update_fields(table, record_id, fields, expected=expected)

    async def batch_update(self, table, record_ids, fields) -> BatchUpdateResult:
        if self.fail_batches:
            raise ConnectionError(f"{table} batch rejected")
        failing = [i for i in record_ids if i in self.failing_ids]
        applied = await self.inner.batch_update(
            table, [i for i in record_ids if i not in self.failing_ids], fields
        )
        return BatchUpdateResult(
            succeeded_ids=applied.succeeded_ids,
            failed_ids=applied.failed_ids + failing,
            errors=applied.errors
            + [ItemError(ErrorKind.PARTIAL_FAILURE, i, f"write to {i} timed out") for i in failing],
        )
