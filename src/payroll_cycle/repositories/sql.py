"""SQLAlchemy-backed SettingsStore and ObligationRepository."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from contextlib import nullcontext
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycle.calculators.calendar import require_calendar_day, to_calendar_day
from payroll_cycle.calculators.types import (
    ZERO,
    LocationHours,
    OrderLineItem,
    OvertimeRecord,
    PayPeriod,
    PTORecord,
    UniformOrderRecord,
)
from payroll_cycle.errors import (
    InvalidInputError,
    ItemError,
    RecordNotFoundError,
    StaleRecordError,
)
from payroll_cycle.models import (
    OvertimeSummary,
    PayrollSetting,
    PTORequestRow,
    TimeByLocation,
    UniformOrder,
    UniformOrderLineItem,
)
from payroll_cycle.repositories.base import (
    OVERTIME_TABLE,
    PTO_TABLE,
    TIME_BY_LOCATION_TABLE,
    UNIFORM_ORDER_TABLE,
    BatchUpdateResult,
)

logger = logging.getLogger(__name__)

# table name -> (model, primary key attribute)
_TABLES: dict[str, tuple[type, str]] = {
    OVERTIME_TABLE: (OvertimeSummary, "overtime_summary_id"),
    TIME_BY_LOCATION_TABLE: (TimeByLocation, "time_by_location_id"),
    UNIFORM_ORDER_TABLE: (UniformOrder, "order_id"),
    PTO_TABLE: (PTORequestRow, "pto_id"),
}


def _hours(value: Any) -> Decimal:
    return Decimal(value) if value is not None else ZERO


class SqlSettingsStore:
    """Settings stored one row per name.

    With ``autocommit`` every write is committed at once, which is what the
    processing flag needs to be visible to other connections.
    """

    def __init__(self, session: AsyncSession, autocommit: bool = False):
        self.session = session
        self.autocommit = autocommit

    async def _written(self) -> None:
        await self.session.flush()
        if self.autocommit:
            await self.session.commit()

    async def get(self, name: str) -> str | None:
        row = await self.session.get(PayrollSetting, name)
        return row.value if row is not None else None

    async def set(self, name: str, value: str) -> None:
        now = datetime.now(timezone.utc)
        row = await self.session.get(PayrollSetting, name)
        if row is None:
            self.session.add(PayrollSetting(name=name, value=value, updated_at=now))
        else:
            row.value = value
            row.updated_at = now
        await self._written()

    async def delete(self, name: str) -> None:
        await self.session.execute(delete(PayrollSetting).where(PayrollSetting.name == name))
        await self._written()

    async def updated_at(self, name: str) -> datetime | None:
        row = await self.session.get(PayrollSetting, name)
        return row.updated_at if row is not None else None


class SqlObligationRepository:
    """Obligation records read and written through one AsyncSession.

    Every row is converted to its domain record on the way out, with date
    columns passed through ``to_calendar_day``.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # === Reads ===

    async def query_by_period(
        self, table: str, period: PayPeriod
    ) -> list[OvertimeRecord] | list[LocationHours]:
        if table == OVERTIME_TABLE:
            result = await self.session.execute(
                select(OvertimeSummary).where(
                    OvertimeSummary.period_start == period.start,
                    OvertimeSummary.period_end == period.end,
                )
            )
            return [self._overtime_record(row) for row in result.scalars().all()]

        if table == TIME_BY_LOCATION_TABLE:
            result = await self.session.execute(
                select(TimeByLocation).where(
                    TimeByLocation.period_start == period.start,
                    TimeByLocation.period_end == period.end,
                )
            )
            return [self._location_hours(row) for row in result.scalars().all()]

        raise InvalidInputError(f"Table '{table}' is not queryable by period")

    async def list_active_orders(self) -> list[UniformOrderRecord]:
        result = await self.session.execute(
            select(UniformOrder)
            .where(UniformOrder.status == "Active")
            .order_by(UniformOrder.order_id)
        )
        return [self._order_record(row) for row in result.scalars().all()]

    async def get_order(self, order_id: str) -> UniformOrderRecord:
        row = await self.session.get(UniformOrder, order_id)
        if row is None:
            raise RecordNotFoundError(UNIFORM_ORDER_TABLE, order_id)
        return self._order_record(row)

    async def list_line_items(self, order_id: str) -> list[OrderLineItem]:
        result = await self.session.execute(
            select(UniformOrderLineItem)
            .where(UniformOrderLineItem.order_id == order_id)
            .order_by(UniformOrderLineItem.line_item_id)
        )
        return [
            OrderLineItem(
                order_id=row.order_id,
                description=row.description,
                quantity=row.quantity,
                unit_price=Decimal(row.unit_price),
            )
            for row in result.scalars().all()
        ]

    async def list_pto_for_payout(self, payday: date) -> list[PTORecord]:
        result = await self.session.execute(
            select(PTORequestRow)
            .where(PTORequestRow.payout_period == payday)
            .order_by(PTORequestRow.pto_id)
        )
        return [self._pto_record(row) for row in result.scalars().all()]

    # === Writes ===

    async def update_fields(
        self,
        table: str,
        record_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> None:
        model, pk_name = self._table(table)
        self._check_columns(model, table, [*fields, *(expected or {})])

        conditions = [getattr(model, pk_name) == record_id]
        for name, value in (expected or {}).items():
            conditions.append(getattr(model, name) == value)

        async with self._isolated():
            result = await self.session.execute(
                update(model)
                .where(*conditions)
                .values(**fields)
                .returning(getattr(model, pk_name))
                .execution_options(synchronize_session="fetch")
            )
            if result.scalars().all():
                return

            row = await self.session.get(model, record_id, populate_existing=True)
            if row is None:
                raise RecordNotFoundError(table, record_id)
            for name, value in (expected or {}).items():
                actual = getattr(row, name)
                if actual != value:
                    raise StaleRecordError(table, record_id, name, value, actual)

    async def batch_update(
        self, table: str, record_ids: Sequence[str], fields: Mapping[str, Any]
    ) -> BatchUpdateResult:
        succeeded: list[str] = []
        failed: list[str] = []
        errors: list[ItemError] = []

        for record_id in record_ids:
            try:
                await self.update_fields(table, record_id, fields)
            except Exception as e:
                logger.exception("Batch update of %s '%s' failed", table, record_id)
                failed.append(record_id)
                errors.append(ItemError.from_exception(record_id, e))
            else:
                succeeded.append(record_id)

        return BatchUpdateResult(succeeded_ids=succeeded, failed_ids=failed, errors=errors)

    # === Helpers ===

    def _isolated(self):
        """Savepoint around one record's update (pysqlite cannot nest)."""
        bind = self.session.get_bind()
        if bind.dialect.name == "sqlite":
            return nullcontext()
        return self.session.begin_nested()

    @staticmethod
    def _table(table: str) -> tuple[type, str]:
        try:
            return _TABLES[table]
        except KeyError:
            raise InvalidInputError(f"Unknown table '{table}'") from None

    @staticmethod
    def _check_columns(model: type, table: str, names: Sequence[str]) -> None:
        columns = model.__table__.columns.keys()
        unknown = [name for name in names if name not in columns]
        if unknown:
            raise InvalidInputError(f"Unknown {table} field(s): {', '.join(unknown)}")

    @staticmethod
    def _overtime_record(row: OvertimeSummary) -> OvertimeRecord:
        return OvertimeRecord(
            employee_id=row.employee_id,
            employee_name=row.employee_name,
            location=row.location or "",
            period_start=require_calendar_day(row.period_start),
            period_end=require_calendar_day(row.period_end),
            total_hours=_hours(row.total_hours),
            regular_hours=_hours(row.regular_hours),
            ot_hours=_hours(row.ot_hours),
            week1_ot=_hours(row.week1_ot),
            week2_ot=_hours(row.week2_ot),
            hours_location_a=_hours(row.hours_location_a),
            hours_location_b=_hours(row.hours_location_b),
            is_multi_location=bool(row.is_multi_location),
        )

    @staticmethod
    def _location_hours(row: TimeByLocation) -> LocationHours:
        return LocationHours(
            employee_id=row.employee_id,
            employee_name=row.employee_name,
            period_start=require_calendar_day(row.period_start),
            period_end=require_calendar_day(row.period_end),
            hours_location_a=_hours(row.hours_location_a),
            hours_location_b=_hours(row.hours_location_b),
            total_ot_hours=_hours(row.total_ot_hours),
        )

    @staticmethod
    def _order_record(row: UniformOrder) -> UniformOrderRecord:
        return UniformOrderRecord(
            order_id=row.order_id,
            employee_id=row.employee_id,
            employee_name=row.employee_name,
            location=row.location or "",
            total_cost=Decimal(row.total_cost),
            payment_schedule_count=row.payment_schedule_count,
            first_deduction_date=to_calendar_day(row.first_deduction_date),
            checks_completed=row.checks_completed or 0,
            status=row.status,
            notes=row.notes or "",
        )

    @staticmethod
    def _pto_record(row: PTORequestRow) -> PTORecord:
        return PTORecord(
            pto_id=row.pto_id,
            employee_id=row.employee_id,
            employee_name=row.employee_name,
            location=row.location or "",
            hours_requested=_hours(row.hours_requested),
            start_date=to_calendar_day(row.start_date),
            end_date=to_calendar_day(row.end_date),
            payout_period=to_calendar_day(row.payout_period),
            paid_out=bool(row.paid_out),
            status=row.status,
        )
