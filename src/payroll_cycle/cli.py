"""Payroll cycle command line interface.

Provides operational tools for:
- Showing the current cycle and payday series
- Building a payday's obligation report
- Closing a payday
- Skipping a uniform order payment

Usage:
    python -m payroll_cycle.cli init-db
    python -m payroll_cycle.cli next-payday [--as-of 2025-12-01]
    python -m payroll_cycle.cli paydays --history 4 --future 4
    python -m payroll_cycle.cli report 2025-12-12
    python -m payroll_cycle.cli close 2025-12-12 --exclude UO-17
    python -m payroll_cycle.cli skip UO-17 --effective-date 2025-12-12
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import Any

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycle.api.schemas import (
    CloseResponse,
    CycleReportResponse,
    OrderScheduleResponse,
    PayCycleResponse,
    PaydayEntryResponse,
    PaydaySeriesResponse,
    SkipResponse,
)
from payroll_cycle.bootstrap import PayrollServices, build_services
from payroll_cycle.calculators.calendar import pay_period_for, payday_series, require_calendar_day
from payroll_cycle.config import configure_logging
from payroll_cycle.database import create_schema, get_session
from payroll_cycle.errors import PayrollCycleError
from payroll_cycle.repositories.sql import SqlSettingsStore

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def parse_date(s: str) -> date:
    """Parse a payday argument."""
    try:
        return require_calendar_day(s)
    except PayrollCycleError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


class CycleCli:
    """Payroll cycle command line interface."""

    def __init__(
        self,
        session_factory: SessionFactory = get_session,
        out: Any = None,
    ) -> None:
        self.session_factory = session_factory
        self.out = out or sys.stdout
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m payroll_cycle.cli",
            description="Payroll cycle operational tools",
        )
        parser.add_argument(
            "--log-level",
            default=None,
            help="Logging level (default: LOG_LEVEL or INFO)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create database tables")

        next_payday = subparsers.add_parser(
            "next-payday",
            help="Show the current pay cycle",
        )
        next_payday.add_argument(
            "--as-of",
            type=parse_date,
            help="Evaluate as of this day (default: today)",
        )

        paydays = subparsers.add_parser("paydays", help="List past and upcoming paydays")
        paydays.add_argument("--history", type=int, default=6, help="Past paydays (default: 6)")
        paydays.add_argument("--future", type=int, default=6, help="Future paydays (default: 6)")
        paydays.add_argument("--as-of", type=parse_date, help="Evaluate as of this day")

        report = subparsers.add_parser("report", help="Obligations due on a payday")
        report.add_argument("payday", type=str, help="Payday (YYYY-MM-DD)")

        close = subparsers.add_parser("close", help="Close a payday and advance the cycle")
        close.add_argument("payday", type=str, help="Payday (YYYY-MM-DD)")
        close.add_argument(
            "--exclude",
            action="append",
            default=[],
            metavar="ORDER_ID",
            help="Uniform order to leave unbilled (repeatable)",
        )
        close.add_argument("--as-of", type=parse_date, help="Evaluate as of this day")
        close.add_argument("--actor", default="cli", help="Name recorded on the processing flag")

        skip = subparsers.add_parser("skip", help="Skip a uniform order payment")
        skip.add_argument("order_id", type=str, help="Uniform order ID")
        skip.add_argument(
            "--effective-date",
            type=parse_date,
            default=None,
            help="Date recorded on the audit note (default: today)",
        )

        schedule = subparsers.add_parser("schedule", help="Show a uniform order's installments")
        schedule.add_argument("order_id", type=str, help="Uniform order ID")

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(parsed.log_level)

        handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "next-payday": self._cmd_next_payday,
            "paydays": self._cmd_paydays,
            "report": self._cmd_report,
            "close": self._cmd_close,
            "skip": self._cmd_skip,
            "schedule": self._cmd_schedule,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return asyncio.run(handler(parsed))
        except PayrollCycleError as e:
            print(f"ERROR [{e.kind.value}]: {e.message}", file=sys.stderr)
            return 1

    def _emit(self, model: BaseModel) -> None:
        print(model.model_dump_json(indent=2), file=self.out)

    async def _with_services(
        self, action: Callable[[PayrollServices], Awaitable[int]]
    ) -> int:
        async with self.session_factory() as session:
            services = await build_services(
                session, lock_store=SqlSettingsStore(session, autocommit=True)
            )
            return await action(services)

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create tables."""
        await create_schema()
        print("Schema ready.", file=self.out)
        return 0

    async def _cmd_next_payday(self, args: argparse.Namespace) -> int:
        """Show the normalized pay cycle."""

        async def action(services: PayrollServices) -> int:
            cycle = await services.cycle_service.load(args.as_of)
            self._emit(PayCycleResponse.from_cycle(cycle, pay_period_for(cycle.next_payday)))
            return 0

        return await self._with_services(action)

    async def _cmd_paydays(self, args: argparse.Namespace) -> int:
        """List the payday series."""

        async def action(services: PayrollServices) -> int:
            cycle = await services.cycle_service.load(args.as_of)
            entries = payday_series(
                cycle.anchor_payday,
                cycle.frequency_days,
                args.as_of or date.today(),
                args.history,
                args.future,
            )
            self._emit(
                PaydaySeriesResponse(
                    items=[PaydayEntryResponse.from_entry(e) for e in entries],
                    total=len(entries),
                )
            )
            return 0

        return await self._with_services(action)

    async def _cmd_report(self, args: argparse.Namespace) -> int:
        """Print a payday's obligation report."""

        async def action(services: PayrollServices) -> int:
            result = await services.aggregator.build_report(args.payday)
            if not result.success or result.report is None:
                message = result.error.message if result.error else "invalid payday"
                print(f"ERROR: {message}", file=sys.stderr)
                return 1
            self._emit(CycleReportResponse.from_report(result.report))
            return 2 if result.report.has_warnings else 0

        return await self._with_services(action)

    async def _cmd_close(self, args: argparse.Namespace) -> int:
        """Close a payday."""

        async def action(services: PayrollServices) -> int:
            result = await services.closer.close_cycle(
                args.payday,
                excluded_order_ids=args.exclude,
                today=args.as_of,
                actor=args.actor,
            )
            self._emit(CloseResponse.from_result(result))
            if not result.success:
                return 1
            return 2 if result.has_errors else 0

        return await self._with_services(action)

    async def _cmd_skip(self, args: argparse.Namespace) -> int:
        """Skip an order's next payment."""

        async def action(services: PayrollServices) -> int:
            outcome = await services.orders.skip_payment(
                args.order_id, args.effective_date or date.today()
            )
            self._emit(SkipResponse.model_validate(outcome))
            return 0

        return await self._with_services(action)

    async def _cmd_schedule(self, args: argparse.Namespace) -> int:
        """Show an order's installment plan."""

        async def action(services: PayrollServices) -> int:
            schedule = await services.orders.order_schedule(args.order_id)
            self._emit(OrderScheduleResponse.from_schedule(schedule))
            return 0

        return await self._with_services(action)


def main() -> int:
    """CLI entry point."""
    cli = CycleCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
