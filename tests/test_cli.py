"""Tests for the command line interface."""

import asyncio
import io
import json
from contextlib import asynccontextmanager
from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payroll_cycle.cli import CycleCli
from payroll_cycle.models import Base
from tests.conftest import make_order, make_pto


@pytest.fixture
def session_scope(tmp_path):
    """Session factory opening its own engine inside each asyncio.run."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'cycle.db'}"

    @asynccontextmanager
    async def scope():
        engine = create_async_engine(url)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            async with factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
        finally:
            await engine.dispose()

    return scope


@pytest.fixture
def seeded(session_scope):
    async def load():
        async with session_scope() as session:
            session.add_all(
                [make_order("UO-1"), make_pto("PTO-1", payout_period=date(2025, 11, 28))]
            )

    asyncio.run(load())
    return session_scope


def run_cli(session_scope, *args: str) -> tuple[int, str]:
    out = io.StringIO()
    code = CycleCli(session_factory=session_scope, out=out).run(list(args))
    return code, out.getvalue()


class TestCycleCli:
    """Commands and exit codes."""

    def test_no_command_prints_help(self, session_scope):
        code, _ = run_cli(session_scope)

        assert code == 1

    def test_next_payday(self, session_scope):
        code, output = run_cli(session_scope, "next-payday", "--as-of", "2025-12-01")

        assert code == 0
        data = json.loads(output)
        assert data["next_payday"] == "2025-12-12"

    def test_paydays(self, session_scope):
        code, output = run_cli(
            session_scope, "paydays", "--history", "1", "--future", "2", "--as-of", "2025-12-01"
        )

        assert code == 0
        data = json.loads(output)
        assert [i["payday"] for i in data["items"]] == [
            "2025-11-28",
            "2025-12-12",
            "2025-12-26",
        ]

    def test_report(self, seeded):
        code, output = run_cli(seeded, "report", "2025-11-28")

        assert code == 0
        data = json.loads(output)
        assert data["summary"]["uniform_count"] == 1

    def test_report_bad_payday(self, session_scope):
        code, _ = run_cli(session_scope, "report", "whenever")

        assert code == 1

    def test_close_with_exclusion(self, seeded):
        code, output = run_cli(
            seeded, "close", "2025-11-28", "--exclude", "UO-1", "--as-of", "2025-11-20"
        )

        assert code == 0
        data = json.loads(output)
        assert data["orders_skipped"] == ["UO-1"]
        assert data["pto_marked"] == ["PTO-1"]
        assert data["next_payday"] == "2025-12-12"

    def test_close_persists(self, seeded):
        run_cli(seeded, "close", "2025-11-28", "--as-of", "2025-11-20")

        code, output = run_cli(seeded, "schedule", "UO-1")

        assert code == 0
        assert json.loads(output)["checks_completed"] == 1

    def test_skip(self, seeded):
        code, output = run_cli(seeded, "skip", "UO-1", "--effective-date", "2025-11-27")

        assert code == 0
        assert json.loads(output)["new_first_deduction"] == "2025-12-12"

    def test_skip_missing_order(self, seeded):
        code, output = run_cli(seeded, "skip", "UO-404", "--effective-date", "2025-11-27")

        assert code == 1
        assert output == ""
