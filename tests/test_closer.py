"""Tests for cycle close-out."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from payroll_cycle.errors import ErrorKind
from payroll_cycle.repositories.base import (
    LAST_PAYROLL_PROCESSED,
    NEXT_PAYROLL_DATE,
    OVERTIME_TABLE,
    PAYROLL_ANCHOR_DATE,
    PAYROLL_FREQUENCY,
    PAYROLL_PROCESSING,
)
from payroll_cycle.repositories.sql import SqlObligationRepository, SqlSettingsStore
from payroll_cycle.services.aggregator import CycleAggregator
from payroll_cycle.services.closer import CycleCloser
from payroll_cycle.services.cycle_service import CycleService
from payroll_cycle.services.locking_service import LockingService
from tests.conftest import (
    FlakyRepository,
    InMemorySettingsStore,
    make_order,
    make_overtime,
    make_pto,
    seed,
)

pytestmark = pytest.mark.asyncio

PAYDAY = date(2025, 12, 12)
TODAY = date(2025, 12, 1)


def make_closer(repository, store, settings) -> CycleCloser:
    return CycleCloser(
        repository,
        CycleService(store, settings),
        LockingService(store, ttl_seconds=600),
        aggregator=CycleAggregator(repository),
    )


@pytest.fixture
async def repository(session):
    await seed(
        session,
        make_order("UO-1", checks_completed=1),
        make_order(
            "UO-2",
            employee_id="E-8",
            employee_name="Abe Cole",
            total_cost=Decimal("50.00"),
            payment_schedule_count=2,
            first_deduction_date=PAYDAY,
        ),
        make_pto("PTO-1"),
    )
    return SqlObligationRepository(session)


@pytest.fixture
def store(session):
    return SqlSettingsStore(session)


class TestCloseCycle:
    """Marking obligations and advancing the pointer."""

    async def test_close_marks_everything(self, repository, store, settings):
        closer = make_closer(repository, store, settings)

        result = await closer.close_cycle(PAYDAY, today=TODAY)

        assert result.success is True
        assert result.status == "closed"
        assert sorted(result.orders_marked) == ["UO-1", "UO-2"]
        assert result.marked == 2
        assert result.total_uniform_collected == Decimal("58.33")
        assert result.pto_marked == ["PTO-1"]
        assert result.total_pto_hours == Decimal("16.00")
        assert result.next_payday == date(2025, 12, 26)
        assert result.has_errors is False
        assert closer.status == "scheduled"

        order = await repository.get_order("UO-1")
        assert order.checks_completed == 2
        assert order.notes == "2025-12-12: check 2/3 $33.33"
        assert await store.get(NEXT_PAYROLL_DATE) == "2025-12-26"
        assert await store.get(LAST_PAYROLL_PROCESSED) == "2025-12-12"
        assert await store.get(PAYROLL_PROCESSING) is None

        paid = await repository.list_pto_for_payout(PAYDAY)
        assert paid[0].paid_out is True

    async def test_one_failing_order(self, repository, store, settings):
        """A failed order is reported; the rest are marked and the cycle advances."""
        flaky = FlakyRepository(repository, failing_ids=["UO-2"])
        closer = make_closer(flaky, store, settings)

        result = await closer.close_cycle(PAYDAY, today=TODAY)

        assert result.success is True
        assert result.marked == 1
        assert result.orders_marked == ["UO-1"]
        assert result.orders_failed == ["UO-2"]
        assert result.error_ids == ["UO-2"]
        assert result.errors[0].kind == ErrorKind.PARTIAL_FAILURE
        assert result.next_payday == date(2025, 12, 26)
        assert (await repository.get_order("UO-2")).checks_completed == 0

    async def test_excluded_order_left_unbilled(self, repository, store, settings):
        closer = make_closer(repository, store, settings)

        result = await closer.close_cycle(PAYDAY, excluded_order_ids=["UO-2"], today=TODAY)

        assert result.orders_marked == ["UO-1"]
        assert result.orders_skipped == ["UO-2"]
        assert result.skipped == 1
        assert (await repository.get_order("UO-2")).checks_completed == 0

    async def test_final_installment_closes_order(self, session, store, settings):
        await seed(
            session,
            make_order("UO-5", payment_schedule_count=2, checks_completed=1),
        )
        repository = SqlObligationRepository(session)

        result = await make_closer(repository, store, settings).close_cycle(
            PAYDAY, today=TODAY
        )

        assert result.total_uniform_collected == Decimal("50.00")
        order = await repository.get_order("UO-5")
        assert order.status == "Closed"
        assert order.checks_completed == 2

    async def test_pto_batch_failure_still_advances(self, repository, store, settings):
        flaky = FlakyRepository(repository, fail_batches=True)

        result = await make_closer(flaky, store, settings).close_cycle(PAYDAY, today=TODAY)

        assert result.success is True
        assert result.pto_failed == ["PTO-1"]
        assert result.pto_marked == []
        assert result.next_payday == date(2025, 12, 26)

    async def test_partial_pto_batch(self, session, repository, store, settings, caplog):
        await seed(session, make_pto("PTO-2", employee_id="E-9", employee_name="Lia Moss"))
        flaky = FlakyRepository(repository, failing_ids=["PTO-2"])

        result = await make_closer(flaky, store, settings).close_cycle(PAYDAY, today=TODAY)

        assert result.success is True
        assert result.pto_marked == ["PTO-1"]
        assert result.pto_failed == ["PTO-2"]
        assert "PTO-2" in result.error_ids
        assert result.total_pto_hours == Decimal("16.00")
        assert "PTO batch partially applied" in caplog.text

    async def test_failing_source_reported_as_warning(self, session, repository, store, settings):
        """An unreadable report source is a warning; orders are still marked."""
        await seed(session, make_overtime())
        flaky = FlakyRepository(repository, failing_tables=[OVERTIME_TABLE])

        result = await make_closer(flaky, store, settings).close_cycle(PAYDAY, today=TODAY)

        assert result.success is True
        assert [w.source for w in result.warnings] == ["overtime"]
        assert result.warnings[0].kind == ErrorKind.SOURCE_FAILURE
        assert result.has_errors is False
        assert result.marked == 2
        assert result.pto_marked == ["PTO-1"]
        assert result.next_payday == date(2025, 12, 26)
        assert await store.get(LAST_PAYROLL_PROCESSED) == "2025-12-12"

    async def test_off_lattice_payday_closes(self, repository, store, settings):
        result = await make_closer(repository, store, settings).close_cycle(
            date(2025, 12, 15), today=TODAY
        )

        assert result.success is True
        assert result.marked == 0
        assert result.next_payday == date(2025, 12, 29)


class TestReclose:
    """Closing a processed payday again."""

    async def test_reclose_does_not_rebill(self, repository, store, settings):
        closer = make_closer(repository, store, settings)
        await closer.close_cycle(PAYDAY, today=TODAY)

        again = await closer.close_cycle(PAYDAY, today=TODAY)

        assert again.success is True
        assert again.reclosed is True
        assert again.orders_marked == []
        assert again.pto_marked == []
        assert again.next_payday == date(2025, 12, 26)
        assert (await repository.get_order("UO-1")).checks_completed == 2

    async def test_earlier_payday_after_later_close(self, repository, store, settings, caplog):
        closer = make_closer(repository, store, settings)
        await closer.close_cycle(PAYDAY, today=TODAY)

        earlier = await closer.close_cycle(date(2025, 11, 28), today=TODAY)

        assert earlier.success is True
        assert earlier.reclosed is True
        assert "at or before the last processed payday 2025-12-12" in caplog.text


class TestRefusals:
    """Bad input and a held processing flag."""

    async def test_unparsable_payday(self, repository, store, settings):
        result = await make_closer(repository, store, settings).close_cycle("payday")

        assert result.success is False
        assert result.payday is None
        assert result.errors[0].kind == ErrorKind.INVALID_INPUT

    async def test_locked(self, repository, store, settings):
        holder = f"other@{datetime.now(timezone.utc).isoformat()}"
        await store.set(PAYROLL_PROCESSING, holder)

        result = await make_closer(repository, store, settings).close_cycle(
            PAYDAY, today=TODAY
        )

        assert result.success is False
        assert result.errors[0].kind == ErrorKind.LOCKED
        assert await store.get(PAYROLL_PROCESSING) == holder
        assert await store.get(NEXT_PAYROLL_DATE) is None
        assert (await repository.get_order("UO-1")).checks_completed == 1


class TestAbort:
    """Failure while advancing the pointer."""

    async def test_failed_save_releases_flag(self, repository, settings, caplog):
        class FailingStore(InMemorySettingsStore):
            async def set(self, name, value):
                if name == NEXT_PAYROLL_DATE:
                    raise ConnectionError("settings unavailable")
                await super().set(name, value)

        store = FailingStore(
            {
                NEXT_PAYROLL_DATE: "2025-12-12",
                PAYROLL_FREQUENCY: "14",
                PAYROLL_ANCHOR_DATE: "2025-11-28",
            }
        )
        closer = make_closer(repository, store, settings)

        with pytest.raises(ConnectionError):
            await closer.close_cycle(PAYDAY, today=TODAY)

        assert closer.status == "scheduled"
        assert PAYROLL_PROCESSING not in store.values
        assert "Close aborted" in caplog.text
