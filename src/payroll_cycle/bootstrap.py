"""Wire services onto one database session."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycle.calculators.allocation import LocationAllocator
from payroll_cycle.calculators.installments import InstallmentMatcher
from payroll_cycle.config import Settings, get_settings
from payroll_cycle.repositories.base import SettingsStore
from payroll_cycle.repositories.sql import SqlObligationRepository, SqlSettingsStore
from payroll_cycle.services.aggregator import CycleAggregator
from payroll_cycle.services.closer import CycleCloser
from payroll_cycle.services.cycle_service import CycleService
from payroll_cycle.services.locking_service import LockingService
from payroll_cycle.services.order_service import OrderService


@dataclass
class PayrollServices:
    """Services sharing one session and one set of collaborators."""

    cycle_service: CycleService
    aggregator: CycleAggregator
    closer: CycleCloser
    orders: OrderService
    locking_service: LockingService


async def build_services(
    session: AsyncSession,
    settings: Settings | None = None,
    lock_store: SettingsStore | None = None,
) -> PayrollServices:
    """Build the services; ``lock_store`` should commit its writes immediately."""
    settings = settings or get_settings()
    store = SqlSettingsStore(session)
    repository = SqlObligationRepository(session)

    cycle_service = CycleService(store, settings)
    frequency = await cycle_service.frequency_days()
    location_a, location_b = await cycle_service.location_names()

    matcher = InstallmentMatcher(frequency_days=frequency)
    aggregator = CycleAggregator(
        repository,
        matcher=matcher,
        allocator=LocationAllocator(location_a, location_b),
    )
    locking_service = LockingService(
        lock_store or store, settings.processing_lock_ttl_seconds
    )
    return PayrollServices(
        cycle_service=cycle_service,
        aggregator=aggregator,
        closer=CycleCloser(
            repository,
            cycle_service,
            locking_service,
            aggregator=aggregator,
            matcher=matcher,
        ),
        orders=OrderService(repository, matcher=matcher),
        locking_service=locking_service,
    )
