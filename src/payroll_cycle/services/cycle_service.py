"""PayCycle persistence on top of the settings store."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from payroll_cycle.calculators.calendar import next_payday_from, to_calendar_day
from payroll_cycle.calculators.types import PayCycle
from payroll_cycle.config import Settings, get_settings
from payroll_cycle.errors import InvalidInputError
from payroll_cycle.repositories.base import (
    DEFAULT_OT_RATE,
    LAST_PAYROLL_PROCESSED,
    LOCATION_A_NAME,
    LOCATION_B_NAME,
    NEXT_PAYROLL_DATE,
    PAYROLL_ANCHOR_DATE,
    PAYROLL_FREQUENCY,
    SettingsStore,
)

logger = logging.getLogger(__name__)


class CycleService:
    """Loads, normalizes and saves the PayCycle.

    Missing settings are initialized from process defaults the first time
    they are read. A stored next payday that is missing, unparsable, off the
    lattice, or not after today is re-derived from the anchor and written
    back.
    """

    def __init__(self, store: SettingsStore, defaults: Settings | None = None):
        self.store = store
        self.defaults = defaults or get_settings()

    async def _get_or_init(self, name: str, default: str) -> str:
        value = await self.store.get(name)
        if value is None or value == "":
            logger.info("Initializing setting %s=%s", name, default)
            await self.store.set(name, default)
            return default
        return value

    async def frequency_days(self) -> int:
        raw = await self._get_or_init(PAYROLL_FREQUENCY, str(self.defaults.frequency_days))
        try:
            frequency = int(raw)
        except ValueError as e:
            raise InvalidInputError(f"Invalid {PAYROLL_FREQUENCY} setting: {raw!r}") from e
        if frequency <= 0:
            raise InvalidInputError(f"Invalid {PAYROLL_FREQUENCY} setting: {raw!r}")
        return frequency

    async def anchor_payday(self) -> date:
        raw = await self._get_or_init(PAYROLL_ANCHOR_DATE, self.defaults.anchor_payday.isoformat())
        anchor = to_calendar_day(raw, self.defaults.timezone)
        if anchor is None:
            raise InvalidInputError(f"Invalid {PAYROLL_ANCHOR_DATE} setting: {raw!r}")
        return anchor

    async def default_ot_rate(self) -> Decimal:
        raw = await self._get_or_init(DEFAULT_OT_RATE, str(self.defaults.default_ot_rate))
        try:
            return Decimal(raw)
        except InvalidOperation as e:
            raise InvalidInputError(f"Invalid {DEFAULT_OT_RATE} setting: {raw!r}") from e

    async def location_names(self) -> tuple[str, str]:
        return (
            await self._get_or_init(LOCATION_A_NAME, self.defaults.location_a_name),
            await self._get_or_init(LOCATION_B_NAME, self.defaults.location_b_name),
        )

    async def _stored_day(self, name: str) -> date | None:
        raw = await self.store.get(name)
        try:
            return to_calendar_day(raw, self.defaults.timezone)
        except InvalidInputError:
            logger.warning("Ignoring unparsable %s setting: %r", name, raw)
            return None

    async def load(self, today: date | None = None) -> PayCycle:
        """Current PayCycle with ``next_payday`` normalized past ``today``."""
        today = today or date.today()
        frequency = await self.frequency_days()
        anchor = await self.anchor_payday()
        stored_next = await self._stored_day(NEXT_PAYROLL_DATE)
        last_processed = await self._stored_day(LAST_PAYROLL_PROCESSED)

        cycle = PayCycle(
            frequency_days=frequency,
            anchor_payday=anchor,
            next_payday=stored_next or next_payday_from(today, anchor, frequency),
            last_processed_payday=last_processed,
        )
        if (
            stored_next is None
            or stored_next <= today
            or not cycle.is_on_lattice(stored_next)
        ):
            normalized = next_payday_from(today, anchor, frequency)
            logger.info(
                "Normalizing %s from %s to %s", NEXT_PAYROLL_DATE, stored_next, normalized
            )
            cycle = PayCycle(
                frequency_days=frequency,
                anchor_payday=anchor,
                next_payday=normalized,
                last_processed_payday=last_processed,
            )
            await self.store.set(NEXT_PAYROLL_DATE, normalized.isoformat())
        return cycle

    async def save(self, cycle: PayCycle) -> None:
        await self.store.set(NEXT_PAYROLL_DATE, cycle.next_payday.isoformat())
        if cycle.last_processed_payday is not None:
            await self.store.set(LAST_PAYROLL_PROCESSED, cycle.last_processed_payday.isoformat())
