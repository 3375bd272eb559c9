"""Advisory processing flag guarding cycle close-out."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from payroll_cycle.config import get_settings
from payroll_cycle.errors import CycleLockedError
from payroll_cycle.repositories.base import PAYROLL_PROCESSING, SettingsStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LockingService:
    """Single advisory lock stored as the ``payroll_processing`` setting.

    The flag value is ``"<owner>@<ISO timestamp>"``. A flag older than the
    TTL is considered abandoned and is taken over. The store offers no
    compare-and-set, so this assumes a single writer per payroll instance.
    """

    def __init__(
        self,
        store: SettingsStore,
        ttl_seconds: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.ttl = timedelta(
            seconds=ttl_seconds if ttl_seconds is not None
            else get_settings().processing_lock_ttl_seconds
        )
        self.clock = clock

    @staticmethod
    def _acquired_at(flag: str) -> datetime | None:
        _, _, stamp = flag.rpartition("@")
        try:
            acquired_at = datetime.fromisoformat(stamp)
        except ValueError:
            return None
        if acquired_at.tzinfo is None:
            acquired_at = acquired_at.replace(tzinfo=timezone.utc)
        return acquired_at

    async def current_holder(self) -> str | None:
        flag = await self.store.get(PAYROLL_PROCESSING)
        if not flag:
            return None
        acquired_at = self._acquired_at(flag)
        if acquired_at is None or self.clock() - acquired_at >= self.ttl:
            return None
        return flag

    async def is_locked(self) -> bool:
        return await self.current_holder() is not None

    async def acquire(self, owner: str) -> str:
        """Set the flag and return its token; CycleLockedError if held."""
        holder = await self.current_holder()
        if holder is not None:
            raise CycleLockedError(holder)

        stale = await self.store.get(PAYROLL_PROCESSING)
        if stale:
            logger.warning("Taking over stale processing flag %s", stale)

        token = f"{owner}@{self.clock().isoformat()}"
        await self.store.set(PAYROLL_PROCESSING, token)
        return token

    async def release(self, token: str) -> None:
        current = await self.store.get(PAYROLL_PROCESSING)
        if current != token:
            logger.warning("Processing flag %s no longer held (now %s)", token, current)
            return
        await self.store.delete(PAYROLL_PROCESSING)

    @asynccontextmanager
    async def held(self, owner: str) -> AsyncGenerator[str, None]:
        token = await self.acquire(owner)
        try:
            yield token
        finally:
            await self.release(token)
