"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycle.bootstrap import PayrollServices, build_services
from payroll_cycle.database import init_db
from payroll_cycle.repositories.sql import SqlSettingsStore


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency; commits when the request succeeds."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_services(db: DbSession) -> PayrollServices:
    """Services bound to the request session."""
    return await build_services(db, lock_store=SqlSettingsStore(db, autocommit=True))


# Type aliases for cleaner dependency injection
Services = Annotated[PayrollServices, Depends(get_services)]
