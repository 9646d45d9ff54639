import time
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy import MetaData, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from dbpower.config.settings import Settings, get_settings
from dbpower.v1.core.exceptions import ConfigurationError

# Matches the constraint names used by the migrations
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "%(table_name)s_%(column_0_name)s_key",
    "ck": "%(table_name)s_%(constraint_name)s",
    "fk": "%(table_name)s_%(column_0_name)s_fkey",
    "pk": "%(table_name)s_pkey",
}


class Base(DeclarativeBase):
    """Declarative base shared by every table this service reads or writes."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class Database:
    """Owns the async engine and the session factory built on it."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: AsyncEngine = create_async_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            # Scheduler ticks are minutes apart; drop connections the server closed
            pool_pre_ping=True,
            echo=settings.debug,
        )
        self.SessionLocal = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def ping(self) -> float:
        """Round-trip a trivial query; returns latency in milliseconds."""
        started = time.perf_counter()
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return round((time.perf_counter() - started) * 1000, 2)

    async def close(self):
        await self.engine.dispose()


_database: Database | None = None


def get_database(settings: Settings = Depends(get_settings)) -> Database:
    """Return the process-wide Database, creating it on first use."""
    global _database
    if _database is None:
        if not settings.database_url:
            raise ConfigurationError("Missing DATABASE_URL")
        _database = Database(settings)
    return _database


async def close_database() -> None:
    """Dispose of the global engine, if one was created."""
    global _database
    if _database is not None:
        await _database.close()
        _database = None


async def get_session(
    database: Database = Depends(get_database),
) -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; rolled back if the handler raises."""
    async with database.SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# Convenience type alias for dependency injection
SessionDep = Depends(get_session)
