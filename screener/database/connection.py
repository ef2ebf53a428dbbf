"""Async SQLAlchemy engine and sessions for the screener database.

The engine is created on first use and shared by the scan pipeline, the
return tracker and the API. Sessions run in UTC so run timestamps and
pick ages compare without conversion.

Usage:
    from screener.database.connection import get_session
    from screener.database.orm import ScanResult

    async with get_session() as session:
        result = await session.get(ScanResult, 42)
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from screener.core.config import settings
from screener.core.logging import get_logger


logger = get_logger("database")

_engine: AsyncEngine | None = None
_sessions: async_sessionmaker[AsyncSession] | None = None


def asyncpg_url(url: str) -> str:
    """``postgresql://`` or ``postgres://`` URL rewritten for the asyncpg driver."""
    for scheme in ("postgresql://", "postgres://"):
        if url.startswith(scheme):
            return "postgresql+asyncpg://" + url[len(scheme):]
    return url


async def init_engine() -> AsyncEngine:
    """Create the engine and session factory if they do not exist yet."""
    global _engine, _sessions

    if _engine is None:
        _engine = create_async_engine(
            asyncpg_url(settings.database_url),
            pool_size=settings.db_pool_min_size,
            max_overflow=max(0, settings.db_pool_max_size - settings.db_pool_min_size),
            pool_pre_ping=True,
            connect_args={
                "server_settings": {"application_name": "screener", "timezone": "UTC"}
            },
        )
        _sessions = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)
        logger.info("Database engine initialized")
    return _engine


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a session; the transaction is rolled back if the block raises."""
    if _sessions is None:
        await init_engine()

    async with _sessions() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create missing tables. Existing tables are left as they are."""
    from screener.database.orm import Base

    engine = await init_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def close_database() -> None:
    global _engine, _sessions

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessions = None
        logger.info("Database engine closed")
