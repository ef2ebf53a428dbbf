"""Health check endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter
from sqlalchemy import text

from screener.core.config import settings
from screener.core.logging import get_logger
from screener.database.connection import get_session


router = APIRouter(prefix="/health")

logger = get_logger("health")


async def db_healthcheck() -> bool:
    """Check PostgreSQL database health."""
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database healthcheck failed: {e}")
        return False


@router.get(
    "",
    summary="Health check",
    description="Check the health status of the API and its database.",
)
async def health_check() -> dict:
    database = await db_healthcheck()
    return {
        "status": "healthy" if database else "unhealthy",
        "version": settings.app_version,
        "timestamp": datetime.now(UTC).isoformat(),
        "checks": {"database": database},
    }
