"""FastAPI application for alert rule management and pick accuracy reports."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from screener.core.config import settings
from screener.core.exceptions import register_exception_handlers
from screener.core.logging import get_logger
from screener.database.connection import close_database, init_engine

from .routes import alert_rules, backtest, health


logger = get_logger("api")

ROUTERS = (
    (health.router, "", "Health"),
    (alert_rules.router, "/alert-rules", "Alert Rules"),
    (backtest.router, "/backtest", "Backtest"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The API still serves /health without a database
    try:
        await init_engine()
    except Exception as e:
        logger.warning(f"Database unavailable at startup: {e}")
    try:
        yield
    finally:
        await close_database()


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request with status and latency."""

    async def dispatch(self, request: Request, call_next):
        started = time.monotonic()
        response = await call_next(request)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        level = "warning" if response.status_code >= 500 else "info"
        getattr(logger, level)(
            f"{request.method} {request.url.path} {response.status_code} {elapsed_ms}ms",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
        )
        response.headers["X-Response-Time-Ms"] = str(elapsed_ms)
        return response


def create_api_app() -> FastAPI:
    """Build the API app. Interactive docs are only served in debug mode."""
    docs = settings.debug
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Alert rules and pick accuracy for the signal screener",
        docs_url="/docs" if docs else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=lifespan,
    )
    app.add_middleware(AccessLogMiddleware)
    register_exception_handlers(app)

    for router, prefix, tag in ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])
    return app
