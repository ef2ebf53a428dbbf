"""Exception types and the API's exception handlers.

Engine errors (``ScreenerError`` and subclasses) describe failures while
scanning or grading picks. They are caught where a collaborator is
called and turned into a sentinel (``None``, ``[]``, ``False``) or a
fallback value, so a single bad ticker never aborts a run.

API errors (``AppException`` and subclasses) carry an HTTP status and a
machine-readable code and are rendered as JSON by the handlers
registered in ``register_exception_handlers``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


# =============================================================================
# Engine errors
# =============================================================================


class ScreenerError(Exception):
    """Base class for scan-engine failures."""

    def __init__(self, message: str, ticker: str | None = None):
        self.ticker = ticker
        super().__init__(f"{ticker}: {message}" if ticker else message)


class MissingDataError(ScreenerError):
    """Price/fundamental fields or candle history are absent."""


class ProviderError(ScreenerError):
    """A provider call failed after exhausting its retries."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        ticker: str | None = None,
        last_error: Exception | None = None,
    ):
        self.provider = provider
        self.last_error = last_error
        super().__init__(f"[{provider}] {message}" if provider else message, ticker)


class AnalyticalParseError(ScreenerError):
    """The analytical layer returned a malformed response."""


class PersistenceError(ScreenerError):
    """A database write failed."""


# =============================================================================
# API errors
# =============================================================================


class AppException(Exception):
    """Error with an HTTP status, rendered as ``{"error", "message", "status"}``."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or type(self).message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
            "status": self.status_code,
        }
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    message = "Resource not found"


class ValidationError(AppException):
    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
    error_code = "VALIDATION_ERROR"
    message = "Validation failed"


class ExternalServiceError(AppException):
    """A dependency the request needs (database, notification channel) is unavailable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "EXTERNAL_SERVICE_ERROR"
    message = "External service temporarily unavailable"


class InternalError(AppException):
    """Fallback for exceptions that are not ``AppException``."""


def register_exception_handlers(app: FastAPI) -> None:
    """Render ``AppException`` as JSON and hide details of anything else."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        from .config import settings

        logging.getLogger("screener.api.errors").exception(
            f"Unhandled exception on {request.method} {request.url.path}",
            extra={"path": request.url.path, "method": request.method},
        )
        error = InternalError(str(exc) if settings.debug else None)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())
