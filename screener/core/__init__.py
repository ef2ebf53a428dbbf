"""Core infrastructure: settings, logging, exceptions, rate limiting."""

from .config import settings
from .exceptions import (
    AnalyticalParseError,
    AppException,
    ExternalServiceError,
    MissingDataError,
    NotFoundError,
    PersistenceError,
    ProviderError,
    ScreenerError,
    ValidationError,
)


__all__ = [
    "AnalyticalParseError",
    "AppException",
    "ExternalServiceError",
    "MissingDataError",
    "NotFoundError",
    "PersistenceError",
    "ProviderError",
    "ScreenerError",
    "ValidationError",
    "settings",
]
