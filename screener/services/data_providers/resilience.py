"""
Retry helpers for external API calls.

Provider calls retry a bounded number of times with linearly growing
delays. After the last attempt the HTTP helper resolves to ``None``
instead of raising, so one ticker's provider failure never aborts a
scan.

Usage:
    from screener.services.data_providers.resilience import fetch_with_retry

    data = await fetch_with_retry(
        client,
        "https://apewisdom.io/api/v1.0/filter/all-stocks",
        limiter=limiters.apewisdom,
        provider="apewisdom",
    )
    if data is None:
        return []
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from screener.core.config import settings
from screener.core.exceptions import ProviderError
from screener.core.logging import get_logger
from screener.core.rate_limiter import RateLimiter


logger = get_logger("resilience")

T = TypeVar("T")


# =============================================================================
# Exceptions
# =============================================================================


class RetryExhaustedError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, attempts: int, last_error: Exception | None = None):
        self.attempts = attempts
        self.last_error = last_error
        message = f"All {attempts} retry attempts exhausted"
        if last_error:
            message += f": {last_error}"
        super().__init__(message)


# Timeouts count as retryable failures, not fatal ones
DEFAULT_RETRY_EXCEPTIONS = (
    httpx.HTTPError,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


# =============================================================================
# Retry with linear backoff
# =============================================================================


async def retry_async(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: tuple[type[Exception], ...] = DEFAULT_RETRY_EXCEPTIONS,
    name: str | None = None,
) -> T:
    """
    Retry an async callable, sleeping ``base_delay * attempt`` between tries.

    Args:
        func: Async callable to retry
        max_attempts: Maximum attempts (including the first)
        base_delay: Delay after the first failure; grows linearly
        retry_on: Exceptions to retry on
        name: Label for logging

    Returns:
        Result from the first successful call

    Raises:
        RetryExhaustedError: When every attempt failed
    """
    label = name or getattr(func, "__name__", "call")
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except retry_on as e:
            last_error = e
            logger.warning(f"Attempt {attempt}/{max_attempts} failed for {label}: {e}")
            if attempt < max_attempts:
                await asyncio.sleep(base_delay * attempt)

    raise RetryExhaustedError(max_attempts, last_error)


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    limiter: RateLimiter | None = None,
    provider: str | None = None,
    timeout: float | None = None,
    retries: int | None = None,
    retry_delay: float | None = None,
) -> Any | None:
    """
    GET a JSON document with timeout, bounded retries and rate limiting.

    The limiter slot is held across all attempts and released once.

    Returns:
        Decoded JSON, or None after the last attempt failed
    """
    timeout = timeout if timeout is not None else settings.external_api_timeout
    retries = retries if retries is not None else settings.external_api_retries
    retry_delay = (
        retry_delay if retry_delay is not None else settings.external_api_retry_delay
    )

    async def _get() -> Any:
        response = await client.get(url, params=params, headers=headers, timeout=timeout)
        response.raise_for_status()
        return response.json()

    if limiter is not None:
        await limiter.acquire()
    try:
        return await retry_async(
            _get,
            max_attempts=retries,
            base_delay=retry_delay,
            retry_on=DEFAULT_RETRY_EXCEPTIONS + (ValueError,),
            name=f"{provider or 'http'} {url}",
        )
    except RetryExhaustedError as e:
        error = ProviderError(
            "request failed after retries",
            provider=provider,
            last_error=e.last_error,
        )
        logger.error(f"{error}: {e.last_error}")
        return None
    finally:
        if limiter is not None:
            limiter.release()
