"""Per-provider rate limiters for external API calls.

Each limiter is a counting semaphore with a FIFO wait queue whose slots
are handed back only after ``min_delay`` seconds, so consecutive calls to
the same provider are spaced out even when they finish quickly.

Limiters are plain instances. Build one ``ProviderLimiters`` at process
start and pass it to the provider clients that need it.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field

from screener.core.logging import get_logger


logger = get_logger("core.rate_limiter")


class RateLimiter:
    """
    Concurrency + spacing limiter for one provider.

    Async-only. All state changes happen on the event loop thread, so
    acquire/release are serialized without an explicit lock.
    """

    def __init__(self, name: str, max_concurrent: int = 1, min_delay: float = 1.0):
        """
        Initialize rate limiter.

        Args:
            name: Identifier for logging
            max_concurrent: Number of calls allowed in flight at once
            min_delay: Seconds a released slot stays occupied
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        if min_delay < 0:
            raise ValueError("min_delay must be >= 0")
        self.name = name
        self.max_concurrent = max_concurrent
        self.min_delay = min_delay
        self.running = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    async def acquire(self) -> None:
        """Take a slot, waiting in FIFO order if none is free."""
        if self.running < self.max_concurrent and not self._waiters:
            self.running += 1
            return

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[None] = loop.create_future()
        self._waiters.append(waiter)
        logger.debug(f"Rate limiter {self.name} queued ({len(self._waiters)} waiting)")
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was handed over just before cancellation; pass it on
                self._hand_over()
            else:
                self._waiters.remove(waiter)
            raise

    def release(self) -> None:
        """Return a slot after ``min_delay`` seconds."""
        if self.min_delay <= 0:
            self._hand_over()
            return
        loop = asyncio.get_running_loop()
        loop.call_later(self.min_delay, self._hand_over)

    def _hand_over(self) -> None:
        self.running -= 1
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                self.running += 1
                waiter.set_result(None)
                return

    async def __aenter__(self) -> RateLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()

    def status(self) -> dict:
        """Get current rate limiter status."""
        return {
            "name": self.name,
            "running": self.running,
            "waiting": len(self._waiters),
            "max_concurrent": self.max_concurrent,
            "min_delay": self.min_delay,
        }


@dataclass
class ProviderLimiters:
    """Rate limiters for the shipped providers, created once per process."""

    apewisdom: RateLimiter = field(default_factory=lambda: RateLimiter("apewisdom", 2, 0.5))
    yfinance: RateLimiter = field(default_factory=lambda: RateLimiter("yfinance", 2, 0.5))

    def get(self, name: str) -> RateLimiter:
        """Look up a limiter by provider name."""
        limiter = getattr(self, name, None)
        if not isinstance(limiter, RateLimiter):
            raise KeyError(f"Unknown rate limiter: {name}")
        return limiter

    def status(self) -> list[dict]:
        return [
            value.status()
            for value in vars(self).values()
            if isinstance(value, RateLimiter)
        ]
