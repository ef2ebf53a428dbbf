"""Collaborator interfaces for the scan engine.

Providers report "no data" with ``None`` or ``[]``. They never raise for
an unavailable ticker, so callers need no exception handling on the
normal path.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, runtime_checkable

from screener.domain import (
    FundamentalsSnapshot,
    HistoricalCandle,
    PriceSnapshot,
    SentimentRecord,
)


@runtime_checkable
class SentimentProvider(Protocol):
    name: str

    async def fetch_sentiment(self) -> list[SentimentRecord]: ...


@runtime_checkable
class MarketDataProvider(Protocol):
    async def fetch_price(self, ticker: str) -> PriceSnapshot | None: ...

    async def fetch_fundamentals(self, ticker: str) -> FundamentalsSnapshot | None: ...


@runtime_checkable
class CandleProvider(Protocol):
    async def fetch_candles(
        self, ticker: str, start: date, end: date
    ) -> list[HistoricalCandle]: ...
