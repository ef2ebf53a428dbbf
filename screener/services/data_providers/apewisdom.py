"""ApeWisdom trending-ticker sentiment provider.

The API is public. It reports rank, mentions and the rank 24h ago per
ticker, from which a sentiment proxy and a momentum ratio are derived.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

import httpx

from screener.core.data_helpers import safe_int
from screener.core.logging import get_logger
from screener.core.rate_limiter import RateLimiter
from screener.domain import SentimentRecord, SentimentSource

from .resilience import fetch_with_retry


logger = get_logger("data_providers.apewisdom")

BASE_URL = "https://apewisdom.io/api/v1.0"

DEFAULT_FILTERS = ("all-stocks", "pennystocks", "wallstreetbets")

# Penny-stock boards are tagged separately so the merge can flag them
PENNY_FILTERS = frozenset({"pennystocks"})


def sentiment_from_rank(rank: int, mentions: int) -> float:
    """Popularity as a 0-100 sentiment proxy; better rank, higher score."""
    if rank <= 10:
        return 80 + min(20.0, mentions / 100)
    if rank <= 50:
        return float(50 + (50 - rank))
    if rank <= 100:
        return 25 + (100 - rank) / 2
    return max(0.0, 25 - (rank - 100) / 10)


def momentum_from_ranks(current: int, previous: int | None) -> float:
    """Rank improvement ratio, capped to [0.1, 10]. 1.0 when unknown."""
    if not previous or current <= 0:
        return 1.0
    return max(0.1, min(10.0, previous / current))


def parse_results(payload: Any, filter_name: str) -> list[SentimentRecord]:
    if not isinstance(payload, dict):
        return []
    source = (
        SentimentSource.REDDIT_PENNY
        if filter_name in PENNY_FILTERS
        else SentimentSource.APEWISDOM
    )

    records = []
    for item in payload.get("results") or []:
        ticker = (item.get("ticker") or "").strip()
        rank = safe_int(item.get("rank"))
        if not ticker or rank is None or rank < 1:
            continue
        mentions = max(0, safe_int(item.get("mentions"), 0))
        records.append(
            SentimentRecord(
                ticker=ticker,
                source=source,
                mentions=mentions,
                sentiment=sentiment_from_rank(rank, mentions),
                momentum=momentum_from_ranks(rank, safe_int(item.get("rank_24h_ago"))),
                rank=rank,
            )
        )
    return records


class ApeWisdomProvider:
    """Sentiment provider over one or more ApeWisdom filters."""

    name = SentimentSource.APEWISDOM.value

    def __init__(
        self,
        client: httpx.AsyncClient,
        limiter: RateLimiter | None = None,
        filters: Sequence[str] = DEFAULT_FILTERS,
    ):
        self._client = client
        self._limiter = limiter
        self.filters = tuple(filters)

    async def fetch_filter(self, filter_name: str) -> list[SentimentRecord]:
        payload = await fetch_with_retry(
            self._client,
            f"{BASE_URL}/filter/{filter_name}",
            limiter=self._limiter,
            provider=self.name,
        )
        if payload is None:
            return []
        return parse_results(payload, filter_name)

    async def fetch_sentiment(self) -> list[SentimentRecord]:
        batches = await asyncio.gather(*(self.fetch_filter(f) for f in self.filters))
        records = [record for batch in batches for record in batch]
        logger.info(
            f"ApeWisdom returned {len(records)} entries across {len(self.filters)} filters"
        )
        return records
