"""Sentiment domain models.

Per-provider crowd sentiment readings and their per-ticker merge.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SentimentSource(str, Enum):
    """Sentiment aggregators a record can come from."""

    SWAGGY = "swaggy"
    APEWISDOM = "apewisdom"  # Rank source
    ALTINDEX = "altindex"
    STOCKTWITS = "stocktwits"
    FINVIZ = "finviz"
    REDDIT_PENNY = "reddit-penny"


# Source whose rank feeds the attention score
RANK_SOURCE = SentimentSource.APEWISDOM


class SentimentRecord(BaseModel):
    """One provider's reading for one ticker."""

    model_config = ConfigDict(frozen=True)

    ticker: str = Field(..., min_length=1, description="Ticker symbol")
    source: SentimentSource = Field(..., description="Reporting aggregator")
    mentions: int = Field(default=0, ge=0, description="Mention count in the window")
    sentiment: float = Field(default=0.0, ge=-100, le=100, description="Net sentiment")
    momentum: float | None = Field(
        None, gt=0, description="Mentions ratio vs previous period"
    )
    rank: int | None = Field(None, ge=1, description="Aggregator rank (1 = top)")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        return v.strip().upper()


class MergedSentiment(BaseModel):
    """Sentiment for one ticker merged across every source that reported it."""

    ticker: str
    total_mentions: int = Field(default=0, ge=0)
    avg_sentiment: float = Field(default=0.0, ge=-100, le=100)
    max_momentum: float = Field(default=1.0, gt=0)
    source_count: int = Field(default=0, ge=0)
    is_penny_stock: bool = Field(
        default=False, description="Reported by a penny-stock focused source"
    )
    sources: dict[SentimentSource, SentimentRecord] = Field(default_factory=dict)

    def rank(self, source: SentimentSource = RANK_SOURCE) -> int | None:
        """Rank reported by ``source``, if it reported this ticker."""
        record = self.sources.get(source)
        return record.rank if record else None

    def source_names(self) -> list[str]:
        return [source.value for source in self.sources]
