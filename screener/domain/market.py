"""Market data domain models.

Price snapshots, daily candles and company fundamentals as supplied by
market-data providers.
"""

from __future__ import annotations

from datetime import date as DateType
from datetime import datetime, timezone

from pydantic import BaseModel, Field, computed_field


class PriceSnapshot(BaseModel):
    """Latest price and volume action for a ticker.

    ``high_52w >= price >= low_52w`` is expected but not enforced, since
    providers occasionally serve stale range data.
    """

    ticker: str = Field(..., description="Ticker symbol")
    price: float = Field(..., gt=0, description="Last price")
    change_1d: float = Field(default=0.0, description="1-day absolute change")
    change_1d_percent: float = Field(default=0.0, description="1-day percent change")
    change_5d: float = Field(default=0.0)
    change_5d_percent: float = Field(default=0.0)
    change_30d: float = Field(default=0.0)
    change_30d_percent: float = Field(default=0.0)
    volume: int = Field(default=0, ge=0)
    avg_volume_30d: int = Field(default=0, ge=0)
    relative_volume: float = Field(default=1.0, ge=0, description="volume / avg_volume_30d")
    high_52w: float | None = Field(None, ge=0, description="52-week high")
    low_52w: float | None = Field(None, ge=0, description="52-week low")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {
        "from_attributes": True,
    }


class HistoricalCandle(BaseModel):
    """Single daily OHLCV candle."""

    date: DateType = Field(..., description="Trading date")
    open: float = Field(..., ge=0)
    high: float = Field(..., ge=0)
    low: float = Field(..., ge=0)
    close: float = Field(..., ge=0)
    volume: int = Field(default=0, ge=0)

    model_config = {
        "from_attributes": True,
    }

    @computed_field
    @property
    def range(self) -> float:
        """High-low range."""
        return self.high - self.low


class FundamentalsSnapshot(BaseModel):
    """Company fundamentals.

    Growth and margin fields are percentages (25.0 means 25%). Any ratio
    the provider does not report stays ``None`` and its scoring tier is
    skipped.
    """

    ticker: str = Field(..., description="Ticker symbol")
    name: str = Field(default="")
    sector: str = Field(default="")
    industry: str = Field(default="")
    exchange: str = Field(default="")
    country: str = Field(default="")

    market_cap: float = Field(default=0.0, ge=0, description="Market capitalization (USD)")
    shares_outstanding: float = Field(default=0.0, ge=0)

    # Valuation
    pe_ratio: float | None = Field(None, description="Trailing P/E")
    ps_ratio: float | None = Field(None, description="Price to sales")
    pb_ratio: float | None = Field(None, description="Price to book")

    # Growth and quality
    eps_growth: float | None = Field(None, description="EPS growth YoY (%)")
    revenue_growth: float | None = Field(None, description="Revenue growth YoY (%)")
    gross_margin: float | None = Field(None, description="Gross margin (%)")
    operating_margin: float | None = Field(None, description="Operating margin (%)")
    debt_equity: float | None = Field(None, description="Debt to equity ratio")

    recent_filings: int = Field(default=0, ge=0, description="SEC filings in the last 90 days")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {
        "from_attributes": True,
    }
