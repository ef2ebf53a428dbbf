"""Analysis domain models.

Scores, classification verdicts, optional signal overlays and the full
per-ticker analysis produced once per scan run.
"""

from __future__ import annotations

from datetime import date as DateType
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .market import FundamentalsSnapshot, PriceSnapshot
from .sentiment import MergedSentiment
from .targets import TargetPrices


class Classification(str, Enum):
    """Categorical verdict for a ticker."""

    RUNNER = "runner"  # Attention + momentum play
    VALUE = "value"  # Fundamentals with building momentum
    BOTH = "both"  # Quality with momentum and attention
    AVOID = "avoid"  # Likely pump-and-dump
    WATCH = "watch"  # Nothing actionable yet


class AlertType(str, Enum):
    """Alert raised by the deterministic classifier."""

    RUNNER = "runner"
    VALUE = "value"
    BOTH = "both"
    PUMP_WARNING = "pump_warning"


class ScoreSet(BaseModel):
    """The four bounded scores for one ticker."""

    model_config = ConfigDict(frozen=True)

    attention: int = Field(..., ge=0, le=100, description="Crowd buzz intensity")
    momentum: int = Field(..., ge=0, le=100, description="Price/volume strength")
    fundamentals: int = Field(..., ge=0, le=100, description="Financial health")
    risk: int = Field(..., ge=0, le=100, description="Pump-and-dump probability")


class ClassificationOutcome(BaseModel):
    """Deterministic classifier output."""

    model_config = ConfigDict(frozen=True)

    classification: Classification
    alert_type: AlertType | None = None
    reason: str = ""

    @computed_field
    @property
    def alert_triggered(self) -> bool:
        return self.alert_type is not None


class ClassificationResult(BaseModel):
    """Final classification, possibly refined by the analytical review."""

    classification: Classification
    confidence: float = Field(default=0.5, ge=0, le=1)
    bull_case: str = ""
    bear_case: str = ""
    catalysts: list[str] = Field(default_factory=list)


# =============================================================================
# Signal overlays
# =============================================================================


class TechnicalIndicators(BaseModel):
    """Indicator snapshot computed from daily candles."""

    ticker: str
    rsi14: float | None = None
    rsi_signal: str = Field(default="neutral", description="oversold | overbought | neutral")

    macd_value: float | None = None
    macd_signal: float | None = None
    macd_histogram: float | None = None
    macd_crossover: str = Field(default="none", description="bullish | bearish | none")

    bb_upper: float | None = None
    bb_middle: float | None = None
    bb_lower: float | None = None
    bb_position: str = Field(default="inside", description="above | below | inside")

    sma20: float | None = None
    sma50: float | None = None
    sma200: float | None = None
    ema20: float | None = None
    ma_trend: str = Field(default="neutral", description="bullish | bearish | neutral")

    obv_trend: str = Field(default="neutral", description="accumulation | distribution | neutral")

    technical_signal: str = Field(default="neutral", description="bullish | bearish | neutral")
    signal_strength: int = Field(default=50, ge=0, le=100)


class OptionsActivity(BaseModel):
    """Options flow summary for a ticker."""

    ticker: str
    call_volume: int = Field(default=0, ge=0)
    put_volume: int = Field(default=0, ge=0)
    call_put_ratio: float = Field(default=1.0, ge=0)
    unusual_activity: bool = False
    max_pain: float | None = None
    implied_move: float | None = None
    signal: str = Field(default="neutral", description="bullish | bearish | neutral")


class SecActivity(BaseModel):
    """Recent SEC filing activity.

    Insider buy/sell counts are an approximation derived from Form 4
    filing counts, not parsed transaction codes.
    """

    ticker: str
    cik: str = ""
    recent_filing_count: int = Field(default=0, ge=0)
    insider_buys: int = Field(default=0, ge=0)
    insider_sells: int = Field(default=0, ge=0)
    latest_8k_date: DateType | None = None

    @property
    def net_insider_buying(self) -> bool:
        return self.insider_buys > self.insider_sells

    def has_recent_8k(self, today: DateType, within_days: int = 30) -> bool:
        if self.latest_8k_date is None:
            return False
        return (today - self.latest_8k_date).days <= within_days


class DarkPoolActivity(BaseModel):
    """Off-exchange volume summary."""

    ticker: str
    dark_pool_volume: int | None = None
    total_volume: int | None = None
    dark_pool_percent: float | None = None
    short_percent: float | None = None
    net_flow: float | None = Field(None, description="Positive = buying")
    signal: str = Field(default="neutral", description="accumulation | distribution | neutral")


class SignalOverlays(BaseModel):
    """Optional overlays supplied by collaborators."""

    technicals: TechnicalIndicators | None = None
    options: OptionsActivity | None = None
    sec: SecActivity | None = None
    dark_pool: DarkPoolActivity | None = None


class TickerAnalysis(BaseModel):
    """Complete analysis of one ticker in one scan run. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    ticker: str
    run_id: str
    run_timestamp: datetime
    sentiment: MergedSentiment
    price: PriceSnapshot
    fundamentals: FundamentalsSnapshot
    scores: ScoreSet
    classification: ClassificationResult
    alert_type: AlertType | None = None
    targets: TargetPrices | None = None
    overlays: SignalOverlays = Field(default_factory=SignalOverlays)

    @computed_field
    @property
    def alert_triggered(self) -> bool:
        return self.alert_type is not None
