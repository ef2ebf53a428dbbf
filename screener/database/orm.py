"""SQLAlchemy ORM models for the screener.

One ``scan_results`` row per ticker per run. Its return fields are the
only ones written after the run, by the return tracker.

Usage:
    from screener.database.orm import ScanResult, AlertRule
    from screener.database.connection import get_session
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Naming convention for constraints and indexes
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for all ORM models with naming convention."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# =============================================================================
# SCAN RUNS & RESULTS
# =============================================================================


class ScanRun(Base):
    """One scan pipeline run."""
    __tablename__ = "scan_runs"

    run_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    run_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    tickers_scanned: Mapped[int] = mapped_column(Integer, default=0)
    alerts_generated: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="running")  # running, completed, failed
    error_message: Mapped[str | None] = mapped_column(Text)
    duration_ms: Mapped[int | None] = mapped_column(Integer)


class ScanResult(Base):
    """Analysis of one ticker in one run, plus its later forward returns."""
    __tablename__ = "scan_results"

    id: Mapped[int] = mapped_column(primary_key=True)
    run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("scan_runs.run_id", ondelete="CASCADE")
    )
    run_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ticker: Mapped[str] = mapped_column(String(10), nullable=False)

    # Sentiment
    swaggy_mentions: Mapped[int | None] = mapped_column(Integer)
    swaggy_sentiment: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    swaggy_momentum: Mapped[Decimal | None] = mapped_column(Numeric(6, 2))
    apewisdom_rank: Mapped[int | None] = mapped_column(Integer)
    apewisdom_mentions: Mapped[int | None] = mapped_column(Integer)
    altindex_score: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    total_mentions: Mapped[int | None] = mapped_column(Integer)
    avg_sentiment: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    source_count: Mapped[int | None] = mapped_column(Integer)

    # Price
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    price_change_1d: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    price_change_1d_pct: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    price_change_5d: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    price_change_5d_pct: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    price_change_30d: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    price_change_30d_pct: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    volume: Mapped[int | None] = mapped_column(BigInteger)
    avg_volume_30d: Mapped[int | None] = mapped_column(BigInteger)
    relative_volume: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    high_52w: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    low_52w: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))

    # Fundamentals
    company_name: Mapped[str | None] = mapped_column(String(255))
    market_cap: Mapped[int | None] = mapped_column(BigInteger)
    pe_ratio: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    ps_ratio: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    pb_ratio: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    revenue_growth: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    gross_margin: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    operating_margin: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    debt_equity: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    exchange: Mapped[str | None] = mapped_column(String(20))
    sector: Mapped[str | None] = mapped_column(String(100))
    industry: Mapped[str | None] = mapped_column(String(100))
    country: Mapped[str | None] = mapped_column(String(50))

    # Scores (0-100)
    attention_score: Mapped[int | None] = mapped_column(Integer)
    momentum_score: Mapped[int | None] = mapped_column(Integer)
    fundamentals_score: Mapped[int | None] = mapped_column(Integer)
    risk_score: Mapped[int | None] = mapped_column(Integer)

    # Classification
    classification: Mapped[str | None] = mapped_column(String(20))
    confidence: Mapped[Decimal | None] = mapped_column(Numeric(3, 2))
    bull_case: Mapped[str | None] = mapped_column(Text)
    bear_case: Mapped[str | None] = mapped_column(Text)
    catalysts: Mapped[list[str] | None] = mapped_column(ARRAY(Text))
    alert_triggered: Mapped[bool] = mapped_column(Boolean, default=False)
    alert_type: Mapped[str | None] = mapped_column(String(20))

    # Targets
    target_technical: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    target_fundamental: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    target_ai: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    target_risk: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    target_avg: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    stop_loss: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    target_details: Mapped[dict | None] = mapped_column(JSONB)

    # Overlays
    rsi_14: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    macd_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    macd_signal: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    macd_histogram: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    bb_upper: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    bb_middle: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    bb_lower: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    sma_20: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    sma_50: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    sma_200: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    ema_20: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    technical_signal: Mapped[str | None] = mapped_column(String(20))
    technical_strength: Mapped[int | None] = mapped_column(Integer)
    sec_recent_filings: Mapped[int | None] = mapped_column(Integer)
    sec_insider_buys: Mapped[int | None] = mapped_column(Integer)
    sec_insider_sells: Mapped[int | None] = mapped_column(Integer)
    sec_latest_8k_date: Mapped[date | None] = mapped_column(Date)
    dark_pool_volume: Mapped[int | None] = mapped_column(BigInteger)
    dark_pool_pct: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    dark_pool_signal: Mapped[str | None] = mapped_column(String(20))
    options_call_volume: Mapped[int | None] = mapped_column(BigInteger)
    options_put_volume: Mapped[int | None] = mapped_column(BigInteger)
    options_call_put_ratio: Mapped[Decimal | None] = mapped_column(Numeric(8, 2))
    options_unusual_activity: Mapped[bool | None] = mapped_column(Boolean)
    options_max_pain: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    options_signal: Mapped[str | None] = mapped_column(String(20))

    # Forward returns, refreshed until the five-day window has closed
    return_1d: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    return_3d: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    return_5d: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    max_gain_5d: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    max_drawdown_5d: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    hit_target: Mapped[bool | None] = mapped_column(Boolean)
    hit_stop_loss: Mapped[bool | None] = mapped_column(Boolean)
    returns_complete: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("ticker", "run_id", name="uq_scan_results_ticker_run"),
        CheckConstraint("attention_score BETWEEN 0 AND 100", name="attention_range"),
        CheckConstraint("momentum_score BETWEEN 0 AND 100", name="momentum_range"),
        CheckConstraint("fundamentals_score BETWEEN 0 AND 100", name="fundamentals_range"),
        CheckConstraint("risk_score BETWEEN 0 AND 100", name="risk_range"),
        Index("idx_scan_results_run_timestamp", "run_timestamp", postgresql_ops={"run_timestamp": "DESC"}),
        Index("idx_scan_results_ticker", "ticker"),
        Index("idx_scan_results_classification", "classification"),
    )


# =============================================================================
# ALERTS
# =============================================================================


class AlertRule(Base):
    """User-configured alert rule. ``conditions`` holds AlertConditions JSON."""
    __tablename__ = "alert_rules"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    conditions: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    channels: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Alert(Base):
    """Append-only log of delivered alerts."""
    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(primary_key=True)
    scan_result_id: Mapped[int | None] = mapped_column(
        ForeignKey("scan_results.id", ondelete="CASCADE")
    )
    ticker: Mapped[str] = mapped_column(String(10), nullable=False)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    alert_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    scores: Mapped[dict | None] = mapped_column(JSONB)
    classification: Mapped[dict | None] = mapped_column(JSONB)
    message: Mapped[str | None] = mapped_column(Text)
    sent_to: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False)

    __table_args__ = (
        Index("idx_alerts_ticker", "ticker"),
        Index("idx_alerts_timestamp", "alert_timestamp", postgresql_ops={"alert_timestamp": "DESC"}),
    )


# =============================================================================
# PRICE HISTORY
# =============================================================================


class PriceHistory(Base):
    """Daily candles fetched while grading picks."""
    __tablename__ = "price_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    ticker: Mapped[str] = mapped_column(String(10), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    open: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    high: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    low: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    close: Mapped[Decimal | None] = mapped_column(Numeric(10, 4))
    volume: Mapped[int | None] = mapped_column(BigInteger)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("ticker", "date", name="uq_price_history_ticker_date"),
        Index("idx_price_history_ticker_date", "ticker", "date"),
    )
