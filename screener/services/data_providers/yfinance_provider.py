"""
Yahoo Finance provider for prices, fundamentals and daily candles.

yfinance is blocking, so every call runs on a small dedicated thread
pool and is gated by the ``yfinance`` rate limiter.

Usage:
    provider = YFinanceProvider(limiters.yfinance)
    price = await provider.fetch_price("SNDL")
    candles = await provider.fetch_candles("SNDL", date(2024, 1, 2), date(2024, 1, 9))
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pandas as pd
import yfinance as yf

from screener.core.data_helpers import pct_change, safe_float, safe_int
from screener.core.logging import get_logger
from screener.core.rate_limiter import RateLimiter
from screener.domain import FundamentalsSnapshot, HistoricalCandle, PriceSnapshot


logger = get_logger("data_providers.yfinance")

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="yfinance")

# Yahoo exchange codes -> names used by the universe filter and scoring
EXCHANGE_NAMES = {
    "NMS": "NASDAQ",
    "NGM": "NASDAQ",
    "NCM": "NASDAQ",
    "NAS": "NASDAQ",
    "NYQ": "NYSE",
    "NYS": "NYSE",
    "ASE": "NYSE MKT",
    "AMX": "AMEX",
    "PCX": "NYSE ARCA",
    "PNK": "OTC PINK",
    "OQB": "OTCQB",
    "OQX": "OTCQX",
    "OEM": "OTC",
}

FILINGS_WINDOW_DAYS = 90


def exchange_name(code: str | None) -> str:
    if not code:
        return ""
    return EXCHANGE_NAMES.get(code.upper(), code.upper())


def _flatten_columns(df: pd.DataFrame, symbol: str) -> pd.DataFrame:
    """Drop the ticker level newer yfinance adds to downloaded frames."""
    if isinstance(df.columns, pd.MultiIndex):
        if symbol in df.columns.get_level_values(1):
            return df.xs(symbol, axis=1, level=1)
        df = df.copy()
        df.columns = df.columns.droplevel(1)
    return df


def frame_to_candles(df: pd.DataFrame) -> list[HistoricalCandle]:
    """Convert an OHLCV frame indexed by timestamp into candles."""
    candles = []
    for ts, row in df.iterrows():
        close = safe_float(row.get("Close"))
        if close is None:
            continue
        candles.append(
            HistoricalCandle(
                date=pd.Timestamp(ts).date(),
                open=safe_float(row.get("Open"), close),
                high=safe_float(row.get("High"), close),
                low=safe_float(row.get("Low"), close),
                close=close,
                volume=safe_int(row.get("Volume"), 0),
            )
        )
    return candles


def snapshot_from_history(symbol: str, df: pd.DataFrame) -> Optional[PriceSnapshot]:
    """Build a price snapshot from about a year of daily bars."""
    closes = df["Close"].dropna()
    if closes.empty:
        return None
    price = float(closes.iloc[-1])
    if price <= 0:
        return None

    def change(sessions_back: int) -> tuple[float, float]:
        if len(closes) <= sessions_back:
            return 0.0, 0.0
        ref = float(closes.iloc[-1 - sessions_back])
        if ref <= 0:
            return 0.0, 0.0
        return price - ref, pct_change(price, ref)

    # Calendar-day lookback for the 30-day change
    cutoff = closes.index[-1] - pd.Timedelta(days=30)
    earlier = closes[closes.index <= cutoff]
    if not earlier.empty and float(earlier.iloc[-1]) > 0:
        ref_30 = float(earlier.iloc[-1])
        change_30d, change_30d_pct = price - ref_30, pct_change(price, ref_30)
    else:
        change_30d, change_30d_pct = 0.0, 0.0

    change_1d, change_1d_pct = change(1)
    change_5d, change_5d_pct = change(5)

    volumes = df["Volume"].fillna(0)
    volume = int(volumes.iloc[-1])
    avg_volume = int(volumes.iloc[-31:-1].mean()) if len(volumes) > 1 else volume
    relative_volume = volume / avg_volume if avg_volume > 0 else 1.0

    return PriceSnapshot(
        ticker=symbol,
        price=price,
        change_1d=change_1d,
        change_1d_percent=change_1d_pct,
        change_5d=change_5d,
        change_5d_percent=change_5d_pct,
        change_30d=change_30d,
        change_30d_percent=change_30d_pct,
        volume=volume,
        avg_volume_30d=avg_volume,
        relative_volume=relative_volume,
        high_52w=safe_float(df["High"].max()),
        low_52w=safe_float(df["Low"].min()),
    )


def _percent(value: Any) -> float | None:
    """yfinance reports ratios (0.25); scoring works in percent (25.0)."""
    f = safe_float(value)
    return f * 100 if f is not None else None


def fundamentals_from_info(
    symbol: str, info: dict[str, Any], recent_filings: int = 0
) -> FundamentalsSnapshot:
    debt_equity = safe_float(info.get("debtToEquity"))
    return FundamentalsSnapshot(
        ticker=symbol,
        name=info.get("shortName") or info.get("longName") or "",
        sector=info.get("sector") or "",
        industry=info.get("industry") or "",
        exchange=exchange_name(info.get("exchange")),
        country=info.get("country") or "",
        market_cap=max(0.0, safe_float(info.get("marketCap"), 0.0)),
        shares_outstanding=max(0.0, safe_float(info.get("sharesOutstanding"), 0.0)),
        pe_ratio=safe_float(info.get("trailingPE")),
        ps_ratio=safe_float(info.get("priceToSalesTrailing12Months")),
        pb_ratio=safe_float(info.get("priceToBook")),
        eps_growth=_percent(info.get("earningsGrowth")),
        revenue_growth=_percent(info.get("revenueGrowth")),
        gross_margin=_percent(info.get("grossMargins")),
        operating_margin=_percent(info.get("operatingMargins")),
        # Yahoo reports D/E as a percentage (150 = 1.5x)
        debt_equity=debt_equity / 100 if debt_equity is not None else None,
        recent_filings=recent_filings,
    )


class YFinanceProvider:
    """Market data and candle provider backed by yfinance."""

    def __init__(self, limiter: RateLimiter | None = None):
        self._limiter = limiter

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        if self._limiter is None:
            return await loop.run_in_executor(_executor, func, *args)
        async with self._limiter:
            return await loop.run_in_executor(_executor, func, *args)

    # =========================================================================
    # Blocking calls (thread pool)
    # =========================================================================

    def _download_sync(self, symbol: str, **kwargs: Any) -> Optional[pd.DataFrame]:
        try:
            df = yf.download(
                symbol,
                interval="1d",
                auto_adjust=True,
                progress=False,
                timeout=30,
                **kwargs,
            )
        except Exception as e:
            logger.warning(f"yfinance download failed for {symbol}: {e}")
            return None
        if df is None or df.empty:
            return None
        return _flatten_columns(df, symbol)

    def _info_sync(self, symbol: str) -> tuple[Optional[dict[str, Any]], int]:
        try:
            ticker = yf.Ticker(symbol)
            info = ticker.info or {}
        except Exception as e:
            logger.warning(f"yfinance info failed for {symbol}: {e}")
            return None, 0
        if not info.get("symbol") and not info.get("shortName"):
            return None, 0

        recent = 0
        try:
            cutoff = date.today() - timedelta(days=FILINGS_WINDOW_DAYS)
            for filing in ticker.sec_filings or []:
                filed = filing.get("date")
                if isinstance(filed, datetime):
                    filed = filed.date()
                if isinstance(filed, date) and filed >= cutoff:
                    recent += 1
        except Exception as e:
            logger.debug(f"SEC filings unavailable for {symbol}: {e}")
        return info, recent

    # =========================================================================
    # Provider interface
    # =========================================================================

    async def fetch_price(self, ticker: str) -> PriceSnapshot | None:
        symbol = ticker.upper()
        df = await self._run(lambda: self._download_sync(symbol, period="1y"))
        if df is None:
            return None
        return snapshot_from_history(symbol, df)

    async def fetch_fundamentals(self, ticker: str) -> FundamentalsSnapshot | None:
        symbol = ticker.upper()
        info, recent_filings = await self._run(self._info_sync, symbol)
        if info is None:
            return None
        return fundamentals_from_info(symbol, info, recent_filings)

    async def fetch_candles(
        self, ticker: str, start: date, end: date
    ) -> list[HistoricalCandle]:
        """Daily candles from ``start`` through ``end`` inclusive."""
        symbol = ticker.upper()
        df = await self._run(
            lambda: self._download_sync(
                symbol,
                start=start.isoformat(),
                # yfinance treats ``end`` as exclusive
                end=(end + timedelta(days=1)).isoformat(),
            )
        )
        if df is None:
            return []
        return frame_to_candles(df)
