"""Technical indicator overlay computed from daily candles.

RSI, MACD, Bollinger Bands, moving averages and OBV are computed with
``ta`` and folded into one bullish/bearish/neutral signal with a 0-100
strength.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd
from ta.momentum import RSIIndicator
from ta.trend import MACD, EMAIndicator, SMAIndicator
from ta.volatility import BollingerBands
from ta.volume import OnBalanceVolumeIndicator

from screener.core.data_helpers import safe_float
from screener.core.logging import get_logger
from screener.domain import HistoricalCandle, TechnicalIndicators


logger = get_logger("scoring.technicals")

MIN_CANDLES = 14

RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70

# Overall-signal weights
WEIGHT_RSI = 2
WEIGHT_MACD_CROSS = 3
WEIGHT_MACD_HIST = 1
WEIGHT_BB = 2
WEIGHT_MA = 2
WEIGHT_OBV = 1
SIGNAL_MARGIN = 3


def _last(series: pd.Series, digits: int = 4) -> float | None:
    if series.empty:
        return None
    value = safe_float(series.iloc[-1])
    return round(value, digits) if value is not None else None


def candles_to_frame(candles: Sequence[HistoricalCandle]) -> pd.DataFrame:
    """Chronologically sorted OHLCV frame indexed by date."""
    df = pd.DataFrame([c.model_dump(exclude={"range"}) for c in candles])
    if df.empty:
        return df
    return df.sort_values("date").drop_duplicates("date").set_index("date")


def rsi_signal(rsi: float | None) -> str:
    if rsi is None:
        return "neutral"
    if rsi < RSI_OVERSOLD:
        return "oversold"
    if rsi > RSI_OVERBOUGHT:
        return "overbought"
    return "neutral"


def macd_crossover(macd_line: pd.Series, signal_line: pd.Series) -> str:
    """Detect a MACD/signal cross between the last two bars."""
    pair = pd.concat([macd_line, signal_line], axis=1).dropna()
    if len(pair) < 2:
        return "none"
    (prev_macd, prev_signal), (macd, signal) = pair.iloc[-2], pair.iloc[-1]
    if prev_macd < prev_signal and macd > signal:
        return "bullish"
    if prev_macd > prev_signal and macd < signal:
        return "bearish"
    return "none"


def bollinger_position(price: float, upper: float | None, lower: float | None) -> str:
    if upper is not None and price > upper:
        return "above"
    if lower is not None and price < lower:
        return "below"
    return "inside"


def ma_trend(
    price: float,
    sma20: float | None,
    sma50: float | None,
    ema20: float | None,
) -> str:
    """Vote price vs SMAs, EMA20 vs SMA20 and SMA20 vs SMA50; 3 votes decide."""
    bullish = bearish = 0

    def vote(condition: bool) -> None:
        nonlocal bullish, bearish
        if condition:
            bullish += 1
        else:
            bearish += 1

    if sma20 is not None:
        vote(price > sma20)
    if sma50 is not None:
        vote(price > sma50)
    if ema20 is not None and sma20 is not None:
        vote(ema20 > sma20)
    if sma20 is not None and sma50 is not None:
        vote(sma20 > sma50)

    if bullish >= 3:
        return "bullish"
    if bearish >= 3:
        return "bearish"
    return "neutral"


def obv_trend(close: pd.Series, volume: pd.Series) -> str:
    """Compare the last 5 OBV readings with the 9 before them."""
    if len(close) < MIN_CANDLES:
        return "neutral"
    obv = OnBalanceVolumeIndicator(close=close, volume=volume).on_balance_volume().dropna()
    if len(obv) < MIN_CANDLES:
        return "neutral"

    recent = obv.iloc[-5:].mean()
    earlier = obv.iloc[-14:-5].mean()
    change = (recent - earlier) / (abs(earlier) or 1)

    if change > 0.05:
        return "accumulation"
    if change < -0.05:
        return "distribution"
    return "neutral"


def overall_signal(
    rsi_sig: str,
    crossover: str,
    histogram: float | None,
    bb_position: str,
    trend: str,
    obv: str,
) -> tuple[str, int]:
    """Weighted vote across indicators.

    Returns:
        (signal, strength) where strength is 0 (all bearish) to 100 (all bullish)
    """
    bullish = bearish = 0
    total = WEIGHT_RSI + WEIGHT_MACD_CROSS + WEIGHT_MACD_HIST + WEIGHT_BB + WEIGHT_MA + WEIGHT_OBV

    if rsi_sig == "oversold":
        bullish += WEIGHT_RSI
    elif rsi_sig == "overbought":
        bearish += WEIGHT_RSI

    if crossover == "bullish":
        bullish += WEIGHT_MACD_CROSS
    elif crossover == "bearish":
        bearish += WEIGHT_MACD_CROSS

    if histogram is not None:
        if histogram > 0:
            bullish += WEIGHT_MACD_HIST
        elif histogram < 0:
            bearish += WEIGHT_MACD_HIST

    # Below the lower band is a bounce setup
    if bb_position == "below":
        bullish += WEIGHT_BB
    elif bb_position == "above":
        bearish += WEIGHT_BB

    if trend == "bullish":
        bullish += WEIGHT_MA
    elif trend == "bearish":
        bearish += WEIGHT_MA

    if obv == "accumulation":
        bullish += WEIGHT_OBV
    elif obv == "distribution":
        bearish += WEIGHT_OBV

    strength = int((bullish - bearish + total) / (2 * total) * 100 + 0.5)

    if bullish >= bearish + SIGNAL_MARGIN:
        return "bullish", strength
    if bearish >= bullish + SIGNAL_MARGIN:
        return "bearish", strength
    return "neutral", strength


def calculate_technical_indicators(
    ticker: str, candles: Sequence[HistoricalCandle]
) -> TechnicalIndicators | None:
    """Compute the technical overlay for a ticker.

    Args:
        ticker: Ticker symbol
        candles: Daily candles, any order; 200+ needed for SMA200

    Returns:
        TechnicalIndicators, or None with fewer than 14 candles
    """
    df = candles_to_frame(candles)
    if len(df) < MIN_CANDLES:
        logger.debug(f"{ticker}: {len(df)} candles, need {MIN_CANDLES} for technicals")
        return None

    close = df["close"].astype(float)
    volume = df["volume"].astype(float)
    price = float(close.iloc[-1])

    rsi = _last(RSIIndicator(close=close, window=14).rsi(), 2) if len(close) > 14 else None

    macd_value = macd_sig = macd_hist = None
    crossover = "none"
    if len(close) >= 26 + 9:
        macd = MACD(close=close, window_slow=26, window_fast=12, window_sign=9)
        macd_line, signal_line = macd.macd(), macd.macd_signal()
        macd_value = _last(macd_line)
        macd_sig = _last(signal_line)
        macd_hist = _last(macd.macd_diff())
        crossover = macd_crossover(macd_line, signal_line)

    bb_upper = bb_middle = bb_lower = None
    if len(close) >= 20:
        bb = BollingerBands(close=close, window=20, window_dev=2)
        bb_upper = _last(bb.bollinger_hband())
        bb_middle = _last(bb.bollinger_mavg())
        bb_lower = _last(bb.bollinger_lband())

    def sma(window: int) -> float | None:
        if len(close) < window:
            return None
        return _last(SMAIndicator(close=close, window=window).sma_indicator())

    sma20, sma50, sma200 = sma(20), sma(50), sma(200)
    ema20 = (
        _last(EMAIndicator(close=close, window=20).ema_indicator())
        if len(close) >= 20
        else None
    )

    rsi_sig = rsi_signal(rsi)
    bb_position = bollinger_position(price, bb_upper, bb_lower)
    trend = ma_trend(price, sma20, sma50, ema20)
    obv = obv_trend(close, volume)
    signal, strength = overall_signal(rsi_sig, crossover, macd_hist, bb_position, trend, obv)

    return TechnicalIndicators(
        ticker=ticker,
        rsi14=rsi,
        rsi_signal=rsi_sig,
        macd_value=macd_value,
        macd_signal=macd_sig,
        macd_histogram=macd_hist,
        macd_crossover=crossover,
        bb_upper=bb_upper,
        bb_middle=bb_middle,
        bb_lower=bb_lower,
        bb_position=bb_position,
        sma20=sma20,
        sma50=sma50,
        sma200=sma200,
        ema20=ema20,
        ma_trend=trend,
        obv_trend=obv,
        technical_signal=signal,
        signal_strength=strength,
    )
