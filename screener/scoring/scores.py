"""Score calculation for attention, momentum, fundamentals and risk.

Every function here is pure: the same inputs always give the same
integer score in [0, 100].
"""

from __future__ import annotations

from screener.core.data_helpers import clamp_score
from screener.domain import (
    FundamentalsSnapshot,
    MergedSentiment,
    PriceSnapshot,
    ScoreSet,
    TechnicalIndicators,
)


# Mentions needed for the full 40-point mention component
MENTIONS_FOR_MAX = 200

MAJOR_EXCHANGES = ("NYSE", "NASDAQ")
OTC_EXCHANGES = ("OTC", "PINK", "OTCQB", "OTCQX")

FUNDAMENTALS_BASELINE = 50
RISK_BASELINE = 20

TECHNICAL_MODIFIER_LIMIT = 20


def _exchange_matches(exchange: str | None, names: tuple[str, ...]) -> bool:
    exchange = (exchange or "").upper()
    return any(name in exchange for name in names)


def calculate_attention_score(sentiment: MergedSentiment) -> int:
    """Crowd buzz intensity from merged sentiment.

    mentions (0-40) + sentiment (0-25) + rank (0-20) + multi-source (0-5)
    + mention acceleration (0-10).
    """
    mention_component = min(40.0, sentiment.total_mentions / MENTIONS_FOR_MAX * 40)
    sentiment_component = (sentiment.avg_sentiment + 100) / 200 * 25

    rank_component = 0
    rank = sentiment.rank()
    if rank is not None:
        if rank <= 10:
            rank_component = 20
        elif rank <= 25:
            rank_component = 15
        elif rank <= 50:
            rank_component = 10
        elif rank <= 100:
            rank_component = 5

    source_bonus = min(5, sentiment.source_count * 2)

    momentum_bonus = 0
    if sentiment.max_momentum > 3:
        momentum_bonus = 10
    elif sentiment.max_momentum > 2:
        momentum_bonus = 5
    elif sentiment.max_momentum > 1.5:
        momentum_bonus = 2

    return clamp_score(
        mention_component
        + sentiment_component
        + rank_component
        + source_bonus
        + momentum_bonus
    )


def calculate_momentum_score(price: PriceSnapshot) -> int:
    """Recent price and volume strength.

    daily move (0-30) + relative volume (0-30) + 30-day trend (0-20)
    + room below the 52-week high (5-20).
    """
    daily_move = min(30.0, abs(price.change_1d_percent) * 2)
    volume_component = min(30.0, (price.relative_volume - 1) * 10)

    change_30d = price.change_30d_percent
    if change_30d > 50:
        trend_component = 20
    elif change_30d > 20:
        trend_component = 15
    elif change_30d > 0:
        trend_component = 10
    elif change_30d > -20:
        trend_component = 5
    else:
        trend_component = 0

    # Without a usable 52-week high the lowest tier applies
    position_component = 5
    if price.high_52w:
        distance_from_high = (price.high_52w - price.price) / price.high_52w * 100
        if distance_from_high > 50:
            position_component = 20
        elif distance_from_high > 30:
            position_component = 15
        elif distance_from_high > 15:
            position_component = 10

    return clamp_score(daily_move + volume_component + trend_component + position_component)


def calculate_fundamentals_score(fundamentals: FundamentalsSnapshot) -> int:
    """Financial health relative to a neutral baseline of 50.

    Each tier is skipped when its field is not reported.
    """
    score = FUNDAMENTALS_BASELINE
    f = fundamentals

    if f.market_cap >= 500_000_000:
        score += 15
    elif f.market_cap >= 100_000_000:
        score += 10
    elif f.market_cap >= 50_000_000:
        score += 5
    elif f.market_cap < 10_000_000:
        score -= 15  # Shell company territory

    if f.pe_ratio is not None:
        if 0 < f.pe_ratio < 15:
            score += 10
        elif 0 < f.pe_ratio < 30:
            score += 5
        elif f.pe_ratio < 0:
            score -= 5
        elif f.pe_ratio > 100:
            score -= 5

    if f.revenue_growth is not None:
        if f.revenue_growth > 50:
            score += 15
        elif f.revenue_growth > 20:
            score += 10
        elif f.revenue_growth > 0:
            score += 5
        elif f.revenue_growth < -20:
            score -= 10

    if f.gross_margin is not None:
        if f.gross_margin > 50:
            score += 10
        elif f.gross_margin > 30:
            score += 5
        elif f.gross_margin < 10:
            score -= 5

    if f.operating_margin is not None:
        if f.operating_margin > 20:
            score += 10
        elif f.operating_margin > 0:
            score += 5
        else:
            score -= 5

    if f.debt_equity is not None:
        if f.debt_equity < 0.3:
            score += 5
        elif f.debt_equity > 2:
            score -= 10
        elif f.debt_equity > 1:
            score -= 5

    if _exchange_matches(f.exchange, MAJOR_EXCHANGES):
        score += 5

    return clamp_score(score)


def calculate_risk_score(
    sentiment: MergedSentiment,
    price: PriceSnapshot,
    fundamentals: FundamentalsSnapshot,
    attention: int,
    fundamentals_score: int,
) -> int:
    """Pump-and-dump probability. Higher is riskier.

    Starts at 20 and adds points for suspicious combinations such as
    heavy buzz on weak fundamentals or a micro-cap making a big move.
    """
    risk = RISK_BASELINE
    abs_move = abs(price.change_1d_percent)

    if attention > 80 and fundamentals_score < 30:
        risk += 25
    elif attention > 60 and fundamentals_score < 40:
        risk += 15

    if price.relative_volume > 10 and fundamentals_score < 50:
        risk += 20
    elif price.relative_volume > 5 and fundamentals_score < 50:
        risk += 10

    # Single-source hype
    if sentiment.source_count == 1 and attention > 50:
        risk += 15

    if abs_move > 30 and fundamentals_score < 50:
        risk += 15

    if fundamentals.market_cap < 10_000_000 and abs_move > 20:
        risk += 20

    if fundamentals.market_cap < 5_000_000:
        risk += 10

    if _exchange_matches(fundamentals.exchange, OTC_EXCHANGES):
        risk += 10

    if fundamentals.recent_filings == 0:
        risk += 5

    return clamp_score(risk)


def calculate_all_scores(
    sentiment: MergedSentiment,
    price: PriceSnapshot,
    fundamentals: FundamentalsSnapshot,
) -> ScoreSet:
    """Compute the full score set; risk is derived from attention and fundamentals."""
    attention = calculate_attention_score(sentiment)
    momentum = calculate_momentum_score(price)
    fundamentals_score = calculate_fundamentals_score(fundamentals)
    risk = calculate_risk_score(sentiment, price, fundamentals, attention, fundamentals_score)

    return ScoreSet(
        attention=attention,
        momentum=momentum,
        fundamentals=fundamentals_score,
        risk=risk,
    )


def technical_score_modifier(indicators: TechnicalIndicators) -> int:
    """Momentum adjustment suggested by the technical overlay, in [-20, 20]."""
    modifier = 0

    if indicators.technical_signal == "bullish":
        modifier += 10
    elif indicators.technical_signal == "bearish":
        modifier -= 10

    if indicators.rsi_signal == "oversold":
        modifier += 5
    elif indicators.rsi_signal == "overbought":
        modifier -= 5

    if indicators.macd_crossover == "bullish":
        modifier += 5
    elif indicators.macd_crossover == "bearish":
        modifier -= 5

    return max(-TECHNICAL_MODIFIER_LIMIT, min(TECHNICAL_MODIFIER_LIMIT, modifier))
