"""Target price calculation.

Four independent estimates, each with its own confidence:

1. Technical: position inside the 52-week range
2. Fundamental: implied EPS at the sector average P/E (or P/S fallback)
3. Analytical: supplied by the reviewer, else the mean of the others
4. Risk-based: percentage targets picked by the risk score

The blended ``average`` weights each target by its confidence. The stop
loss is never looser than 10% below entry.
"""

from __future__ import annotations

from screener.core.data_helpers import floor2, round2
from screener.domain import (
    AITarget,
    AnalyticalTarget,
    FundamentalsSnapshot,
    FundamentalTarget,
    PriceSnapshot,
    RiskTarget,
    ScoreSet,
    TargetDetails,
    TargetPrices,
    TechnicalTarget,
)


# Approximate sector average P/E ratios
SECTOR_PE: dict[str, float] = {
    "Technology": 25,
    "Healthcare": 20,
    "Financial Services": 12,
    "Consumer Cyclical": 18,
    "Consumer Defensive": 22,
    "Industrials": 18,
    "Energy": 10,
    "Basic Materials": 12,
    "Real Estate": 35,
    "Utilities": 18,
    "Communication Services": 20,
}
DEFAULT_SECTOR_PE = 15.0

# Typical price/sales multiple used when there is no P/E
TARGET_PS = 2.5

MAX_STOP_FRACTION = 0.9

# (risk below, target pct, stop pct); last row applies to everything else
RISK_TIERS: tuple[tuple[int, float, float], ...] = (
    (30, 0.25, 0.08),
    (50, 0.20, 0.10),
    (70, 0.15, 0.12),
)
HIGH_RISK_TIER = (0.10, 0.15)


def sector_pe(sector: str | None) -> float:
    return SECTOR_PE.get(sector or "", DEFAULT_SECTOR_PE)


def calculate_technical_target(price: PriceSnapshot) -> TechnicalTarget:
    """Target from where the price sits inside its 52-week range."""
    current = price.price
    high = price.high_52w or current * 1.3
    low = price.low_52w or current * 0.7
    range_ = high - low

    support = low + range_ * 0.25
    resistance = low + range_ * 0.75

    # A flat range gives no position; treat it like trading at the highs
    position = (current - low) / range_ if range_ > 0 else 1.0

    if position < 0.3:
        target, confidence = low + range_ * 0.5, 0.7
    elif position < 0.5:
        target, confidence = resistance, 0.65
    elif position < 0.7:
        target, confidence = high * 0.95, 0.5
    else:
        target, confidence = current * 1.10, 0.4

    if price.change_5d_percent > 10:
        target *= 1.05
    elif price.change_5d_percent < -10:
        target *= 0.95

    return TechnicalTarget(
        method="52-Week Range Analysis",
        resistance=round2(resistance),
        support=round2(support),
        high_52w=round2(high),
        low_52w=round2(low),
        target=round2(target),
        confidence=confidence,
    )


def calculate_fundamental_target(
    price: PriceSnapshot, fundamentals: FundamentalsSnapshot
) -> FundamentalTarget:
    """Target from fair value at the sector average P/E."""
    current = price.price
    pe = fundamentals.pe_ratio
    avg_pe = sector_pe(fundamentals.sector)
    growth = fundamentals.revenue_growth

    if pe is not None and pe > 0:
        fair_value = current / pe * avg_pe
        if growth is not None and growth > 20:
            fair_value *= 1.2
        elif growth is not None and growth < 0:
            fair_value *= 0.85
        target = fair_value * 0.7 + current * 0.3
        confidence = 0.6
    elif fundamentals.ps_ratio is not None and fundamentals.ps_ratio > 0:
        fair_value = current / fundamentals.ps_ratio * TARGET_PS
        target = fair_value * 0.6 + current * 0.4
        confidence = 0.4
    else:
        fair_value = current * 1.15
        target = fair_value
        confidence = 0.3

    return FundamentalTarget(
        method="P/E Fair Value Analysis",
        current_pe=pe,
        sector_avg_pe=avg_pe,
        fair_value=round2(fair_value),
        target=round2(target),
        confidence=confidence,
    )


def calculate_risk_target(price: PriceSnapshot, scores: ScoreSet) -> RiskTarget:
    """Percentage targets and stop picked by the risk score."""
    current = price.price
    target_pct, stop_pct = HIGH_RISK_TIER
    for upper, tier_target, tier_stop in RISK_TIERS:
        if scores.risk < upper:
            target_pct, stop_pct = tier_target, tier_stop
            break

    target = current * (1 + target_pct)
    return RiskTarget(
        method="Risk-Adjusted Targets",
        entry_price=round2(current),
        target_10pct=round2(current * 1.10),
        target_20pct=round2(target),
        stop_loss=round2(current * (1 - stop_pct)),
        target=round2(target),
        confidence=0.7,
    )


def default_ai_target(technical: float, fundamental: float, risk: float) -> AITarget:
    """Stand-in analytical target when the reviewer offered none."""
    return AITarget(
        method="AI Analysis",
        target=round2((technical + fundamental + risk) / 3),
        reasoning="Weighted average of technical, fundamental, and risk analysis",
        confidence=0.5,
    )


def bounded_stop(stop_loss: float, entry: float) -> float:
    """Stop floored to cents and never above ``entry * MAX_STOP_FRACTION``."""
    ceiling = entry * MAX_STOP_FRACTION
    stop = floor2(min(stop_loss, ceiling))
    while stop > ceiling:
        stop = round2(stop - 0.01)
    return stop


def calculate_target_prices(
    price: PriceSnapshot,
    fundamentals: FundamentalsSnapshot,
    scores: ScoreSet,
    ai_target: AnalyticalTarget | None = None,
) -> TargetPrices:
    """Compute all four targets, their blend and the stop loss.

    Args:
        price: Latest price snapshot
        fundamentals: Company fundamentals
        scores: The ticker's score set (risk picks the risk tier)
        ai_target: Optional target from the analytical reviewer

    Returns:
        TargetPrices with every price rounded to 2 decimals
    """
    technical = calculate_technical_target(price)
    fundamental = calculate_fundamental_target(price, fundamentals)
    risk = calculate_risk_target(price, scores)

    if ai_target is not None:
        ai = AITarget(
            method="AI Analysis",
            target=round2(ai_target.target),
            reasoning=ai_target.reasoning,
            confidence=ai_target.confidence,
        )
    else:
        ai = default_ai_target(technical.target, fundamental.target, risk.target)

    estimates = (technical, fundamental, ai, risk)
    total_confidence = sum(e.confidence for e in estimates)
    average = sum(e.target * e.confidence for e in estimates) / total_confidence

    stop_loss = bounded_stop(risk.stop_loss, price.price)

    return TargetPrices(
        technical=technical.target,
        fundamental=fundamental.target,
        ai=ai.target,
        risk=risk.target,
        average=round2(average),
        stop_loss=stop_loss,
        details=TargetDetails(
            technical=technical,
            fundamental=fundamental,
            ai=ai,
            risk=risk,
        ),
    )
