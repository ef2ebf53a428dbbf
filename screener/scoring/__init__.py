"""Scan engine: sentiment merge, scores, classification, targets and overlays.

Everything here except the analytical reviewer is pure and synchronous.
"""

from .classifier import classify_ticker
from .config import (
    AlertThresholds,
    ScoringSettings,
    UniverseConfig,
    get_alert_thresholds,
    get_universe_config,
)
from .scores import (
    calculate_all_scores,
    calculate_attention_score,
    calculate_fundamentals_score,
    calculate_momentum_score,
    calculate_risk_score,
    technical_score_modifier,
)
from .sentiment import merge_by_ticker, merge_sentiment
from .targets import calculate_target_prices
from .universe import EnrichedTicker, apply_universe_filters


__all__ = [
    "AlertThresholds",
    "EnrichedTicker",
    "ScoringSettings",
    "UniverseConfig",
    "apply_universe_filters",
    "calculate_all_scores",
    "calculate_attention_score",
    "calculate_fundamentals_score",
    "calculate_momentum_score",
    "calculate_risk_score",
    "calculate_target_prices",
    "classify_ticker",
    "get_alert_thresholds",
    "get_universe_config",
    "merge_by_ticker",
    "merge_sentiment",
    "technical_score_modifier",
]
