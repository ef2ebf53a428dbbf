"""Domain models passed between the scan engine, persistence and notifications.

Usage:
    from screener.domain import ScoreSet, TickerAnalysis

    scores = ScoreSet(attention=90, momentum=40, fundamentals=65, risk=30)
    data = scores.model_dump()
"""

from screener.domain.sentiment import (
    RANK_SOURCE,
    MergedSentiment,
    SentimentRecord,
    SentimentSource,
)
from screener.domain.market import (
    FundamentalsSnapshot,
    HistoricalCandle,
    PriceSnapshot,
)
from screener.domain.targets import (
    AITarget,
    AnalyticalTarget,
    FundamentalTarget,
    RiskTarget,
    TargetDetails,
    TargetPrices,
    TechnicalTarget,
)
from screener.domain.analysis import (
    AlertType,
    Classification,
    ClassificationOutcome,
    ClassificationResult,
    DarkPoolActivity,
    OptionsActivity,
    ScoreSet,
    SecActivity,
    SignalOverlays,
    TechnicalIndicators,
    TickerAnalysis,
)
from screener.domain.alerts import (
    KNOWN_CHANNELS,
    AlertConditions,
    AlertEvent,
    AlertPayload,
    AlertRule,
    AlertRuleCreate,
    AlertRuleUpdate,
    AlertScores,
    ScanSummary,
)
from screener.domain.returns import (
    BacktestResult,
    ClassificationAccuracy,
    ForwardReturns,
    PendingPick,
    ReturnRecord,
    TargetAccuracy,
)

__all__ = [
    # Sentiment
    "RANK_SOURCE",
    "MergedSentiment",
    "SentimentRecord",
    "SentimentSource",
    # Market
    "FundamentalsSnapshot",
    "HistoricalCandle",
    "PriceSnapshot",
    # Targets
    "AITarget",
    "AnalyticalTarget",
    "FundamentalTarget",
    "RiskTarget",
    "TargetDetails",
    "TargetPrices",
    "TechnicalTarget",
    # Analysis
    "AlertType",
    "Classification",
    "ClassificationOutcome",
    "ClassificationResult",
    "DarkPoolActivity",
    "OptionsActivity",
    "ScoreSet",
    "SecActivity",
    "SignalOverlays",
    "TechnicalIndicators",
    "TickerAnalysis",
    # Alerts
    "KNOWN_CHANNELS",
    "AlertConditions",
    "AlertEvent",
    "AlertPayload",
    "AlertRule",
    "AlertRuleCreate",
    "AlertRuleUpdate",
    "AlertScores",
    "ScanSummary",
    # Returns
    "BacktestResult",
    "ClassificationAccuracy",
    "ForwardReturns",
    "PendingPick",
    "ReturnRecord",
    "TargetAccuracy",
]
