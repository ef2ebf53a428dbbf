"""Deterministic ticker classification from a score set.

Rules are checked in a fixed priority order and the first match wins:

1. pump warning (risk gate), overrides everything
2. both
3. runner
4. value
5. watch
"""

from __future__ import annotations

from screener.domain import AlertType, Classification, ClassificationOutcome, ScoreSet

from .config import AlertThresholds, get_alert_thresholds


# "both" uses fixed bars rather than configurable ones
BOTH_MIN_SCORE = 60
BOTH_MAX_RISK = 50


def classify_ticker(
    scores: ScoreSet, thresholds: AlertThresholds | None = None
) -> ClassificationOutcome:
    """Map a score set to exactly one classification.

    Args:
        scores: The ticker's scores
        thresholds: Classifier thresholds, defaults to the configured ones

    Returns:
        ClassificationOutcome with classification, alert type and reason
    """
    t = thresholds or get_alert_thresholds()
    attention, momentum = scores.attention, scores.momentum
    fundamentals, risk = scores.fundamentals, scores.risk

    if risk >= t.pump_warning.min_risk:
        return ClassificationOutcome(
            classification=Classification.AVOID,
            alert_type=AlertType.PUMP_WARNING,
            reason="High pump-and-dump probability",
        )

    if (
        attention >= BOTH_MIN_SCORE
        and momentum >= BOTH_MIN_SCORE
        and fundamentals >= BOTH_MIN_SCORE
        and risk < BOTH_MAX_RISK
    ):
        return ClassificationOutcome(
            classification=Classification.BOTH,
            alert_type=AlertType.BOTH,
            reason="Quality company with momentum and attention",
        )

    if (
        attention >= t.runner.min_attention
        and momentum >= t.runner.min_momentum
        and risk <= t.runner.max_risk
    ):
        return ClassificationOutcome(
            classification=Classification.RUNNER,
            alert_type=AlertType.RUNNER,
            reason="High sentiment momentum play",
        )

    if (
        fundamentals >= t.value.min_fundamentals
        and t.value.min_momentum <= momentum <= t.value.max_momentum
        and risk <= t.value.max_risk
    ):
        return ClassificationOutcome(
            classification=Classification.VALUE,
            alert_type=AlertType.VALUE,
            reason="Strong fundamentals with building momentum",
        )

    return ClassificationOutcome(
        classification=Classification.WATCH,
        alert_type=None,
        reason="Does not meet runner or value criteria",
    )
