"""
Alert rule evaluation and dispatch.

Two strategies decide which alerts a finished analysis produces:

- ``RuleBasedEvaluation``: every enabled rule whose conditions all hold
  sends one payload to the rule's channels.
- ``DefaultEvaluation``: no rules configured; the classifier's own
  alert goes to discord and slack.

An alert counts, and is recorded, only when at least one channel
confirmed delivery. Channels are tried in order without retries.

Usage:
    strategy = select_strategy(rules, channels, recorder)
    sent = await strategy.evaluate(analysis, scan_result_id)
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import date
from typing import Iterator, Mapping, Protocol, Sequence

from screener.core.logging import get_logger
from screener.domain import (
    AlertConditions,
    AlertEvent,
    AlertPayload,
    AlertRule,
    AlertScores,
    ScanSummary,
    TickerAnalysis,
)

from .channels import NotificationChannel


logger = get_logger("notifications.evaluator")

DEFAULT_CHANNELS = ("discord", "slack")
SUMMARY_CHANNELS = ("discord", "slack")
TEST_CHANNELS = ("email", "discord", "slack")

TEST_PAYLOAD = AlertPayload(
    ticker="TEST",
    alert_type="test",
    classification="runner",
    scores=AlertScores(attention=85, momentum=80, fundamentals=60, risk=35),
    price=10.00,
    target_price=12.50,
    stop_loss=9.00,
    bull_case="This is a test alert to verify notification channels are working.",
    bear_case="If you see this message, your notification channel is configured correctly.",
)


class AlertRecorder(Protocol):
    async def record_alert(self, event: AlertEvent) -> bool: ...


# =============================================================================
# Conditions
# =============================================================================


def _predicates(
    conditions: AlertConditions, analysis: TickerAnalysis, today: date
) -> Iterator[bool]:
    """Yield one result per predicate that is set on ``conditions``."""
    scores = analysis.scores
    overlays = analysis.overlays

    if conditions.classification:
        yield analysis.classification.classification.value in conditions.classification
    if conditions.attention_min is not None:
        yield scores.attention >= conditions.attention_min
    if conditions.momentum_min is not None:
        yield scores.momentum >= conditions.momentum_min
    if conditions.fundamentals_min is not None:
        yield scores.fundamentals >= conditions.fundamentals_min
    if conditions.risk_max is not None:
        yield scores.risk <= conditions.risk_max

    technicals = overlays.technicals
    if conditions.technical_signal:
        yield technicals is not None and technicals.technical_signal in conditions.technical_signal
    if conditions.rsi_min is not None:
        yield (
            technicals is not None
            and technicals.rsi14 is not None
            and technicals.rsi14 >= conditions.rsi_min
        )
    if conditions.rsi_max is not None:
        yield (
            technicals is not None
            and technicals.rsi14 is not None
            and technicals.rsi14 <= conditions.rsi_max
        )

    options = overlays.options
    if conditions.options_signal:
        yield options is not None and options.signal in conditions.options_signal
    if conditions.call_put_ratio_min is not None:
        yield options is not None and options.call_put_ratio >= conditions.call_put_ratio_min

    sec = overlays.sec
    if conditions.insider_buying is not None:
        yield sec is not None and sec.net_insider_buying == conditions.insider_buying
    if conditions.recent_8k is not None:
        yield sec is not None and sec.has_recent_8k(today) == conditions.recent_8k


def conditions_hold(
    conditions: AlertConditions, analysis: TickerAnalysis, today: date | None = None
) -> bool:
    """True when every predicate set on ``conditions`` holds.

    Empty conditions match everything.
    """
    today = today or analysis.run_timestamp.date()
    return all(_predicates(conditions, analysis, today))


# =============================================================================
# Dispatch
# =============================================================================


def build_payload(analysis: TickerAnalysis, alert_type: str) -> AlertPayload:
    targets = analysis.targets
    technicals = analysis.overlays.technicals
    return AlertPayload(
        ticker=analysis.ticker,
        alert_type=alert_type,
        classification=analysis.classification.classification.value,
        scores=AlertScores(**analysis.scores.model_dump()),
        price=analysis.price.price,
        target_price=targets.average if targets and targets.average else None,
        stop_loss=targets.stop_loss if targets and targets.stop_loss else None,
        bull_case=analysis.classification.bull_case,
        bear_case=analysis.classification.bear_case,
        technical_signal=technicals.technical_signal if technicals else None,
    )


async def dispatch_to_channels(
    payload: AlertPayload,
    channel_names: Sequence[str],
    channels: Mapping[str, NotificationChannel],
) -> list[str]:
    """Send ``payload`` to each named channel in order.

    Returns the names that confirmed delivery. Unknown names and
    channels that raise count as failed.
    """
    sent_to: list[str] = []
    for name in channel_names:
        channel = channels.get(name)
        if channel is None:
            logger.warning(f"Unknown notification channel: {name}")
            continue
        try:
            ok = await channel.send(payload)
        except Exception as e:
            logger.error(f"Channel {name} failed for {payload.ticker}: {e}")
            ok = False
        if ok:
            sent_to.append(name)
    return sent_to


class RuleEvaluationStrategy(ABC):
    """Turns one analysis into zero or more delivered alerts."""

    def __init__(
        self,
        channels: Mapping[str, NotificationChannel],
        recorder: AlertRecorder,
    ):
        self.channels = channels
        self.recorder = recorder

    @abstractmethod
    async def evaluate(self, analysis: TickerAnalysis, scan_result_id: int) -> int:
        """Return the number of alerts delivered to at least one channel."""

    async def _deliver(
        self,
        analysis: TickerAnalysis,
        scan_result_id: int,
        alert_type: str,
        channel_names: Sequence[str],
        message: str,
    ) -> bool:
        payload = build_payload(analysis, alert_type)
        sent_to = await dispatch_to_channels(payload, channel_names, self.channels)
        if not sent_to:
            return False

        event = AlertEvent(
            scan_result_id=scan_result_id,
            ticker=analysis.ticker,
            alert_type=alert_type,
            scores=payload.scores,
            classification=analysis.classification.model_dump(mode="json"),
            message=message,
            sent_to=sent_to,
        )
        if not await self.recorder.record_alert(event):
            logger.error(f"Failed to record alert for {analysis.ticker}")
        return True


class RuleBasedEvaluation(RuleEvaluationStrategy):
    def __init__(
        self,
        rules: Sequence[AlertRule],
        channels: Mapping[str, NotificationChannel],
        recorder: AlertRecorder,
    ):
        super().__init__(channels, recorder)
        self.rules = [rule for rule in rules if rule.enabled]

    async def evaluate(self, analysis: TickerAnalysis, scan_result_id: int) -> int:
        sent = 0
        for rule in self.rules:
            if not conditions_hold(rule.conditions, analysis):
                continue
            delivered = await self._deliver(
                analysis,
                scan_result_id,
                rule.alert_type,
                rule.channels,
                f"Alert triggered by rule: {rule.name}",
            )
            if delivered:
                sent += 1
        return sent


class DefaultEvaluation(RuleEvaluationStrategy):
    async def evaluate(self, analysis: TickerAnalysis, scan_result_id: int) -> int:
        if analysis.alert_type is None:
            return 0
        alert_type = analysis.alert_type.value
        delivered = await self._deliver(
            analysis,
            scan_result_id,
            alert_type,
            DEFAULT_CHANNELS,
            f"{alert_type} alert triggered",
        )
        return 1 if delivered else 0


def select_strategy(
    rules: Sequence[AlertRule],
    channels: Mapping[str, NotificationChannel],
    recorder: AlertRecorder,
) -> RuleEvaluationStrategy:
    """Rule-based when any enabled rule exists, otherwise the default."""
    if any(rule.enabled for rule in rules):
        return RuleBasedEvaluation(rules, channels, recorder)
    return DefaultEvaluation(channels, recorder)


# =============================================================================
# Summary and channel check
# =============================================================================


async def send_scan_summary(
    summary: ScanSummary, channels: Mapping[str, NotificationChannel]
) -> dict[str, bool]:
    results = {}
    for name in SUMMARY_CHANNELS:
        channel = channels.get(name)
        if channel is None:
            results[name] = False
            continue
        try:
            results[name] = await channel.send_summary(summary)
        except Exception as e:
            logger.error(f"Scan summary to {name} failed: {e}")
            results[name] = False
    return results


async def test_notification_channels(
    channels: Mapping[str, NotificationChannel],
) -> dict[str, bool]:
    """Send the fixed test alert to every known channel concurrently."""

    async def _send(name: str) -> bool:
        channel = channels.get(name)
        if channel is None:
            return False
        try:
            return await channel.send(TEST_PAYLOAD)
        except Exception as e:
            logger.error(f"Test notification to {name} failed: {e}")
            return False

    results = await asyncio.gather(*(_send(name) for name in TEST_CHANNELS))
    return dict(zip(TEST_CHANNELS, results))
