"""Analytical review of interesting tickers with an LLM.

The reviewer refines the deterministic classification with a bull/bear
case, catalysts, a confidence and an optional price target. It can
never block a scan: any API or parsing failure falls back to the
preliminary classification with confidence 0.5.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Protocol

from openai import APIError, AsyncOpenAI

from screener.core.config import settings
from screener.core.exceptions import AnalyticalParseError
from screener.core.logging import get_logger
from screener.domain import (
    AnalyticalTarget,
    Classification,
    ClassificationOutcome,
    ClassificationResult,
    FundamentalsSnapshot,
    MergedSentiment,
    PriceSnapshot,
    ScoreSet,
)


logger = get_logger("scoring.analysis")

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

UNAVAILABLE = "Analysis unavailable"
PARSE_FAILED = "Analysis parsing failed"
NOT_REVIEWED = "Does not meet criteria for detailed analysis"

INSTRUCTIONS = "You are a quantitative stock analyst. Respond with JSON only."


@dataclass(frozen=True)
class ReviewContext:
    """Everything the reviewer sees about one ticker."""

    ticker: str
    scores: ScoreSet
    sentiment: MergedSentiment
    price: PriceSnapshot
    fundamentals: FundamentalsSnapshot
    preliminary: Classification


@dataclass(frozen=True)
class AnalyticalReview:
    result: ClassificationResult
    target: AnalyticalTarget | None = None


class AnalyticalReviewer(Protocol):
    async def review(self, context: ReviewContext) -> AnalyticalReview: ...


def needs_review(outcome: ClassificationOutcome, scores: ScoreSet, min_score: int = 50) -> bool:
    """Only alerting or noticeably active tickers are worth an API call."""
    return (
        outcome.alert_triggered
        or scores.attention > min_score
        or scores.momentum > min_score
    )


def unreviewed_result(outcome: ClassificationOutcome) -> ClassificationResult:
    """Classification for tickers that skip the review."""
    return ClassificationResult(
        classification=outcome.classification,
        confidence=0.5,
        bull_case=outcome.reason,
        bear_case=NOT_REVIEWED,
        catalysts=[],
    )


def fallback_review(preliminary: Classification, message: str = UNAVAILABLE) -> AnalyticalReview:
    return AnalyticalReview(
        result=ClassificationResult(
            classification=preliminary,
            confidence=0.5,
            bull_case=message,
            bear_case=message,
            catalysts=[],
        )
    )


def format_market_cap(value: float) -> str:
    if value >= 1_000_000_000:
        return f"{value / 1_000_000_000:.2f}B"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"{value / 1_000:.2f}K"
    return f"{value:g}"


def _pct(value: float | None) -> str:
    return f"{value:.1f}%" if value is not None else "N/A"


def build_prompt(context: ReviewContext) -> str:
    s, p, f = context.sentiment, context.price, context.fundamentals
    scores = context.scores
    if p.high_52w:
        distance = f"{(p.high_52w - p.price) / p.high_52w * 100:.1f}%"
    else:
        distance = "N/A"

    return f"""Analyze this small-cap stock and provide a brief assessment.

TICKER: {context.ticker}
COMPANY: {f.name or 'Unknown'}
SECTOR: {f.sector or 'Unknown'}
EXCHANGE: {f.exchange or 'Unknown'}

COMPUTED SCORES (0-100):
- Attention Score: {scores.attention} (social media buzz and sentiment)
- Momentum Score: {scores.momentum} (price action and volume)
- Fundamentals Score: {scores.fundamentals} (financial health)
- Risk Score: {scores.risk} (pump & dump probability)

SENTIMENT DATA:
- Total Mentions: {s.total_mentions}
- Average Sentiment: {s.avg_sentiment:.1f}
- Momentum (vs prior period): {s.max_momentum:.2f}x
- Sources tracking: {s.source_count}

PRICE DATA:
- Current Price: ${p.price:.2f}
- 1-Day Change: {p.change_1d_percent:.2f}%
- 5-Day Change: {p.change_5d_percent:.2f}%
- 30-Day Change: {p.change_30d_percent:.2f}%
- Relative Volume: {p.relative_volume:.2f}x average
- Distance from 52W High: {distance}

FUNDAMENTALS:
- Market Cap: ${format_market_cap(f.market_cap)}
- P/E Ratio: {f.pe_ratio if f.pe_ratio is not None else 'N/A'}
- Revenue Growth: {_pct(f.revenue_growth)}
- Gross Margin: {_pct(f.gross_margin)}
- Debt/Equity: {f.debt_equity if f.debt_equity is not None else 'N/A'}

PRELIMINARY CLASSIFICATION: {context.preliminary.value}

Respond with a JSON object containing:
{{
  "classification": "runner" | "value" | "both" | "avoid" | "watch",
  "confidence": 0.0-1.0,
  "bullCase": "1-2 sentence bull case",
  "bearCase": "1-2 sentence bear case",
  "catalysts": ["catalyst1", "catalyst2"],
  "priceTarget": {{"target": 0.0, "reasoning": "one sentence", "confidence": 0.0-1.0}}
}}

Be concise. Focus on actionable insights. If this looks like a pump-and-dump, say so clearly in the bear case."""


def _parse_target(raw: Any) -> AnalyticalTarget | None:
    if not isinstance(raw, dict):
        return None
    target = raw.get("target")
    confidence = raw.get("confidence", 0.5)
    if not isinstance(target, (int, float)) or isinstance(target, bool) or target <= 0:
        return None
    if not isinstance(confidence, (int, float)) or not 0 < confidence <= 1:
        confidence = 0.5
    reasoning = raw.get("reasoning")
    return AnalyticalTarget(
        target=float(target),
        reasoning=reasoning if isinstance(reasoning, str) else "",
        confidence=float(confidence),
    )


def parse_review(text: str, preliminary: Classification) -> AnalyticalReview:
    """Parse the reviewer's reply.

    The first ``{...}`` block is extracted, so replies wrapped in
    markdown fences or prose still parse. Unknown classifications fall
    back to ``preliminary``; confidence is clamped to [0, 1].

    Raises:
        AnalyticalParseError: No JSON object, or it does not decode
    """
    match = JSON_OBJECT_PATTERN.search(text or "")
    if not match:
        raise AnalyticalParseError("No JSON found in response")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AnalyticalParseError(f"Invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise AnalyticalParseError("Response JSON is not an object")

    try:
        classification = Classification(parsed.get("classification"))
    except ValueError:
        classification = preliminary

    confidence = parsed.get("confidence")
    if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
        confidence = max(0.0, min(1.0, float(confidence)))
    else:
        confidence = 0.5

    bull_case = parsed.get("bullCase")
    bear_case = parsed.get("bearCase")
    catalysts = parsed.get("catalysts")

    return AnalyticalReview(
        result=ClassificationResult(
            classification=classification,
            confidence=confidence,
            bull_case=bull_case if isinstance(bull_case, str) else UNAVAILABLE,
            bear_case=bear_case if isinstance(bear_case, str) else UNAVAILABLE,
            catalysts=[c for c in catalysts if isinstance(c, str)]
            if isinstance(catalysts, list)
            else [],
        ),
        target=_parse_target(parsed.get("priceTarget")),
    )


class OpenAIReviewer:
    """Analytical reviewer backed by the OpenAI Responses API."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        max_output_tokens: int | None = None,
    ):
        self._client = client
        self.model = model or settings.openai_model
        self.max_output_tokens = max_output_tokens or settings.openai_max_tokens

    def _get_client(self) -> AsyncOpenAI | None:
        if self._client is None and settings.openai_api_key:
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.external_api_timeout * 3,
                max_retries=1,
            )
        return self._client

    async def review(self, context: ReviewContext) -> AnalyticalReview:
        client = self._get_client()
        if client is None:
            logger.warning("OpenAI API key not configured, skipping review")
            return fallback_review(context.preliminary)

        try:
            response = await client.responses.create(
                model=self.model,
                instructions=INSTRUCTIONS,
                input=build_prompt(context),
                max_output_tokens=self.max_output_tokens,
                text={"format": {"type": "json_object"}},
                store=False,
            )
        except APIError as e:
            logger.error(f"Review failed for {context.ticker}: {e}")
            return fallback_review(context.preliminary)

        try:
            return parse_review(response.output_text, context.preliminary)
        except AnalyticalParseError as e:
            logger.warning(f"Could not parse review for {context.ticker}: {e}")
            return fallback_review(context.preliminary, PARSE_FAILED)
