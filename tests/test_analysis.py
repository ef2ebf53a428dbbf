"""Tests for the analytical review layer."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
from conftest import make_fundamentals, make_price, make_sentiment
from openai import APIError

from screener.core.exceptions import AnalyticalParseError
from screener.domain import AlertType, Classification, ClassificationOutcome, ScoreSet
from screener.scoring.analysis import (
    NOT_REVIEWED,
    PARSE_FAILED,
    UNAVAILABLE,
    OpenAIReviewer,
    ReviewContext,
    build_prompt,
    format_market_cap,
    needs_review,
    parse_review,
    unreviewed_result,
)


def make_context(preliminary: Classification = Classification.RUNNER) -> ReviewContext:
    return ReviewContext(
        ticker="ABCD",
        scores=ScoreSet(attention=80, momentum=75, fundamentals=45, risk=40),
        sentiment=make_sentiment(),
        price=make_price(),
        fundamentals=make_fundamentals(),
        preliminary=preliminary,
    )


def fake_client(output_text: str | None = None, error: Exception | None = None):
    create = AsyncMock()
    if error is not None:
        create.side_effect = error
    else:
        create.return_value = SimpleNamespace(output_text=output_text)
    return SimpleNamespace(responses=SimpleNamespace(create=create))


# =============================================================================
# Parsing
# =============================================================================


class TestParseReview:
    """Tests for parse_review."""

    def test_parses_fenced_json(self):
        text = """Here you go:
```json
{"classification": "value", "confidence": 0.8, "bullCase": "Cheap",
 "bearCase": "Dilution", "catalysts": ["earnings", 3],
 "priceTarget": {"target": 7.5, "reasoning": "Book value", "confidence": 0.6}}
```"""
        review = parse_review(text, Classification.RUNNER)

        assert review.result.classification == Classification.VALUE
        assert review.result.confidence == 0.8
        assert review.result.bull_case == "Cheap"
        assert review.result.bear_case == "Dilution"
        assert review.result.catalysts == ["earnings"]
        assert review.target is not None
        assert review.target.target == 7.5
        assert review.target.confidence == 0.6

    def test_unknown_classification_keeps_preliminary(self):
        review = parse_review('{"classification": "moon"}', Classification.WATCH)

        assert review.result.classification == Classification.WATCH
        assert review.result.confidence == 0.5
        assert review.result.bull_case == UNAVAILABLE
        assert review.target is None

    def test_confidence_is_clamped(self):
        review = parse_review('{"classification": "both", "confidence": 1.7}', Classification.BOTH)
        assert review.result.confidence == 1.0

    @pytest.mark.parametrize(
        "raw",
        [
            '{"target": -2}',
            '{"target": "12"}',
            '{"target": true}',
            '"nine dollars"',
        ],
    )
    def test_invalid_price_target_is_dropped(self, raw):
        review = parse_review(f'{{"priceTarget": {raw}}}', Classification.RUNNER)
        assert review.target is None

    def test_bad_target_confidence_defaults(self):
        review = parse_review(
            '{"priceTarget": {"target": 3.2, "confidence": 4}}', Classification.RUNNER
        )
        assert review.target.confidence == 0.5

    def test_no_json_raises(self):
        with pytest.raises(AnalyticalParseError):
            parse_review("I cannot help with that.", Classification.RUNNER)

    def test_broken_json_raises(self):
        with pytest.raises(AnalyticalParseError):
            parse_review('{"classification": runner}', Classification.RUNNER)


class TestReviewGate:
    """Tests for needs_review and unreviewed_result."""

    def test_alerting_ticker_is_reviewed(self):
        outcome = ClassificationOutcome(
            classification=Classification.AVOID, alert_type=AlertType.PUMP_WARNING
        )
        scores = ScoreSet(attention=10, momentum=10, fundamentals=10, risk=90)
        assert needs_review(outcome, scores) is True

    def test_active_watch_ticker_is_reviewed(self):
        outcome = ClassificationOutcome(classification=Classification.WATCH)
        scores = ScoreSet(attention=51, momentum=10, fundamentals=10, risk=20)
        assert needs_review(outcome, scores) is True

    def test_quiet_watch_ticker_is_skipped(self):
        outcome = ClassificationOutcome(classification=Classification.WATCH)
        scores = ScoreSet(attention=50, momentum=50, fundamentals=90, risk=20)
        assert needs_review(outcome, scores) is False

    def test_unreviewed_result(self):
        outcome = ClassificationOutcome(
            classification=Classification.WATCH, reason="Does not meet runner or value criteria"
        )
        result = unreviewed_result(outcome)

        assert result.classification == Classification.WATCH
        assert result.confidence == 0.5
        assert result.bull_case == outcome.reason
        assert result.bear_case == NOT_REVIEWED


# =============================================================================
# Reviewer
# =============================================================================


class TestOpenAIReviewer:
    """Tests for OpenAIReviewer with a stubbed client."""

    @pytest.mark.asyncio
    async def test_successful_review(self):
        client = fake_client('{"classification": "both", "confidence": 0.9}')
        reviewer = OpenAIReviewer(client=client, model="test-model", max_output_tokens=256)

        review = await reviewer.review(make_context())

        assert review.result.classification == Classification.BOTH
        kwargs = client.responses.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["max_output_tokens"] == 256
        assert "TICKER: ABCD" in kwargs["input"]

    @pytest.mark.asyncio
    async def test_unparseable_reply_falls_back(self):
        reviewer = OpenAIReviewer(client=fake_client("no json here"))

        review = await reviewer.review(make_context(Classification.VALUE))

        assert review.result.classification == Classification.VALUE
        assert review.result.confidence == 0.5
        assert review.result.bull_case == PARSE_FAILED
        assert review.target is None

    @pytest.mark.asyncio
    async def test_api_error_falls_back(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/responses")
        client = fake_client(error=APIError("boom", request, body=None))
        reviewer = OpenAIReviewer(client=client)

        review = await reviewer.review(make_context())

        assert review.result.classification == Classification.RUNNER
        assert review.result.bull_case == UNAVAILABLE

    @pytest.mark.asyncio
    async def test_missing_api_key_falls_back(self, monkeypatch):
        from screener.core.config import settings

        monkeypatch.setattr(settings, "openai_api_key", "")
        review = await OpenAIReviewer().review(make_context(Classification.AVOID))

        assert review.result.classification == Classification.AVOID
        assert review.result.bull_case == UNAVAILABLE


class TestPrompt:
    """Tests for prompt rendering."""

    def test_prompt_contains_scores_and_preliminary(self):
        prompt = build_prompt(make_context(Classification.VALUE))

        assert "Attention Score: 80" in prompt
        assert "PRELIMINARY CLASSIFICATION: value" in prompt
        assert "Gross Margin: N/A" in prompt

    def test_format_market_cap(self):
        assert format_market_cap(2_500_000_000) == "2.50B"
        assert format_market_cap(45_000_000) == "45.00M"
        assert format_market_cap(12_000) == "12.00K"
        assert format_market_cap(950) == "950"
