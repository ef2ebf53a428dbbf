"""
Tests for the scan pipeline with fake providers, channels and repositories.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import (
    FakeCandles,
    FakeMarketData,
    FakeRecorder,
    FakeSentimentProvider,
    make_analysis,
    make_fundamentals,
    make_price,
)

from screener.domain import (
    AlertRule,
    Classification,
    ScoreSet,
    SentimentRecord,
    SentimentSource,
)
from screener.repositories import scan_results_orm as scan_repo
from screener.services.pipeline import ScanPipeline, build_summary


RUNNER_RECORDS = [
    SentimentRecord(
        ticker="RUNR",
        source=SentimentSource.APEWISDOM,
        mentions=300,
        sentiment=90,
        momentum=4.0,
        rank=3,
    ),
    SentimentRecord(ticker="MISS", source=SentimentSource.APEWISDOM, mentions=40, rank=20),
    SentimentRecord(ticker="runr", source=SentimentSource.STOCKTWITS, mentions=100, sentiment=80),
]


def market_data() -> FakeMarketData:
    return FakeMarketData(
        prices={
            "RUNR": make_price(
                "RUNR",
                price=5.0,
                change_1d_percent=15.0,
                relative_volume=4.0,
                change_30d_percent=60.0,
                high_52w=20.0,
            )
        },
        fundamentals={"RUNR": make_fundamentals("RUNR", market_cap=200_000_000)},
    )


async def no_rules():
    return []


@pytest.fixture
def scan_store(monkeypatch):
    """Replace the scan result repository with an in-memory record."""
    store = {"runs": [], "results": [], "finished": []}

    async def create_run(run_id, run_timestamp=None):
        store["runs"].append(run_id)
        return True

    async def save_result(analysis):
        store["results"].append(analysis)
        return len(store["results"])

    async def finish_run(run_id, status, tickers, alerts, duration_ms, error=None):
        store["finished"].append(
            {"run_id": run_id, "status": status, "tickers": tickers, "alerts": alerts, "error": error}
        )
        return True

    monkeypatch.setattr(scan_repo, "create_run", create_run)
    monkeypatch.setattr(scan_repo, "save_result", save_result)
    monkeypatch.setattr(scan_repo, "finish_run", finish_run)
    return store


def make_pipeline(channels, recorder, **kwargs) -> ScanPipeline:
    options = dict(
        sentiment_providers=[FakeSentimentProvider(RUNNER_RECORDS)],
        market_data=market_data(),
        channels=channels,
        recorder=recorder,
        rules_loader=no_rules,
        ticker_delay=0,
        test_mode=True,
    )
    options.update(kwargs)
    return ScanPipeline(**options)


# =============================================================================
# Full runs
# =============================================================================


class TestScanPipeline:
    """Tests for ScanPipeline.run."""

    @pytest.mark.asyncio
    async def test_default_run(self, scan_store, channels, recorder):
        report = await make_pipeline(channels, recorder).run()

        assert report.status == "completed"
        assert report.sentiment_records == 3
        assert report.candidates == 2
        assert report.enriched == 1
        assert report.admitted == 1

        analysis = report.analyses[0]
        assert analysis.ticker == "RUNR"
        assert analysis.run_id == report.run_id
        assert analysis.sentiment.source_count == 2
        assert analysis.scores == ScoreSet(attention=97, momentum=100, fundamentals=65, risk=20)
        assert analysis.classification.classification == Classification.BOTH
        assert analysis.targets is not None

        # No rules: default strategy sends to discord and slack only
        assert report.alerts_sent == 1
        assert len(channels["discord"].sent) == 1
        assert len(channels["slack"].sent) == 1
        assert channels["email"].sent == []
        assert recorder.events[0].scan_result_id == 1
        assert recorder.events[0].sent_to == ["discord", "slack"]

        assert scan_store["runs"] == [report.run_id]
        assert scan_store["finished"] == [
            {"run_id": report.run_id, "status": "completed", "tickers": 1, "alerts": 1, "error": None}
        ]

        summary = channels["discord"].summaries[0]
        assert summary.total_scanned == 1
        assert summary.runners == 1
        assert summary.value_plays == 1
        assert summary.top_picks[0]["ticker"] == "RUNR"
        assert channels["email"].summaries == []

    @pytest.mark.asyncio
    async def test_rule_based_run(self, scan_store, channels, recorder):
        async def rules():
            return [
                AlertRule(
                    id=1,
                    name="Quality runners",
                    alert_type="both",
                    conditions={"classification": ["both"], "fundamentals_min": 60},
                    channels=["slack"],
                ),
                AlertRule(
                    id=2,
                    name="Oversold",
                    alert_type="runner",
                    conditions={"rsi_max": 30},
                    channels=["email"],
                ),
            ]

        report = await make_pipeline(channels, recorder, rules_loader=rules).run()

        assert report.alerts_sent == 1
        assert len(channels["slack"].sent) == 1
        assert channels["discord"].sent == []
        assert channels["email"].sent == []
        assert recorder.events[0].message == "Alert triggered by rule: Quality runners"

    @pytest.mark.asyncio
    async def test_max_tickers(self, scan_store, channels, recorder):
        data = market_data()

        report = await make_pipeline(channels, recorder, market_data=data, max_tickers=1).run()

        assert report.candidates == 1
        assert data.calls == ["RUNR"]

    @pytest.mark.asyncio
    async def test_universe_filters_outside_test_mode(self, scan_store, channels, recorder):
        data = market_data()
        data.fundamentals["RUNR"] = make_fundamentals("RUNR", country="Canada")

        report = await make_pipeline(channels, recorder, market_data=data, test_mode=False).run()

        assert report.status == "completed"
        assert report.enriched == 1
        assert report.admitted == 0
        assert report.alerts_sent == 0
        assert channels["discord"].summaries[0].total_scanned == 0

    @pytest.mark.asyncio
    async def test_unsaved_result_sends_no_alert(self, scan_store, channels, recorder, monkeypatch):
        async def save_result(analysis):
            return None

        monkeypatch.setattr(scan_repo, "save_result", save_result)

        report = await make_pipeline(channels, recorder).run()

        assert report.status == "completed"
        assert len(report.analyses) == 1
        assert report.alerts_sent == 0
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_without_recorder_no_alerts(self, scan_store, channels):
        report = await make_pipeline(channels, None).run()

        assert report.alerts_sent == 0
        assert channels["slack"].sent == []
        assert len(channels["slack"].summaries) == 1

    @pytest.mark.asyncio
    async def test_provider_failure_fails_run(self, scan_store, channels, recorder):
        pipeline = make_pipeline(
            channels,
            recorder,
            sentiment_providers=[FakeSentimentProvider(error=RuntimeError("feed down"))],
        )

        report = await pipeline.run()

        assert report.status == "failed"
        assert report.error == "feed down"
        assert scan_store["finished"][0]["status"] == "failed"
        assert scan_store["finished"][0]["error"] == "feed down"
        assert channels["discord"].summaries == []

    @pytest.mark.asyncio
    async def test_technicals_overlay(self, scan_store, channels):
        candles = FakeCandles()

        report = await make_pipeline(channels, FakeRecorder(), candles=candles).run()

        ticker, start, end = candles.requests[0]
        assert ticker == "RUNR"
        assert end - start == timedelta(days=300)
        # Too little history for indicators
        assert report.analyses[0].overlays.technicals is None

    @pytest.mark.asyncio
    async def test_candle_failure_keeps_run_going(self, scan_store, channels, recorder):
        candles = FakeCandles(error=ConnectionError("reset"))

        report = await make_pipeline(channels, recorder, candles=candles).run()

        assert report.status == "completed"
        assert report.analyses[0].overlays.technicals is None
        assert report.alerts_sent == 1


# =============================================================================
# Summary
# =============================================================================


class TestBuildSummary:
    """Tests for build_summary."""

    def test_counts_and_top_picks(self):
        analyses = [
            make_analysis("AAA", scores=ScoreSet(attention=90, momentum=80, fundamentals=70, risk=20),
                          classification=Classification.BOTH),
            make_analysis("BBB", scores=ScoreSet(attention=70, momentum=70, fundamentals=40, risk=30)),
            make_analysis("CCC", scores=ScoreSet(attention=40, momentum=50, fundamentals=80, risk=20),
                          classification=Classification.VALUE),
            make_analysis("DDD", scores=ScoreSet(attention=99, momentum=99, fundamentals=10, risk=90),
                          classification=Classification.AVOID),
        ]

        summary = build_summary(analyses, alerts_sent=3)

        assert summary.total_scanned == 4
        assert summary.runners == 2
        assert summary.value_plays == 2
        assert summary.alerts == 3
        assert [p["ticker"] for p in summary.top_picks] == ["AAA", "BBB", "CCC"]
        assert summary.top_picks[0] == {"ticker": "AAA", "classification": "both", "attention": 90}

    def test_top_picks_capped_at_five(self):
        analyses = [make_analysis(f"T{i}") for i in range(8)]

        summary = build_summary(analyses, alerts_sent=0)

        assert len(summary.top_picks) == 5


# =============================================================================
# Per-ticker failures
# =============================================================================


class ExplodingReviewer:
    def __init__(self):
        self.calls = 0

    async def review(self, context):
        self.calls += 1
        raise RuntimeError("LLM returned garbage")


class FlakyMarketData(FakeMarketData):
    """Raises for one ticker, serves the rest."""

    def __init__(self, failing: str, **kwargs):
        super().__init__(**kwargs)
        self.failing = failing

    async def fetch_price(self, ticker: str):
        if ticker == self.failing:
            raise TimeoutError("quote request timed out")
        return await super().fetch_price(ticker)


def two_ticker_data(market_cls=FakeMarketData, **kwargs) -> FakeMarketData:
    data = market_data()
    return market_cls(
        prices={**data.prices, "MISS": make_price("MISS", price=12.0)},
        fundamentals={**data.fundamentals, "MISS": make_fundamentals("MISS")},
        **kwargs,
    )


class TestTickerIsolation:
    """One ticker's failure never ends the run."""

    @pytest.mark.asyncio
    async def test_reviewer_error_falls_back_to_preliminary(self, scan_store, channels, recorder):
        reviewer = ExplodingReviewer()

        report = await make_pipeline(channels, recorder, reviewer=reviewer).run()

        assert report.status == "completed"
        assert reviewer.calls == 1
        classification = report.analyses[0].classification
        assert classification.classification == Classification.BOTH
        assert classification.confidence == 0.5
        assert report.analyses[0].targets is not None
        assert report.alerts_sent == 1

    @pytest.mark.asyncio
    async def test_price_error_on_one_ticker(self, scan_store, channels, recorder):
        data = two_ticker_data(FlakyMarketData, failing="RUNR")

        report = await make_pipeline(channels, recorder, market_data=data).run()

        assert report.status == "completed"
        assert report.candidates == 2
        assert report.enriched == 1
        assert [a.ticker for a in report.analyses] == ["MISS"]
        assert scan_store["finished"][0]["status"] == "completed"

    @pytest.mark.asyncio
    async def test_save_error_on_one_ticker(self, scan_store, channels, recorder, monkeypatch):
        saved = []

        async def save_result(analysis):
            if analysis.ticker == "RUNR":
                raise RuntimeError("connection reset")
            saved.append(analysis.ticker)
            return len(saved)

        monkeypatch.setattr(scan_repo, "save_result", save_result)

        report = await make_pipeline(channels, recorder, market_data=two_ticker_data()).run()

        assert report.status == "completed"
        assert report.admitted == 2
        assert saved == ["MISS"]
        assert all(event.ticker != "RUNR" for event in recorder.events)
        assert len(channels["discord"].summaries) == 1
