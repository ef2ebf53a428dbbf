"""
Scan pipeline: one run from crowd sentiment to delivered alerts.

Steps:
    1. Create the run record
    2. Fetch sentiment from every provider and merge by ticker
    3. Enrich the first ``max_tickers`` tickers with price and fundamentals
    4. Apply universe filters (skipped in test mode)
    5. Score, classify, review, compute targets and overlays
    6. Persist each analysis and evaluate alerts against it
    7. Close the run record and send the summary

Tickers are processed one at a time with a fixed delay between them to
stay under free-tier provider limits.

Usage:
    pipeline = ScanPipeline(
        sentiment_providers=[ApeWisdomProvider(client, limiters.apewisdom)],
        market_data=YFinanceProvider(limiters.yfinance),
    )
    report = await pipeline.run()
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Awaitable, Callable, Mapping, Sequence

from screener.core.config import settings
from screener.core.logging import get_logger, run_id_var, ticker_var
from screener.domain import (
    AlertRule,
    Classification,
    MergedSentiment,
    ScanSummary,
    SentimentRecord,
    SignalOverlays,
    TickerAnalysis,
)
from screener.repositories import alert_rules_orm as rules_repo
from screener.repositories import scan_results_orm as scan_repo
from screener.scoring import (
    AlertThresholds,
    EnrichedTicker,
    UniverseConfig,
    apply_universe_filters,
    calculate_all_scores,
    calculate_target_prices,
    classify_ticker,
    merge_by_ticker,
)
from screener.scoring.analysis import (
    AnalyticalReviewer,
    ReviewContext,
    fallback_review,
    needs_review,
    unreviewed_result,
)
from screener.scoring.technicals import calculate_technical_indicators
from screener.services.data_providers.base import (
    CandleProvider,
    MarketDataProvider,
    SentimentProvider,
)
from screener.services.notifications import (
    AlertRecorder,
    NotificationChannel,
    RuleEvaluationStrategy,
    select_strategy,
    send_scan_summary,
)


logger = get_logger("services.pipeline")

TECHNICALS_LOOKBACK_DAYS = 300
TOP_PICKS = 5

RulesLoader = Callable[[], Awaitable[list[AlertRule]]]


@dataclass
class ScanReport:
    """Outcome of one run."""

    run_id: str
    status: str = "running"
    sentiment_records: int = 0
    candidates: int = 0
    enriched: int = 0
    admitted: int = 0
    alerts_sent: int = 0
    duration_ms: int = 0
    error: str | None = None
    analyses: list[TickerAnalysis] = field(default_factory=list)


def build_summary(analyses: Sequence[TickerAnalysis], alerts_sent: int) -> ScanSummary:
    """Counts per classification plus the top picks by attention + momentum."""
    runners = [
        a for a in analyses
        if a.classification.classification in (Classification.RUNNER, Classification.BOTH)
    ]
    value_plays = [
        a for a in analyses
        if a.classification.classification in (Classification.VALUE, Classification.BOTH)
    ]
    top = sorted(
        (a for a in analyses if a.classification.classification != Classification.AVOID),
        key=lambda a: a.scores.attention + a.scores.momentum,
        reverse=True,
    )[:TOP_PICKS]

    return ScanSummary(
        total_scanned=len(analyses),
        runners=len(runners),
        value_plays=len(value_plays),
        alerts=alerts_sent,
        top_picks=[
            {
                "ticker": a.ticker,
                "classification": a.classification.classification.value,
                "attention": a.scores.attention,
            }
            for a in top
        ],
    )


class ScanPipeline:
    def __init__(
        self,
        sentiment_providers: Sequence[SentimentProvider],
        market_data: MarketDataProvider,
        *,
        candles: CandleProvider | None = None,
        reviewer: AnalyticalReviewer | None = None,
        channels: Mapping[str, NotificationChannel] | None = None,
        recorder: AlertRecorder | None = None,
        rules_loader: RulesLoader | None = None,
        thresholds: AlertThresholds | None = None,
        universe: UniverseConfig | None = None,
        max_tickers: int | None = None,
        ticker_delay: float | None = None,
        test_mode: bool | None = None,
    ):
        self.sentiment_providers = list(sentiment_providers)
        self.market_data = market_data
        self.candles = candles
        self.reviewer = reviewer
        self.channels = channels or {}
        self.recorder = recorder
        self.rules_loader = rules_loader or rules_repo.load_enabled_rules
        self.thresholds = thresholds
        self.universe = universe
        self.max_tickers = max_tickers or settings.max_tickers
        self.ticker_delay = settings.ticker_delay_seconds if ticker_delay is None else ticker_delay
        self.test_mode = settings.test_mode if test_mode is None else test_mode

    # =========================================================================
    # Steps
    # =========================================================================

    async def fetch_sentiment(self) -> list[SentimentRecord]:
        batches = await asyncio.gather(
            *(provider.fetch_sentiment() for provider in self.sentiment_providers)
        )
        records = [record for batch in batches for record in batch]
        logger.info(f"Found {len(records)} sentiment entries")
        return records

    async def enrich(
        self, tickers: Sequence[str], merged: Mapping[str, MergedSentiment]
    ) -> list[EnrichedTicker]:
        """Attach price and fundamentals; tickers missing either are dropped."""
        enriched = []
        for index, ticker in enumerate(tickers):
            try:
                price = await self.market_data.fetch_price(ticker)
                fundamentals = await self.market_data.fetch_fundamentals(ticker) if price else None
            except Exception as e:
                logger.warning(f"Market data failed for {ticker}: {e}")
                price = fundamentals = None

            if price is not None and fundamentals is not None:
                enriched.append(EnrichedTicker(merged[ticker], price, fundamentals))
            else:
                logger.info(f"Skipping {ticker}: market data unavailable")

            if (index + 1) % 10 == 0:
                logger.info(f"Enrichment progress: {index + 1}/{len(tickers)} tickers")
            if self.ticker_delay > 0 and index < len(tickers) - 1:
                await asyncio.sleep(self.ticker_delay)
        return enriched

    async def overlays_for(self, ticker: str, run_timestamp: datetime) -> SignalOverlays:
        if self.candles is None:
            return SignalOverlays()
        end = run_timestamp.date()
        try:
            history = await self.candles.fetch_candles(
                ticker, end - timedelta(days=TECHNICALS_LOOKBACK_DAYS), end
            )
        except Exception as e:
            logger.warning(f"Technicals unavailable for {ticker}: {e}")
            return SignalOverlays()
        return SignalOverlays(technicals=calculate_technical_indicators(ticker, history))

    async def analyze(
        self, item: EnrichedTicker, run_id: str, run_timestamp: datetime
    ) -> TickerAnalysis:
        scores = calculate_all_scores(item.sentiment, item.price, item.fundamentals)
        outcome = classify_ticker(scores, self.thresholds)

        ai_target = None
        if self.reviewer is not None and needs_review(outcome, scores, settings.review_min_score):
            context = ReviewContext(
                ticker=item.ticker,
                scores=scores,
                sentiment=item.sentiment,
                price=item.price,
                fundamentals=item.fundamentals,
                preliminary=outcome.classification,
            )
            try:
                review = await self.reviewer.review(context)
            except Exception as e:
                logger.error(f"Review failed for {item.ticker}: {e}")
                review = fallback_review(outcome.classification)
            classification = review.result
            ai_target = review.target
        else:
            classification = unreviewed_result(outcome)

        return TickerAnalysis(
            ticker=item.ticker,
            run_id=run_id,
            run_timestamp=run_timestamp,
            sentiment=item.sentiment,
            price=item.price,
            fundamentals=item.fundamentals,
            scores=scores,
            classification=classification,
            alert_type=outcome.alert_type,
            targets=calculate_target_prices(item.price, item.fundamentals, scores, ai_target),
            overlays=await self.overlays_for(item.ticker, run_timestamp),
        )

    async def process(
        self,
        item: EnrichedTicker,
        run_id: str,
        run_timestamp: datetime,
        strategy: RuleEvaluationStrategy | None,
        report: ScanReport,
    ) -> None:
        """Analyze, persist and alert on one ticker."""
        analysis = await self.analyze(item, run_id, run_timestamp)
        report.analyses.append(analysis)

        result_id = await scan_repo.save_result(analysis)
        if strategy is not None and result_id is not None:
            report.alerts_sent += await strategy.evaluate(analysis, result_id)

    # =========================================================================
    # Run
    # =========================================================================

    async def run(self) -> ScanReport:
        run_id = str(uuid.uuid4())
        run_timestamp = datetime.now(UTC)
        started = time.monotonic()
        report = ScanReport(run_id=run_id)
        token = run_id_var.set(run_id)

        logger.info(f"Scan pipeline started (run {run_id})")
        await scan_repo.create_run(run_id, run_timestamp)
        try:
            records = await self.fetch_sentiment()
            report.sentiment_records = len(records)

            merged = merge_by_ticker(records)
            tickers = list(merged)[: self.max_tickers]
            report.candidates = len(tickers)
            logger.info(f"Unique tickers to analyze: {len(tickers)} (of {len(merged)})")

            enriched = await self.enrich(tickers, merged)
            report.enriched = len(enriched)

            admitted = apply_universe_filters(enriched, self.universe, skip=self.test_mode)
            report.admitted = len(admitted)
            logger.info(f"Tickers after filtering: {len(admitted)}")

            strategy = None
            if self.recorder is not None:
                rules = await self.rules_loader()
                strategy = select_strategy(rules, self.channels, self.recorder)
                logger.info(f"Alert strategy: {type(strategy).__name__} ({len(rules)} rules)")

            for item in admitted:
                ticker_token = ticker_var.set(item.ticker)
                try:
                    await self.process(item, run_id, run_timestamp, strategy, report)
                except Exception:
                    logger.exception(f"Analysis failed for {item.ticker}, continuing")
                finally:
                    ticker_var.reset(ticker_token)

            report.status = "completed"
        except Exception as e:
            logger.exception("Scan pipeline failed")
            report.status = "failed"
            report.error = str(e)
        finally:
            report.duration_ms = int((time.monotonic() - started) * 1000)
            await scan_repo.finish_run(
                run_id,
                report.status,
                len(report.analyses),
                report.alerts_sent,
                report.duration_ms,
                report.error,
            )
            run_id_var.reset(token)

        if report.status == "completed":
            summary = build_summary(report.analyses, report.alerts_sent)
            if self.channels:
                await send_scan_summary(summary, self.channels)
            logger.info(
                f"Scan complete: {summary.total_scanned} scanned, {summary.runners} runners, "
                f"{summary.value_plays} value plays, {summary.alerts} alerts in {report.duration_ms}ms"
            )
        return report
