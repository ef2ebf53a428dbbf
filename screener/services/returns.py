"""
Forward-return tracking for past picks.

Runs once a day over persisted scan results that are between one and
thirty days old and whose returns are not final. For each pick it
fetches the daily candles following the run, computes 1/3/5-day returns
plus the best and worst excursion over the first five days, and grades
the blended target and stop. The stored values are refreshed on every
run until the five-day window has closed; the write after that marks
the pick complete.

Usage:
    tracker = ReturnTracker(YFinanceProvider(limiters.yfinance))
    stats = await tracker.run()
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Sequence

from screener.core.config import settings
from screener.core.data_helpers import pct_change, round2
from screener.core.exceptions import MissingDataError
from screener.core.logging import get_logger
from screener.domain import (
    BacktestResult,
    ClassificationAccuracy,
    ForwardReturns,
    HistoricalCandle,
    PendingPick,
    ReturnRecord,
    TargetAccuracy,
)
from screener.repositories import price_history_orm as price_history_repo
from screener.repositories import scan_results_orm as scan_repo
from screener.services.data_providers.base import CandleProvider


logger = get_logger("services.returns")

RETURN_OFFSETS = (1, 3, 5)
EXCURSION_WINDOW = 5
CANDLE_WINDOW_DAYS = 7


def entry_date_of(pick: PendingPick) -> date:
    """Calendar date (UTC) the pick was made."""
    ts = pick.run_timestamp
    if ts.tzinfo is not None:
        ts = ts.astimezone(UTC)
    return ts.date()


def compute_forward_returns(
    entry_price: float,
    entry_date: date,
    candles: Sequence[HistoricalCandle],
) -> ForwardReturns:
    """Forward returns of a pick entered at ``entry_price`` on ``entry_date``.

    Candles are keyed by whole days after the entry date; when two
    candles land on the same offset the first one wins. ``return_Nd``
    is None when no candle sits exactly at offset N. Excursions use
    offsets 0 through 5 and are floored at the entry price, so both
    are non-negative. With no candle in that window every field is None.
    """
    by_offset: dict[int, HistoricalCandle] = {}
    for candle in candles:
        offset = (candle.date - entry_date).days
        if 0 <= offset <= EXCURSION_WINDOW and offset not in by_offset:
            by_offset[offset] = candle

    if not by_offset:
        return ForwardReturns()

    def return_at(offset: int) -> float | None:
        candle = by_offset.get(offset)
        if candle is None:
            return None
        return round2(pct_change(candle.close, entry_price))

    max_high = max([entry_price] + [c.high for c in by_offset.values()])
    min_low = min([entry_price] + [c.low for c in by_offset.values()])

    return ForwardReturns(
        return_1d=return_at(1),
        return_3d=return_at(3),
        return_5d=return_at(5),
        max_gain_5d=round2(pct_change(max_high, entry_price)),
        max_drawdown_5d=round2((entry_price - min_low) / entry_price * 100),
    )


def evaluate_target_hits(
    returns: ForwardReturns,
    entry_price: float,
    target: float | None,
    stop_loss: float | None,
) -> tuple[bool, bool]:
    """Whether the 5-session excursions reached the target and the stop."""
    hit_target = False
    hit_stop = False
    if target and returns.max_gain_5d is not None:
        hit_target = returns.max_gain_5d >= pct_change(target, entry_price)
    if stop_loss and returns.max_drawdown_5d is not None:
        hit_stop = returns.max_drawdown_5d >= (entry_price - stop_loss) / entry_price * 100
    return hit_target, hit_stop


def window_closed(entry_date: date, today: date) -> bool:
    """True once the last day of the five-day window lies in the past."""
    return today > entry_date + timedelta(days=EXCURSION_WINDOW)


@dataclass
class TrackerStats:
    pending: int = 0
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0


class ReturnTracker:
    """Grades pending picks using a candle provider."""

    def __init__(
        self,
        candles: CandleProvider,
        *,
        batch_size: int | None = None,
        delay_seconds: float | None = None,
    ):
        self.candles = candles
        self.batch_size = batch_size or settings.return_tracker_batch_size
        self.delay_seconds = (
            delay_seconds
            if delay_seconds is not None
            else settings.return_tracker_delay_seconds
        )

    async def grade_pick(self, pick: PendingPick, today: date | None = None) -> ReturnRecord:
        """Compute returns for one pick as of ``today`` (UTC date).

        Raises:
            MissingDataError: No candle falls inside the five-session window
        """
        entry = entry_date_of(pick)
        candles = await self.candles.fetch_candles(
            pick.ticker, entry, entry + timedelta(days=CANDLE_WINDOW_DAYS)
        )
        if not candles:
            raise MissingDataError("no candle data", pick.ticker)

        await price_history_repo.save_candles(pick.ticker, candles)

        returns = compute_forward_returns(pick.price, entry, candles)
        if returns.is_empty:
            raise MissingDataError("no candles after entry", pick.ticker)

        hit_target, hit_stop = evaluate_target_hits(
            returns, pick.price, pick.target_avg, pick.stop_loss
        )
        return ReturnRecord(
            scan_result_id=pick.id,
            hit_target=hit_target,
            hit_stop_loss=hit_stop,
            window_closed=window_closed(entry, today or datetime.now(UTC).date()),
            **returns.model_dump(),
        )

    async def run(self) -> TrackerStats:
        picks = await scan_repo.get_pending_picks(
            min_age_days=settings.return_tracker_min_age_days,
            max_age_days=settings.return_tracker_max_age_days,
            limit=self.batch_size,
        )
        stats = TrackerStats(pending=len(picks))
        today = datetime.now(UTC).date()
        logger.info(f"Found {len(picks)} picks needing return data")

        for index, pick in enumerate(picks):
            try:
                record = await self.grade_pick(pick, today)
                if await scan_repo.update_returns(record):
                    stats.updated += 1
                    logger.info(
                        f"{pick.ticker} (id {pick.id}): 1d={record.return_1d} "
                        f"3d={record.return_3d} 5d={record.return_5d} "
                        f"max_gain={record.max_gain_5d} max_dd={record.max_drawdown_5d}"
                    )
                else:
                    stats.errors += 1
            except MissingDataError as e:
                logger.info(f"Skipping {e}")
                stats.skipped += 1
            except Exception:
                logger.exception(f"Failed to grade {pick.ticker} (id {pick.id})")
                stats.errors += 1
            stats.processed += 1

            if self.delay_seconds > 0 and index < len(picks) - 1:
                await asyncio.sleep(self.delay_seconds)

        logger.info(
            f"Return tracking complete: {stats.updated} updated, "
            f"{stats.skipped} skipped, {stats.errors} errors"
        )
        return stats


# =============================================================================
# Accuracy reporting
# =============================================================================


async def calculate_classification_accuracy() -> list[ClassificationAccuracy]:
    return await scan_repo.classification_accuracy()


async def calculate_target_accuracy() -> TargetAccuracy:
    return await scan_repo.target_accuracy()


async def get_backtest_results(
    classification: str | None = None,
    min_attention: int | None = None,
    min_momentum: int | None = None,
    limit: int = 100,
) -> list[BacktestResult]:
    return await scan_repo.backtest_results(
        classification=classification,
        min_attention=min_attention,
        min_momentum=min_momentum,
        limit=limit,
    )
