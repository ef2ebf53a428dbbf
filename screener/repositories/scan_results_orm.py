"""Scan runs and scan results repository using SQLAlchemy ORM.

Writes from the scan pipeline and the return tracker never raise: a
failed write is logged and reported as ``None``/``False`` so a single
bad row cannot abort a run.

Usage:
    from screener.repositories import scan_results_orm as scan_repo

    await scan_repo.create_run(run_id)
    result_id = await scan_repo.save_result(analysis)
    picks = await scan_repo.get_pending_picks()
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import and_, case, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from screener.core.exceptions import PersistenceError
from screener.core.logging import get_logger
from screener.database.connection import get_session
from screener.database.orm import ScanResult, ScanRun
from screener.domain import (
    BacktestResult,
    ClassificationAccuracy,
    ForwardReturns,
    PendingPick,
    ReturnRecord,
    SentimentSource,
    TargetAccuracy,
    TickerAnalysis,
)


logger = get_logger("repositories.scan_results_orm")

TRACKED_CLASSIFICATIONS = ("runner", "value", "both", "watch")


def _float(value: Any) -> float | None:
    return float(value) if value is not None else None


def _log_failure(message: str, error: Exception, ticker: str | None = None) -> None:
    logger.error(f"{PersistenceError(message, ticker)}: {error}")


# =============================================================================
# RUNS
# =============================================================================


async def create_run(run_id: str, run_timestamp: datetime | None = None) -> bool:
    try:
        async with get_session() as session:
            session.add(
                ScanRun(
                    run_id=uuid.UUID(run_id),
                    run_timestamp=run_timestamp or datetime.now(UTC),
                    status="running",
                )
            )
            await session.commit()
        return True
    except SQLAlchemyError as e:
        _log_failure("Failed to create scan run", e)
        return False


async def finish_run(
    run_id: str,
    status: str,
    tickers_scanned: int,
    alerts_generated: int,
    duration_ms: int,
    error_message: str | None = None,
) -> bool:
    try:
        async with get_session() as session:
            await session.execute(
                update(ScanRun)
                .where(ScanRun.run_id == uuid.UUID(run_id))
                .values(
                    status=status,
                    tickers_scanned=tickers_scanned,
                    alerts_generated=alerts_generated,
                    duration_ms=duration_ms,
                    error_message=error_message,
                )
            )
            await session.commit()
        return True
    except SQLAlchemyError as e:
        _log_failure(f"Failed to update scan run {run_id}", e)
        return False


# =============================================================================
# RESULTS
# =============================================================================


def result_values(analysis: TickerAnalysis) -> dict[str, Any]:
    """Column values for one analysis."""
    s, p, f = analysis.sentiment, analysis.price, analysis.fundamentals
    swaggy = s.sources.get(SentimentSource.SWAGGY)
    apewisdom = s.sources.get(SentimentSource.APEWISDOM)
    altindex = s.sources.get(SentimentSource.ALTINDEX)
    c = analysis.classification

    values: dict[str, Any] = {
        "run_id": uuid.UUID(analysis.run_id),
        "run_timestamp": analysis.run_timestamp,
        "ticker": analysis.ticker,
        "swaggy_mentions": swaggy.mentions if swaggy else None,
        "swaggy_sentiment": swaggy.sentiment if swaggy else None,
        "swaggy_momentum": swaggy.momentum if swaggy else None,
        "apewisdom_rank": apewisdom.rank if apewisdom else None,
        "apewisdom_mentions": apewisdom.mentions if apewisdom else None,
        "altindex_score": altindex.sentiment if altindex else None,
        "total_mentions": s.total_mentions,
        "avg_sentiment": s.avg_sentiment,
        "source_count": s.source_count,
        "price": p.price,
        "price_change_1d": p.change_1d,
        "price_change_1d_pct": p.change_1d_percent,
        "price_change_5d": p.change_5d,
        "price_change_5d_pct": p.change_5d_percent,
        "price_change_30d": p.change_30d,
        "price_change_30d_pct": p.change_30d_percent,
        "volume": p.volume,
        "avg_volume_30d": p.avg_volume_30d,
        "relative_volume": p.relative_volume,
        "high_52w": p.high_52w,
        "low_52w": p.low_52w,
        "company_name": f.name,
        "market_cap": int(f.market_cap),
        "pe_ratio": f.pe_ratio,
        "ps_ratio": f.ps_ratio,
        "pb_ratio": f.pb_ratio,
        "revenue_growth": f.revenue_growth,
        "gross_margin": f.gross_margin,
        "operating_margin": f.operating_margin,
        "debt_equity": f.debt_equity,
        "exchange": f.exchange,
        "sector": f.sector,
        "industry": f.industry,
        "country": f.country,
        "attention_score": analysis.scores.attention,
        "momentum_score": analysis.scores.momentum,
        "fundamentals_score": analysis.scores.fundamentals,
        "risk_score": analysis.scores.risk,
        "classification": c.classification.value,
        "confidence": c.confidence,
        "bull_case": c.bull_case,
        "bear_case": c.bear_case,
        "catalysts": c.catalysts,
        "alert_triggered": analysis.alert_triggered,
        "alert_type": analysis.alert_type.value if analysis.alert_type else None,
    }

    t = analysis.targets
    if t is not None:
        values.update(
            target_technical=t.technical,
            target_fundamental=t.fundamental,
            target_ai=t.ai,
            target_risk=t.risk,
            target_avg=t.average,
            stop_loss=t.stop_loss,
            target_details=t.details.model_dump(mode="json"),
        )

    o = analysis.overlays
    if o.technicals is not None:
        ti = o.technicals
        values.update(
            rsi_14=ti.rsi14,
            macd_value=ti.macd_value,
            macd_signal=ti.macd_signal,
            macd_histogram=ti.macd_histogram,
            bb_upper=ti.bb_upper,
            bb_middle=ti.bb_middle,
            bb_lower=ti.bb_lower,
            sma_20=ti.sma20,
            sma_50=ti.sma50,
            sma_200=ti.sma200,
            ema_20=ti.ema20,
            technical_signal=ti.technical_signal,
            technical_strength=ti.signal_strength,
        )
    if o.sec is not None:
        values.update(
            sec_recent_filings=o.sec.recent_filing_count,
            sec_insider_buys=o.sec.insider_buys,
            sec_insider_sells=o.sec.insider_sells,
            sec_latest_8k_date=o.sec.latest_8k_date,
        )
    if o.dark_pool is not None:
        values.update(
            dark_pool_volume=o.dark_pool.dark_pool_volume,
            dark_pool_pct=o.dark_pool.dark_pool_percent,
            dark_pool_signal=o.dark_pool.signal,
        )
    if o.options is not None:
        values.update(
            options_call_volume=o.options.call_volume,
            options_put_volume=o.options.put_volume,
            options_call_put_ratio=o.options.call_put_ratio,
            options_unusual_activity=o.options.unusual_activity,
            options_max_pain=o.options.max_pain,
            options_signal=o.options.signal,
        )
    return values


async def save_result(analysis: TickerAnalysis) -> int | None:
    """Persist one analysis. Returns the new row id, or None on failure."""
    try:
        async with get_session() as session:
            row = ScanResult(**result_values(analysis))
            session.add(row)
            await session.commit()
            return row.id
    except SQLAlchemyError as e:
        _log_failure("Failed to save scan result", e, analysis.ticker)
        return None


# =============================================================================
# FORWARD RETURNS
# =============================================================================


async def get_pending_picks(
    min_age_days: int = 1,
    max_age_days: int = 30,
    limit: int = 100,
) -> list[PendingPick]:
    """Picks old enough to grade whose returns are not final yet, newest first."""
    now = datetime.now(UTC)
    try:
        async with get_session() as session:
            result = await session.execute(
                select(
                    ScanResult.id,
                    ScanResult.ticker,
                    ScanResult.run_timestamp,
                    ScanResult.price,
                    ScanResult.classification,
                    ScanResult.target_avg,
                    ScanResult.stop_loss,
                )
                .where(
                    and_(
                        ScanResult.returns_complete.is_(False),
                        ScanResult.price.is_not(None),
                        ScanResult.price > 0,
                        ScanResult.run_timestamp < now - timedelta(days=min_age_days),
                        ScanResult.run_timestamp > now - timedelta(days=max_age_days),
                        ScanResult.classification.in_(TRACKED_CLASSIFICATIONS),
                    )
                )
                .order_by(desc(ScanResult.run_timestamp))
                .limit(limit)
            )
            rows = result.all()
    except SQLAlchemyError as e:
        _log_failure("Failed to load pending picks", e)
        return []

    return [
        PendingPick(
            id=row.id,
            ticker=row.ticker,
            run_timestamp=row.run_timestamp,
            price=float(row.price),
            classification=row.classification,
            target_avg=_float(row.target_avg),
            stop_loss=_float(row.stop_loss),
        )
        for row in rows
    ]


async def update_returns(record: ReturnRecord) -> bool:
    """Write the latest forward returns; fields the record lacks are left as stored.

    Once ``record.window_closed`` is set the row is marked complete and is
    no longer returned by ``get_pending_picks``.
    """
    fields = {
        "return_1d": record.return_1d,
        "return_3d": record.return_3d,
        "return_5d": record.return_5d,
        "max_gain_5d": record.max_gain_5d,
        "max_drawdown_5d": record.max_drawdown_5d,
        "hit_target": record.hit_target,
        "hit_stop_loss": record.hit_stop_loss,
    }
    values = {name: value for name, value in fields.items() if value is not None}
    if not values:
        return False
    values["returns_complete"] = record.window_closed

    try:
        async with get_session() as session:
            await session.execute(
                update(ScanResult)
                .where(ScanResult.id == record.scan_result_id)
                .values(**values)
            )
            await session.commit()
        return True
    except SQLAlchemyError as e:
        _log_failure(f"Failed to update returns for scan result {record.scan_result_id}", e)
        return False


# =============================================================================
# ACCURACY
# =============================================================================


def _winners(column) -> Any:
    return func.sum(case((column > 0, 1), else_=0))


async def classification_accuracy() -> list[ClassificationAccuracy]:
    """Per-classification performance of graded picks, best 5d return first."""
    async with get_session() as session:
        result = await session.execute(
            select(
                ScanResult.classification,
                func.count().label("total_picks"),
                _winners(ScanResult.return_1d).label("winners_1d"),
                _winners(ScanResult.return_3d).label("winners_3d"),
                _winners(ScanResult.return_5d).label("winners_5d"),
                func.avg(ScanResult.return_1d).label("avg_return_1d"),
                func.avg(ScanResult.return_3d).label("avg_return_3d"),
                func.avg(ScanResult.return_5d).label("avg_return_5d"),
                func.avg(ScanResult.max_gain_5d).label("avg_max_gain"),
                func.avg(ScanResult.max_drawdown_5d).label("avg_max_drawdown"),
            )
            .where(
                and_(
                    ScanResult.return_5d.is_not(None),
                    ScanResult.classification.is_not(None),
                )
            )
            .group_by(ScanResult.classification)
            .order_by(desc("avg_return_5d"))
        )
        rows = result.all()

    accuracy = []
    for row in rows:
        total = int(row.total_picks or 0)
        winners_1d = int(row.winners_1d or 0)
        winners_5d = int(row.winners_5d or 0)
        accuracy.append(
            ClassificationAccuracy(
                classification=row.classification,
                total_picks=total,
                winners_1d=winners_1d,
                winners_3d=int(row.winners_3d or 0),
                winners_5d=winners_5d,
                avg_return_1d=_float(row.avg_return_1d) or 0.0,
                avg_return_3d=_float(row.avg_return_3d) or 0.0,
                avg_return_5d=_float(row.avg_return_5d) or 0.0,
                avg_max_gain=_float(row.avg_max_gain) or 0.0,
                avg_max_drawdown=_float(row.avg_max_drawdown) or 0.0,
                win_rate_1d=winners_1d / total * 100 if total else 0.0,
                win_rate_5d=winners_5d / total * 100 if total else 0.0,
            )
        )
    return accuracy


async def target_accuracy() -> TargetAccuracy:
    """How often blended targets and stops were reached within 5 sessions."""
    implied_target_pct = (ScanResult.target_avg - ScanResult.price) / ScanResult.price * 100

    async with get_session() as session:
        result = await session.execute(
            select(
                func.count().label("total"),
                func.sum(case((ScanResult.hit_target.is_(True), 1), else_=0)).label("hit_target"),
                func.sum(case((ScanResult.hit_stop_loss.is_(True), 1), else_=0)).label("hit_stop"),
                func.avg(func.abs(ScanResult.return_5d - implied_target_pct)).label("avg_distance"),
            ).where(
                and_(
                    ScanResult.return_5d.is_not(None),
                    ScanResult.target_avg.is_not(None),
                )
            )
        )
        row = result.one()

    total = int(row.total or 0)
    if total == 0:
        return TargetAccuracy()

    hit_target = int(row.hit_target or 0)
    return TargetAccuracy(
        total_with_targets=total,
        hit_target=hit_target,
        hit_stop_loss=int(row.hit_stop or 0),
        avg_distance_to_target=_float(row.avg_distance) or 0.0,
        target_hit_rate=hit_target / total * 100,
    )


async def backtest_results(
    classification: str | None = None,
    min_attention: int | None = None,
    min_momentum: int | None = None,
    limit: int = 100,
) -> list[BacktestResult]:
    """Graded picks, newest first."""
    conditions = [ScanResult.return_5d.is_not(None)]
    if classification:
        conditions.append(ScanResult.classification == classification)
    if min_attention:
        conditions.append(ScanResult.attention_score >= min_attention)
    if min_momentum:
        conditions.append(ScanResult.momentum_score >= min_momentum)

    async with get_session() as session:
        result = await session.execute(
            select(ScanResult)
            .where(and_(*conditions))
            .order_by(desc(ScanResult.run_timestamp))
            .limit(limit)
        )
        rows = result.scalars().all()

    return [
        BacktestResult(
            id=r.id,
            ticker=r.ticker,
            run_timestamp=r.run_timestamp,
            entry_price=float(r.price),
            classification=r.classification,
            attention=r.attention_score,
            momentum=r.momentum_score,
            fundamentals=r.fundamentals_score,
            risk=r.risk_score,
            returns=ForwardReturns(
                return_1d=_float(r.return_1d),
                return_3d=_float(r.return_3d),
                return_5d=_float(r.return_5d),
                max_gain_5d=_float(r.max_gain_5d),
                max_drawdown_5d=_float(r.max_drawdown_5d),
            ),
            hit_target=bool(r.hit_target),
            hit_stop_loss=bool(r.hit_stop_loss),
            target_price=_float(r.target_avg),
            stop_loss=_float(r.stop_loss),
        )
        for r in rows
    ]
