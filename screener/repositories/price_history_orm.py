"""Price history repository using SQLAlchemy ORM.

Usage:
    from screener.repositories import price_history_orm as price_history_repo

    await price_history_repo.save_candles("SNDL", candles)
"""

from __future__ import annotations

from collections.abc import Sequence
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError

from screener.core.logging import get_logger
from screener.database.connection import get_session
from screener.database.orm import PriceHistory
from screener.domain import HistoricalCandle


logger = get_logger("repositories.price_history_orm")


async def save_candles(ticker: str, candles: Sequence[HistoricalCandle]) -> int:
    """Upsert candles on (ticker, date). Returns rows written, 0 on failure."""
    if not candles:
        return 0

    symbol = ticker.upper()
    try:
        async with get_session() as session:
            for candle in candles:
                values = {
                    "open": candle.open,
                    "high": candle.high,
                    "low": candle.low,
                    "close": candle.close,
                    "volume": candle.volume,
                }
                stmt = insert(PriceHistory).values(
                    ticker=symbol, date=candle.date, **values
                ).on_conflict_do_update(
                    index_elements=["ticker", "date"],
                    set_=values,
                )
                await session.execute(stmt)
            await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to store price history for {symbol}: {e}")
        return 0

    logger.debug(f"Saved {len(candles)} price records for {symbol}")
    return len(candles)

