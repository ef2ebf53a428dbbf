"""Merge per-source sentiment readings into one record per ticker."""

from __future__ import annotations

from typing import Iterable

from screener.domain import MergedSentiment, SentimentRecord, SentimentSource


PENNY_SOURCES = frozenset({SentimentSource.REDDIT_PENNY})


def merge_sentiment(ticker: str, records: Iterable[SentimentRecord]) -> MergedSentiment:
    """Merge the readings for one ticker.

    Records are expected to carry at most one reading per source; when a
    source repeats, the reading with more mentions wins. With no records
    at all the result is a neutral record (0 mentions, 0 sentiment,
    momentum 1, no sources), never ``None``.

    Args:
        ticker: Ticker symbol (case-insensitive)
        records: Readings for this ticker

    Returns:
        MergedSentiment for the ticker
    """
    by_source: dict[SentimentSource, SentimentRecord] = {}
    for record in records:
        existing = by_source.get(record.source)
        if existing is None or record.mentions > existing.mentions:
            by_source[record.source] = record

    if not by_source:
        return MergedSentiment(ticker=ticker.upper())

    readings = list(by_source.values())
    momenta = [r.momentum for r in readings if r.momentum is not None]

    return MergedSentiment(
        ticker=ticker.upper(),
        total_mentions=sum(r.mentions for r in readings),
        avg_sentiment=sum(r.sentiment for r in readings) / len(readings),
        max_momentum=max(momenta) if momenta else 1.0,
        source_count=len(by_source),
        is_penny_stock=any(source in PENNY_SOURCES for source in by_source),
        sources=by_source,
    )


def merge_by_ticker(records: Iterable[SentimentRecord]) -> dict[str, MergedSentiment]:
    """Group a flat list of readings by ticker and merge each group.

    Tickers keep the order in which they first appear, so the strongest
    names from the first provider stay at the front.
    """
    grouped: dict[str, list[SentimentRecord]] = {}
    for record in records:
        grouped.setdefault(record.ticker.upper(), []).append(record)

    return {ticker: merge_sentiment(ticker, group) for ticker, group in grouped.items()}
