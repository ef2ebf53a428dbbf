"""Tests for merging per-source sentiment into one record per ticker."""

from __future__ import annotations

import pytest

from screener.domain import SentimentRecord, SentimentSource
from screener.scoring import merge_by_ticker, merge_sentiment


def record(ticker, source, mentions=10, sentiment=0.0, momentum=None, rank=None):
    return SentimentRecord(
        ticker=ticker,
        source=source,
        mentions=mentions,
        sentiment=sentiment,
        momentum=momentum,
        rank=rank,
    )


class TestMergeSentiment:
    """Tests for merge_sentiment."""

    def test_merges_all_sources(self):
        merged = merge_sentiment(
            "gme",
            [
                record("GME", SentimentSource.APEWISDOM, 100, 80.0, 2.5, rank=3),
                record("GME", SentimentSource.SWAGGY, 50, 20.0, 1.2),
                record("GME", SentimentSource.STOCKTWITS, 30, -10.0),
            ],
        )

        assert merged.ticker == "GME"
        assert merged.total_mentions == 180
        assert merged.avg_sentiment == pytest.approx(30.0)
        assert merged.max_momentum == 2.5
        assert merged.source_count == 3
        assert merged.rank() == 3
        assert merged.is_penny_stock is False

    def test_no_records_gives_neutral_record(self):
        merged = merge_sentiment("XYZ", [])

        assert merged.total_mentions == 0
        assert merged.avg_sentiment == 0.0
        assert merged.max_momentum == 1.0
        assert merged.source_count == 0
        assert merged.sources == {}
        assert merged.rank() is None

    def test_momentum_defaults_to_one(self):
        merged = merge_sentiment("XYZ", [record("XYZ", SentimentSource.FINVIZ)])
        assert merged.max_momentum == 1.0

    def test_repeated_source_keeps_most_mentions(self):
        merged = merge_sentiment(
            "XYZ",
            [
                record("XYZ", SentimentSource.APEWISDOM, 40, rank=20),
                record("XYZ", SentimentSource.APEWISDOM, 90, rank=8),
            ],
        )

        assert merged.source_count == 1
        assert merged.total_mentions == 90
        assert merged.rank() == 8

    def test_penny_source_flags_penny_stock(self):
        merged = merge_sentiment(
            "XYZ",
            [
                record("XYZ", SentimentSource.APEWISDOM, 10, rank=40),
                record("XYZ", SentimentSource.REDDIT_PENNY, 25, rank=2),
            ],
        )

        assert merged.is_penny_stock is True
        assert merged.source_names() == ["apewisdom", "reddit-penny"]
        # The rank that feeds attention is the main board's
        assert merged.rank() == 40


class TestMergeByTicker:
    """Tests for merge_by_ticker."""

    def test_groups_by_ticker_in_first_seen_order(self):
        merged = merge_by_ticker(
            [
                record("amc", SentimentSource.APEWISDOM, 10, rank=1),
                record("GME", SentimentSource.APEWISDOM, 5, rank=2),
                record("AMC", SentimentSource.SWAGGY, 7),
            ]
        )

        assert list(merged) == ["AMC", "GME"]
        assert merged["AMC"].total_mentions == 17
        assert merged["AMC"].source_count == 2
        assert merged["GME"].source_count == 1

    def test_empty_input(self):
        assert merge_by_ticker([]) == {}

    def test_ticker_is_normalized_on_record(self):
        assert record(" tsla ", SentimentSource.FINVIZ).ticker == "TSLA"
