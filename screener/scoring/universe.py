"""Universe admission: which enriched tickers get scored at all."""

from __future__ import annotations

from dataclasses import dataclass

from screener.core.logging import get_logger
from screener.domain import FundamentalsSnapshot, MergedSentiment, PriceSnapshot

from .config import UniverseConfig, get_universe_config


logger = get_logger("scoring.universe")


@dataclass(frozen=True)
class EnrichedTicker:
    """Sentiment plus market data for one ticker, ready to score."""

    sentiment: MergedSentiment
    price: PriceSnapshot
    fundamentals: FundamentalsSnapshot

    @property
    def ticker(self) -> str:
        return self.sentiment.ticker


def _looks_like_etf(fundamentals: FundamentalsSnapshot) -> bool:
    name = f" {fundamentals.name.upper()} "
    return " ETF " in name or "EXCHANGE TRADED" in fundamentals.industry.upper()


def rejection_reason(
    price: PriceSnapshot,
    fundamentals: FundamentalsSnapshot,
    config: UniverseConfig,
) -> str | None:
    """Why a ticker is outside the universe, or None when it is admitted.

    Empty country or exchange fields are admitted, since several
    providers leave them blank for small issuers.
    """
    if price.price > config.max_price:
        return f"price ${price.price} > ${config.max_price}"

    if fundamentals.market_cap > config.max_market_cap:
        return "market cap too large"

    country = (fundamentals.country or "").upper()
    if country and not any(c.upper() in country for c in config.allowed_countries):
        return f"country {country} not allowed"

    exchange = (fundamentals.exchange or "").upper()
    if exchange and not any(e.upper() in exchange for e in config.allowed_exchanges):
        return f"exchange {exchange} not allowed"

    if config.exclude_etfs and _looks_like_etf(fundamentals):
        return "ETF"

    return None


def apply_universe_filters(
    tickers: list[EnrichedTicker],
    config: UniverseConfig | None = None,
    skip: bool = False,
) -> list[EnrichedTicker]:
    """Keep the tickers inside the configured universe.

    Args:
        tickers: Enriched tickers in scan order
        config: Universe filter, defaults to the configured one
        skip: Admit everything (test mode)
    """
    if skip:
        logger.info("Test mode: skipping universe filters")
        return list(tickers)

    config = config or get_universe_config()
    admitted = []
    for item in tickers:
        reason = rejection_reason(item.price, item.fundamentals, config)
        if reason:
            logger.debug(f"Filtered {item.ticker}: {reason}")
            continue
        admitted.append(item)
    return admitted
