"""External data providers.

Every provider reports unavailable data as ``None`` or ``[]`` and logs
the underlying failure.
"""

from .apewisdom import ApeWisdomProvider
from .base import CandleProvider, MarketDataProvider, SentimentProvider
from .resilience import fetch_with_retry, retry_async
from .yfinance_provider import YFinanceProvider


__all__ = [
    "ApeWisdomProvider",
    "CandleProvider",
    "MarketDataProvider",
    "SentimentProvider",
    "YFinanceProvider",
    "fetch_with_retry",
    "retry_async",
]
