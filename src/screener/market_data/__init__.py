"""Market data layer -- ticker polling, bounded price history and candle history."""

from screener.market_data.candles import CandleHistorySource
from screener.market_data.history import PriceHistorySource, PriceHistoryStore, SnapshotSource
from screener.market_data.poller import MarketPoller

__all__ = [
    "CandleHistorySource",
    "MarketPoller",
    "PriceHistorySource",
    "PriceHistoryStore",
    "SnapshotSource",
]
