"""Price history built from exchange OHLCV candles.

An alternative PriceHistorySource for cold starts: instead of waiting for the
poller to accumulate ticker history, each request fetches enough candles to
cover the analysis period. Candle close is used as the price. Candles carry
no 24h aggregates, so those fields come from the latest snapshot when one
is available.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from screener.exceptions import PriceHistoryUnavailable
from screener.logging import get_logger
from screener.models import PricePoint
from screener.periods import period_minutes

if TYPE_CHECKING:
    from screener.exchange.client import ExchangeClient
    from screener.market_data.history import SnapshotSource

logger = get_logger(__name__)

#: Candle timeframe used per analysis period, with its length in minutes.
_PERIOD_TIMEFRAMES: dict[str, tuple[str, int]] = {
    "5m": ("1m", 1),
    "15m": ("1m", 1),
    "30m": ("1m", 1),
    "1h": ("5m", 5),
    "4h": ("15m", 15),
    "1d": ("1h", 60),
}
_DEFAULT_TIMEFRAME = ("1m", 1)


def timeframe_for(period: str) -> tuple[str, int]:
    """Return (ccxt timeframe, timeframe minutes) for an analysis period."""
    return _PERIOD_TIMEFRAMES.get(period, _DEFAULT_TIMEFRAME)


class CandleHistorySource:
    """PriceHistorySource backed by ``ExchangeClient.fetch_ohlcv``.

    Args:
        exchange: Exchange client used for candle requests.
        snapshots: Optional source of 24h volume / open interest to attach.
        window: Upper bound on candles requested per call.
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        snapshots: SnapshotSource | None = None,
        window: int = 50,
    ) -> None:
        self._exchange = exchange
        self._snapshots = snapshots
        self._window = window

    async def get_series(self, symbol: str, period: str) -> list[PricePoint]:
        timeframe, tf_minutes = timeframe_for(period)
        limit = min(period_minutes(period) // tf_minutes + 1, self._window)

        try:
            candles = await self._exchange.fetch_ohlcv(symbol, timeframe, limit=limit)
        except Exception as e:
            raise PriceHistoryUnavailable(symbol, period, str(e)) from e

        snapshot = None
        if self._snapshots is not None:
            snapshot = await self._snapshots.get_current_snapshot(symbol)

        points = []
        for candle in sorted(candles, key=lambda c: c[0]):
            if len(candle) < 5 or candle[4] is None:
                continue
            points.append(
                PricePoint(
                    symbol=symbol,
                    price=Decimal(str(candle[4])),
                    timestamp_ms=int(candle[0]),
                    volume_24h=snapshot.volume_24h if snapshot else Decimal("0"),
                    open_interest=snapshot.open_interest if snapshot else Decimal("0"),
                    funding_rate=snapshot.funding_rate if snapshot else Decimal("0"),
                    high_24h=snapshot.high_24h if snapshot else Decimal("0"),
                    low_24h=snapshot.low_24h if snapshot else Decimal("0"),
                )
            )

        logger.debug(
            "candle_series_fetched",
            symbol=symbol,
            period=period,
            timeframe=timeframe,
            points=len(points),
        )
        return points
