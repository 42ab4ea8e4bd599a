"""In-memory bounded price history with period-window access.

Provides the PriceHistorySource and SnapshotSource contracts consumed by the
analysis engine, and PriceHistoryStore, an async-safe (asyncio.Lock)
implementation of both that the MarketPoller appends to.
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable, Iterable
from typing import Protocol

from screener.logging import get_logger
from screener.models import PricePoint
from screener.periods import period_ms

logger = get_logger(__name__)


class PriceHistorySource(Protocol):
    """Supplies a symbol's price series for an analysis period."""

    async def get_series(self, symbol: str, period: str) -> list[PricePoint]:
        """Return points ordered ascending by timestamp."""
        ...


class SnapshotSource(Protocol):
    """Supplies the latest market observation for a symbol."""

    async def get_current_snapshot(self, symbol: str) -> PricePoint | None: ...


class PriceHistoryStore:
    """Bounded per-symbol price history.

    Each symbol keeps at most ``window`` points, oldest dropped first.
    Points arriving out of order (timestamp not newer than the last stored
    point) are ignored so every series stays ascending.
    """

    def __init__(
        self,
        window: int = 50,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._window = window
        self._clock = clock
        self._series: dict[str, deque[PricePoint]] = {}
        self._lock = asyncio.Lock()

    async def add_point(self, point: PricePoint) -> bool:
        """Append a point. Returns False if it was out of order and dropped."""
        async with self._lock:
            return self._append(point)

    async def add_points(self, points: Iterable[PricePoint]) -> int:
        """Append several points under one lock. Returns the number stored."""
        async with self._lock:
            return sum(1 for point in points if self._append(point))

    def _append(self, point: PricePoint) -> bool:
        series = self._series.get(point.symbol)
        if series is None:
            series = deque(maxlen=self._window)
            self._series[point.symbol] = series
        elif series and point.timestamp_ms <= series[-1].timestamp_ms:
            return False
        series.append(point)
        return True

    async def get_series(self, symbol: str, period: str) -> list[PricePoint]:
        """Points within ``period`` of the latest point.

        At least the last two points are returned when the symbol has them,
        so a sparse feed still yields one comparable step.
        """
        async with self._lock:
            series = list(self._series.get(symbol, ()))

        if not series:
            return []

        cutoff = series[-1].timestamp_ms - period_ms(period)
        recent = [p for p in series if p.timestamp_ms >= cutoff]
        if len(recent) < 2:
            return series[-2:]
        return recent

    async def get_recent(self, symbol: str, limit: int | None = None) -> list[PricePoint]:
        """The stored window for a symbol, optionally only the last ``limit`` points."""
        async with self._lock:
            series = list(self._series.get(symbol, ()))
        if limit is not None:
            return series[-limit:]
        return series

    async def get_current_snapshot(self, symbol: str) -> PricePoint | None:
        async with self._lock:
            series = self._series.get(symbol)
            if not series:
                return None
            return series[-1]

    async def symbols(self) -> list[str]:
        async with self._lock:
            return sorted(self._series)

    async def cleanup(self, max_age: float) -> int:
        """Drop symbols whose latest point is older than ``max_age`` seconds.

        Returns:
            Number of symbols removed.
        """
        cutoff_ms = int((self._clock() - max_age) * 1000)
        async with self._lock:
            stale = [
                symbol
                for symbol, series in self._series.items()
                if not series or series[-1].timestamp_ms < cutoff_ms
            ]
            for symbol in stale:
                del self._series[symbol]

        if stale:
            logger.debug("price_history_cleaned", removed=len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._series)
