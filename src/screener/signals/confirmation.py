"""Per-(symbol, period) confirmation counters.

A confirmation is one qualifying observation of a directional move. The
counter for ``symbol:period`` grows while observations keep the same
direction inside the period window and restarts from zero when either the
direction flips or the window elapses. A signal is ready every
``signal_threshold`` confirmations (3, 6, 9, ... by default), so a
sustained move keeps re-signalling instead of firing once.

All mutation happens under one asyncio.Lock; critical sections are O(1)
dictionary operations with no awaits on I/O inside.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

from screener.logging import get_logger
from screener.models import Direction
from screener.periods import period_seconds

logger = get_logger(__name__)


@dataclass
class ConfirmationCounter:
    """Mutable counter state, owned exclusively by ConfirmationManager."""

    symbol: str
    period: str
    direction: Direction
    count: int = 0
    last_update: float = 0.0
    last_reset: float = 0.0


class ConfirmationManager:
    """Counts consecutive same-direction confirmations per symbol and period.

    Args:
        signal_threshold: Emit a ready signal every N confirmations.
        required_confirmations: Visual progress target reported to consumers.
        clock: Time source in seconds, injectable for tests.
    """

    def __init__(
        self,
        signal_threshold: int = 3,
        required_confirmations: int = 6,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._signal_threshold = signal_threshold
        self._required = required_confirmations
        self._clock = clock
        self._counters: dict[str, ConfirmationCounter] = {}
        self._lock = asyncio.Lock()

    @property
    def signal_threshold(self) -> int:
        return self._signal_threshold

    @property
    def required_confirmations(self) -> int:
        return self._required

    @staticmethod
    def _key(symbol: str, period: str) -> str:
        return f"{symbol}:{period}"

    async def add_confirmation(
        self, symbol: str, period: str, direction: Direction
    ) -> tuple[bool, int]:
        """Record one confirmation and report whether a signal is due.

        Returns:
            (threshold_reached, current_count). threshold_reached is True when
            the count is a positive multiple of the signal threshold.
        """
        now = self._clock()
        key = self._key(symbol, period)

        async with self._lock:
            counter = self._counters.get(key)
            if counter is None:
                counter = ConfirmationCounter(
                    symbol=symbol,
                    period=period,
                    direction=direction,
                    last_update=now,
                    last_reset=now,
                )
                self._counters[key] = counter

            if now - counter.last_reset > period_seconds(period):
                counter.count = 0
                counter.direction = direction
                counter.last_reset = now

            if counter.direction != direction:
                counter.count = 0
                counter.direction = direction

            counter.count += 1
            counter.last_update = now
            count = counter.count

        reached = count % self._signal_threshold == 0
        logger.debug(
            "confirmation_added",
            symbol=symbol,
            period=period,
            direction=direction.value,
            count=count,
            threshold_reached=reached,
        )
        return reached, count

    async def reset(self, symbol: str, period: str) -> None:
        """Zero the counter for symbol/period, keeping its direction."""
        async with self._lock:
            counter = self._counters.get(self._key(symbol, period))
            if counter is not None:
                counter.count = 0
                counter.last_reset = self._clock()

    async def get_progress(self, symbol: str, period: str) -> tuple[int, Direction | None]:
        """Return (count, direction) for symbol/period; (0, None) if untracked."""
        async with self._lock:
            counter = self._counters.get(self._key(symbol, period))
            if counter is None:
                return 0, None
            return counter.count, counter.direction

    async def get_direction(self, symbol: str, period: str) -> Direction | None:
        """Return the direction currently being counted, if any."""
        _, direction = await self.get_progress(symbol, period)
        return direction

    async def cleanup(self, max_age: float) -> int:
        """Remove counters not updated within ``max_age`` seconds.

        Returns:
            Number of counters removed.
        """
        now = self._clock()
        async with self._lock:
            stale = [
                key
                for key, counter in self._counters.items()
                if now - counter.last_update > max_age
            ]
            for key in stale:
                del self._counters[key]

        if stale:
            logger.debug("confirmation_counters_cleaned", removed=len(stale))
        return len(stale)

    async def snapshot(self, symbol: str | None = None) -> list[dict]:
        """Return counter state as plain dicts, optionally for one symbol."""
        async with self._lock:
            counters = [
                c for c in self._counters.values()
                if symbol is None or c.symbol == symbol
            ]
            return [
                {
                    "symbol": c.symbol,
                    "period": c.period,
                    "direction": c.direction.value,
                    "count": c.count,
                    "required": self._required,
                    "last_update": c.last_update,
                    "last_reset": c.last_reset,
                }
                for c in counters
            ]

    def __len__(self) -> int:
        return len(self._counters)
