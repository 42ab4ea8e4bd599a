"""Screener service -- wires the poll, analyse and publish loop.

Each iteration of the scan loop runs one analysis cycle over every tracked
symbol and configured period. A cycle lock prevents overlapping cycles when
a cycle outlasts the scan interval. A separate maintenance loop sweeps idle
confirmation counters, expired metric cache entries and stale price history
on its own interval.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING

from screener.config import AppSettings
from screener.logging import get_logger
from screener.models import Signal

if TYPE_CHECKING:
    from screener.market_data.history import PriceHistoryStore
    from screener.market_data.poller import MarketPoller
    from screener.metrics.cache import MetricCache
    from screener.persistence.signal_store import SignalStore
    from screener.publishing.publisher import SignalPublisher
    from screener.signals.confirmation import ConfirmationManager
    from screener.signals.engine import SignalEngine

logger = get_logger(__name__)

#: Signals kept in memory for the status API when no store is configured.
_RECENT_SIGNALS = 200

#: Back-off after an unexpected cycle error, in seconds.
_ERROR_BACKOFF = 10.0


class ScreenerService:
    """Main screener loop integrating all components.

    Args:
        settings: Application-wide settings.
        engine: Analysis pass runner.
        poller: Ticker poller feeding the price history.
        publisher: Outbound signal queue.
        confirmations: Confirmation counters (swept by maintenance).
        history: Price history store (swept by maintenance).
        metric_caches: Metric caches (swept by maintenance).
        signal_store: Optional persistent signal log.
    """

    def __init__(
        self,
        settings: AppSettings,
        engine: SignalEngine,
        poller: MarketPoller,
        publisher: SignalPublisher,
        confirmations: ConfirmationManager,
        history: PriceHistoryStore,
        metric_caches: list[MetricCache],
        signal_store: SignalStore | None = None,
    ) -> None:
        self._settings = settings
        self._engine = engine
        self._poller = poller
        self._publisher = publisher
        self._confirmations = confirmations
        self._history = history
        self._metric_caches = list(metric_caches)
        self._signal_store = signal_store
        self._running = False
        self._stop_event = asyncio.Event()
        self._cycle_lock = asyncio.Lock()
        self._cleanup_task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._recent_signals: deque[Signal] = deque(maxlen=_RECENT_SIGNALS)
        self._cycles = 0

    @property
    def is_running(self) -> bool:
        """Whether the scan loop is active."""
        return self._running

    @property
    def confirmations(self) -> ConfirmationManager:
        return self._confirmations

    @property
    def metric_caches(self) -> list[MetricCache]:
        return list(self._metric_caches)

    @property
    def signal_store(self) -> SignalStore | None:
        return self._signal_store

    def recent_signals(self, limit: int = 50, symbol: str | None = None) -> list[Signal]:
        """Most recent in-memory signals first, optionally for one symbol."""
        signals = [s for s in reversed(self._recent_signals) if symbol is None or s.symbol == symbol]
        return signals[:limit]

    async def start(self) -> None:
        """Start the poller and publisher, then run the scan loop until stopped."""
        logger.info(
            "screener_starting",
            periods=self._settings.engine.periods,
            scan_interval=self._settings.engine.scan_interval,
        )
        self._stop_event.clear()
        await self._poller.start()
        await self._publisher.start()

        self._running = True
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

        try:
            await self._run_loop()
        finally:
            self._running = False
            if self._cleanup_task is not None:
                self._cleanup_task.cancel()
                try:
                    await self._cleanup_task
                except asyncio.CancelledError:
                    pass
                self._cleanup_task = None
            await self._poller.stop()
            await self._publisher.stop()
            logger.info("screener_stopped")

    async def stop(self) -> None:
        """Signal the scan loop to stop after the current cycle."""
        logger.info("screener_stopping_gracefully")
        self._running = False
        self._stop_event.set()

    async def _sleep(self, seconds: float) -> None:
        """Sleep up to ``seconds``, returning early when stop() is called."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _run_loop(self) -> None:
        while self._running:
            try:
                async with self._cycle_lock:
                    await self.run_cycle()
                await self._sleep(self._settings.engine.scan_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("screener_cycle_error", error=str(e), exc_info=True)
                await self._sleep(_ERROR_BACKOFF)

    async def run_cycle(self) -> list[Signal]:
        """One analysis cycle over all tracked symbols and configured periods."""
        symbols = self._poller.tracked_symbols
        if not symbols:
            logger.debug("no_tracked_symbols")
            return []

        signals = await self._engine.analyze_all(symbols, self._settings.engine.periods)
        self._recent_signals.extend(signals)
        self._cycles += 1
        return signals

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.engine.cleanup_interval)
            try:
                await self.cleanup_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("maintenance_sweep_failed", exc_info=True)

    async def cleanup_once(self) -> dict:
        """Sweep idle counters, expired metric entries and stale history."""
        removed = {
            "confirmations": await self._confirmations.cleanup(
                self._settings.confirmation.max_age_seconds
            ),
            "metric_entries": sum(
                [await cache.cleanup() for cache in self._metric_caches]
            ),
            "history_symbols": await self._history.cleanup(
                self._settings.market.stale_after_seconds
            ),
        }
        logger.info("maintenance_sweep_complete", **removed)
        return removed

    def get_status(self) -> dict:
        """Return current screener status for the status API."""
        return {
            "running": self._running,
            "cycles": self._cycles,
            "tracked_symbols": len(self._poller.tracked_symbols),
            "periods": list(self._settings.engine.periods),
            "last_poll_ms": self._poller.last_poll_ms,
            "last_cycle": self._engine.last_cycle,
            "signals_total": self._engine.signals_total,
            "confirmation_counters": len(self._confirmations),
            "history_symbols": len(self._history),
            "publisher": self._publisher.stats(),
        }
