"""Signal engine running analysis passes over (symbol, period) pairs.

One pass:
1. Fetches the price series (bounded by ``fetch_timeout``)
2. Runs the change detector over it
3. Counts the strongest result of each algorithm as one confirmation
4. Builds a Signal whenever the confirmation threshold is reached,
   enriched with volume delta, open interest change, market snapshot,
   RSI/MACD and confirmation progress
5. Submits the Signal to the publisher without waiting for delivery

A failed or timed-out fetch skips the pass before any confirmation state is
touched. Passes for different pairs run concurrently, bounded by a semaphore.

CRITICAL: All computations use Decimal. Never use float for signal values.
"""

from __future__ import annotations

import asyncio
import time
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from screener.exceptions import PriceHistoryUnavailable
from screener.logging import get_logger
from screener.models import PricePoint, Signal
from screener.signals.detector import ChangeDetector
from screener.signals.indicators import compute_macd, compute_rsi
from screener.signals.models import AlgorithmType, ChangeResult, DetectorConfig

if TYPE_CHECKING:
    from screener.market_data.history import PriceHistorySource, SnapshotSource
    from screener.metrics.cache import MetricCache
    from screener.publishing.publisher import SignalPublisher
    from screener.signals.confirmation import ConfirmationManager

logger = get_logger(__name__)

#: Order in which per-algorithm confirmations are applied within a pass.
_ALGORITHM_ORDER = (AlgorithmType.SINGLE, AlgorithmType.INTERVAL, AlgorithmType.CONTINUOUS)


def strongest_per_algorithm(results: list[ChangeResult]) -> list[ChangeResult]:
    """Pick each algorithm's best result (highest confidence, latest end on tie)."""
    best: dict[AlgorithmType, ChangeResult] = {}
    for result in results:
        current = best.get(result.algorithm)
        if current is None or (result.confidence, result.end_index) > (
            current.confidence,
            current.end_index,
        ):
            best[result.algorithm] = result
    return [best[algorithm] for algorithm in _ALGORITHM_ORDER if algorithm in best]


class SignalEngine:
    """Turns price series into confirmed, enriched signals.

    Args:
        history: Source of per-period price series.
        confirmations: Confirmation counters shared across passes.
        volume_delta: MetricCache for volume delta enrichment.
        detector_config: Detection thresholds.
        detector: Change detector (a default instance when None).
        oi_change: Optional MetricCache for open interest change.
        snapshots: Optional source of the latest market snapshot; the last
            point of the series is used when None or empty.
        publisher: Optional publisher receiving every built signal.
        fetch_timeout: Seconds allowed for one series fetch.
        max_concurrent_passes: Upper bound on passes running at once.
    """

    def __init__(
        self,
        history: PriceHistorySource,
        confirmations: ConfirmationManager,
        volume_delta: MetricCache,
        detector_config: DetectorConfig | None = None,
        detector: ChangeDetector | None = None,
        oi_change: MetricCache | None = None,
        snapshots: SnapshotSource | None = None,
        publisher: SignalPublisher | None = None,
        fetch_timeout: float = 10.0,
        max_concurrent_passes: int = 16,
    ) -> None:
        self._history = history
        self._confirmations = confirmations
        self._volume_delta = volume_delta
        self._config = detector_config or DetectorConfig()
        self._detector = detector or ChangeDetector()
        self._oi_change = oi_change
        self._snapshots = snapshots
        self._publisher = publisher
        self._fetch_timeout = fetch_timeout
        self._semaphore = asyncio.Semaphore(max_concurrent_passes)
        self._last_cycle: dict | None = None
        self._signals_total = 0

    @property
    def last_cycle(self) -> dict | None:
        return self._last_cycle

    @property
    def signals_total(self) -> int:
        return self._signals_total

    async def analyze(self, symbol: str, period: str) -> list[Signal]:
        """Run one analysis pass for symbol/period.

        Raises:
            PriceHistoryUnavailable: The series could not be fetched in time.
        """
        series = await self._fetch_series(symbol, period)
        if len(series) < 2:
            logger.debug("insufficient_history", symbol=symbol, period=period, points=len(series))
            return []

        results = self._detector.detect(series, self._config)
        signals: list[Signal] = []

        for result in strongest_per_algorithm(results):
            reached, count = await self._confirmations.add_confirmation(
                symbol, period, result.direction
            )
            if not reached:
                continue

            signal = await self._build_signal(result, period, count, series)
            signals.append(signal)
            self._signals_total += 1
            if self._publisher is not None:
                self._publisher.submit(signal)

        return signals

    async def analyze_all(self, symbols: list[str], periods: list[str]) -> list[Signal]:
        """Run passes for every symbol x period concurrently.

        Failed passes are logged and skipped; they never abort the cycle.
        """
        started = time.monotonic()
        skipped = 0

        async def _run(symbol: str, period: str) -> list[Signal]:
            nonlocal skipped
            async with self._semaphore:
                with structlog.contextvars.bound_contextvars(symbol=symbol, period=period):
                    try:
                        return await self.analyze(symbol, period)
                    except PriceHistoryUnavailable as e:
                        skipped += 1
                        logger.warning("analysis_pass_skipped", reason=e.reason or str(e))
                    except Exception:
                        skipped += 1
                        logger.error("analysis_pass_failed", exc_info=True)
                    return []

        batches = await asyncio.gather(
            *(_run(symbol, period) for symbol in symbols for period in periods)
        )
        signals = [signal for batch in batches for signal in batch]

        self._last_cycle = {
            "passes": len(symbols) * len(periods),
            "skipped": skipped,
            "signals": len(signals),
            "duration_seconds": round(time.monotonic() - started, 3),
            "finished_at": time.time(),
        }
        logger.info("analysis_cycle_complete", **self._last_cycle)
        return signals

    async def _fetch_series(self, symbol: str, period: str) -> list[PricePoint]:
        try:
            return await asyncio.wait_for(
                self._history.get_series(symbol, period),
                timeout=self._fetch_timeout,
            )
        except PriceHistoryUnavailable:
            raise
        except asyncio.TimeoutError as e:
            raise PriceHistoryUnavailable(symbol, period, "timeout") from e
        except Exception as e:
            raise PriceHistoryUnavailable(symbol, period, str(e)) from e

    async def _current_snapshot(self, symbol: str, series: list[PricePoint]) -> PricePoint:
        if self._snapshots is not None:
            try:
                snapshot = await self._snapshots.get_current_snapshot(symbol)
            except Exception as e:
                logger.warning("snapshot_unavailable", symbol=symbol, error=str(e))
                snapshot = None
            if snapshot is not None:
                return snapshot
        return series[-1]

    async def _build_signal(
        self,
        result: ChangeResult,
        period: str,
        confirmations: int,
        series: list[PricePoint],
    ) -> Signal:
        symbol = result.symbol
        indicators: dict[str, Decimal] = dict(result.indicators)

        prices = [p.price for p in series]
        macd = compute_macd(prices)
        indicators["rsi"] = compute_rsi(prices)
        indicators["macd_line"] = macd.line
        indicators["macd_signal"] = macd.signal
        indicators["macd_histogram"] = macd.histogram

        delta = await self._volume_delta.get_with_fallback(symbol, result.direction)
        indicators["volume_delta"] = delta.value
        indicators["volume_delta_percent"] = delta.percent

        tags = [
            result.algorithm.value,
            result.direction.value,
            period,
            f"confirmations_{confirmations}",
            f"delta_source_{delta.source.value}",
        ]

        if self._oi_change is not None:
            oi = await self._oi_change.get_with_fallback(symbol, result.direction)
            indicators["oi_change"] = oi.value
            indicators["oi_change_percent"] = oi.percent
            tags.append(f"oi_source_{oi.source.value}")

        snapshot = await self._current_snapshot(symbol, series)
        indicators["current_price"] = snapshot.price
        indicators["volume_24h"] = snapshot.volume_24h
        indicators["open_interest"] = snapshot.open_interest
        indicators["funding_rate"] = snapshot.funding_rate
        indicators["high_24h"] = snapshot.high_24h
        indicators["low_24h"] = snapshot.low_24h

        indicators["confirmations"] = Decimal(confirmations)
        indicators["required_confirmations"] = Decimal(
            self._confirmations.required_confirmations
        )

        signal = Signal(
            symbol=symbol,
            direction=result.direction,
            change_percent=result.change_percent,
            confidence=result.confidence,
            period=period,
            data_points=result.data_points,
            start_price=result.start_price,
            end_price=result.end_price,
            indicators=indicators,
            tags=tuple(tags),
        )
        logger.info(
            "signal_ready",
            symbol=symbol,
            period=period,
            algorithm=result.algorithm.value,
            direction=result.direction.value,
            change_percent=str(result.change_percent),
            confidence=str(result.confidence),
            confirmations=confirmations,
        )
        return signal
