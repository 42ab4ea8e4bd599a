"""TTL cache for derived metrics with a three-tier fallback.

``get_with_fallback`` consults, in order:

1. an unexpired cached entry;
2. the live tier (source ``api``), where a zero reading counts as absent;
3. the storage tier (source ``storage``), when fallback is enabled;
4. the synthetic tier (source ``emulated``), which always produces a value.

Whatever tier answers is cached for ``ttl_seconds``. Tier calls run outside
the lock, so two concurrent misses for the same key may both compute; the
last writer wins, which is harmless for estimates.

The cache never raises: live and storage failures are logged and the next
tier is tried.
"""

import asyncio
import time
from collections.abc import Callable
from decimal import Decimal

from screener.logging import get_logger
from screener.metrics.estimators import MetricEstimator
from screener.metrics.models import MetricCacheEntry, MetricSource, MetricReading, MetricValue
from screener.models import Direction

logger = get_logger(__name__)

CacheKey = tuple[str, Direction | None]


class MetricCache:
    """Per-(symbol, direction) cache of one derived metric.

    Args:
        name: Metric name used in logs and ``info()`` (e.g. "volume_delta").
        synthetic: Emulated tier; must always return a reading.
        live: Live tier, or None when the metric has no real-time source.
        storage: Storage tier, or None.
        ttl_seconds: Lifetime of a cached value.
        fallback_enabled: When False the storage tier is skipped.
        clock: Time source in seconds, injectable for tests.
    """

    def __init__(
        self,
        name: str,
        synthetic: MetricEstimator,
        live: MetricEstimator | None = None,
        storage: MetricEstimator | None = None,
        ttl_seconds: float = 30.0,
        fallback_enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._name = name
        self._synthetic = synthetic
        self._live = live
        self._storage = storage
        self._ttl = ttl_seconds
        self._fallback_enabled = fallback_enabled
        self._clock = clock
        self._entries: dict[CacheKey, MetricCacheEntry] = {}
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    async def get_with_fallback(
        self, symbol: str, direction: Direction | None = None
    ) -> MetricValue:
        """Return the metric for symbol/direction from the best available tier."""
        key = (symbol, direction)

        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.is_expired(self._clock()):
                return entry.value

        value = await self._resolve(symbol, direction)

        async with self._lock:
            self._entries[key] = MetricCacheEntry(
                value=value,
                expires_at=value.computed_at + self._ttl,
            )
        return value

    async def _resolve(self, symbol: str, direction: Direction | None) -> MetricValue:
        reading = await self._try_tier(self._live, MetricSource.API, symbol, direction)
        if reading is not None and not reading.is_zero:
            return self._stamp(reading, MetricSource.API)

        if self._fallback_enabled:
            reading = await self._try_tier(
                self._storage, MetricSource.STORAGE, symbol, direction
            )
            if reading is not None:
                return self._stamp(reading, MetricSource.STORAGE)

        reading = await self._try_tier(
            self._synthetic, MetricSource.EMULATED, symbol, direction
        )
        if reading is None:
            logger.warning("synthetic_metric_missing", metric=self._name, symbol=symbol)
            reading = MetricReading(value=Decimal("0"), percent=Decimal("0"))
        return self._stamp(reading, MetricSource.EMULATED)

    async def _try_tier(
        self,
        estimator: MetricEstimator | None,
        source: MetricSource,
        symbol: str,
        direction: Direction | None,
    ) -> MetricReading | None:
        if estimator is None:
            return None
        try:
            return await estimator.estimate(symbol, direction)
        except Exception as e:
            logger.warning(
                "metric_tier_failed",
                metric=self._name,
                source=source.value,
                symbol=symbol,
                error=str(e),
            )
            return None

    def _stamp(self, reading: MetricReading, source: MetricSource) -> MetricValue:
        value = MetricValue(
            value=reading.value,
            percent=reading.percent,
            source=source,
            computed_at=self._clock(),
        )
        logger.debug(
            "metric_computed",
            metric=self._name,
            source=source.value,
            value=str(value.value),
            percent=str(value.percent),
        )
        return value

    async def cleanup(self, max_age: float | None = None) -> int:
        """Evict expired entries, and entries computed over ``max_age`` seconds ago.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        async with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if entry.is_expired(now)
                or (max_age is not None and now - entry.value.computed_at > max_age)
            ]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug("metric_cache_cleaned", metric=self._name, removed=len(expired))
        return len(expired)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def info(self) -> dict:
        """Cache size, TTL and per-key value provenance."""
        now = self._clock()
        async with self._lock:
            entries = {
                f"{symbol}:{direction.value if direction else 'neutral'}": {
                    "value": str(entry.value.value),
                    "percent": str(entry.value.percent),
                    "source": entry.value.source.value,
                    "age_seconds": round(now - entry.value.computed_at, 1),
                    "expires_in_seconds": round(entry.expires_at - now, 1),
                }
                for (symbol, direction), entry in self._entries.items()
            }

        return {
            "metric": self._name,
            "cache_size": len(entries),
            "ttl_seconds": self._ttl,
            "entries": entries,
        }

    def __len__(self) -> int:
        return len(self._entries)
