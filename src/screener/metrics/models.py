"""Derived market metric data models.

CRITICAL: All metric values use Decimal. Never use float.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class MetricSource(str, Enum):
    """Which fallback tier produced a metric value, in precedence order."""

    API = "api"  # live exchange data
    STORAGE = "storage"  # estimated from stored history
    EMULATED = "emulated"  # synthetic, always available


@dataclass(frozen=True)
class MetricReading:
    """Raw value produced by an estimator, before the cache stamps provenance."""

    value: Decimal
    percent: Decimal

    @property
    def is_zero(self) -> bool:
        return self.value == 0 and self.percent == 0


@dataclass(frozen=True)
class MetricValue:
    """A derived metric with its provenance.

    ``source`` always travels with the value so consumers can tell real
    exchange data from estimates.
    """

    value: Decimal
    percent: Decimal
    source: MetricSource
    computed_at: float

    @property
    def is_real(self) -> bool:
        return self.source is MetricSource.API


@dataclass(frozen=True)
class MetricCacheEntry:
    """Cached MetricValue; absent once ``now > expires_at``."""

    value: MetricValue
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at
