"""Price change detection data models.

CRITICAL: All percent and confidence values use Decimal. Never use float.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from screener.config import DetectorSettings
from screener.models import Direction


class AlgorithmType(str, Enum):
    """Which detector algorithm produced a result."""

    SINGLE = "single"  # one adjacent step
    INTERVAL = "interval"  # tightest explanatory window
    CONTINUOUS = "continuous"  # sustained monotonic run


@dataclass(frozen=True)
class DetectorConfig:
    """Thresholds for one detector scan."""

    min_confidence: Decimal = Decimal("60")
    min_change_percent: Decimal = Decimal("2.0")
    continuity_threshold: Decimal = Decimal("0.7")
    volume_weight: Decimal = Decimal("1.0")
    single_enabled: bool = True
    interval_enabled: bool = True
    continuous_enabled: bool = True

    @classmethod
    def from_settings(cls, settings: DetectorSettings) -> "DetectorConfig":
        return cls(
            min_confidence=settings.min_confidence,
            min_change_percent=settings.min_change_percent,
            continuity_threshold=settings.continuity_threshold,
            volume_weight=settings.volume_weight,
            single_enabled=settings.single_enabled,
            interval_enabled=settings.interval_enabled,
            continuous_enabled=settings.continuous_enabled,
        )


@dataclass(frozen=True)
class ChangeResult:
    """One qualifying move found by a detector algorithm.

    Created by a detector call and consumed once to build a Signal.
    """

    symbol: str
    algorithm: AlgorithmType
    direction: Direction
    change_percent: Decimal  # signed
    confidence: Decimal  # 0-100
    period_minutes: Decimal  # elapsed time between start and end points
    data_points: int
    start_price: Decimal
    end_price: Decimal
    avg_volume: Decimal
    is_continuous: bool
    start_index: int
    end_index: int
    indicators: dict[str, Decimal] = field(default_factory=dict)
