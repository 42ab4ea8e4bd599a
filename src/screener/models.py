"""Shared data models for the pair screener.

CRITICAL: All prices, volumes and percentages use Decimal. Never use float.
Timestamps are Unix milliseconds.
"""

import time
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class Direction(str, Enum):
    """Direction of a detected price move."""

    GROWTH = "growth"
    FALL = "fall"

    @classmethod
    def from_change(cls, change: Decimal) -> "Direction":
        """Classify a signed percent change (zero counts as growth)."""
        return cls.FALL if change < 0 else cls.GROWTH


def now_ms() -> int:
    """Current wall-clock time in Unix milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class PricePoint:
    """One market observation for a perpetual pair.

    Immutable once recorded. A symbol's series is ordered by timestamp_ms.
    """

    symbol: str
    price: Decimal
    timestamp_ms: int
    volume_24h: Decimal = Decimal("0")  # 24h turnover in quote currency
    open_interest: Decimal = Decimal("0")
    funding_rate: Decimal = Decimal("0")
    high_24h: Decimal = Decimal("0")
    low_24h: Decimal = Decimal("0")


@dataclass(frozen=True)
class Signal:
    """A qualifying, confirmed price move ready for downstream consumers.

    Created once per confirmed detection and published exactly once.
    ``indicators`` carries everything a formatter needs (RSI, MACD,
    volume delta, confirmations, market data) without re-querying the engine.
    """

    symbol: str
    direction: Direction
    change_percent: Decimal
    confidence: Decimal
    period: str
    data_points: int
    start_price: Decimal
    end_price: Decimal
    indicators: dict[str, Decimal] = field(default_factory=dict)
    tags: tuple[str, ...] = ()
    timestamp_ms: int = field(default_factory=now_ms)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> dict:
        """Flatten to a JSON-friendly dict (Decimals as strings)."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "direction": self.direction.value,
            "change_percent": str(self.change_percent),
            "confidence": str(self.confidence),
            "period": self.period,
            "data_points": self.data_points,
            "start_price": str(self.start_price),
            "end_price": str(self.end_price),
            "timestamp_ms": self.timestamp_ms,
            "indicators": {k: str(v) for k, v in self.indicators.items()},
            "tags": list(self.tags),
        }
