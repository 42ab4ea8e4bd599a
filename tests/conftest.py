"""Shared test fixtures for the pair screener."""

from collections.abc import Callable
from decimal import Decimal

import pytest

from screener.config import AppSettings, DashboardSettings, ExchangeSettings, StorageSettings
from screener.models import Direction, PricePoint, Signal

BASE_TS = 1_700_000_000_000
MINUTE_MS = 60_000


class FakeClock:
    """Manually advanced time source (seconds)."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_series(
    prices: list[str | int],
    symbol: str = "BTC/USDT:USDT",
    step_ms: int = MINUTE_MS,
    volume: str = "2000000",
    start_ms: int = BASE_TS,
) -> list[PricePoint]:
    """PricePoints at fixed spacing with constant 24h volume."""
    return [
        PricePoint(
            symbol=symbol,
            price=Decimal(str(price)),
            timestamp_ms=start_ms + i * step_ms,
            volume_24h=Decimal(volume),
        )
        for i, price in enumerate(prices)
    ]


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (testnet, no storage, no API server)."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(testnet=True),
        storage=StorageSettings(enabled=False),
        dashboard=DashboardSettings(enabled=False),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_series() -> Callable[..., list[PricePoint]]:
    return build_series


def build_signal(
    symbol: str = "BTC/USDT:USDT",
    direction: Direction = Direction.GROWTH,
    period: str = "15m",
    timestamp_ms: int = BASE_TS,
) -> Signal:
    """A confirmed continuous-growth signal with a few indicators."""
    return Signal(
        symbol=symbol,
        direction=direction,
        change_percent=Decimal("4"),
        confidence=Decimal("72.5"),
        period=period,
        data_points=5,
        start_price=Decimal("100"),
        end_price=Decimal("104"),
        indicators={"rsi": Decimal("61.25"), "volume_delta": Decimal("100000")},
        tags=("continuous", direction.value, period, "confirmations_3", "delta_source_emulated"),
        timestamp_ms=timestamp_ms,
    )
