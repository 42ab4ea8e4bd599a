"""Tests for the per-tier metric estimators."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeClock
from screener.exceptions import LiveMetricUnavailable
from screener.market_data.history import PriceHistoryStore
from screener.metrics.estimators import (
    HistoryOIChangeEstimator,
    HistoryVolumeDeltaEstimator,
    SyntheticOIChangeEstimator,
    SyntheticVolumeDeltaEstimator,
    TradesVolumeDeltaSource,
    estimate_base_volume,
)
from screener.models import Direction, PricePoint

SYMBOL = "BTC/USDT:USDT"


def _point(ts: int, volume: str = "0", oi: str = "0", symbol: str = SYMBOL) -> PricePoint:
    return PricePoint(
        symbol=symbol,
        price=Decimal("100"),
        timestamp_ms=ts,
        volume_24h=Decimal(volume),
        open_interest=Decimal(oi),
    )


async def _store(*points: PricePoint) -> PriceHistoryStore:
    store = PriceHistoryStore()
    await store.add_points(points)
    return store


def _snapshots(point: PricePoint | None) -> MagicMock:
    snapshots = MagicMock()
    snapshots.get_current_snapshot = AsyncMock(return_value=point)
    return snapshots


class TestBaseVolume:
    @pytest.mark.parametrize(
        "symbol,expected",
        [
            ("BTC/USDT:USDT", Decimal("5000000")),
            ("BTCUSDT", Decimal("5000000")),
            ("BTC/USD:BTC", Decimal("3000000")),
            ("ETH/BTC", Decimal("2000000")),
        ],
    )
    def test_by_quote_currency(self, symbol: str, expected: Decimal) -> None:
        assert estimate_base_volume(symbol) == expected


class TestSyntheticVolumeDelta:
    @pytest.mark.asyncio
    async def test_growth(self) -> None:
        reading = await SyntheticVolumeDeltaEstimator().estimate(SYMBOL, Direction.GROWTH)
        assert reading.value == Decimal("100000")
        assert reading.percent == Decimal("2")

    @pytest.mark.asyncio
    async def test_fall(self) -> None:
        reading = await SyntheticVolumeDeltaEstimator().estimate(SYMBOL, Direction.FALL)
        assert reading.value == Decimal("-100000")
        assert reading.percent == Decimal("-2")

    @pytest.mark.asyncio
    async def test_neutral(self) -> None:
        reading = await SyntheticVolumeDeltaEstimator().estimate(SYMBOL, None)
        assert reading.value == Decimal("50000")
        assert reading.percent == Decimal("1")

    @pytest.mark.asyncio
    async def test_clamped_to_ratio_of_base(self) -> None:
        estimator = SyntheticVolumeDeltaEstimator(percent=Decimal("10"))

        growth = await estimator.estimate(SYMBOL, Direction.GROWTH)
        fall = await estimator.estimate(SYMBOL, Direction.FALL)

        assert growth.value == Decimal("250000")
        assert growth.percent == Decimal("5")
        assert fall.value == Decimal("-250000")
        assert fall.percent == Decimal("-5")

    @pytest.mark.asyncio
    async def test_snapshot_volume_used_as_base(self) -> None:
        estimator = SyntheticVolumeDeltaEstimator(snapshots=_snapshots(_point(1, volume="1000000")))

        reading = await estimator.estimate(SYMBOL, Direction.GROWTH)

        assert reading.value == Decimal("20000")

    @pytest.mark.asyncio
    async def test_failed_snapshot_lookup_uses_estimate(self) -> None:
        snapshots = MagicMock()
        snapshots.get_current_snapshot = AsyncMock(side_effect=RuntimeError("down"))
        estimator = SyntheticVolumeDeltaEstimator(snapshots=snapshots)

        reading = await estimator.estimate("ETH/BTC", Direction.GROWTH)

        assert reading.value == Decimal("40000")


class TestTradesVolumeDelta:
    @pytest.mark.asyncio
    async def test_buy_minus_sell(self) -> None:
        exchange = AsyncMock()
        exchange.fetch_trades = AsyncMock(
            return_value=[
                {"side": "buy", "cost": 300.0},
                {"side": "sell", "cost": 100.0},
            ]
        )

        reading = await TradesVolumeDeltaSource(exchange, lookback=100).estimate(
            SYMBOL, Direction.GROWTH
        )

        assert reading.value == Decimal("200")
        assert reading.percent == Decimal("50")
        exchange.fetch_trades.assert_awaited_once_with(SYMBOL, limit=100)

    @pytest.mark.asyncio
    async def test_missing_cost_uses_amount_times_price(self) -> None:
        exchange = AsyncMock()
        exchange.fetch_trades = AsyncMock(
            return_value=[{"side": "sell", "cost": None, "amount": 2, "price": 50}]
        )

        reading = await TradesVolumeDeltaSource(exchange).estimate(SYMBOL, None)

        assert reading.value == Decimal("-100")
        assert reading.percent == Decimal("-100")

    @pytest.mark.asyncio
    async def test_no_trades(self) -> None:
        exchange = AsyncMock()
        exchange.fetch_trades = AsyncMock(return_value=[])

        assert await TradesVolumeDeltaSource(exchange).estimate(SYMBOL, None) is None

    @pytest.mark.asyncio
    async def test_exchange_error_raises_live_unavailable(self) -> None:
        exchange = AsyncMock()
        exchange.fetch_trades = AsyncMock(side_effect=RuntimeError("rate limited"))

        with pytest.raises(LiveMetricUnavailable):
            await TradesVolumeDeltaSource(exchange).estimate(SYMBOL, None)


class TestHistoryVolumeDelta:
    @pytest.mark.asyncio
    async def test_signed_by_direction(self) -> None:
        store = await _store(_point(1, volume="1000"), _point(2, volume="1250"))
        estimator = HistoryVolumeDeltaEstimator(store)

        growth = await estimator.estimate(SYMBOL, Direction.GROWTH)
        fall = await estimator.estimate(SYMBOL, Direction.FALL)

        assert growth.value == Decimal("250")
        assert growth.percent == Decimal("20")
        assert fall.value == Decimal("-250")

    @pytest.mark.asyncio
    async def test_neutral_keeps_drift_sign(self) -> None:
        store = await _store(_point(1, volume="1250"), _point(2, volume="1000"))

        reading = await HistoryVolumeDeltaEstimator(store).estimate(SYMBOL, None)

        assert reading.value == Decimal("-250")

    @pytest.mark.asyncio
    async def test_needs_two_readings(self) -> None:
        store = await _store(_point(1, volume="0"), _point(2, volume="1000"))
        assert await HistoryVolumeDeltaEstimator(store).estimate(SYMBOL, None) is None

    @pytest.mark.asyncio
    async def test_flat_volume(self) -> None:
        store = await _store(_point(1, volume="1000"), _point(2, volume="1000"))
        assert await HistoryVolumeDeltaEstimator(store).estimate(SYMBOL, Direction.GROWTH) is None


class TestOIChange:
    @pytest.mark.asyncio
    async def test_history_first_to_last(self) -> None:
        store = await _store(_point(1, oi="1000"), _point(2, oi="0"), _point(3, oi="1100"))

        reading = await HistoryOIChangeEstimator(store).estimate(SYMBOL, None)

        assert reading.value == Decimal("100")
        assert reading.percent == Decimal("10")

    @pytest.mark.asyncio
    async def test_history_without_readings(self) -> None:
        store = await _store(_point(1))
        assert await HistoryOIChangeEstimator(store).estimate(SYMBOL, None) is None

    @pytest.mark.asyncio
    async def test_synthetic_is_deterministic(self) -> None:
        estimator = SyntheticOIChangeEstimator(clock=FakeClock(0))

        reading = await estimator.estimate("BTCUSDT", Direction.GROWTH)

        # (7 + 0) % 40 - 20
        assert reading.percent == Decimal("-13")
        assert reading.value == Decimal("0")

    @pytest.mark.asyncio
    async def test_synthetic_uses_hour_and_snapshot(self) -> None:
        estimator = SyntheticOIChangeEstimator(
            snapshots=_snapshots(_point(1, oi="1000")),
            clock=FakeClock(5 * 3600),
        )

        reading = await estimator.estimate("BTCUSDT", None)

        assert reading.percent == Decimal("-8")
        assert reading.value == Decimal("-80")
