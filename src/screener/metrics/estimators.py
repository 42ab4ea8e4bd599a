"""Metric estimators for each MetricCache fallback tier.

Every estimator implements ``MetricEstimator.estimate(symbol, direction)``
and returns a MetricReading, or None when it has nothing to offer. Live
sources may raise LiveMetricUnavailable; the cache logs the failure and
moves on to the next tier.

Volume delta:
- TradesVolumeDeltaSource (api): buy minus sell notional over recent trades.
- HistoryVolumeDeltaEstimator (storage): 24h volume drift across stored history.
- SyntheticVolumeDeltaEstimator (emulated): fixed percent of an estimated
  base volume, clamped.

Open interest change:
- HistoryOIChangeEstimator (storage): first to last open interest in history.
- SyntheticOIChangeEstimator (emulated): deterministic value in [-20, 20).

CRITICAL: All computations use Decimal. Never use float.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

from screener.exceptions import LiveMetricUnavailable
from screener.logging import get_logger
from screener.metrics.models import MetricReading
from screener.models import Direction

if TYPE_CHECKING:
    from screener.exchange.client import ExchangeClient
    from screener.market_data.history import PriceHistoryStore, SnapshotSource

logger = get_logger(__name__)

_HUNDRED = Decimal("100")
_NEUTRAL_PERCENT = Decimal("1.0")

#: Base 24h volume assumed when no snapshot is available, by quote currency.
_BASE_VOLUME_BY_QUOTE: tuple[tuple[str, Decimal], ...] = (
    ("USDT", Decimal("5000000")),
    ("USD", Decimal("3000000")),
)
_DEFAULT_BASE_VOLUME = Decimal("2000000")


class MetricEstimator(Protocol):
    """One tier of a MetricCache."""

    async def estimate(
        self, symbol: str, direction: Direction | None
    ) -> MetricReading | None: ...


def _to_decimal(value: object) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def estimate_base_volume(symbol: str) -> Decimal:
    """Rough 24h volume for a symbol when nothing better is known.

    Matches on the quote currency, ignoring a ccxt settlement suffix
    (``BTC/USDT:USDT`` is treated as ``BTC/USDT``).
    """
    pair = symbol.split(":", 1)[0]
    for quote, volume in _BASE_VOLUME_BY_QUOTE:
        if pair.endswith(quote):
            return volume
    return _DEFAULT_BASE_VOLUME


class TradesVolumeDeltaSource:
    """Live volume delta: buy notional minus sell notional over recent trades.

    ``percent`` is the delta as a share of the total traded notional.
    """

    def __init__(self, exchange: ExchangeClient, lookback: int = 500) -> None:
        self._exchange = exchange
        self._lookback = lookback

    async def estimate(
        self, symbol: str, direction: Direction | None
    ) -> MetricReading | None:
        try:
            trades = await self._exchange.fetch_trades(symbol, limit=self._lookback)
        except Exception as exc:
            raise LiveMetricUnavailable(f"fetch_trades failed for {symbol}: {exc}") from exc

        buy = Decimal("0")
        sell = Decimal("0")
        for trade in trades:
            cost = trade.get("cost")
            if cost is None:
                cost = _to_decimal(trade.get("amount")) * _to_decimal(trade.get("price"))
            notional = _to_decimal(cost)
            if trade.get("side") == "buy":
                buy += notional
            elif trade.get("side") == "sell":
                sell += notional

        total = buy + sell
        if total == 0:
            return None

        delta = buy - sell
        return MetricReading(value=delta, percent=delta / total * _HUNDRED)


class HistoryVolumeDeltaEstimator:
    """Storage-tier volume delta from the drift of 24h volume in stored history.

    Volume drift has no side, so the magnitude is signed by the move
    direction (by the drift itself when no direction is given).
    """

    def __init__(self, history: PriceHistoryStore) -> None:
        self._history = history

    async def estimate(
        self, symbol: str, direction: Direction | None
    ) -> MetricReading | None:
        points = [p for p in await self._history.get_recent(symbol) if p.volume_24h > 0]
        if len(points) < 2:
            return None

        drift = points[-1].volume_24h - points[0].volume_24h
        if drift == 0:
            return None

        if direction is Direction.GROWTH:
            delta = abs(drift)
        elif direction is Direction.FALL:
            delta = -abs(drift)
        else:
            delta = drift

        return MetricReading(
            value=delta,
            percent=delta / points[-1].volume_24h * _HUNDRED,
        )


class SyntheticVolumeDeltaEstimator:
    """Emulated volume delta, always available.

    +percent for growth, -percent for fall, +1% when neutral, applied to the
    snapshot 24h volume (or an estimate by quote currency) and clamped to
    ``clamp_ratio`` of that base.
    """

    def __init__(
        self,
        snapshots: SnapshotSource | None = None,
        percent: Decimal = Decimal("2.0"),
        clamp_ratio: Decimal = Decimal("0.05"),
    ) -> None:
        self._snapshots = snapshots
        self._percent = percent
        self._clamp_ratio = clamp_ratio

    async def _base_volume(self, symbol: str) -> Decimal:
        if self._snapshots is not None:
            try:
                snapshot = await self._snapshots.get_current_snapshot(symbol)
            except Exception:
                logger.debug("synthetic_snapshot_lookup_failed", symbol=symbol, exc_info=True)
                snapshot = None
            if snapshot is not None and snapshot.volume_24h > 0:
                return snapshot.volume_24h
        return estimate_base_volume(symbol)

    async def estimate(
        self, symbol: str, direction: Direction | None
    ) -> MetricReading | None:
        if direction is Direction.GROWTH:
            percent = self._percent
        elif direction is Direction.FALL:
            percent = -self._percent
        else:
            percent = _NEUTRAL_PERCENT

        base = await self._base_volume(symbol)
        delta = base * percent / _HUNDRED

        max_delta = base * self._clamp_ratio
        if abs(delta) > max_delta:
            delta = max_delta.copy_sign(percent)
            percent = delta / base * _HUNDRED

        return MetricReading(value=delta, percent=percent)


class HistoryOIChangeEstimator:
    """Open interest change from the first to the last stored reading."""

    def __init__(self, history: PriceHistoryStore) -> None:
        self._history = history

    async def estimate(
        self, symbol: str, direction: Direction | None
    ) -> MetricReading | None:
        readings = [
            p.open_interest for p in await self._history.get_recent(symbol)
            if p.open_interest > 0
        ]
        if len(readings) < 2:
            return None

        first, last = readings[0], readings[-1]
        return MetricReading(
            value=last - first,
            percent=(last - first) / first * _HUNDRED,
        )


class SyntheticOIChangeEstimator:
    """Emulated open interest change in [-20, 20) percent.

    Deterministic per symbol and UTC hour: ``(len(symbol) + hour) % 40 - 20``.
    """

    def __init__(
        self,
        snapshots: SnapshotSource | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._snapshots = snapshots
        self._clock = clock

    async def estimate(
        self, symbol: str, direction: Direction | None
    ) -> MetricReading | None:
        hour = datetime.fromtimestamp(self._clock(), tz=timezone.utc).hour
        percent = Decimal((len(symbol) + hour) % 40 - 20)

        value = Decimal("0")
        if self._snapshots is not None:
            try:
                snapshot = await self._snapshots.get_current_snapshot(symbol)
            except Exception:
                logger.debug("synthetic_snapshot_lookup_failed", symbol=symbol, exc_info=True)
                snapshot = None
            if snapshot is not None:
                value = snapshot.open_interest * percent / _HUNDRED

        return MetricReading(value=value, percent=percent)
