"""Descriptive statistics over a price series.

Shared by the change detector and the confidence scorer. Every function is
total: short series, zero or negative prices yield neutral values instead
of raising.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from screener.models import Direction, PricePoint

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_MS_PER_MINUTE = Decimal("60000")

#: Trend strength is slope in percent-of-mean per step, scaled by this factor.
_TREND_SCALE = Decimal("10")


def percent_change(start: Decimal, end: Decimal) -> Decimal | None:
    """Percent change from ``start`` to ``end``; None when start is not positive."""
    if start <= 0:
        return None
    return (end - start) / start * _HUNDRED


def duration_minutes(series: Sequence[PricePoint]) -> Decimal:
    """Elapsed minutes between the first and last point."""
    if len(series) < 2:
        return _ZERO
    return Decimal(series[-1].timestamp_ms - series[0].timestamp_ms) / _MS_PER_MINUTE


def average_volume(series: Sequence[PricePoint]) -> Decimal:
    """Mean 24h volume across the series."""
    if not series:
        return _ZERO
    return sum((p.volume_24h for p in series), _ZERO) / Decimal(len(series))


def volatility(series: Sequence[PricePoint]) -> Decimal:
    """Population standard deviation of price as a percent of the mean price."""
    if len(series) < 2:
        return _ZERO

    n = Decimal(len(series))
    mean = sum((p.price for p in series), _ZERO) / n
    if mean <= 0:
        return _ZERO

    variance = sum(((p.price - mean) ** 2 for p in series), _ZERO) / n
    return variance.sqrt() / mean * _HUNDRED


def trend_strength(series: Sequence[PricePoint]) -> Decimal:
    """Least-squares slope of price over index, scored 0-100.

    The slope is normalised by the mean price (percent per step) so the
    score does not depend on the instrument's price scale.
    """
    if len(series) < 2:
        return _ZERO

    n = Decimal(len(series))
    sum_x = _ZERO
    sum_y = _ZERO
    sum_xy = _ZERO
    sum_x2 = _ZERO
    for i, point in enumerate(series):
        x = Decimal(i)
        sum_x += x
        sum_y += point.price
        sum_xy += x * point.price
        sum_x2 += x * x

    denominator = n * sum_x2 - sum_x * sum_x
    mean = sum_y / n
    if denominator == 0 or mean <= 0:
        return _ZERO

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    strength = abs(slope) / mean * _HUNDRED * _TREND_SCALE
    return max(_ZERO, min(_HUNDRED, strength))


def count_directional_steps(series: Sequence[PricePoint], direction: Direction) -> int:
    """Number of adjacent steps moving strictly in ``direction``."""
    count = 0
    for prev, curr in zip(series, series[1:]):
        if direction is Direction.GROWTH and curr.price > prev.price:
            count += 1
        elif direction is Direction.FALL and curr.price < prev.price:
            count += 1
    return count


def continuity_ratio(series: Sequence[PricePoint], direction: Direction) -> Decimal:
    """Fraction of adjacent steps that move in ``direction`` (0-1)."""
    steps = len(series) - 1
    if steps <= 0:
        return _ZERO
    return Decimal(count_directional_steps(series, direction)) / Decimal(steps)


def is_continuous(
    series: Sequence[PricePoint], direction: Direction, threshold: Decimal
) -> bool:
    """True when the continuity ratio strictly exceeds ``threshold``."""
    if len(series) < 2:
        return False
    return continuity_ratio(series, direction) > threshold
