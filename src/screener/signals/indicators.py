"""Technical indicators attached to published signals.

RSI and MACD over the closing prices of a series. EMA intermediate
results are quantized to 12 decimal places to keep Decimal
representations bounded.

CRITICAL: All computations use Decimal. Never use float.
"""

from dataclasses import dataclass
from decimal import Decimal

#: Precision limit for EMA intermediate results (12 decimal places).
_EMA_QUANTIZE = Decimal("0.000000000001")

_RSI_PERIOD = 14
_RSI_NEUTRAL = Decimal("50")

_MACD_FAST = 12
_MACD_SLOW = 26
_MACD_SIGNAL = 9

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class MACD:
    """Latest MACD line, signal line and histogram values."""

    line: Decimal = _ZERO
    signal: Decimal = _ZERO
    histogram: Decimal = _ZERO


def compute_ema(values: list[Decimal], span: int) -> list[Decimal]:
    """Compute Exponential Moving Average over a list of Decimal values.

    Uses the standard recursive formula:
        alpha = 2 / (span + 1)
        EMA_t = alpha * value_t + (1 - alpha) * EMA_{t-1}

    First EMA value = first input value.

    Args:
        values: Ordered list of Decimal values (oldest first).
        span: Number of periods for EMA smoothing.

    Returns:
        List of EMA values, same length as input. Empty list if input is empty.
    """
    if not values:
        return []

    alpha = Decimal("2") / (Decimal(span) + Decimal("1"))
    one_minus_alpha = Decimal("1") - alpha

    ema = [values[0].quantize(_EMA_QUANTIZE)]
    for v in values[1:]:
        ema.append((alpha * v + one_minus_alpha * ema[-1]).quantize(_EMA_QUANTIZE))

    return ema


def compute_rsi(prices: list[Decimal], period: int = _RSI_PERIOD) -> Decimal:
    """Relative Strength Index over the whole series.

    Averages gains and losses across every step. Returns the neutral 50 for
    fewer than ``period`` prices or a flat series, and 100 when the series
    never falls.
    """
    if len(prices) < period:
        return _RSI_NEUTRAL

    gains = _ZERO
    losses = _ZERO
    for prev, curr in zip(prices, prices[1:]):
        diff = curr - prev
        if diff > 0:
            gains += diff
        else:
            losses -= diff

    if gains == 0 and losses == 0:
        return _RSI_NEUTRAL
    if losses == 0:
        return _HUNDRED

    steps = Decimal(len(prices) - 1)
    rs = (gains / steps) / (losses / steps)
    return (_HUNDRED - _HUNDRED / (1 + rs)).quantize(Decimal("0.01"))


def compute_macd(prices: list[Decimal]) -> MACD:
    """MACD (EMA12 - EMA26) with an EMA9 signal line.

    Returns zeros when there are fewer than 26 prices.
    """
    if len(prices) < _MACD_SLOW:
        return MACD()

    fast = compute_ema(prices, _MACD_FAST)
    slow = compute_ema(prices, _MACD_SLOW)
    line = [f - s for f, s in zip(fast, slow)]
    signal = compute_ema(line, _MACD_SIGNAL)

    return MACD(
        line=line[-1],
        signal=signal[-1],
        histogram=line[-1] - signal[-1],
    )
