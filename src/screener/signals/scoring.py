"""Confidence scoring for detected price moves.

Each algorithm's confidence is a sum of independently capped terms
(magnitude, volume, timing, volatility, data points, continuity, trend),
clamped to [0, 100]. No single term can saturate the score, and the
formulas are deterministic so a recorded input always replays to the
same confidence.

CRITICAL: All computations use Decimal. Never use float.
"""

from dataclasses import dataclass
from decimal import Decimal

from screener.logging import get_logger

logger = get_logger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

#: (multiplier, cap) of the magnitude term per algorithm.
_SINGLE_MAGNITUDE = (Decimal("10"), Decimal("70"))
_INTERVAL_MAGNITUDE = (Decimal("8"), Decimal("80"))
_CONTINUOUS_MAGNITUDE = (Decimal("12"), Decimal("90"))


@dataclass(frozen=True)
class ScoreInputs:
    """Measured properties of one candidate move."""

    change_percent: Decimal  # absolute value is used
    duration_minutes: Decimal
    data_points: int
    avg_volume: Decimal
    volatility: Decimal = _ZERO  # percent of mean price
    trend_strength: Decimal = _ZERO  # 0-100
    continuity_ratio: Decimal = _ZERO  # 0-1
    is_continuous: bool = False
    continuous_steps: int = 0
    volume_weight: Decimal = Decimal("1")


def clamp(value: Decimal, low: Decimal = _ZERO, high: Decimal = _HUNDRED) -> Decimal:
    """Clamp ``value`` into [low, high]."""
    return max(low, min(high, value))


def magnitude_term(change_percent: Decimal, multiplier: Decimal, cap: Decimal) -> Decimal:
    return min(abs(change_percent) * multiplier, cap)


def volume_term(avg_volume: Decimal, weight: Decimal = Decimal("1")) -> Decimal:
    """Deep liquidity raises confidence; thin books (<50k) penalise it."""
    if avg_volume > 1_000_000:
        term = Decimal("10")
    elif avg_volume > 500_000:
        term = Decimal("7")
    elif avg_volume > 100_000:
        term = Decimal("3")
    elif avg_volume < 50_000:
        term = Decimal("-5")
    else:
        term = _ZERO
    return term * weight


def time_term(minutes: Decimal) -> Decimal:
    """Sharp moves score higher than slow drifts."""
    if minutes < 5:
        return Decimal("15")
    if minutes < 10:
        return Decimal("10")
    if minutes < 30:
        return Decimal("5")
    if minutes > 60:
        return Decimal("-10")
    return _ZERO


def volatility_term(volatility: Decimal) -> Decimal:
    if volatility < 2:
        return Decimal("10")
    if volatility < 5:
        return Decimal("5")
    if volatility > 10:
        return Decimal("-10")
    return _ZERO


def data_points_term(data_points: int) -> Decimal:
    if data_points >= 10:
        return Decimal("15")
    if data_points >= 7:
        return Decimal("10")
    if data_points >= 5:
        return Decimal("7")
    if data_points >= 3:
        return Decimal("3")
    return _ZERO


def continuity_bonus(is_continuous: bool, ratio: Decimal) -> Decimal:
    """Interval bonus, only granted when the window is continuous."""
    if not is_continuous:
        return _ZERO
    if ratio > Decimal("0.9"):
        return Decimal("25")
    if ratio > Decimal("0.8"):
        return Decimal("20")
    if ratio > Decimal("0.7"):
        return Decimal("15")
    if ratio > Decimal("0.6"):
        return Decimal("10")
    return Decimal("5")


def continuous_steps_bonus(steps: int) -> Decimal:
    if steps >= 5:
        return Decimal("15")
    if steps >= 4:
        return Decimal("12")
    if steps >= 3:
        return Decimal("8")
    if steps >= 2:
        return Decimal("5")
    return _ZERO


def continuity_ratio_bonus(ratio: Decimal) -> Decimal:
    if ratio > Decimal("0.9"):
        return Decimal("15")
    if ratio > Decimal("0.8"):
        return Decimal("10")
    if ratio > Decimal("0.7"):
        return Decimal("7")
    if ratio > Decimal("0.6"):
        return Decimal("3")
    return _ZERO


def trend_term(strength: Decimal) -> Decimal:
    """Half the trend strength, capped at 10."""
    return min(max(strength, _ZERO) / 2, Decimal("10"))


def score_single(inputs: ScoreInputs) -> Decimal:
    """Confidence for a single adjacent-step move."""
    terms = {
        "magnitude": magnitude_term(inputs.change_percent, *_SINGLE_MAGNITUDE),
        "volume": volume_term(inputs.avg_volume, inputs.volume_weight),
        "time": time_term(inputs.duration_minutes),
        "volatility": volatility_term(inputs.volatility),
        "data_points": data_points_term(inputs.data_points),
    }
    return _total("single", terms)


def score_interval(inputs: ScoreInputs) -> Decimal:
    """Confidence for the best explanatory interval of a move."""
    terms = {
        "magnitude": magnitude_term(inputs.change_percent, *_INTERVAL_MAGNITUDE),
        "continuity": continuity_bonus(inputs.is_continuous, inputs.continuity_ratio),
        "trend": trend_term(inputs.trend_strength),
        "volume": volume_term(inputs.avg_volume, inputs.volume_weight),
        "data_points": data_points_term(inputs.data_points),
    }
    return _total("interval", terms)


def score_continuous(inputs: ScoreInputs) -> Decimal:
    """Confidence for a sustained monotonic run."""
    terms = {
        "magnitude": magnitude_term(inputs.change_percent, *_CONTINUOUS_MAGNITUDE),
        "continuous_steps": continuous_steps_bonus(inputs.continuous_steps),
        "continuity_ratio": continuity_ratio_bonus(inputs.continuity_ratio),
        "trend": trend_term(inputs.trend_strength),
        "volume": volume_term(inputs.avg_volume, inputs.volume_weight),
        "data_points": data_points_term(inputs.data_points),
    }
    return _total("continuous", terms)


def _total(algorithm: str, terms: dict[str, Decimal]) -> Decimal:
    confidence = clamp(sum(terms.values(), _ZERO))
    logger.debug(
        "confidence_scored",
        algorithm=algorithm,
        confidence=str(confidence),
        **{name: str(value) for name, value in terms.items()},
    )
    return confidence
