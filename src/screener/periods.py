"""Analysis period table.

Every analysis period maps to a fixed nominal duration. Unknown period
strings fall back to 15 minutes.
"""

_PERIOD_MINUTES: dict[str, int] = {
    "5m": 5,
    "15m": 15,
    "30m": 30,
    "1h": 60,
    "4h": 240,
    "1d": 1440,
}

DEFAULT_PERIOD = "15m"


def period_minutes(period: str) -> int:
    """Return the nominal length of ``period`` in minutes."""
    return _PERIOD_MINUTES.get(period, _PERIOD_MINUTES[DEFAULT_PERIOD])


def period_seconds(period: str) -> float:
    """Return the nominal length of ``period`` in seconds."""
    return float(period_minutes(period) * 60)


def period_ms(period: str) -> int:
    """Return the nominal length of ``period`` in milliseconds."""
    return period_minutes(period) * 60 * 1000
