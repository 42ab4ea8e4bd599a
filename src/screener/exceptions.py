"""Custom exceptions for the pair screener.

Collaborator failures are raised for a single analysis pass and never
corrupt confirmation or cache state. Detectors, scorers and the metric
cache do not raise on sparse input.
"""


class ScreenerError(Exception):
    """Base exception for all screener errors."""


class ExchangeError(ScreenerError):
    """Raised when an exchange request fails or returns malformed data."""


class PriceHistoryUnavailable(ScreenerError):
    """Raised when the price series for a symbol/period cannot be fetched."""

    def __init__(self, symbol: str, period: str, reason: str = "") -> None:
        self.symbol = symbol
        self.period = period
        self.reason = reason
        message = f"price history unavailable for {symbol} {period}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class LiveMetricUnavailable(ScreenerError):
    """Raised by a live metric source when no real-time reading can be produced."""


class PublishError(ScreenerError):
    """Raised by an event sink when a signal could not be delivered."""
