"""Abstract exchange client interface.

Defines the contract for market data access. The screener depends only on
this interface, keeping Bybit-specific details isolated in the concrete
implementation. Only public endpoints are used.
"""

from abc import ABC, abstractmethod


class ExchangeClient(ABC):
    """Abstract base class for exchange market data clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_tickers(
        self, symbols: list[str] | None = None, params: dict | None = None
    ) -> dict:
        """Fetch ticker data for multiple symbols."""
        ...

    @abstractmethod
    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: int | None = None,
        limit: int = 200,
        params: dict | None = None,
    ) -> list[list]:
        """Fetch OHLCV candle data.

        Returns list of [timestamp_ms, open, high, low, close, volume].
        """
        ...

    @abstractmethod
    async def fetch_trades(
        self, symbol: str, limit: int = 500, params: dict | None = None
    ) -> list[dict]:
        """Fetch recent public trades.

        Returns ccxt trade dicts with keys: side, price, amount, cost, timestamp.
        """
        ...

    @abstractmethod
    async def load_markets(self) -> dict:
        """Load and cache market/instrument data from the exchange."""
        ...

    @abstractmethod
    async def fetch_perpetual_symbols(self) -> list[str]:
        """Return list of all available linear perpetual symbols."""
        ...
