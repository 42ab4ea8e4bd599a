"""Bybit exchange client implementation via ccxt async.

Wraps ccxt.async_support.bybit with market loading, public market data
endpoints and async cleanup. No API keys are needed.
"""

import ccxt.async_support as ccxt_async

from screener.config import ExchangeSettings
from screener.exceptions import ExchangeError
from screener.exchange.client import ExchangeClient
from screener.logging import get_logger

logger = get_logger(__name__)


class BybitClient(ExchangeClient):
    """Concrete Bybit market data client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings
        self._exchange = ccxt_async.bybit(
            {
                "enableRateLimit": True,
                "timeout": settings.timeout_ms,
                "options": {
                    "defaultType": "swap",
                },
            }
        )
        if settings.testnet:
            self._exchange.set_sandbox_mode(True)
        self._markets: dict = {}

    @property
    def exchange(self) -> ccxt_async.bybit:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Initialize connection by loading markets."""
        logger.info("connecting_to_bybit", testnet=self._settings.testnet)
        await self.load_markets()
        logger.info("bybit_connected", market_count=len(self._markets))

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_bybit_connection")
        await self._exchange.close()
        logger.info("bybit_connection_closed")

    async def fetch_tickers(
        self, symbols: list[str] | None = None, params: dict | None = None
    ) -> dict:
        """Fetch ticker data for multiple symbols."""
        try:
            return await self._exchange.fetch_tickers(symbols, params=params or {})
        except ccxt_async.BaseError as e:
            raise ExchangeError(f"fetch_tickers failed: {e}") from e

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: int | None = None,
        limit: int = 200,
        params: dict | None = None,
    ) -> list[list]:
        """Fetch OHLCV candles, oldest first."""
        try:
            return await self._exchange.fetch_ohlcv(
                symbol, timeframe, since=since, limit=limit, params=params or {}
            )
        except ccxt_async.BaseError as e:
            raise ExchangeError(f"fetch_ohlcv failed for {symbol}: {e}") from e

    async def fetch_trades(
        self, symbol: str, limit: int = 500, params: dict | None = None
    ) -> list[dict]:
        """Fetch recent public trades."""
        try:
            return await self._exchange.fetch_trades(symbol, limit=limit, params=params or {})
        except ccxt_async.BaseError as e:
            raise ExchangeError(f"fetch_trades failed for {symbol}: {e}") from e

    async def load_markets(self) -> dict:
        """Load and cache market data from Bybit."""
        try:
            self._markets = await self._exchange.load_markets()
        except ccxt_async.BaseError as e:
            raise ExchangeError(f"load_markets failed: {e}") from e
        return self._markets

    async def fetch_perpetual_symbols(self) -> list[str]:
        """Return all linear perpetual swap symbols.

        Filters markets for those that are both linear and swap type,
        excluding spot, inverse, and option contracts.
        """
        if not self._markets:
            await self.load_markets()

        symbols = [
            symbol
            for symbol, market in self._markets.items()
            if market.get("linear") and market.get("swap") and market.get("active", True)
        ]
        logger.debug("fetched_perpetual_symbols", count=len(symbols))
        return symbols
