"""Tests for BybitClient.

All tests use mocked ccxt exchange objects to avoid real API calls.
"""

from unittest.mock import AsyncMock

import ccxt.async_support as ccxt_async
import pytest

from screener.config import ExchangeSettings
from screener.exceptions import ExchangeError
from screener.exchange.bybit_client import BybitClient


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

MOCK_MARKETS = {
    "BTC/USDT:USDT": {
        "id": "BTCUSDT",
        "symbol": "BTC/USDT:USDT",
        "type": "swap",
        "spot": False,
        "swap": True,
        "linear": True,
        "inverse": False,
        "active": True,
    },
    "ETH/USDT:USDT": {
        "id": "ETHUSDT",
        "symbol": "ETH/USDT:USDT",
        "type": "swap",
        "spot": False,
        "swap": True,
        "linear": True,
        "inverse": False,
    },
    "LUNA/USDT:USDT": {
        "id": "LUNAUSDT",
        "symbol": "LUNA/USDT:USDT",
        "type": "swap",
        "spot": False,
        "swap": True,
        "linear": True,
        "inverse": False,
        "active": False,
    },
    "BTC/USDT": {
        "id": "BTCUSDT",
        "symbol": "BTC/USDT",
        "type": "spot",
        "spot": True,
        "swap": False,
        "linear": False,
        "inverse": False,
    },
    "BTC/USD:BTC": {
        "id": "BTCUSD",
        "symbol": "BTC/USD:BTC",
        "type": "swap",
        "spot": False,
        "swap": True,
        "linear": False,
        "inverse": True,
    },
}


@pytest.fixture
def exchange_settings() -> ExchangeSettings:
    return ExchangeSettings(testnet=False, timeout_ms=5000)


@pytest.fixture
def bybit_client(exchange_settings: ExchangeSettings) -> BybitClient:
    """BybitClient with mocked markets pre-loaded."""
    client = BybitClient(exchange_settings)
    client._markets = MOCK_MARKETS
    return client


# ---------------------------------------------------------------------------
# BybitClient tests
# ---------------------------------------------------------------------------


class TestBybitClientInit:
    def test_standard_init(self, exchange_settings: ExchangeSettings) -> None:
        client = BybitClient(exchange_settings)
        assert client.exchange.enableRateLimit is True
        assert client.exchange.timeout == 5000
        assert client.exchange.options["defaultType"] == "swap"

    def test_testnet_uses_sandbox_urls(self) -> None:
        client = BybitClient(ExchangeSettings(testnet=True))
        assert "testnet" in str(client.exchange.urls["api"])


class TestFetchPerpetualSymbols:
    """Tests for fetch_perpetual_symbols filtering."""

    @pytest.mark.asyncio
    async def test_returns_only_active_linear_swaps(self, bybit_client: BybitClient) -> None:
        symbols = await bybit_client.fetch_perpetual_symbols()
        assert symbols == ["BTC/USDT:USDT", "ETH/USDT:USDT"]

    @pytest.mark.asyncio
    async def test_loads_markets_when_empty(self, exchange_settings: ExchangeSettings) -> None:
        client = BybitClient(exchange_settings)
        client._exchange.load_markets = AsyncMock(return_value=MOCK_MARKETS)

        symbols = await client.fetch_perpetual_symbols()

        client._exchange.load_markets.assert_awaited_once()
        assert "BTC/USD:BTC" not in symbols


class TestBybitClientDelegation:
    """Tests for methods that delegate to ccxt exchange."""

    @pytest.mark.asyncio
    async def test_connect_loads_markets(self, exchange_settings: ExchangeSettings) -> None:
        client = BybitClient(exchange_settings)
        client._exchange.load_markets = AsyncMock(return_value=MOCK_MARKETS)
        await client.connect()
        client._exchange.load_markets.assert_awaited_once()
        assert len(client._markets) == len(MOCK_MARKETS)
        # Clean up
        client._exchange.close = AsyncMock()
        await client.close()

    @pytest.mark.asyncio
    async def test_close_calls_exchange_close(self, exchange_settings: ExchangeSettings) -> None:
        client = BybitClient(exchange_settings)
        client._exchange.close = AsyncMock()
        await client.close()
        client._exchange.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fetch_tickers_delegates(self, bybit_client: BybitClient) -> None:
        tickers = {"BTC/USDT:USDT": {"last": 50000.0}}
        bybit_client._exchange.fetch_tickers = AsyncMock(return_value=tickers)

        result = await bybit_client.fetch_tickers(params={"category": "linear"})

        assert result == tickers
        bybit_client._exchange.fetch_tickers.assert_awaited_once_with(
            None, params={"category": "linear"}
        )

    @pytest.mark.asyncio
    async def test_fetch_ohlcv_delegates(self, bybit_client: BybitClient) -> None:
        candles = [[1700000000000, 1.0, 2.0, 0.5, 1.5, 10.0]]
        bybit_client._exchange.fetch_ohlcv = AsyncMock(return_value=candles)

        result = await bybit_client.fetch_ohlcv("BTC/USDT:USDT", "5m", limit=13)

        assert result == candles
        bybit_client._exchange.fetch_ohlcv.assert_awaited_once_with(
            "BTC/USDT:USDT", "5m", since=None, limit=13, params={}
        )

    @pytest.mark.asyncio
    async def test_fetch_trades_delegates(self, bybit_client: BybitClient) -> None:
        bybit_client._exchange.fetch_trades = AsyncMock(return_value=[])

        await bybit_client.fetch_trades("BTC/USDT:USDT", limit=100)

        bybit_client._exchange.fetch_trades.assert_awaited_once_with(
            "BTC/USDT:USDT", limit=100, params={}
        )


class TestErrorWrapping:
    @pytest.mark.asyncio
    async def test_ccxt_error_becomes_exchange_error(self, bybit_client: BybitClient) -> None:
        bybit_client._exchange.fetch_trades = AsyncMock(
            side_effect=ccxt_async.NetworkError("connection reset")
        )

        with pytest.raises(ExchangeError, match="fetch_trades failed"):
            await bybit_client.fetch_trades("BTC/USDT:USDT")

    @pytest.mark.asyncio
    async def test_load_markets_error(self, exchange_settings: ExchangeSettings) -> None:
        client = BybitClient(exchange_settings)
        client._exchange.load_markets = AsyncMock(
            side_effect=ccxt_async.ExchangeNotAvailable("maintenance")
        )

        with pytest.raises(ExchangeError):
            await client.connect()
