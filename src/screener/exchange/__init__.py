"""Exchange client layer -- Bybit public market data via ccxt."""

from screener.exchange.bybit_client import BybitClient
from screener.exchange.client import ExchangeClient

__all__ = ["BybitClient", "ExchangeClient"]
