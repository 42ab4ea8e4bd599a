"""Market poller -- records ticker snapshots for all tracked perpetual pairs.

Uses REST polling of linear tickers. Each poll turns every tracked ticker
into a PricePoint (last price, 24h turnover, open interest, funding rate,
24h high/low) and appends it to the PriceHistoryStore.

Tracked symbols are the configured allow-list when one is set, otherwise
the most liquid linear perpetuals in the configured quote currency.
"""

import asyncio
from decimal import Decimal, InvalidOperation

from screener.exchange.client import ExchangeClient
from screener.logging import get_logger
from screener.market_data.history import PriceHistoryStore
from screener.models import PricePoint, now_ms

logger = get_logger(__name__)


def _decimal(raw: object) -> Decimal | None:
    if raw is None or raw == "":
        return None
    try:
        return Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None


def parse_ticker(symbol: str, ticker: dict) -> PricePoint | None:
    """Build a PricePoint from a ccxt Bybit linear ticker.

    Prefers the raw ``info`` fields (string-typed by Bybit) and falls back to
    the unified ccxt fields. Returns None when there is no positive price.
    """
    info = ticker.get("info") or {}

    price = _decimal(ticker.get("last")) or _decimal(info.get("lastPrice"))
    if price is None or price <= 0:
        return None

    volume = _decimal(info.get("turnover24h")) or _decimal(ticker.get("quoteVolume"))
    high = _decimal(info.get("highPrice24h")) or _decimal(ticker.get("high"))
    low = _decimal(info.get("lowPrice24h")) or _decimal(ticker.get("low"))

    return PricePoint(
        symbol=symbol,
        price=price,
        timestamp_ms=int(ticker.get("timestamp") or now_ms()),
        volume_24h=volume or Decimal("0"),
        open_interest=_decimal(info.get("openInterest")) or Decimal("0"),
        funding_rate=_decimal(info.get("fundingRate")) or Decimal("0"),
        high_24h=high or Decimal("0"),
        low_24h=low or Decimal("0"),
    )


class MarketPoller:
    """Polls tickers and feeds the shared price history.

    Args:
        exchange: Exchange client.
        history: Store receiving one PricePoint per tracked symbol per poll.
        poll_interval: Seconds between polls.
        symbols: Explicit allow-list; empty means select by liquidity.
        quote_currency: Quote filter for automatic selection.
        min_volume_24h: Minimum 24h turnover for automatic selection.
        max_symbols: Cap on automatically selected symbols.
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        history: PriceHistoryStore,
        poll_interval: float = 60.0,
        symbols: list[str] | None = None,
        quote_currency: str = "USDT",
        min_volume_24h: Decimal = Decimal("1000000"),
        max_symbols: int = 100,
    ) -> None:
        self._exchange = exchange
        self._history = history
        self._poll_interval = poll_interval
        self._allow_list = list(symbols or [])
        self._quote_currency = quote_currency
        self._min_volume_24h = min_volume_24h
        self._max_symbols = max_symbols
        self._tracked: list[str] = list(self._allow_list)
        self._last_poll_ms: int | None = None
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def tracked_symbols(self) -> list[str]:
        return list(self._tracked)

    @property
    def last_poll_ms(self) -> int | None:
        return self._last_poll_ms

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Begin polling in the background."""
        if self._running:
            logger.warning("market_poller_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._stream_loop())
        logger.info("market_poller_started", poll_interval=self._poll_interval)

    async def stop(self) -> None:
        """Stop the poller gracefully."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("market_poller_stopped")

    async def _stream_loop(self) -> None:
        """Main polling loop: fetch tickers, parse, append to history."""
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("market_poller_poll_error", exc_info=True)
            if self._running:
                await asyncio.sleep(self._poll_interval)

    async def poll_once(self) -> int:
        """Execute a single poll. Returns the number of points stored."""
        tickers = await self._exchange.fetch_tickers(params={"category": "linear"})

        points: dict[str, PricePoint] = {}
        for symbol, ticker in tickers.items():
            point = parse_ticker(symbol, ticker)
            if point is None:
                logger.debug("invalid_ticker_skipped", symbol=symbol)
                continue
            points[symbol] = point

        self._tracked = self._select_symbols(points)
        stored = await self._history.add_points(points[s] for s in self._tracked)
        self._last_poll_ms = now_ms()

        logger.debug("market_snapshot_recorded", tracked=len(self._tracked), stored=stored)
        return stored

    def _select_symbols(self, points: dict[str, PricePoint]) -> list[str]:
        if self._allow_list:
            return [s for s in self._allow_list if s in points]

        quote = f"/{self._quote_currency}"
        candidates = [
            p for p in points.values()
            if quote in p.symbol and p.volume_24h >= self._min_volume_24h
        ]
        candidates.sort(key=lambda p: p.volume_24h, reverse=True)
        return [p.symbol for p in candidates[: self._max_symbols]]
