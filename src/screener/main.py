"""Entry point for the pair screener.

Wires all components together, optionally embeds the FastAPI status API,
and starts the screener service. When the status API is enabled (default),
the screener and API share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. ExchangeClient (BybitClient, public endpoints)
2. PriceHistoryStore and MarketPoller
3. Price history source (ticker store or exchange candles)
4. ConfirmationManager
5. Metric caches (volume delta, open interest change)
6. Event sinks and SignalPublisher
7. SignalEngine
8. ScreenerService
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from screener.config import AppSettings
from screener.exchange.bybit_client import BybitClient
from screener.logging import get_logger, setup_logging
from screener.market_data.candles import CandleHistorySource
from screener.market_data.history import PriceHistoryStore
from screener.market_data.poller import MarketPoller
from screener.metrics.cache import MetricCache
from screener.metrics.estimators import (
    HistoryOIChangeEstimator,
    HistoryVolumeDeltaEstimator,
    SyntheticOIChangeEstimator,
    SyntheticVolumeDeltaEstimator,
    TradesVolumeDeltaSource,
)
from screener.persistence.database import SignalDatabase
from screener.persistence.signal_store import SignalStore
from screener.publishing.publisher import SignalPublisher
from screener.publishing.sinks import LogSink
from screener.service import ScreenerService
from screener.signals.confirmation import ConfirmationManager
from screener.signals.engine import SignalEngine
from screener.signals.models import DetectorConfig


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all screener components from settings.

    Note: Does NOT connect to the exchange or open the database -- that
    happens in the lifespan (API mode) or run() (headless mode).

    Returns:
        Dict mapping component names to instances.
    """
    # 1. Exchange client
    exchange_client = BybitClient(settings.exchange)

    # 2. Price history and poller
    history = PriceHistoryStore(window=settings.market.history_window)
    poller = MarketPoller(
        exchange_client,
        history,
        poll_interval=settings.market.poll_interval,
        symbols=settings.market.symbols,
        quote_currency=settings.market.quote_currency,
        min_volume_24h=settings.market.min_volume_24h,
        max_symbols=settings.market.max_symbols,
    )

    # 3. Series source for analysis passes
    if settings.market.history_source == "candles":
        series_source: Any = CandleHistorySource(
            exchange_client, snapshots=history, window=settings.market.history_window
        )
    else:
        series_source = history

    # 4. Confirmation counters
    confirmations = ConfirmationManager(
        signal_threshold=settings.confirmation.signal_threshold,
        required_confirmations=settings.confirmation.required_confirmations,
    )

    # 5. Metric caches
    volume_delta = MetricCache(
        name="volume_delta",
        live=TradesVolumeDeltaSource(exchange_client, lookback=settings.market.trades_lookback),
        storage=HistoryVolumeDeltaEstimator(history),
        synthetic=SyntheticVolumeDeltaEstimator(
            snapshots=history,
            percent=settings.metrics.emulated_percent,
            clamp_ratio=settings.metrics.emulated_clamp_ratio,
        ),
        ttl_seconds=settings.metrics.ttl_seconds,
        fallback_enabled=settings.metrics.fallback_enabled,
    )
    oi_change = MetricCache(
        name="oi_change",
        storage=HistoryOIChangeEstimator(history),
        synthetic=SyntheticOIChangeEstimator(snapshots=history),
        ttl_seconds=settings.metrics.ttl_seconds,
        fallback_enabled=settings.metrics.fallback_enabled,
    )

    # 6. Sinks and publisher
    database = SignalDatabase(settings.storage.db_path) if settings.storage.enabled else None
    signal_store = SignalStore(database) if database is not None else None
    sinks: list[Any] = [LogSink()]
    if signal_store is not None:
        sinks.append(signal_store)
    publisher = SignalPublisher(sinks, max_queue_size=settings.engine.publish_queue_size)

    # 7. Signal engine
    engine = SignalEngine(
        history=series_source,
        confirmations=confirmations,
        volume_delta=volume_delta,
        detector_config=DetectorConfig.from_settings(settings.detector),
        oi_change=oi_change,
        snapshots=history,
        publisher=publisher,
        fetch_timeout=settings.engine.fetch_timeout,
        max_concurrent_passes=settings.engine.max_concurrent_passes,
    )

    # 8. Service
    service = ScreenerService(
        settings=settings,
        engine=engine,
        poller=poller,
        publisher=publisher,
        confirmations=confirmations,
        history=history,
        metric_caches=[volume_delta, oi_change],
        signal_store=signal_store,
    )

    return {
        "exchange_client": exchange_client,
        "history": history,
        "poller": poller,
        "confirmations": confirmations,
        "volume_delta": volume_delta,
        "oi_change": oi_change,
        "database": database,
        "signal_store": signal_store,
        "publisher": publisher,
        "engine": engine,
        "service": service,
    }


def _setup_signal_handlers(service: ScreenerService) -> None:
    """Register SIGINT/SIGTERM to stop the service gracefully.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("screener.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(service.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


async def _open_resources(components: dict[str, Any]) -> None:
    await components["exchange_client"].connect()
    if components["database"] is not None:
        await components["database"].connect()


async def _close_resources(components: dict[str, Any]) -> None:
    if components["database"] is not None:
        await components["database"].close()
    await components["exchange_client"].close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage screener lifecycle within the FastAPI application.

    On startup: connects resources, starts the service as a background task.
    On shutdown: stops the service, waits for it, closes resources.
    """
    logger = get_logger("screener.main")
    components = app.state.components
    service: ScreenerService = components["service"]

    # uvicorn owns SIGINT/SIGTERM here; its shutdown runs the code after yield
    app.state.service = service

    await _open_resources(components)
    service_task = asyncio.create_task(service.start())
    logger.info("lifespan_started")

    yield

    await service.stop()
    try:
        await asyncio.wait_for(service_task, timeout=30)
    except asyncio.TimeoutError:
        service_task.cancel()
        try:
            await service_task
        except asyncio.CancelledError:
            pass

    await _close_resources(components)
    logger.info("pair_screener_stopped")


async def run() -> None:
    """Run the pair screener, with or without the status API."""
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("screener.main")

    components = _build_components(settings)

    if settings.dashboard.enabled:
        from screener.dashboard.app import create_status_app

        app = create_status_app(lifespan=lifespan)
        app.state.components = components

        logger.info(
            "starting_with_status_api",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        _setup_signal_handlers(components["service"])
        logger.info("starting_without_status_api", periods=settings.engine.periods)

        try:
            await _open_resources(components)
            await components["service"].start()
        finally:
            await _close_resources(components)
            logger.info("pair_screener_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
