"""Entry point for the market data sync service.

Wires all components together, optionally serves the FastAPI API, and
optionally runs the polling scheduler. When the API is enabled (default),
the scheduler and the API share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. MarketDatabase + MarketDataStore
4. ExchangeClient (BinanceClient)
5. CandlestickSyncEngine (with configured classifier)
6. BatchSyncCoordinator
7. MarketDataService
8. SyncScheduler
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from marketsync.config import AppSettings
from marketsync.data.database import MarketDatabase
from marketsync.data.store import MarketDataStore
from marketsync.exchange.binance_client import BinanceClient
from marketsync.logging import get_logger, setup_logging
from marketsync.sync.batch import BatchSyncCoordinator
from marketsync.sync.engine import CandlestickSyncEngine
from marketsync.sync.scheduler import SyncScheduler
from marketsync.sync.service import MarketDataService


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Note: Does NOT connect the database or the exchange client -- that
    happens in the lifespan (API mode) or run() (scheduler-only mode).

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    database = MarketDatabase(settings.sync.db_path)
    store = MarketDataStore(database)
    exchange_client = BinanceClient(settings.exchange)

    engine = CandlestickSyncEngine.from_settings(
        exchange_client,
        store,
        settings.sync,
        page_limit=settings.exchange.page_limit,
    )
    coordinator = BatchSyncCoordinator(engine, batch_delay=settings.sync.batch_delay)
    service = MarketDataService(engine, coordinator, exchange_client, store)
    scheduler = SyncScheduler(service, settings.sync)

    return {
        "database": database,
        "store": store,
        "exchange_client": exchange_client,
        "engine": engine,
        "coordinator": coordinator,
        "service": service,
        "scheduler": scheduler,
    }


def _setup_signal_handlers(scheduler: SyncScheduler) -> None:
    """Stop the scheduler gracefully on SIGINT/SIGTERM.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("marketsync.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(scheduler.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: connects the database and exchange client, stores the
    service on app.state, starts the scheduler as a background task when
    enabled.

    On shutdown: stops and cancels the scheduler, closes the exchange
    client and the database.
    """
    logger = get_logger("marketsync.main")
    settings: AppSettings = app.state.settings
    components = app.state.components

    await components["database"].connect()
    await components["exchange_client"].connect()

    app.state.service = components["service"]
    app.state.scheduler = components["scheduler"]

    scheduler_task = None
    if settings.sync.scheduler_enabled:
        scheduler_task = asyncio.create_task(components["scheduler"].start())

    logger.info("lifespan_started", scheduler=settings.sync.scheduler_enabled)

    yield

    if scheduler_task is not None:
        await components["scheduler"].stop()
        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            pass

    await components["exchange_client"].close()
    await components["database"].close()

    logger.info("marketsync_stopped")


async def run() -> None:
    """Run the market data sync service.

    When the API is enabled (API_ENABLED=true, the default):
    - Creates the FastAPI app with lifespan
    - Serves the API and (optionally) the scheduler in one event loop via uvicorn

    When the API is disabled (API_ENABLED=false):
    - Runs the scheduler directly until SIGINT/SIGTERM
    """
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("marketsync.main")

    # 3-8. Build all components
    components = _build_components(settings)

    if settings.api.enabled:
        from marketsync.api.app import create_app

        app = create_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_api",
            host=settings.api.host,
            port=settings.api.port,
            scheduler=settings.sync.scheduler_enabled,
        )

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        _setup_signal_handlers(components["scheduler"])

        logger.info(
            "starting_scheduler_only",
            symbols=settings.sync.symbols,
            intervals=settings.sync.intervals,
        )

        try:
            await components["database"].connect()
            await components["exchange_client"].connect()
            await components["scheduler"].start()
        finally:
            await components["exchange_client"].close()
            await components["database"].close()
            logger.info("marketsync_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
