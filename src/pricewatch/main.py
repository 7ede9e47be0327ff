"""Entry point for the price watch service.

Wires all components together, optionally embeds the FastAPI query API,
and starts the scheduler. When the API is enabled (default), the
scheduler and the API share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. PriceDatabase + PriceStore (persistence)
2. CcxtPriceSource (upstream prices)
3. EmailNotifier (SMTP delivery)
4. AlertEvaluator (volatility + threshold checks)
5. Scheduler (fetch -> persist -> evaluate -> notify loop)
6. QueryService (hourly stats, alerts, swap quotes)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from pricewatch.alerts.evaluator import AlertEvaluator
from pricewatch.config import AppSettings
from pricewatch.data.database import PriceDatabase
from pricewatch.data.store import PriceStore
from pricewatch.logging import get_logger, setup_logging
from pricewatch.notify.email_notifier import EmailNotifier
from pricewatch.query import QueryService
from pricewatch.scheduler import Scheduler
from pricewatch.source.ccxt_source import CcxtPriceSource


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Does NOT open the database or load markets -- that happens in
    _connect() called from the lifespan (API mode) or run().
    """
    database = PriceDatabase(settings.storage.db_path)
    store = PriceStore(database)
    price_source = CcxtPriceSource(settings.source)
    notifier = EmailNotifier(settings.notifier)
    evaluator = AlertEvaluator(store, settings.tracker)

    scheduler = Scheduler(
        settings=settings,
        price_source=price_source,
        store=store,
        evaluator=evaluator,
        notifier=notifier,
    )
    query_service = QueryService(
        store=store,
        price_source=price_source,
        swap_settings=settings.swap,
        source_settings=settings.source,
    )

    return {
        "database": database,
        "store": store,
        "price_source": price_source,
        "notifier": notifier,
        "evaluator": evaluator,
        "scheduler": scheduler,
        "query_service": query_service,
    }


async def _connect(components: dict[str, Any]) -> None:
    await components["database"].connect()
    await components["price_source"].connect()


async def _disconnect(components: dict[str, Any]) -> None:
    await components["price_source"].close()
    await components["database"].close()


def _setup_signal_handlers(scheduler: Scheduler) -> None:
    """Register SIGINT/SIGTERM to stop the scheduler gracefully.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("pricewatch.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(scheduler.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: stores components on app.state, connects the database and
    price source, starts the scheduler as a background task.

    On shutdown: stops the scheduler, cancels its task, disconnects.
    """
    logger = get_logger("pricewatch.main")
    components = app.state.components

    app.state.query_service = components["query_service"]
    app.state.scheduler = components["scheduler"]

    await _connect(components)

    scheduler_task = asyncio.create_task(components["scheduler"].start())

    logger.info("lifespan_started", assets=app.state.settings.tracker.assets)

    yield

    await components["scheduler"].stop()
    scheduler_task.cancel()
    try:
        await scheduler_task
    except asyncio.CancelledError:
        pass

    await _disconnect(components)

    logger.info("pricewatch_stopped")


async def run() -> None:
    """Run the price watch service.

    When the API is enabled (API_ENABLED=true, the default), uvicorn serves
    the query API and the lifespan runs the scheduler. Otherwise the
    scheduler runs alone with its own signal handlers.
    """
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("pricewatch.main")

    components = _build_components(settings)

    if settings.api.enabled:
        from pricewatch.api.app import create_app

        app = create_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_api",
            host=settings.api.host,
            port=settings.api.port,
        )

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        _setup_signal_handlers(components["scheduler"])

        logger.info(
            "starting_without_api",
            assets=settings.tracker.assets,
            interval_seconds=settings.tracker.interval_seconds,
        )

        try:
            await _connect(components)
            await components["scheduler"].start()
        finally:
            await _disconnect(components)
            logger.info("pricewatch_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
