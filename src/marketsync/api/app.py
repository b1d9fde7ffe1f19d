"""FastAPI application factory for the market data API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from marketsync.api import routes
from marketsync.exceptions import ExchangeError, StoreError, SymbolNotFoundError
from marketsync.logging import get_logger

log = get_logger(__name__)


async def _exchange_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.warning("exchange_request_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=502, content={"detail": str(exc)})


async def _store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error("store_request_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": str(exc)})


async def _not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        Configured FastAPI application. Route handlers expect a
        MarketDataService on app.state.service.
    """
    app = FastAPI(
        title="Market Data Sync API",
        lifespan=lifespan,
    )

    app.state.service = None
    app.state.scheduler = None

    app.add_exception_handler(ExchangeError, _exchange_error_handler)
    app.add_exception_handler(StoreError, _store_error_handler)
    app.add_exception_handler(SymbolNotFoundError, _not_found_handler)

    app.include_router(routes.router, prefix="/api/market")

    return app
