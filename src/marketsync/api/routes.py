"""JSON API endpoints for candlestick sync, symbol management and stored-data queries.

All handlers read the MarketDataService from app.state.service.
Decimals are returned as strings.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StringConstraints

from marketsync.data.models import decimal_text
from marketsync.logging import get_logger
from marketsync.models import Interval
from marketsync.sync.service import MarketDataService

log = get_logger(__name__)

router = APIRouter()

# Intervals reported by /stats when none are requested
DEFAULT_STATS_INTERVALS = ["1m", "5m", "15m", "1h", "4h", "1d"]

SymbolCode = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class SyncRequest(BaseModel):
    symbol: SymbolCode
    interval: Interval


class SyncMultipleRequest(BaseModel):
    symbols: list[SymbolCode] = Field(min_length=1)
    interval: Interval


def _service(request: Request) -> MarketDataService:
    return request.app.state.service


def _iso_timestamp(ms: int | None) -> str | None:
    """Epoch milliseconds to "2023-11-14T22:00:00.000Z"."""
    if ms is None:
        return None
    moment = datetime.fromtimestamp(ms // 1000, tz=timezone.utc)
    moment = moment.replace(microsecond=(ms % 1000) * 1000)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.post("/sync")
async def sync_candlesticks(request: Request, body: SyncRequest) -> JSONResponse:
    """Sync the next page of candlesticks for one symbol and interval."""
    result = await _service(request).sync_one(body.symbol, body.interval.value)
    return JSONResponse(content=result.to_dict())


@router.post("/sync-multiple")
async def sync_multiple_symbols(request: Request, body: SyncMultipleRequest) -> JSONResponse:
    """Sync several symbols sequentially for one interval."""
    batch = await _service(request).sync_many(body.symbols, body.interval.value)
    return JSONResponse(content=batch.to_dict())


@router.get("/symbols")
async def get_symbols(request: Request) -> JSONResponse:
    symbols = await _service(request).list_symbols()
    return JSONResponse(content=[s.to_dict() for s in symbols])


@router.get("/symbols/active")
async def get_active_symbols(request: Request) -> JSONResponse:
    symbols = await _service(request).list_symbols(active_only=True)
    return JSONResponse(content=[s.to_dict() for s in symbols])


@router.post("/symbols/{symbol}/activate")
async def activate_symbol(request: Request, symbol: str) -> JSONResponse:
    return await _set_active(request, symbol, True)


@router.post("/symbols/{symbol}/deactivate")
async def deactivate_symbol(request: Request, symbol: str) -> JSONResponse:
    return await _set_active(request, symbol, False)


async def _set_active(request: Request, symbol: str, is_active: bool) -> JSONResponse:
    updated = await _service(request).set_symbol_active(symbol, is_active)
    return JSONResponse(content=updated.to_dict())


@router.get("/candlesticks/{symbol_id}")
async def get_candlesticks(
    request: Request,
    symbol_id: int,
    interval: Interval,
    limit: int = Query(100, ge=1, le=5000),
) -> JSONResponse:
    """Latest candlesticks for a stored symbol, newest first."""
    candles = await _service(request).get_candlesticks(symbol_id, interval.value, limit)
    return JSONResponse(content=[c.to_dict() for c in candles])


@router.get("/candlesticks/{symbol_id}/range")
async def get_candlesticks_in_range(
    request: Request,
    symbol_id: int,
    interval: Interval,
    start_time: int,
    end_time: int,
) -> JSONResponse:
    """Candlesticks with open_time in [start_time, end_time], oldest first."""
    if start_time > end_time:
        return JSONResponse(
            status_code=422,
            content={"detail": "start_time must not be after end_time"},
        )
    candles = await _service(request).get_candlesticks_in_range(
        symbol_id, interval.value, start_time, end_time
    )
    return JSONResponse(content=[c.to_dict() for c in candles])


@router.get("/price/{symbol}")
async def get_current_price(request: Request, symbol: str) -> JSONResponse:
    price = await _service(request).get_current_price(symbol)
    return JSONResponse(content={"symbol": symbol.upper(), "price": decimal_text(price)})


@router.get("/symbol-info/{symbol}")
async def get_symbol_info(request: Request, symbol: str) -> JSONResponse:
    info = await _service(request).get_symbol_info(symbol)
    return JSONResponse(content=info)


@router.get("/stats")
async def get_stats(
    request: Request,
    interval: list[Interval] | None = Query(None),
) -> JSONResponse:
    """Per-symbol candlestick counts and open_time coverage (ISO-8601, UTC)."""
    intervals = [iv.value for iv in interval] if interval else DEFAULT_STATS_INTERVALS
    stats = await _service(request).get_stats(intervals)
    for entry in stats:
        for coverage in entry["intervals"].values():
            coverage["oldest"] = _iso_timestamp(coverage["oldest"])
            coverage["latest"] = _iso_timestamp(coverage["latest"])
    return JSONResponse(content=stats)
