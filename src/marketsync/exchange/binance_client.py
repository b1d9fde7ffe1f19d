"""Binance exchange client implementation via httpx async.

Talks to the public REST endpoints (/klines, /exchangeInfo, /ticker/price)
with a shared httpx.AsyncClient. Kline values are kept as the exchange's
exact decimal strings and parsed straight into Decimal.

HTTP 429 responses are retried in a bounded loop with exponential
backoff; every other failure surfaces as ExchangeError.
"""

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from marketsync.config import ExchangeSettings
from marketsync.exceptions import ExchangeError, RateLimited
from marketsync.exchange.client import MAX_PAGE_LIMIT, ExchangeClient
from marketsync.exchange.types import Bar, parse_kline
from marketsync.logging import get_logger

logger = get_logger(__name__)


def _upstream_message(response: httpx.Response) -> str:
    """Binance error bodies look like {"code": -1121, "msg": "Invalid symbol."}."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("msg"):
        return str(body["msg"])
    return response.text or f"HTTP {response.status_code}"


class BinanceClient(ExchangeClient):
    """Concrete Binance spot market-data client using httpx.

    Args:
        settings: Base URL, timeout and retry budget.
        client: Optional pre-built httpx.AsyncClient (tests inject one
            backed by httpx.MockTransport).
    """

    def __init__(
        self,
        settings: ExchangeSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            headers={"Accept": "application/json"},
        )

    async def connect(self) -> None:
        """No session setup needed: every call is a self-contained public request."""
        logger.info(
            "binance_client_ready",
            base_url=str(self._client.base_url),
            max_retries=self._settings.max_retries,
        )

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()
        logger.info("binance_connection_closed")

    async def fetch_bars(
        self,
        symbol: str,
        interval: str,
        start_time: int | None = None,
        end_time: int | None = None,
        limit: int = MAX_PAGE_LIMIT,
    ) -> list[Bar]:
        """Fetch one page of klines from GET /klines, ascending by open_time."""
        params: dict[str, Any] = {
            "symbol": symbol,
            "interval": interval,
            "limit": max(1, min(limit, MAX_PAGE_LIMIT)),
        }
        if start_time is not None:
            params["startTime"] = start_time
        if end_time is not None:
            params["endTime"] = end_time

        rows = await self._request("/klines", params)
        if not isinstance(rows, list):
            raise ExchangeError("Malformed kline response: expected a list")

        try:
            bars = [parse_kline(row) for row in rows]
        except (ValueError, TypeError, InvalidOperation) as e:
            raise ExchangeError(f"Malformed kline response: {e}") from e

        bars.sort(key=lambda b: b.open_time)
        logger.debug(
            "fetched_bars",
            symbol=symbol,
            interval=interval,
            start_time=start_time,
            count=len(bars),
        )
        return bars

    async def get_current_price(self, symbol: str) -> Decimal:
        """Fetch the latest price from GET /ticker/price."""
        data = await self._request("/ticker/price", {"symbol": symbol})
        try:
            return Decimal(str(data["price"]))
        except (KeyError, TypeError, InvalidOperation) as e:
            raise ExchangeError(f"Failed to get current price for {symbol}") from e

    async def get_symbol_metadata(self, symbol: str) -> dict:
        """Fetch the symbol's record from GET /exchangeInfo."""
        data = await self._request("/exchangeInfo", {"symbol": symbol})
        symbols = data.get("symbols") if isinstance(data, dict) else None
        if not symbols:
            raise ExchangeError(f"Symbol {symbol} not found on exchange")
        return symbols[0]

    # ──────────────────────────────────────────────
    # Request path
    # ──────────────────────────────────────────────

    async def _call(self, path: str, params: dict) -> Any:
        """Perform one GET, translating failures into our taxonomy."""
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise ExchangeError(
                f"Binance API error: {str(e) or type(e).__name__}"
            ) from e

        if response.status_code == 429:
            raise RateLimited(_upstream_message(response))
        if response.is_error:
            raise ExchangeError(f"Binance API error: {_upstream_message(response)}")

        try:
            return response.json()
        except ValueError as e:
            raise ExchangeError("Binance API error: response is not JSON") from e

    async def _request(self, path: str, params: dict) -> Any:
        """Execute a request, retrying rate-limit responses with exponential backoff.

        Each RateLimited occurrence triggers exactly one retry of the same
        request, after rate_limit_backoff * 2**attempt seconds, up to
        max_retries retries. Raises ExchangeError once the budget is spent.
        """
        max_retries = self._settings.max_retries
        base_delay = self._settings.rate_limit_backoff

        for attempt in range(max_retries + 1):
            try:
                return await self._call(path, params)
            except RateLimited as e:
                if attempt == max_retries:
                    logger.error(
                        "rate_limit_retries_exhausted",
                        path=path,
                        attempts=attempt + 1,
                    )
                    raise ExchangeError(
                        f"Binance API error: rate limited after {max_retries} retries ({e})"
                    ) from e

                delay = base_delay * (2**attempt)
                logger.warning(
                    "rate_limit_exceeded",
                    path=path,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                )
                await asyncio.sleep(delay)

        raise ExchangeError("Binance API error: no attempts made")  # max_retries < 0
