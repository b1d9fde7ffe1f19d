"""Typed SQLite read/write abstraction for symbols and candlesticks.

Provides MarketDataStore with typed methods for the sync engine (symbol
lookup/creation, cursor reads, existence checks, batch inserts) and for
the read side (range queries, latest-N, data status). All SQL is isolated
behind this interface, and every aiosqlite failure leaves it as StoreError.

CRITICAL: All price/volume values stored as TEXT in SQLite, restored as Decimal on read.
"""

import functools
import time
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Any, TypeVar

import aiosqlite

from marketsync.data.database import MarketDatabase
from marketsync.data.models import Candlestick, Symbol, decimal_text
from marketsync.exceptions import StoreError
from marketsync.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_SYMBOL_COLUMNS = "id, symbol, base_asset, quote_asset, is_active, created_at, updated_at"

_CANDLE_COLUMNS = (
    "symbol_id, interval, open_time, close_time, open, high, low, close, "
    "volume, quote_volume, trade_count, taker_buy_base_volume, "
    "taker_buy_quote_volume, created_at"
)

_INSERT_CANDLE_SQL = (
    f"INSERT OR IGNORE INTO candlesticks ({_CANDLE_COLUMNS}) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
)

_UPSERT_CANDLE_SQL = (
    f"INSERT INTO candlesticks ({_CANDLE_COLUMNS}) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
    "ON CONFLICT (symbol_id, interval, open_time) DO UPDATE SET "
    "close_time = excluded.close_time, open = excluded.open, "
    "high = excluded.high, low = excluded.low, close = excluded.close, "
    "volume = excluded.volume, quote_volume = excluded.quote_volume, "
    "trade_count = excluded.trade_count, "
    "taker_buy_base_volume = excluded.taker_buy_base_volume, "
    "taker_buy_quote_volume = excluded.taker_buy_quote_volume"
)


def _store_operation(
    fn: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """Re-raise database failures from a store method as StoreError."""

    @functools.wraps(fn)
    async def wrapper(self: "MarketDataStore", *args: Any, **kwargs: Any) -> T:
        try:
            return await fn(self, *args, **kwargs)
        except (aiosqlite.Error, RuntimeError, ValueError) as e:
            logger.error("store_operation_failed", operation=fn.__name__, error=str(e))
            raise StoreError(f"{fn.__name__} failed: {e}") from e

    return wrapper


def _now_ms() -> int:
    return int(time.time() * 1000)


def _row_to_symbol(row: tuple) -> Symbol:
    return Symbol(
        id=row[0],
        symbol=row[1],
        base_asset=row[2],
        quote_asset=row[3],
        is_active=bool(row[4]),
        created_at=row[5],
        updated_at=row[6],
    )


def _row_to_candlestick(row: tuple) -> Candlestick:
    return Candlestick(
        symbol_id=row[0],
        interval=row[1],
        open_time=row[2],
        close_time=row[3],
        open=Decimal(row[4]),
        high=Decimal(row[5]),
        low=Decimal(row[6]),
        close=Decimal(row[7]),
        volume=Decimal(row[8]),
        quote_volume=Decimal(row[9]),
        trade_count=row[10],
        taker_buy_base_volume=Decimal(row[11]),
        taker_buy_quote_volume=Decimal(row[12]),
        created_at=row[13],
    )


def _candlestick_params(candle: Candlestick, now_ms: int) -> tuple:
    return (
        candle.symbol_id,
        candle.interval,
        candle.open_time,
        candle.close_time,
        decimal_text(candle.open),
        decimal_text(candle.high),
        decimal_text(candle.low),
        decimal_text(candle.close),
        decimal_text(candle.volume),
        decimal_text(candle.quote_volume),
        candle.trade_count,
        decimal_text(candle.taker_buy_base_volume),
        decimal_text(candle.taker_buy_quote_volume),
        now_ms,
    )


class MarketDataStore:
    """Async SQLite store for symbols and OHLCV candlesticks.

    Wraps MarketDatabase with typed read/write methods. All SQL access
    goes through self._database.db (the aiosqlite Connection).

    Usage:
        async with MarketDatabase("data/market.db") as database:
            store = MarketDataStore(database)
            added = await store.insert_candlesticks(candles)
    """

    def __init__(self, database: MarketDatabase) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Symbols
    # ──────────────────────────────────────────────

    @_store_operation
    async def get_symbol(self, symbol: str) -> Symbol | None:
        """Look up a symbol by its exchange code."""
        cursor = await self._database.db.execute(
            f"SELECT {_SYMBOL_COLUMNS} FROM symbols WHERE symbol = ?",
            (symbol,),
        )
        row = await cursor.fetchone()
        return _row_to_symbol(row) if row is not None else None

    @_store_operation
    async def get_symbol_by_id(self, symbol_id: int) -> Symbol | None:
        cursor = await self._database.db.execute(
            f"SELECT {_SYMBOL_COLUMNS} FROM symbols WHERE id = ?",
            (symbol_id,),
        )
        row = await cursor.fetchone()
        return _row_to_symbol(row) if row is not None else None

    @_store_operation
    async def create_symbol(
        self,
        symbol: str,
        base_asset: str,
        quote_asset: str,
        is_active: bool = True,
    ) -> Symbol:
        """Create a symbol row, or return the existing one for the same code.

        INSERT OR IGNORE makes a concurrent first sync of the same code
        harmless: the loser reads back the winner's row, whose base/quote
        assets stay as first written.
        """
        now_ms = _now_ms()
        db = self._database.db
        cursor = await db.execute(
            "INSERT OR IGNORE INTO symbols "
            "(symbol, base_asset, quote_asset, is_active, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (symbol, base_asset, quote_asset, 1 if is_active else 0, now_ms, now_ms),
        )
        await db.commit()
        if cursor.rowcount:
            logger.info(
                "symbol_created",
                symbol=symbol,
                base_asset=base_asset,
                quote_asset=quote_asset,
            )

        cursor = await db.execute(
            f"SELECT {_SYMBOL_COLUMNS} FROM symbols WHERE symbol = ?",
            (symbol,),
        )
        row = await cursor.fetchone()
        if row is None:
            raise StoreError(f"Symbol {symbol} missing after insert")
        return _row_to_symbol(row)

    @_store_operation
    async def list_symbols(self, active_only: bool = False) -> list[Symbol]:
        """List symbols, newest first, optionally filtered to active only."""
        query = f"SELECT {_SYMBOL_COLUMNS} FROM symbols"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY created_at DESC, id DESC"

        cursor = await self._database.db.execute(query)
        rows = await cursor.fetchall()
        return [_row_to_symbol(row) for row in rows]

    @_store_operation
    async def set_symbol_active(self, symbol: str, is_active: bool) -> Symbol | None:
        """Activate or deactivate a symbol. Returns None if the code is unknown."""
        db = self._database.db
        cursor = await db.execute(
            "UPDATE symbols SET is_active = ?, updated_at = ? WHERE symbol = ?",
            (1 if is_active else 0, _now_ms(), symbol),
        )
        await db.commit()
        if cursor.rowcount == 0:
            return None

        logger.info("symbol_activation_changed", symbol=symbol, is_active=is_active)
        cursor = await db.execute(
            f"SELECT {_SYMBOL_COLUMNS} FROM symbols WHERE symbol = ?",
            (symbol,),
        )
        row = await cursor.fetchone()
        return _row_to_symbol(row) if row is not None else None

    # ──────────────────────────────────────────────
    # Candlestick writes
    # ──────────────────────────────────────────────

    @_store_operation
    async def insert_candlestick(self, candle: Candlestick) -> bool:
        """Insert one candlestick. Returns False if its key already exists."""
        cursor = await self._database.db.execute(
            _INSERT_CANDLE_SQL, _candlestick_params(candle, _now_ms())
        )
        await self._database.db.commit()
        return cursor.rowcount == 1

    @_store_operation
    async def insert_candlesticks(self, candles: list[Candlestick]) -> int:
        """Insert candlesticks, ignoring duplicates via INSERT OR IGNORE.

        Existing rows are never modified. Returns the number of actually
        inserted rows (excludes ignored duplicates).
        """
        if not candles:
            return 0

        now_ms = _now_ms()
        cursor = await self._database.db.executemany(
            _INSERT_CANDLE_SQL,
            [_candlestick_params(c, now_ms) for c in candles],
        )
        await self._database.db.commit()

        inserted = cursor.rowcount
        logger.debug(
            "inserted_candlesticks",
            total=len(candles),
            inserted=inserted,
        )
        return inserted

    @_store_operation
    async def upsert_candlesticks(self, candles: list[Candlestick]) -> int:
        """Insert or overwrite candlesticks by key.

        Administrative correction path only: the sync engine never calls
        this, so closed bars are not rewritten by a re-fetch.
        Returns the number of rows inserted or updated.
        """
        if not candles:
            return 0

        now_ms = _now_ms()
        cursor = await self._database.db.executemany(
            _UPSERT_CANDLE_SQL,
            [_candlestick_params(c, now_ms) for c in candles],
        )
        await self._database.db.commit()

        logger.info("upserted_candlesticks", total=len(candles), affected=cursor.rowcount)
        return cursor.rowcount

    @_store_operation
    async def delete_candlesticks(
        self,
        symbol_id: int,
        interval: str,
        start_time: int,
        end_time: int,
    ) -> int:
        """Delete candlesticks with open_time in [start_time, end_time]."""
        cursor = await self._database.db.execute(
            "DELETE FROM candlesticks "
            "WHERE symbol_id = ? AND interval = ? AND open_time BETWEEN ? AND ?",
            (symbol_id, interval, start_time, end_time),
        )
        await self._database.db.commit()

        logger.info(
            "deleted_candlesticks",
            symbol_id=symbol_id,
            interval=interval,
            deleted=cursor.rowcount,
        )
        return cursor.rowcount

    # ──────────────────────────────────────────────
    # Candlestick reads
    # ──────────────────────────────────────────────

    @_store_operation
    async def candlestick_exists(
        self, symbol_id: int, interval: str, open_time: int
    ) -> bool:
        cursor = await self._database.db.execute(
            "SELECT 1 FROM candlesticks "
            "WHERE symbol_id = ? AND interval = ? AND open_time = ? LIMIT 1",
            (symbol_id, interval, open_time),
        )
        return await cursor.fetchone() is not None

    @_store_operation
    async def get_latest_open_time(self, symbol_id: int, interval: str) -> int | None:
        """Return the sync cursor: max open_time stored for (symbol, interval)."""
        cursor = await self._database.db.execute(
            "SELECT MAX(open_time) FROM candlesticks "
            "WHERE symbol_id = ? AND interval = ?",
            (symbol_id, interval),
        )
        row = await cursor.fetchone()
        return row[0] if row is not None else None

    @_store_operation
    async def get_oldest_open_time(self, symbol_id: int, interval: str) -> int | None:
        cursor = await self._database.db.execute(
            "SELECT MIN(open_time) FROM candlesticks "
            "WHERE symbol_id = ? AND interval = ?",
            (symbol_id, interval),
        )
        row = await cursor.fetchone()
        return row[0] if row is not None else None

    @_store_operation
    async def count_candlesticks(self, symbol_id: int, interval: str) -> int:
        cursor = await self._database.db.execute(
            "SELECT COUNT(*) FROM candlesticks WHERE symbol_id = ? AND interval = ?",
            (symbol_id, interval),
        )
        return (await cursor.fetchone())[0]

    @_store_operation
    async def get_candlesticks(
        self,
        symbol_id: int,
        interval: str,
        start_time: int | None = None,
        end_time: int | None = None,
        limit: int | None = None,
    ) -> list[Candlestick]:
        """Query candlesticks within an optional open_time range (inclusive).

        Returns list of Candlestick ordered by open_time ASC.
        """
        conditions = ["symbol_id = ?", "interval = ?"]
        params: list = [symbol_id, interval]

        if start_time is not None:
            conditions.append("open_time >= ?")
            params.append(start_time)
        if end_time is not None:
            conditions.append("open_time <= ?")
            params.append(end_time)

        where = " AND ".join(conditions)
        query = (
            f"SELECT {_CANDLE_COLUMNS} FROM candlesticks "
            f"WHERE {where} ORDER BY open_time ASC"
        )
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        cursor = await self._database.db.execute(query, params)
        rows = await cursor.fetchall()
        return [_row_to_candlestick(row) for row in rows]

    @_store_operation
    async def get_latest_candlesticks(
        self, symbol_id: int, interval: str, limit: int = 100
    ) -> list[Candlestick]:
        """Return the most recent `limit` candlesticks, newest first."""
        cursor = await self._database.db.execute(
            f"SELECT {_CANDLE_COLUMNS} FROM candlesticks "
            "WHERE symbol_id = ? AND interval = ? "
            "ORDER BY open_time DESC LIMIT ?",
            (symbol_id, interval, limit),
        )
        rows = await cursor.fetchall()
        return [_row_to_candlestick(row) for row in rows]

    @_store_operation
    async def get_data_status(self, intervals: list[str] | None = None) -> list[dict]:
        """Per-symbol coverage for the stats endpoint.

        Returns one dict per symbol with an "intervals" map of
        {count, oldest, latest} (open_time ms). With `intervals` given,
        every listed interval is reported, zero-filled when empty;
        otherwise only intervals that hold data are reported.
        """
        db = self._database.db

        cursor = await db.execute(
            "SELECT symbol_id, interval, COUNT(*), MIN(open_time), MAX(open_time) "
            "FROM candlesticks GROUP BY symbol_id, interval"
        )
        coverage: dict[int, dict[str, dict]] = {}
        for symbol_id, interval, count, oldest, latest in await cursor.fetchall():
            coverage.setdefault(symbol_id, {})[interval] = {
                "count": count,
                "oldest": oldest,
                "latest": latest,
            }

        cursor = await db.execute(
            f"SELECT {_SYMBOL_COLUMNS} FROM symbols ORDER BY created_at DESC, id DESC"
        )
        status = []
        for row in await cursor.fetchall():
            symbol = _row_to_symbol(row)
            found = coverage.get(symbol.id, {})
            if intervals is None:
                per_interval = found
            else:
                per_interval = {
                    iv: found.get(iv, {"count": 0, "oldest": None, "latest": None})
                    for iv in intervals
                }
            status.append(
                {
                    "symbol": symbol.symbol,
                    "id": symbol.id,
                    "is_active": symbol.is_active,
                    "intervals": per_interval,
                }
            )
        return status
