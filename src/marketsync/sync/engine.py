"""Incremental candlestick sync for one (symbol, interval) pair.

Each call re-derives its cursor from the store, fetches the next page
from the exchange, and inserts only bars whose key is not already stored.
Nothing is cached between calls, so a failed or interrupted sync is
resumed simply by calling it again.

Algorithm per call:
  1. Validate the interval code
  2. Resolve or create the Symbol row (classifier decides base/quote once)
  3. Cursor = MAX(open_time); start = cursor + interval duration
  4. Fetch one page (<= 1000 bars)
  5. Skip bars whose (symbol_id, interval, open_time) already exists
  6. Batch-insert the rest
  7. Report the max open_time of the whole page as the new cursor
"""

import asyncio
import weakref

import structlog

from marketsync.config import SyncSettings
from marketsync.data.models import Candlestick, Symbol
from marketsync.data.store import MarketDataStore
from marketsync.exchange.client import MAX_PAGE_LIMIT, ExchangeClient
from marketsync.logging import get_logger
from marketsync.models import SyncResult, interval_to_ms, parse_interval
from marketsync.sync.classifier import (
    ExchangeSymbolClassifier,
    SuffixSymbolClassifier,
    SymbolClassifier,
)

logger = get_logger(__name__)


class CandlestickSyncEngine:
    """Mirrors exchange klines into the store, one page per call.

    The engine is the error boundary of the sync path: every failure
    below it (unknown interval, exchange, store) comes back as a
    SyncResult with success=False.

    Syncs of the same (symbol, interval) inside this process are
    serialized by a keyed lock. Across processes, the store's unique key
    and INSERT OR IGNORE keep duplicates out.

    Args:
        exchange: Exchange client used for the kline fetch.
        store: Persistent store for symbols and candlesticks.
        classifier: Base/quote policy for newly seen symbols.
        page_limit: Bars requested per call (clamped by the client).
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        store: MarketDataStore,
        classifier: SymbolClassifier | None = None,
        page_limit: int = MAX_PAGE_LIMIT,
    ) -> None:
        self._exchange = exchange
        self._store = store
        self._classifier = classifier or SuffixSymbolClassifier()
        self._page_limit = page_limit
        # Entries vanish once no sync holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @classmethod
    def from_settings(
        cls,
        exchange: ExchangeClient,
        store: MarketDataStore,
        settings: SyncSettings,
        page_limit: int = MAX_PAGE_LIMIT,
    ) -> "CandlestickSyncEngine":
        """Build an engine with the classifier selected by SYNC_CLASSIFIER."""
        classifier: SymbolClassifier
        if settings.classifier == "exchange":
            classifier = ExchangeSymbolClassifier(exchange)
        else:
            classifier = SuffixSymbolClassifier()
        return cls(exchange, store, classifier=classifier, page_limit=page_limit)

    async def sync_symbol_interval(self, symbol_code: str, interval: str) -> SyncResult:
        """Sync the next page of bars for one symbol and interval. Never raises."""
        code = symbol_code.strip().upper()

        with structlog.contextvars.bound_contextvars(symbol=code, interval=interval):
            try:
                if not code:
                    raise ValueError("Symbol code must not be empty")
                parse_interval(interval)
                async with self._lock_for(code, interval):
                    return await self._sync(code, interval)
            except Exception as e:
                logger.error("sync_failed", error=str(e), exc_info=True)
                return SyncResult(
                    symbol=code,
                    interval=interval,
                    success=False,
                    message=f"Sync failed: {e}",
                    bars_added=0,
                )

    def _lock_for(self, code: str, interval: str) -> asyncio.Lock:
        lock = self._locks.get((code, interval))
        if lock is None:
            lock = asyncio.Lock()
            self._locks[(code, interval)] = lock
        return lock

    async def _sync(self, code: str, interval: str) -> SyncResult:
        symbol = await self._resolve_symbol(code)

        cursor = await self._store.get_latest_open_time(symbol.id, interval)
        start_time: int | None = None
        if cursor is not None:
            start_time = cursor + interval_to_ms(interval)
            logger.info("sync_resuming", cursor=cursor, start_time=start_time)
        else:
            logger.info("sync_initial_fetch", limit=self._page_limit)

        bars = await self._exchange.fetch_bars(
            code, interval, start_time=start_time, limit=self._page_limit
        )

        if not bars:
            logger.info("sync_up_to_date", cursor=cursor)
            return SyncResult(
                symbol=code,
                interval=interval,
                success=True,
                message="No new candlesticks to sync",
                bars_added=0,
                latest_timestamp=cursor,
            )

        candles = [Candlestick.from_bar(symbol.id, interval, bar) for bar in bars]

        # Existing keys are skipped, never overwritten
        new_candles = []
        for candle in candles:
            if not await self._store.candlestick_exists(*candle.key):
                new_candles.append(candle)

        added = await self._store.insert_candlesticks(new_candles) if new_candles else 0
        latest = max(c.open_time for c in candles)

        logger.info(
            "sync_complete",
            fetched=len(candles),
            added=added,
            skipped=len(candles) - added,
            latest_timestamp=latest,
        )
        return SyncResult(
            symbol=code,
            interval=interval,
            success=True,
            message=f"Successfully synced {added} candlesticks",
            bars_added=added,
            latest_timestamp=latest,
        )

    async def _resolve_symbol(self, code: str) -> Symbol:
        symbol = await self._store.get_symbol(code)
        if symbol is not None:
            return symbol

        base_asset, quote_asset = await self._classifier.classify(code)
        return await self._store.create_symbol(code, base_asset, quote_asset)
