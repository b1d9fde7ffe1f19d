"""Operation surface consumed by the HTTP layer and the scheduler.

Sync operations return structured results and never raise. Price and
symbol-info lookups pass straight through to the exchange and propagate
ExchangeError, since they have no partial-success shape.
"""

from decimal import Decimal

from marketsync.data.models import Candlestick, Symbol
from marketsync.data.store import MarketDataStore
from marketsync.exceptions import SymbolNotFoundError
from marketsync.exchange.client import ExchangeClient
from marketsync.models import BatchSyncResult, SyncResult
from marketsync.sync.batch import BatchSyncCoordinator
from marketsync.sync.engine import CandlestickSyncEngine


class MarketDataService:
    """Facade over the sync engine, batch coordinator, exchange and store."""

    def __init__(
        self,
        engine: CandlestickSyncEngine,
        coordinator: BatchSyncCoordinator,
        exchange: ExchangeClient,
        store: MarketDataStore,
    ) -> None:
        self._engine = engine
        self._coordinator = coordinator
        self._exchange = exchange
        self._store = store

    # Sync

    async def sync_one(self, symbol: str, interval: str) -> SyncResult:
        return await self._engine.sync_symbol_interval(symbol, interval)

    async def sync_many(self, symbols: list[str], interval: str) -> BatchSyncResult:
        return await self._coordinator.sync_many(symbols, interval)

    # Exchange pass-through

    async def get_current_price(self, symbol: str) -> Decimal:
        return await self._exchange.get_current_price(symbol.upper())

    async def get_symbol_info(self, symbol: str) -> dict:
        return await self._exchange.get_symbol_metadata(symbol.upper())

    # Store reads

    async def list_symbols(self, active_only: bool = False) -> list[Symbol]:
        return await self._store.list_symbols(active_only=active_only)

    async def set_symbol_active(self, symbol: str, is_active: bool) -> Symbol:
        """Raises SymbolNotFoundError if the code was never synced."""
        updated = await self._store.set_symbol_active(symbol.upper(), is_active)
        if updated is None:
            raise SymbolNotFoundError(f"Unknown symbol {symbol.upper()}")
        return updated

    async def get_candlesticks(
        self, symbol_id: int, interval: str, limit: int = 100
    ) -> list[Candlestick]:
        """Latest `limit` candlesticks, newest first."""
        return await self._store.get_latest_candlesticks(symbol_id, interval, limit)

    async def get_candlesticks_in_range(
        self, symbol_id: int, interval: str, start_time: int, end_time: int
    ) -> list[Candlestick]:
        return await self._store.get_candlesticks(
            symbol_id, interval, start_time=start_time, end_time=end_time
        )

    async def get_stats(self, intervals: list[str] | None = None) -> list[dict]:
        return await self._store.get_data_status(intervals)
