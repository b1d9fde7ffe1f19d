"""Abstract exchange client interface.

Defines the contract for all exchange implementations.
The sync engine depends only on this interface, keeping Binance-specific
details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from marketsync.exchange.types import Bar

# Upstream hard cap on klines per request
MAX_PAGE_LIMIT = 1000


class ExchangeClient(ABC):
    """Abstract base class for exchange market-data clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Prepare the client for requests."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the HTTP connection pool."""
        ...

    @abstractmethod
    async def fetch_bars(
        self,
        symbol: str,
        interval: str,
        start_time: int | None = None,
        end_time: int | None = None,
        limit: int = MAX_PAGE_LIMIT,
    ) -> list[Bar]:
        """Fetch one page of klines, ascending by open_time.

        limit is clamped to MAX_PAGE_LIMIT. Without start_time the exchange
        returns the most recent page.

        Pagination is NOT handled here -- callers are responsible for
        advancing start_time between calls.
        """
        ...

    @abstractmethod
    async def get_current_price(self, symbol: str) -> Decimal:
        """Return the latest traded price for a symbol."""
        ...

    @abstractmethod
    async def get_symbol_metadata(self, symbol: str) -> dict:
        """Return the exchange's metadata record for a symbol.

        Includes at least "symbol", "baseAsset" and "quoteAsset".
        """
        ...
