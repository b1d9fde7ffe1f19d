"""Market data persistence layer.

Provides data models, SQLite database management and the typed read/write
store for symbols and OHLCV candlesticks.
"""

from marketsync.data.database import MarketDatabase
from marketsync.data.models import Candlestick, Symbol
from marketsync.data.store import MarketDataStore

__all__ = [
    "Candlestick",
    "MarketDatabase",
    "MarketDataStore",
    "Symbol",
]
