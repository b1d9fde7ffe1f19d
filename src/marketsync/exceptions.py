"""Custom exceptions for the candlestick sync service.

Exchange, store and validation errors all live here to avoid circular
imports between the exchange, data and sync packages.
"""


class MarketSyncError(Exception):
    """Base exception for all marketsync errors."""


class ExchangeError(MarketSyncError):
    """Raised on a non-2xx response or transport failure from the exchange.

    Also raised once the rate-limit retry budget is exhausted.
    """


class RateLimited(ExchangeError):
    """Raised when the exchange throttles a request (HTTP 429).

    Transient: the exchange client retries it internally and only lets an
    ExchangeError escape after the last attempt.
    """


class StoreError(MarketSyncError):
    """Raised when the persistence layer fails (constraint, I/O, not connected)."""


class UnknownIntervalError(MarketSyncError):
    """Raised when an interval code is outside the supported enumeration."""


class SymbolNotFoundError(MarketSyncError):
    """Raised when a symbol code is not known to the store or the exchange."""
