"""Data models for stored symbols and candlesticks.

CRITICAL: All price and volume values use Decimal. Never use float for OHLCV data.
"""

from dataclasses import dataclass
from decimal import Decimal

from marketsync.exchange.types import Bar


def decimal_text(value: Decimal) -> str:
    """Render a Decimal positionally ("0.00000045", never "4.5E-7")."""
    return format(value, "f")


@dataclass
class Symbol:
    """A tradable pair known to the store.

    base_asset/quote_asset are derived once at creation and never rewritten.
    """

    id: int
    symbol: str
    base_asset: str
    quote_asset: str
    is_active: bool
    created_at: int  # Unix milliseconds
    updated_at: int  # Unix milliseconds

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "base_asset": self.base_asset,
            "quote_asset": self.quote_asset,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class Candlestick:
    """A single stored OHLCV bar, unique by (symbol_id, interval, open_time).

    Stored in SQLite with Decimal fields as TEXT to preserve precision.
    """

    symbol_id: int
    interval: str
    open_time: int
    close_time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    quote_volume: Decimal
    trade_count: int
    taker_buy_base_volume: Decimal
    taker_buy_quote_volume: Decimal
    created_at: int | None = None

    @classmethod
    def from_bar(cls, symbol_id: int, interval: str, bar: Bar) -> "Candlestick":
        """Bind an exchange bar to a stored symbol and interval."""
        return cls(
            symbol_id=symbol_id,
            interval=interval,
            open_time=bar.open_time,
            close_time=bar.close_time,
            open=bar.open,
            high=bar.high,
            low=bar.low,
            close=bar.close,
            volume=bar.volume,
            quote_volume=bar.quote_volume,
            trade_count=bar.trade_count,
            taker_buy_base_volume=bar.taker_buy_base_volume,
            taker_buy_quote_volume=bar.taker_buy_quote_volume,
        )

    @property
    def key(self) -> tuple[int, str, int]:
        return (self.symbol_id, self.interval, self.open_time)

    def to_dict(self) -> dict:
        """JSON-friendly dict with Decimals rendered as strings."""
        return {
            "symbol_id": self.symbol_id,
            "interval": self.interval,
            "open_time": self.open_time,
            "close_time": self.close_time,
            "open": decimal_text(self.open),
            "high": decimal_text(self.high),
            "low": decimal_text(self.low),
            "close": decimal_text(self.close),
            "volume": decimal_text(self.volume),
            "quote_volume": decimal_text(self.quote_volume),
            "trade_count": self.trade_count,
            "taker_buy_base_volume": decimal_text(self.taker_buy_base_volume),
            "taker_buy_quote_volume": decimal_text(self.taker_buy_quote_volume),
            "created_at": self.created_at,
        }
