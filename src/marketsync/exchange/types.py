"""Exchange-specific type definitions and kline parsing.

All prices and volumes use Decimal built from the exchange's own strings.
Never use float for OHLCV values.
"""

from dataclasses import dataclass
from decimal import Decimal

# Binance kline record width: the 12th column is an unused placeholder
KLINE_FIELD_COUNT = 12


@dataclass
class Bar:
    """One kline as returned by the exchange, before it is bound to a stored symbol."""

    open_time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    close_time: int
    quote_volume: Decimal
    trade_count: int
    taker_buy_base_volume: Decimal
    taker_buy_quote_volume: Decimal


def parse_kline(row: list) -> Bar:
    """Parse one fixed-width kline record.

    Layout: [openTime, open, high, low, close, volume, closeTime,
    quoteVolume, tradeCount, takerBuyBase, takerBuyQuote, ignored].

    Raises:
        ValueError: If the record is shorter than the 11 used columns.
    """
    if len(row) < KLINE_FIELD_COUNT - 1:
        raise ValueError(f"Malformed kline record with {len(row)} fields")

    return Bar(
        open_time=int(row[0]),
        open=Decimal(str(row[1])),
        high=Decimal(str(row[2])),
        low=Decimal(str(row[3])),
        close=Decimal(str(row[4])),
        volume=Decimal(str(row[5])),
        close_time=int(row[6]),
        quote_volume=Decimal(str(row[7])),
        trade_count=int(row[8]),
        taker_buy_base_volume=Decimal(str(row[9])),
        taker_buy_quote_volume=Decimal(str(row[10])),
    )
