"""Exchange client layer -- Binance public market data over httpx."""

from marketsync.exchange.binance_client import BinanceClient
from marketsync.exchange.client import MAX_PAGE_LIMIT, ExchangeClient
from marketsync.exchange.types import Bar, parse_kline

__all__ = ["BinanceClient", "ExchangeClient", "Bar", "MAX_PAGE_LIMIT", "parse_kline"]
