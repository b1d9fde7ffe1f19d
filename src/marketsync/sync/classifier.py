"""Base/quote asset classification for newly seen symbol codes.

The split is decided once, when a symbol is first synced. The default
policy guesses from known quote-asset suffixes; ExchangeSymbolClassifier
asks the exchange for the exact split and only falls back to guessing
when that lookup fails.
"""

from abc import ABC, abstractmethod

from marketsync.exceptions import ExchangeError
from marketsync.exchange.client import ExchangeClient
from marketsync.logging import get_logger

logger = get_logger(__name__)

# Checked in order: "USDT" must win over "USD"
DEFAULT_QUOTE_ASSETS: tuple[str, ...] = ("USDT", "BUSD", "BTC", "ETH", "BNB", "USDC", "USD")

UNKNOWN_QUOTE = "UNKNOWN"


class SymbolClassifier(ABC):
    """Strategy for splitting a symbol code into (base_asset, quote_asset)."""

    @abstractmethod
    async def classify(self, symbol: str) -> tuple[str, str]:
        ...


class SuffixSymbolClassifier(SymbolClassifier):
    """Greedy suffix match against a priority-ordered quote-asset list.

    Fallbacks when no known quote matches:
    - codes longer than 4 characters: last 4 characters are the quote
    - otherwise: the whole code is the base, quote is UNKNOWN
    Both fallbacks are logged as classification_ambiguous.
    """

    def __init__(self, quote_assets: tuple[str, ...] = DEFAULT_QUOTE_ASSETS) -> None:
        self._quote_assets = quote_assets

    def split(self, symbol: str) -> tuple[str, str]:
        for quote in self._quote_assets:
            if symbol.endswith(quote) and len(symbol) > len(quote):
                return symbol[: -len(quote)], quote

        logger.warning("classification_ambiguous", symbol=symbol)
        if len(symbol) > 4:
            return symbol[:-4], symbol[-4:]
        return symbol, UNKNOWN_QUOTE

    async def classify(self, symbol: str) -> tuple[str, str]:
        return self.split(symbol)


class ExchangeSymbolClassifier(SymbolClassifier):
    """Exact split from the exchange's symbol metadata."""

    def __init__(
        self,
        exchange: ExchangeClient,
        fallback: SymbolClassifier | None = None,
    ) -> None:
        self._exchange = exchange
        self._fallback = fallback or SuffixSymbolClassifier()

    async def classify(self, symbol: str) -> tuple[str, str]:
        try:
            metadata = await self._exchange.get_symbol_metadata(symbol)
        except ExchangeError as e:
            logger.warning("symbol_metadata_unavailable", symbol=symbol, error=str(e))
            return await self._fallback.classify(symbol)

        base = metadata.get("baseAsset")
        quote = metadata.get("quoteAsset")
        if not base or not quote:
            return await self._fallback.classify(symbol)
        return base, quote
