"""Candlestick synchronization: per-pair engine, batch coordinator, service facade, scheduler."""

from marketsync.sync.batch import BatchSyncCoordinator
from marketsync.sync.classifier import (
    ExchangeSymbolClassifier,
    SuffixSymbolClassifier,
    SymbolClassifier,
)
from marketsync.sync.engine import CandlestickSyncEngine
from marketsync.sync.scheduler import SyncScheduler
from marketsync.sync.service import MarketDataService

__all__ = [
    "BatchSyncCoordinator",
    "CandlestickSyncEngine",
    "ExchangeSymbolClassifier",
    "MarketDataService",
    "SuffixSymbolClassifier",
    "SymbolClassifier",
    "SyncScheduler",
]
