"""Sequential multi-symbol sync with inter-request pacing."""

import asyncio

from marketsync.logging import get_logger
from marketsync.models import BatchSyncResult
from marketsync.sync.engine import CandlestickSyncEngine

logger = get_logger(__name__)


class BatchSyncCoordinator:
    """Runs the sync engine over a list of symbols, one at a time.

    Symbols are synced strictly in the given order with a fixed pause
    between them to stay under the exchange's request weight limits.
    A failing symbol is recorded in its own result and the batch moves on.
    """

    def __init__(self, engine: CandlestickSyncEngine, batch_delay: float = 0.1) -> None:
        self._engine = engine
        self._batch_delay = batch_delay

    async def sync_many(self, symbol_codes: list[str], interval: str) -> BatchSyncResult:
        """Sync every symbol for one interval. Never raises."""
        batch = BatchSyncResult()

        for i, code in enumerate(symbol_codes):
            if i > 0 and self._batch_delay > 0:
                await asyncio.sleep(self._batch_delay)

            result = await self._engine.sync_symbol_interval(code, interval)
            batch.results.append(result)
            if result.success:
                batch.total_bars_added += result.bars_added

        logger.info(
            "batch_sync_complete",
            interval=interval,
            symbols=len(symbol_codes),
            failed=len(batch.failed),
            total_bars_added=batch.total_bars_added,
        )
        return batch
