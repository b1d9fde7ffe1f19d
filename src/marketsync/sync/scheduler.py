"""Periodic polling loop that keeps the store caught up with the exchange.

Each cycle syncs every configured interval for the configured symbols
(or, when none are configured, every active symbol in the store), then
sleeps for the poll interval. Ingestion is pull-only: there is no
streaming subscription.
"""

import asyncio

from marketsync.config import SyncSettings
from marketsync.logging import get_logger
from marketsync.models import BatchSyncResult
from marketsync.sync.service import MarketDataService

logger = get_logger(__name__)


class SyncScheduler:
    """Runs MarketDataService.sync_many on a fixed poll interval.

    Args:
        service: Operation surface used for the batch syncs.
        settings: Symbols, intervals and poll interval.
    """

    def __init__(self, service: MarketDataService, settings: SyncSettings) -> None:
        self._service = service
        self._settings = settings
        self._running = False
        self._cycle_lock = asyncio.Lock()
        self._last_cycle: list[BatchSyncResult] = []

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_cycle(self) -> list[BatchSyncResult]:
        """Batch results of the most recent completed cycle, one per interval."""
        return self._last_cycle

    async def start(self) -> None:
        """Run cycles until stop() is called or the task is cancelled."""
        logger.info(
            "sync_scheduler_starting",
            intervals=self._settings.intervals,
            poll_interval=self._settings.poll_interval,
        )
        self._running = True
        try:
            await self._run_loop()
        finally:
            self._running = False
            logger.info("sync_scheduler_stopped")

    async def stop(self) -> None:
        """Signal the loop to exit after the current cycle."""
        logger.info("sync_scheduler_stopping")
        self._running = False

    async def _run_loop(self) -> None:
        while self._running:
            try:
                async with self._cycle_lock:
                    await self.run_cycle()
                await asyncio.sleep(self._settings.poll_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("sync_cycle_error", error=str(e), exc_info=True)
                await asyncio.sleep(10)

    async def run_cycle(self) -> list[BatchSyncResult]:
        """Sync all target symbols once for every configured interval."""
        symbols = await self._target_symbols()
        if not symbols:
            logger.info("sync_cycle_skipped", reason="no_symbols")
            self._last_cycle = []
            return []

        results = []
        for interval in self._settings.intervals:
            results.append(await self._service.sync_many(symbols, interval))

        self._last_cycle = results
        logger.info(
            "sync_cycle_complete",
            symbols=len(symbols),
            intervals=len(self._settings.intervals),
            bars_added=sum(r.total_bars_added for r in results),
        )
        return results

    async def _target_symbols(self) -> list[str]:
        if self._settings.symbols:
            return list(self._settings.symbols)
        active = await self._service.list_symbols(active_only=True)
        return [s.symbol for s in active]
