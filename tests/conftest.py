"""Shared test fixtures for the market data sync service."""

from collections.abc import Callable

import pytest
import pytest_asyncio

from marketsync.config import AppSettings, ExchangeSettings, SyncSettings
from marketsync.data.database import MarketDatabase
from marketsync.data.store import MarketDataStore
from marketsync.exchange.types import Bar, parse_kline

HOUR_MS = 3_600_000
# 2023-11-14 22:00:00 UTC, aligned to the hour
BASE_OPEN_TIME = 1_699_999_200_000


@pytest.fixture
def mock_settings(tmp_path) -> AppSettings:
    """Return AppSettings with test defaults (temp database, fast retries)."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(
            base_url="https://api.test/api/v3",
            max_retries=3,
            rate_limit_backoff=1.0,
        ),
        sync=SyncSettings(
            db_path=str(tmp_path / "market.db"),
            symbols=["BTCUSDT", "ETHBTC"],
            intervals=["1h"],
            batch_delay=0.0,
        ),
    )


@pytest.fixture
def make_kline() -> Callable[..., list]:
    """Factory for raw Binance kline records (strings for decimals, like the API)."""

    def _make(
        open_time: int,
        interval_ms: int = HOUR_MS,
        close: str = "100.50000000",
    ) -> list:
        return [
            open_time,
            "100.00000000",
            "101.25000000",
            "99.75000000",
            close,
            "12.34500000",
            open_time + interval_ms - 1,
            "1240.67250000",
            42,
            "6.10000000",
            "612.80500000",
            "0",
        ]

    return _make


@pytest.fixture
def make_bar(make_kline: Callable[..., list]) -> Callable[..., Bar]:
    """Factory for parsed Bar objects."""

    def _make(open_time: int, **kwargs) -> Bar:
        return parse_kline(make_kline(open_time, **kwargs))

    return _make


@pytest_asyncio.fixture
async def database(tmp_path):
    """Connected MarketDatabase in a temp directory."""
    db = MarketDatabase(str(tmp_path / "market.db"))
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def store(database: MarketDatabase) -> MarketDataStore:
    return MarketDataStore(database)
