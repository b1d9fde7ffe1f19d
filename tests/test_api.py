"""Tests for the HTTP API routes with a mocked MarketDataService."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from marketsync.api.app import create_app
from marketsync.data.models import Candlestick, Symbol
from marketsync.exceptions import ExchangeError, StoreError, SymbolNotFoundError
from marketsync.models import BatchSyncResult, SyncResult


def _symbol(code: str = "BTCUSDT", is_active: bool = True) -> Symbol:
    return Symbol(
        id=1,
        symbol=code,
        base_asset="BTC",
        quote_asset="USDT",
        is_active=is_active,
        created_at=1_700_000_000_000,
        updated_at=1_700_000_000_000,
    )


def _candle(open_time: int) -> Candlestick:
    return Candlestick(
        symbol_id=1,
        interval="1h",
        open_time=open_time,
        close_time=open_time + 3_599_999,
        open=Decimal("100.1"),
        high=Decimal("101.0"),
        low=Decimal("99.5"),
        close=Decimal("100.9"),
        volume=Decimal("12.345"),
        quote_volume=Decimal("1240.5"),
        trade_count=42,
        taker_buy_base_volume=Decimal("6.1"),
        taker_buy_quote_volume=Decimal("612.8"),
        created_at=1_700_000_000_000,
    )


@pytest.fixture
def service() -> MagicMock:
    mock = MagicMock()
    for name in (
        "sync_one",
        "sync_many",
        "list_symbols",
        "set_symbol_active",
        "get_candlesticks",
        "get_candlesticks_in_range",
        "get_current_price",
        "get_symbol_info",
        "get_stats",
    ):
        setattr(mock, name, AsyncMock())
    return mock


@pytest.fixture
def client(service) -> TestClient:
    app = create_app()
    app.state.service = service
    return TestClient(app)


# ---------------------------------------------------------------------------
# Sync endpoints
# ---------------------------------------------------------------------------


class TestSyncEndpoints:
    def test_sync_single(self, client, service) -> None:
        service.sync_one.return_value = SyncResult(
            "BTCUSDT", "1h", True, "Successfully synced 3 candlesticks", 3, 1_700_000_000_000
        )

        response = client.post("/api/market/sync", json={"symbol": "BTCUSDT", "interval": "1h"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["bars_added"] == 3
        assert body["latest_timestamp"] == 1_700_000_000_000
        service.sync_one.assert_awaited_once_with("BTCUSDT", "1h")

    def test_sync_failure_is_still_200(self, client, service) -> None:
        service.sync_one.return_value = SyncResult(
            "NOPE", "1h", False, "Sync failed: Binance API error: Invalid symbol."
        )

        response = client.post("/api/market/sync", json={"symbol": "NOPE", "interval": "1h"})

        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_sync_rejects_unknown_interval(self, client, service) -> None:
        response = client.post("/api/market/sync", json={"symbol": "BTCUSDT", "interval": "7m"})

        assert response.status_code == 422
        service.sync_one.assert_not_awaited()

    def test_sync_rejects_empty_symbol(self, client) -> None:
        response = client.post("/api/market/sync", json={"symbol": "", "interval": "1h"})
        assert response.status_code == 422

    def test_sync_rejects_whitespace_symbol(self, client, service) -> None:
        response = client.post("/api/market/sync", json={"symbol": "   ", "interval": "1h"})

        assert response.status_code == 422
        service.sync_one.assert_not_awaited()

    def test_sync_strips_symbol(self, client, service) -> None:
        service.sync_one.return_value = SyncResult("ETHBTC", "1h", True, "ok")

        client.post("/api/market/sync", json={"symbol": " ETHBTC ", "interval": "1h"})

        service.sync_one.assert_awaited_once_with("ETHBTC", "1h")

    def test_sync_multiple_rejects_blank_element(self, client, service) -> None:
        response = client.post(
            "/api/market/sync-multiple", json={"symbols": ["BTCUSDT", " "], "interval": "1h"}
        )

        assert response.status_code == 422
        service.sync_many.assert_not_awaited()

    def test_sync_multiple(self, client, service) -> None:
        service.sync_many.return_value = BatchSyncResult(
            results=[
                SyncResult("AAA", "1h", False, "Sync failed: boom"),
                SyncResult("BBB", "1h", True, "Successfully synced 2 candlesticks", 2),
            ],
            total_bars_added=2,
        )

        response = client.post(
            "/api/market/sync-multiple", json={"symbols": ["AAA", "BBB"], "interval": "1h"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_bars_added"] == 2
        assert [r["symbol"] for r in body["results"]] == ["AAA", "BBB"]
        service.sync_many.assert_awaited_once_with(["AAA", "BBB"], "1h")

    def test_sync_multiple_rejects_empty_list(self, client) -> None:
        response = client.post(
            "/api/market/sync-multiple", json={"symbols": [], "interval": "1h"}
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------


class TestSymbolEndpoints:
    def test_list_symbols(self, client, service) -> None:
        service.list_symbols.return_value = [_symbol()]

        response = client.get("/api/market/symbols")

        assert response.status_code == 200
        assert response.json()[0]["symbol"] == "BTCUSDT"
        service.list_symbols.assert_awaited_once_with()

    def test_list_active_symbols(self, client, service) -> None:
        service.list_symbols.return_value = []

        response = client.get("/api/market/symbols/active")

        assert response.status_code == 200
        service.list_symbols.assert_awaited_once_with(active_only=True)

    def test_deactivate(self, client, service) -> None:
        service.set_symbol_active.return_value = _symbol(is_active=False)

        response = client.post("/api/market/symbols/BTCUSDT/deactivate")

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        service.set_symbol_active.assert_awaited_once_with("BTCUSDT", False)

    def test_activate_unknown_is_404(self, client, service) -> None:
        service.set_symbol_active.side_effect = SymbolNotFoundError("Unknown symbol NOPE")

        response = client.post("/api/market/symbols/NOPE/activate")

        assert response.status_code == 404
        assert response.json() == {"detail": "Unknown symbol NOPE"}


# ---------------------------------------------------------------------------
# Candlestick queries
# ---------------------------------------------------------------------------


class TestCandlestickEndpoints:
    def test_latest_candlesticks(self, client, service) -> None:
        service.get_candlesticks.return_value = [_candle(7_200_000), _candle(3_600_000)]

        response = client.get("/api/market/candlesticks/1", params={"interval": "1h", "limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert [c["open_time"] for c in body] == [7_200_000, 3_600_000]
        assert body[0]["close"] == "100.9"
        service.get_candlesticks.assert_awaited_once_with(1, "1h", 2)

    def test_small_decimals_rendered_positionally(self, client, service) -> None:
        candle = _candle(3_600_000)
        candle.close = Decimal("0.00000045")
        candle.volume = Decimal("1E+3")
        service.get_candlesticks.return_value = [candle]

        response = client.get("/api/market/candlesticks/1", params={"interval": "1h"})

        [body] = response.json()
        assert body["close"] == "0.00000045"
        assert body["volume"] == "1000"

    def test_latest_candlesticks_default_limit(self, client, service) -> None:
        service.get_candlesticks.return_value = []

        client.get("/api/market/candlesticks/1", params={"interval": "1h"})

        service.get_candlesticks.assert_awaited_once_with(1, "1h", 100)

    def test_limit_out_of_bounds(self, client) -> None:
        response = client.get(
            "/api/market/candlesticks/1", params={"interval": "1h", "limit": 0}
        )
        assert response.status_code == 422

    def test_range(self, client, service) -> None:
        service.get_candlesticks_in_range.return_value = [_candle(3_600_000)]

        response = client.get(
            "/api/market/candlesticks/1/range",
            params={"interval": "1h", "start_time": 0, "end_time": 7_200_000},
        )

        assert response.status_code == 200
        assert len(response.json()) == 1
        service.get_candlesticks_in_range.assert_awaited_once_with(1, "1h", 0, 7_200_000)

    def test_range_start_after_end(self, client, service) -> None:
        response = client.get(
            "/api/market/candlesticks/1/range",
            params={"interval": "1h", "start_time": 10, "end_time": 5},
        )

        assert response.status_code == 422
        service.get_candlesticks_in_range.assert_not_awaited()


# ---------------------------------------------------------------------------
# Exchange pass-through and stats
# ---------------------------------------------------------------------------


class TestExchangeAndStats:
    def test_price(self, client, service) -> None:
        service.get_current_price.return_value = Decimal("43125.01000000")

        response = client.get("/api/market/price/btcusdt")

        assert response.status_code == 200
        assert response.json() == {"symbol": "BTCUSDT", "price": "43125.01000000"}

    def test_small_price_rendered_positionally(self, client, service) -> None:
        service.get_current_price.return_value = Decimal("0.00000045")

        response = client.get("/api/market/price/DOGEBTC")

        assert response.json()["price"] == "0.00000045"

    def test_exchange_error_is_502(self, client, service) -> None:
        service.get_current_price.side_effect = ExchangeError("Binance API error: Invalid symbol.")

        response = client.get("/api/market/price/NOPE")

        assert response.status_code == 502
        assert response.json() == {"detail": "Binance API error: Invalid symbol."}

    def test_symbol_info(self, client, service) -> None:
        service.get_symbol_info.return_value = {
            "symbol": "ETHBTC",
            "baseAsset": "ETH",
            "quoteAsset": "BTC",
        }

        response = client.get("/api/market/symbol-info/ETHBTC")

        assert response.status_code == 200
        assert response.json()["baseAsset"] == "ETH"

    def test_store_error_is_503(self, client, service) -> None:
        service.list_symbols.side_effect = StoreError("list_symbols failed: database is locked")

        response = client.get("/api/market/symbols")

        assert response.status_code == 503

    def test_stats_default_intervals(self, client, service) -> None:
        service.get_stats.return_value = []

        response = client.get("/api/market/stats")

        assert response.status_code == 200
        service.get_stats.assert_awaited_once_with(["1m", "5m", "15m", "1h", "4h", "1d"])

    def test_stats_selected_intervals(self, client, service) -> None:
        service.get_stats.return_value = [
            {
                "symbol": "BTCUSDT",
                "id": 1,
                "is_active": True,
                "intervals": {
                    "1h": {"count": 3, "oldest": 1_699_999_200_000, "latest": 1_700_006_400_123},
                    "1d": {"count": 0, "oldest": None, "latest": None},
                },
            }
        ]

        response = client.get("/api/market/stats", params=[("interval", "1h"), ("interval", "1d")])

        assert response.status_code == 200
        intervals = response.json()[0]["intervals"]
        assert intervals["1h"] == {
            "count": 3,
            "oldest": "2023-11-14T22:00:00.000Z",
            "latest": "2023-11-15T00:00:00.123Z",
        }
        assert intervals["1d"] == {"count": 0, "oldest": None, "latest": None}
        service.get_stats.assert_awaited_once_with(["1h", "1d"])
