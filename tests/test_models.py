"""Tests for interval codes and sync result models."""

import pytest

from marketsync.exceptions import UnknownIntervalError
from marketsync.models import (
    DEFAULT_INTERVAL_MS,
    INTERVAL_MS,
    BatchSyncResult,
    Interval,
    SyncResult,
    interval_to_ms,
    parse_interval,
)


class TestIntervals:
    @pytest.mark.parametrize(
        "code, expected_ms",
        [
            ("1m", 60_000),
            ("15m", 900_000),
            ("1h", 3_600_000),
            ("4h", 14_400_000),
            ("1d", 86_400_000),
            ("1w", 604_800_000),
            ("1M", 2_592_000_000),
        ],
    )
    def test_interval_durations(self, code, expected_ms) -> None:
        assert interval_to_ms(code) == expected_ms

    def test_every_enum_member_has_duration(self) -> None:
        assert {iv.value for iv in Interval} == set(INTERVAL_MS)

    def test_unknown_code_falls_back_to_one_minute(self) -> None:
        assert interval_to_ms("7m") == DEFAULT_INTERVAL_MS == 60_000

    def test_enum_member_accepted(self) -> None:
        assert interval_to_ms(Interval.ONE_HOUR) == 3_600_000

    def test_parse_valid(self) -> None:
        assert parse_interval("1M") is Interval.ONE_MONTH
        assert parse_interval("1m") is Interval.ONE_MINUTE

    @pytest.mark.parametrize("code", ["7m", "1H", "", "1 h"])
    def test_parse_invalid(self, code) -> None:
        with pytest.raises(UnknownIntervalError):
            parse_interval(code)


class TestResults:
    def test_sync_result_defaults(self) -> None:
        result = SyncResult(symbol="BTCUSDT", interval="1h", success=False, message="Sync failed: x")
        assert result.bars_added == 0
        assert result.latest_timestamp is None

    def test_batch_failed_property(self) -> None:
        batch = BatchSyncResult(
            results=[
                SyncResult("AAA", "1h", False, "Sync failed: x"),
                SyncResult("BBB", "1h", True, "ok", 1),
            ],
            total_bars_added=1,
        )
        assert [r.symbol for r in batch.failed] == ["AAA"]
