"""Shared models for the candlestick sync service.

Interval codes, their durations, and the structured results returned by
sync calls. Results are plain data: a failed sync is a SyncResult with
success=False, never an exception.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum

from marketsync.exceptions import UnknownIntervalError

_MINUTE_MS = 60 * 1000
_HOUR_MS = 60 * _MINUTE_MS
_DAY_MS = 24 * _HOUR_MS


class Interval(str, Enum):
    """Kline interval codes accepted by the exchange."""

    ONE_MINUTE = "1m"
    THREE_MINUTES = "3m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    THIRTY_MINUTES = "30m"
    ONE_HOUR = "1h"
    TWO_HOURS = "2h"
    FOUR_HOURS = "4h"
    SIX_HOURS = "6h"
    EIGHT_HOURS = "8h"
    TWELVE_HOURS = "12h"
    ONE_DAY = "1d"
    THREE_DAYS = "3d"
    ONE_WEEK = "1w"
    ONE_MONTH = "1M"


INTERVAL_MS: dict[str, int] = {
    "1m": _MINUTE_MS,
    "3m": 3 * _MINUTE_MS,
    "5m": 5 * _MINUTE_MS,
    "15m": 15 * _MINUTE_MS,
    "30m": 30 * _MINUTE_MS,
    "1h": _HOUR_MS,
    "2h": 2 * _HOUR_MS,
    "4h": 4 * _HOUR_MS,
    "6h": 6 * _HOUR_MS,
    "8h": 8 * _HOUR_MS,
    "12h": 12 * _HOUR_MS,
    "1d": _DAY_MS,
    "3d": 3 * _DAY_MS,
    "1w": 7 * _DAY_MS,
    "1M": 30 * _DAY_MS,  # approximate
}

DEFAULT_INTERVAL_MS = _MINUTE_MS


def interval_to_ms(interval: str) -> int:
    """Return the duration of one bar in milliseconds.

    Unknown codes fall back to one minute. Callers that must not guess
    should validate with parse_interval() first.
    """
    return INTERVAL_MS.get(interval, DEFAULT_INTERVAL_MS)


def parse_interval(value: str) -> Interval:
    """Validate an interval code. Codes are case-sensitive ("1m" != "1M")."""
    try:
        return Interval(value)
    except ValueError:
        raise UnknownIntervalError(f"Unsupported interval: {value!r}") from None


@dataclass
class SyncResult:
    """Outcome of one (symbol, interval) sync call.

    latest_timestamp is the cursor after the call: the max open_time of the
    fetched page, or the previous cursor when nothing was fetched.
    """

    symbol: str
    interval: str
    success: bool
    message: str
    bars_added: int = 0
    latest_timestamp: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BatchSyncResult:
    """Per-symbol results of a batch sync plus the aggregate insert count."""

    results: list[SyncResult] = field(default_factory=list)
    total_bars_added: int = 0

    @property
    def failed(self) -> list[SyncResult]:
        return [r for r in self.results if not r.success]

    def to_dict(self) -> dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "total_bars_added": self.total_bars_added,
        }
