"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Binance public REST connection settings."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    base_url: str = "https://api.binance.com/api/v3"
    request_timeout: float = 10.0  # seconds, per HTTP call
    max_retries: int = 5
    rate_limit_backoff: float = 1.0  # seconds, doubled per retry
    page_limit: int = 1000  # Binance hard cap for /klines


class SyncSettings(BaseSettings):
    """Candlestick sync configuration.

    Controls storage location, the default symbol/interval set for the
    polling scheduler, pacing between symbols and the classification policy.
    All fields configurable via SYNC_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    db_path: str = "data/market.db"
    symbols: list[str] = []  # empty = all active symbols in the store
    intervals: list[str] = ["1h"]
    batch_delay: float = 0.1  # seconds between symbols in a batch
    poll_interval: int = 60  # seconds between scheduler cycles
    scheduler_enabled: bool = False
    classifier: Literal["suffix", "exchange"] = "suffix"


class ApiSettings(BaseSettings):
    """HTTP API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    exchange: ExchangeSettings = ExchangeSettings()
    sync: SyncSettings = SyncSettings()
    api: ApiSettings = ApiSettings()
