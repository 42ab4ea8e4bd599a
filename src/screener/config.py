"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Exchange connection settings (public market data only)."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    name: Literal["bybit"] = "bybit"
    testnet: bool = False
    timeout_ms: int = 10000


class MarketDataSettings(BaseSettings):
    """Ticker polling and price history parameters."""

    model_config = SettingsConfigDict(env_prefix="MARKET_")

    poll_interval: float = 60.0  # seconds between ticker polls
    history_window: int = 50  # points kept per symbol
    history_source: Literal["ticker", "candles"] = "ticker"
    symbols: list[str] = []  # empty = every tracked linear perpetual
    quote_currency: str = "USDT"
    min_volume_24h: Decimal = Decimal("1000000")  # $1M turnover to be tracked
    max_symbols: int = 100
    trades_lookback: int = 500  # public trades used for live volume delta
    stale_after_seconds: float = 3600.0  # history cleanup horizon


class DetectorSettings(BaseSettings):
    """Price change detector thresholds.

    Mirrors the inputs of ChangeDetector: minimum confidence and change,
    continuity threshold for monotonic runs, and the volume term weight.
    """

    model_config = SettingsConfigDict(env_prefix="DETECTOR_")

    min_confidence: Decimal = Field(default=Decimal("60"), ge=0, le=100)
    min_change_percent: Decimal = Field(default=Decimal("2.0"), ge=0)
    continuity_threshold: Decimal = Field(default=Decimal("0.7"), ge=0, le=1)
    volume_weight: Decimal = Field(default=Decimal("1.0"), ge=0, le=1)

    # Algorithm toggles
    single_enabled: bool = True
    interval_enabled: bool = True
    continuous_enabled: bool = True


class ConfirmationSettings(BaseSettings):
    """Confirmation counter parameters."""

    model_config = SettingsConfigDict(env_prefix="CONFIRMATION_")

    signal_threshold: int = Field(default=3, ge=1)  # signal every N confirmations
    required_confirmations: int = 6  # visual progress target
    max_age_seconds: float = 24 * 60 * 60  # counters idle longer are swept


class MetricCacheSettings(BaseSettings):
    """Derived metric cache and fallback estimator parameters."""

    model_config = SettingsConfigDict(env_prefix="METRICS_")

    ttl_seconds: float = 30.0
    fallback_enabled: bool = True  # storage tier on/off
    emulated_percent: Decimal = Decimal("2.0")  # synthetic delta % of base volume
    emulated_clamp_ratio: Decimal = Decimal("0.05")  # |delta| <= 5% of base volume


class EngineSettings(BaseSettings):
    """Analysis pass scheduling."""

    model_config = SettingsConfigDict(env_prefix="ENGINE_")

    periods: list[str] = ["5m", "15m", "30m", "1h", "4h", "1d"]
    scan_interval: int = 60  # seconds between analysis cycles
    max_concurrent_passes: int = 16
    fetch_timeout: float = 10.0  # seconds per price history fetch
    cleanup_interval: int = 300  # seconds between maintenance sweeps
    publish_queue_size: int = 1000


class StorageSettings(BaseSettings):
    """Signal persistence configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    enabled: bool = True
    db_path: str = "data/signals.db"


class DashboardSettings(BaseSettings):
    """Status API server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

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
    market: MarketDataSettings = MarketDataSettings()
    detector: DetectorSettings = DetectorSettings()
    confirmation: ConfirmationSettings = ConfirmationSettings()
    metrics: MetricCacheSettings = MetricCacheSettings()
    engine: EngineSettings = EngineSettings()
    storage: StorageSettings = StorageSettings()
    dashboard: DashboardSettings = DashboardSettings()
