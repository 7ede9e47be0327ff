"""Configuration system using pydantic-settings with environment variable loading.

Each settings group reads its own prefixed variables (TRACKER_ASSETS,
SMTP_HOST, ...) from the process environment and from .env in the working
directory. Unknown keys are ignored so one .env file serves every group.
"""

from decimal import Decimal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

FEE_RATE = Decimal("0.03")  # 3% swap fee, charged in the source asset

_ENV_FILE = dict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


class SourceSettings(BaseSettings):
    """Upstream price source (ccxt exchange) settings."""

    model_config = SettingsConfigDict(env_prefix="SOURCE_", **_ENV_FILE)

    exchange_id: str = "binance"
    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")
    quote_currency: str = "USDT"  # USD proxy for asset prices
    request_timeout: float = 10.0  # seconds per upstream call


class TrackerSettings(BaseSettings):
    """Sampling cadence and volatility alert parameters."""

    model_config = SettingsConfigDict(env_prefix="TRACKER_", **_ENV_FILE)

    assets: list[str] = ["ETH", "POL"]
    interval_seconds: int = 300  # 5 minutes between cycles
    volatility_threshold_pct: Decimal = Decimal("3")  # strict: fires above 3%
    volatility_window_seconds: int = 3600  # reference sample at or before now - 1h
    volatility_recipient: str = "alerts@example.com"


class SwapSettings(BaseSettings):
    """Swap quote parameters."""

    model_config = SettingsConfigDict(env_prefix="SWAP_", **_ENV_FILE)

    source_asset: str = "ETH"
    target_asset: str = "BTC"
    fee_rate: Decimal = FEE_RATE


class NotifierSettings(BaseSettings):
    """SMTP email delivery settings."""

    model_config = SettingsConfigDict(env_prefix="SMTP_", **_ENV_FILE)

    host: str = "localhost"
    port: int = 587
    username: str = ""
    password: SecretStr = SecretStr("")
    sender: str = "pricewatch@example.com"
    starttls: bool = True
    send_timeout: float = 15.0


class StorageSettings(BaseSettings):
    """SQLite storage location."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_", **_ENV_FILE)

    db_path: str = "data/prices.db"


class ApiSettings(BaseSettings):
    """HTTP API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_", **_ENV_FILE)

    host: str = "0.0.0.0"
    port: int = 3000
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(env_nested_delimiter="__", **_ENV_FILE)

    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"
    source: SourceSettings = Field(default_factory=SourceSettings)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)
    swap: SwapSettings = Field(default_factory=SwapSettings)
    notifier: NotifierSettings = Field(default_factory=NotifierSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
