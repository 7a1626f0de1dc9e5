"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoinGeckoSettings(BaseSettings):
    """CoinGecko market-data API settings (free/demo tier defaults)."""

    model_config = SettingsConfigDict(env_prefix="COINGECKO_")

    base_url: str = "https://api.coingecko.com/api/v3"
    api_key: SecretStr = SecretStr("")
    rate_limit_per_minute: int = 50
    request_timeout: float = 10.0  # seconds
    max_retries: int = 5
    retry_base_delay: float = 1.0  # doubled on each retry
    history_days: int = 365  # demo API hard limit


class DatabaseSettings(BaseSettings):
    """SQLite storage location."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    path: str = "data/bmsb.db"


class CalculationSettings(BaseSettings):
    """Daily calculation run parameters.

    ``universe_size`` is how many assets discovery keeps active, by
    market-cap rank. ``concurrency`` bounds how many assets are computed
    at once; 1 keeps the run a plain sequential loop.
    """

    model_config = SettingsConfigDict(env_prefix="CALCULATION_")

    universe_size: int = 150
    concurrency: int = 1


class ApiSettings(BaseSettings):
    """Read API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True
    default_limit: int = 100
    summary_window_days: int = 7


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    coingecko: CoinGeckoSettings = CoinGeckoSettings()
    database: DatabaseSettings = DatabaseSettings()
    calculation: CalculationSettings = CalculationSettings()
    api: ApiSettings = ApiSettings()
