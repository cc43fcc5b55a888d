"""
Application settings with Pydantic v2 validation.

Each group reads its own environment prefix; the root ``Settings`` also reads
``.env``.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PricingSettings(BaseSettings):
    """Line pricing and aggregation tolerances."""

    model_config = SettingsConfigDict(env_prefix="PRICING_")

    # Aggregate writes closer than this to the stored value are skipped
    aggregate_epsilon: float = Field(default=1e-3, gt=0)

    # Stored vs recomputed totals may differ by this much before an audit flags them
    audit_tolerance: float = Field(default=0.01, ge=0)

    # Off: a discount larger than quantity * price yields a negative line total
    clamp_line_totals: bool = False


class FiscalSettings(BaseSettings):
    """Remote tax recalculation service."""

    model_config = SettingsConfigDict(env_prefix="FISCAL_")

    enabled: bool = True
    base_url: str = "http://localhost:8100"
    api_key: str | None = None
    timeout_seconds: float = Field(default=30.0, gt=0)

    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = 0.5
    retry_multiplier: float = 2.0

    # Sent with every recalculation request
    company_uf: str = "SP"
    company_tax_regime: Literal["simples", "normal"] = "simples"

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class StorageSettings(BaseSettings):
    """SQLite storage location and pool sizing."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Field(default=Path("data"), validate_default=True)
    db_name: str = "orders.db"

    pool_size: int = Field(default=5, ge=1)
    busy_timeout: int = 30000  # ms

    @field_validator("data_dir")
    @classmethod
    def create_data_dir(cls, value: Path) -> Path:
        value.mkdir(parents=True, exist_ok=True)
        return value

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class APISettings(BaseSettings):
    """HTTP server and editing session limits."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]

    session_ttl_seconds: int = 4 * 60 * 60
    max_sessions: int = 500
    # 0 disables the background sweep; expired sessions are still dropped on access
    session_purge_interval_seconds: int = 300


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Sales Order Desk"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # auto: console renderer in development, JSON lines elsewhere
    log_format: Literal["auto", "console", "json"] = "auto"

    pricing: PricingSettings = Field(default_factory=PricingSettings)
    fiscal: FiscalSettings = Field(default_factory=FiscalSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: APISettings = Field(default_factory=APISettings)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call reloads them (tests)."""
    global _settings
    _settings = None
