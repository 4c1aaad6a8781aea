"""
Application configuration using Pydantic Settings.
Values come from environment variables or a .env file.
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="Sistema KG do Amor", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    app_env: str = Field(default="development", alias="APP_ENV")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database
    db_url: str = Field(default="sqlite:///./data/kg_amor.db", alias="DB_URL")
    db_echo: bool = Field(default=False, alias="DB_ECHO")
    store_timeout_seconds: float = Field(default=5.0, alias="STORE_TIMEOUT_SECONDS")

    # Authentication
    admin_username: str = Field(default="admin", alias="ADMIN_USERNAME")
    admin_password: str = Field(default="kgdoamor2025", alias="ADMIN_PASSWORD")

    # Security
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="logs", alias="LOG_DIR")

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_per_minute: int = Field(default=100, alias="RATE_LIMIT_PER_MINUTE")

    # Ledger
    ledger_max_retries: int = Field(default=3, alias="LEDGER_MAX_RETRIES")
    ledger_retry_backoff_ms: int = Field(default=20, alias="LEDGER_RETRY_BACKOFF_MS")

    # Dashboard
    dashboard_top_n: int = Field(default=15, alias="DASHBOARD_TOP_N")

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
