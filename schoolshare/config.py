"""
Application configuration using Pydantic Settings.
Manages all environment variables and settings.
"""
import os
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./schoolshare.db"


class Environment(str, Enum):
    """Application environment modes."""
    DEV = "DEV"
    PRODUCTION = "PRODUCTION"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment variables only (no .env file); case-insensitive names
    model_config = SettingsConfigDict(env_file=None, case_sensitive=False)

    # Environment
    environment: Environment = Field(
        default=Environment.DEV,
        description="Application environment: DEV or PRODUCTION"
    )

    # Application
    app_name: str = Field(default="SchoolShare API")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    secret_key: str = Field(default="change-me-in-production")

    @model_validator(mode='after')
    def set_debug_from_environment(self):
        """Set debug mode based on environment if DEBUG was not given explicitly."""
        if 'DEBUG' not in os.environ:
            self.debug = self.environment == Environment.DEV
        return self

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEV

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    # Database (empty value falls back to the local SQLite file)
    database_url: str = Field(default=DEFAULT_DATABASE_URL)
    db_pool_size: int = Field(default=10)
    db_max_overflow: int = Field(default=20)
    db_pool_timeout: int = Field(default=30)
    db_pool_recycle: int = Field(default=1800)

    @field_validator("database_url", mode="before")
    @classmethod
    def coerce_empty_database_url(cls, v: str) -> str:
        if not v or not str(v).strip():
            return DEFAULT_DATABASE_URL
        return v

    # JWT (admin authentication)
    jwt_secret_key: str = Field(default="jwt-secret-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60)

    # First admin account, created at start-up when both values are set
    admin_bootstrap_email: str = Field(default="")
    admin_bootstrap_password: str = Field(default="")
    admin_bootstrap_username: str = Field(default="admin")

    # Share tokens
    public_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the family storefront; share URLs are {base}/share/{token}",
    )
    # 96 bytes encode to 128 characters, the width of share_tokens.token
    share_token_bytes: int = Field(default=32, ge=16, le=96, description="Random bytes per share token")
    share_contents_chunk_size: int = Field(default=500, ge=1)
    share_max_audiences: int = Field(default=500, ge=1)

    # Tagging limits
    tagging_batch_max_assignments: int = Field(default=100, ge=1)
    tagging_bulk_max_photos: int = Field(default=500, ge=1)

    # Rate limiting (slowapi)
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_per_minute: int = Field(default=120)
    rate_limit_share_per_minute: int = Field(default=30)

    # Logging
    log_dir: str = Field(default="/var/log/schoolshare")
    instance_ip: str = Field(default="", description="Private IP for log/metric labels (auto-detected when empty)")

    # Remote log collector (optional). Empty URL disables shipping.
    log_shipper_url: str = Field(default="")
    log_shipper_app_key: str = Field(default="")
    log_shipper_batch_size: int = Field(default=100)
    log_shipper_flush_interval: float = Field(default=5.0)

    # Prometheus
    node_name: str = Field(default="", description="Node/Pod identifier for Prometheus labels")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Using lru_cache to avoid re-reading the environment on every request.
    """
    return Settings()
