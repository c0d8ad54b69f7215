"""Application configuration using Pydantic Settings.

This project loads configuration from environment variables.

Optionally, you may point `ENV_FILE` at a local env file (for development).
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppEnvironment(str, Enum):
    """Application environment values."""

    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


# Load an env file ONLY when explicitly requested.
_env_file = os.getenv("ENV_FILE")
if _env_file:
    env_path = Path(_env_file)
    if env_path.exists() and env_path.is_file():
        from labelstore.core.dotenv import load_env_file

        load_env_file(env_path, overwrite=False)


# Query options consumed by SQLAlchemy's create_engine, never by the driver.
ENGINE_ONLY_QUERY_OPTIONS = frozenset(
    {"pool_size", "max_overflow", "pool_timeout", "pool_recycle", "pool_pre_ping"}
)

ASYNC_DRIVER = "postgresql+asyncpg"
SYNC_DRIVER = "postgresql+psycopg"


def normalize_database_url(url: str, driver: str) -> str:
    """
    Rewrite a PostgreSQL URL for the given SQLAlchemy driver.

    Any existing driver suffix is replaced, and engine-only query options
    are dropped so they are not passed to the driver's connect(). asyncpg
    takes `ssl` where libpq takes `sslmode`.

    Args:
        url: Database URL as configured (postgresql://, postgres://, ...)
        driver: Target scheme, e.g. "postgresql+asyncpg"

    Returns:
        Normalized URL string
    """
    parts = urlsplit(url)
    scheme = parts.scheme.split("+", 1)[0]
    if scheme not in ("postgresql", "postgres"):
        raise ValueError(f"DATABASE_URL must use a postgresql:// scheme, got '{parts.scheme}'")

    query = []
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key in ENGINE_ONLY_QUERY_OPTIONS:
            continue
        if driver == ASYNC_DRIVER and key == "sslmode":
            key = "ssl"
        query.append((key, value))
    return urlunsplit((driver, parts.netloc, parts.path, urlencode(query), parts.fragment))


class Settings(BaseSettings):
    """
    Application settings with type validation.

    Configuration is loaded from environment variables, with support
    for .env files in development.
    """

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="", extra="ignore"
    )

    # Application
    app_env: AppEnvironment = AppEnvironment.LOCAL
    app_name: str = "labelstore"
    app_log_level: str = "INFO"

    # Observability
    observability_structured_logs: bool = True

    # Database
    database_url: str

    # Connection pool configuration
    db_pool_size: int = 20
    db_max_overflow: int = 10
    db_pool_timeout: int = 30  # Seconds to wait before giving up on getting a connection
    db_pool_recycle: int = 3600
    db_connect_timeout: int = 5

    @property
    def async_url(self) -> str:
        """Database URL for the asyncpg driver (repository access)."""
        return normalize_database_url(self.database_url, ASYNC_DRIVER)

    @property
    def sync_url(self) -> str:
        """Database URL for the psycopg driver (migrations, scripts)."""
        return normalize_database_url(self.database_url, SYNC_DRIVER)

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | AppEnvironment) -> AppEnvironment:
        """Validate and parse app_env to AppEnvironment enum."""
        if isinstance(v, AppEnvironment):
            return v
        try:
            return AppEnvironment(v.lower())
        except ValueError:
            raise ValueError(
                f"app_env must be one of {[e.value for e in AppEnvironment]}, got '{v}'"
            )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Reject URLs that cannot be normalized for either driver."""
        v = v.strip()
        if not v:
            raise ValueError("DATABASE_URL must be set")
        normalize_database_url(v, SYNC_DRIVER)
        return v

    @field_validator("db_pool_size", "db_pool_timeout", "db_connect_timeout")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> Settings:
        """
        Validate production-specific settings.

        These checks prevent insecure configurations from being deployed to production.
        """
        if self.app_env == AppEnvironment.PROD:
            if "sslmode=require" not in self.database_url:
                raise ValueError("DATABASE_URL must use sslmode=require in production")

        return self


settings = Settings()
