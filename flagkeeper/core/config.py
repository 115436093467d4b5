"""
Library configuration using Pydantic Settings.
"""

from typing import Any
from functools import lru_cache
from pydantic import Field, field_validator, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration for the database feature driver."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    url: str = Field(
        default="sqlite:///features.db",
        description="SQLAlchemy connection URL (sync driver)",
    )
    pool_size: int = Field(default=5, ge=1, le=100)
    pool_overflow: int = Field(default=10, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1)
    echo: bool = Field(default=False, description="Echo SQL queries")


class RedisSettings(BaseSettings):
    """Redis configuration for the redis feature driver."""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    url: RedisDsn = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    max_connections: int = Field(default=10, ge=1)
    decode_responses: bool = Field(default=True)


def _default_stores() -> dict[str, dict[str, Any]]:
    return {
        "array": {"driver": "array"},
        "database": {"driver": "database"},
        "redis": {"driver": "redis"},
    }


class FeatureSettings(BaseSettings):
    """
    Feature flag configuration.

    Each entry in ``stores`` names a store and the driver backing it.
    Extra keys are passed to the driver factory, e.g.:

        {"redis": {"driver": "redis", "prefix": "flags"}}
    """

    model_config = SettingsConfigDict(env_prefix="FEATURE_")

    default: str = Field(
        default="array",
        description="Default store name: array, database, redis",
    )
    stores: dict[str, dict[str, Any]] = Field(default_factory=_default_stores)
    redis_prefix: str = Field(
        default="features",
        description="Key prefix used by the redis driver",
    )


class Settings(BaseSettings):
    """Main library settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="flagkeeper")
    environment: str = Field(default="development")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or text")

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    features: FeatureSettings = Field(default_factory=FeatureSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = {"development", "staging", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in {"json", "text"}:
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    def store_config(self, name: str) -> dict[str, Any] | None:
        """Get the configuration of a named store, or None if undefined."""
        config = self.features.stores.get(name)
        return dict(config) if config is not None else None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
