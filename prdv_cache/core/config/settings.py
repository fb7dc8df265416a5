#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
device configuration cache. All configuration is centralized here to ensure
consistency across the storage backends, the cache-aside engine and the
load generator.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Easy testing with override mechanisms
"""

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """
    Redis configuration for the flat string-keyed cache backend.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=100, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class StoreSettings(BaseSettings):
    """
    Storage backend selection and cache TTL policy.

    STAGE-2: Cache TTL configuration
    """

    STORE_BACKEND: Literal["memory", "redis", "table"] = Field(
        default="memory", description="Which storage backend the engine uses"
    )
    CACHE_TTL_SECONDS: int = Field(default=3600, description="Entry time-to-live (1 hour)")
    MEMORY_STORE_MAX_SIZE: int | None = Field(
        default=None, description="Optional LRU bound for the in-memory backend"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class TableSettings(BaseSettings):
    """
    Structured record store configuration.

    STAGE-TABLE: Table backend configuration

    The table is addressed by a fixed partition key plus the device id as
    row key. Batch upserts are split into transactions of at most
    TABLE_MAX_BATCH_SIZE rows.
    """

    TABLE_DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./prdv_cache.db", description="SQLAlchemy async database URL"
    )
    TABLE_NAME: str = Field(default="device_configurations", description="Backing table name")
    TABLE_PARTITION_KEY: str = Field(default="config", description="Fixed partition key")
    TABLE_MAX_BATCH_SIZE: int = Field(default=100, description="Max rows per batch transaction")
    TABLE_INIT_MAX_ATTEMPTS: int = Field(default=3, description="Table creation attempts")
    TABLE_INIT_BASE_DELAY: float = Field(default=1.0, description="Initial retry delay in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoadTestSettings(BaseSettings):
    """
    Load generator limits and report artifact settings.

    STAGE-LT: Load test configuration
    """

    LOAD_TEST_MAX_RECORDS: int = Field(default=100_000, description="Upper safety limit for record count")
    LOAD_TEST_MAX_CONCURRENCY: int = Field(default=50, description="Upper limit for in-flight chunks")
    LOAD_TEST_REPORTS_ENABLED: bool = Field(default=False, description="Persist reports to disk")
    LOAD_TEST_REPORTS_DIR: str = Field(default="LoadTestReports", description="Report output directory")
    LOAD_TEST_VERSION_NAME: str = Field(default="Unknown-Version", description="Version label for reports")
    LOAD_TEST_DETAILED_LOGGING: bool = Field(default=False, description="Log every write at INFO")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from prdv_cache.core.config.settings import get_settings

        settings = get_settings()
        ttl = settings.store.CACHE_TTL_SECONDS
        table = settings.table.TABLE_NAME
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=100, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    # Store settings
    STORE_BACKEND: Literal["memory", "redis", "table"] = Field(default="memory", description="Storage backend")
    CACHE_TTL_SECONDS: int = Field(default=3600, description="Entry time-to-live (1 hour)")
    MEMORY_STORE_MAX_SIZE: int | None = Field(default=None, description="In-memory LRU bound")

    # Table settings
    TABLE_DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./prdv_cache.db", description="SQLAlchemy async database URL"
    )
    TABLE_NAME: str = Field(default="device_configurations", description="Backing table name")
    TABLE_PARTITION_KEY: str = Field(default="config", description="Fixed partition key")
    TABLE_MAX_BATCH_SIZE: int = Field(default=100, description="Max rows per batch transaction")
    TABLE_INIT_MAX_ATTEMPTS: int = Field(default=3, description="Table creation attempts")
    TABLE_INIT_BASE_DELAY: float = Field(default=1.0, description="Initial retry delay in seconds")

    # Authoritative source simulation
    SOURCE_DELAY_MS: int = Field(default=2000, description="Simulated authoritative lookup delay")

    # Load test settings
    LOAD_TEST_MAX_RECORDS: int = Field(default=100_000, description="Upper safety limit for record count")
    LOAD_TEST_MAX_CONCURRENCY: int = Field(default=50, description="Upper limit for in-flight chunks")
    LOAD_TEST_REPORTS_ENABLED: bool = Field(default=False, description="Persist reports to disk")
    LOAD_TEST_REPORTS_DIR: str = Field(default="LoadTestReports", description="Report output directory")
    LOAD_TEST_VERSION_NAME: str = Field(default="Unknown-Version", description="Version label for reports")
    LOAD_TEST_DETAILED_LOGGING: bool = Field(default=False, description="Log every write at INFO")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_limits(self):
        """Reject limits that would make the engine unusable."""
        if self.CACHE_TTL_SECONDS <= 0:
            raise ValueError("CACHE_TTL_SECONDS must be positive")
        if not 1 <= self.TABLE_MAX_BATCH_SIZE <= 100:
            raise ValueError("TABLE_MAX_BATCH_SIZE must be between 1 and 100")
        if self.TABLE_INIT_MAX_ATTEMPTS < 1:
            raise ValueError("TABLE_INIT_MAX_ATTEMPTS must be at least 1")
        return self

    # Nested configuration objects
    @property
    def redis(self) -> 'RedisSettings':
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
        )

    @property
    def store(self) -> 'StoreSettings':
        """Get storage backend settings."""
        return StoreSettings(
            STORE_BACKEND=self.STORE_BACKEND,
            CACHE_TTL_SECONDS=self.CACHE_TTL_SECONDS,
            MEMORY_STORE_MAX_SIZE=self.MEMORY_STORE_MAX_SIZE,
        )

    @property
    def table(self) -> 'TableSettings':
        """Get structured record store settings."""
        return TableSettings(
            TABLE_DATABASE_URL=self.TABLE_DATABASE_URL,
            TABLE_NAME=self.TABLE_NAME,
            TABLE_PARTITION_KEY=self.TABLE_PARTITION_KEY,
            TABLE_MAX_BATCH_SIZE=self.TABLE_MAX_BATCH_SIZE,
            TABLE_INIT_MAX_ATTEMPTS=self.TABLE_INIT_MAX_ATTEMPTS,
            TABLE_INIT_BASE_DELAY=self.TABLE_INIT_BASE_DELAY,
        )

    @property
    def load_test(self) -> 'LoadTestSettings':
        """Get load generator settings."""
        return LoadTestSettings(
            LOAD_TEST_MAX_RECORDS=self.LOAD_TEST_MAX_RECORDS,
            LOAD_TEST_MAX_CONCURRENCY=self.LOAD_TEST_MAX_CONCURRENCY,
            LOAD_TEST_REPORTS_ENABLED=self.LOAD_TEST_REPORTS_ENABLED,
            LOAD_TEST_REPORTS_DIR=self.LOAD_TEST_REPORTS_DIR,
            LOAD_TEST_VERSION_NAME=self.LOAD_TEST_VERSION_NAME,
            LOAD_TEST_DETAILED_LOGGING=self.LOAD_TEST_DETAILED_LOGGING,
        )

    @property
    def logging(self) -> 'LoggingSettings':
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
