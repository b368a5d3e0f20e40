#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
object cache. Connection parameters for the external store, the
installation-wide key salt and the tenant scope are all read here, once,
when the cache is constructed.

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
    Redis configuration for the shared backend tier.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")

    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Key scope and group configuration.

    STAGE-2: Key derivation inputs

    The salt lets several installations share one Redis database (and makes
    invalidating everything as simple as changing it). The tenant settings
    decide the prefixes used for global and local groups.
    """

    CACHE_KEY_SALT: str = Field(default="", description="Installation-wide key salt")
    CACHE_TABLE_PREFIX: str = Field(default="wp_", description="Table namespace of this installation")
    CACHE_MULTI_TENANT: bool = Field(default=False, description="Installation hosts several tenants")
    CACHE_TENANT_ID: int = Field(default=1, description="Tenant id used for local groups")
    CACHE_SHARED_USER_TABLES: bool = Field(
        default=False,
        description="User tables are shared with other installations (global groups drop the table prefix)",
    )
    CACHE_GLOBAL_GROUPS: list[str] = Field(
        default_factory=list, description="Extra global groups merged into the defaults"
    )
    CACHE_NON_PERSISTENT_GROUPS: list[str] = Field(
        default_factory=list, description="Extra non-persistent groups merged into the defaults"
    )

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
        from object_cache.core.config import get_settings

        settings = get_settings()
        redis_host = settings.redis.REDIS_HOST
        salt = settings.cache.CACHE_KEY_SALT
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    # Cache scope settings
    CACHE_KEY_SALT: str = Field(default="", description="Installation-wide key salt")
    CACHE_TABLE_PREFIX: str = Field(default="wp_", description="Table namespace of this installation")
    CACHE_MULTI_TENANT: bool = Field(default=False, description="Installation hosts several tenants")
    CACHE_TENANT_ID: int = Field(default=1, description="Tenant id used for local groups")
    CACHE_SHARED_USER_TABLES: bool = Field(default=False, description="User tables shared across installations")
    CACHE_GLOBAL_GROUPS: list[str] = Field(default_factory=list, description="Extra global groups")
    CACHE_NON_PERSISTENT_GROUPS: list[str] = Field(default_factory=list, description="Extra non-persistent groups")

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
    def validate_tenant_scope(self):
        """A multi-tenant installation needs a positive tenant id."""
        if self.CACHE_MULTI_TENANT and self.CACHE_TENANT_ID < 1:
            raise ValueError("CACHE_TENANT_ID must be >= 1 when CACHE_MULTI_TENANT is enabled")
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
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL
        )

    @property
    def cache(self) -> 'CacheSettings':
        """Get cache scope settings."""
        return CacheSettings(
            CACHE_KEY_SALT=self.CACHE_KEY_SALT,
            CACHE_TABLE_PREFIX=self.CACHE_TABLE_PREFIX,
            CACHE_MULTI_TENANT=self.CACHE_MULTI_TENANT,
            CACHE_TENANT_ID=self.CACHE_TENANT_ID,
            CACHE_SHARED_USER_TABLES=self.CACHE_SHARED_USER_TABLES,
            CACHE_GLOBAL_GROUPS=self.CACHE_GLOBAL_GROUPS,
            CACHE_NON_PERSISTENT_GROUPS=self.CACHE_NON_PERSISTENT_GROUPS
        )

    @property
    def logging(self) -> 'LoggingSettings':
        """Get logging settings."""
        return LoggingSettings(
            LOG_LEVEL=self.LOG_LEVEL,
            LOG_FORMAT=self.LOG_FORMAT
        )

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
