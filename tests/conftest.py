"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio runs in auto mode (see pyproject.toml); async tests and
# fixtures need no explicit marker


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def make_settings():
    """
    Factory for Settings isolated from the environment and any .env file.

    Usage:
        settings = make_settings(CACHE_MULTI_TENANT=True, CACHE_TENANT_ID=2)
    """
    from object_cache.core.config.settings import Settings

    def _make(**overrides):
        values = {
            "CACHE_KEY_SALT": "",
            "CACHE_TABLE_PREFIX": "wp_",
            "CACHE_MULTI_TENANT": False,
            "CACHE_TENANT_ID": 1,
            "CACHE_SHARED_USER_TABLES": False,
            "CACHE_GLOBAL_GROUPS": [],
            "CACHE_NON_PERSISTENT_GROUPS": [],
            "LOG_LEVEL": "INFO",
            "LOG_FORMAT": "json",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def test_settings(make_settings):
    """Single-installation settings with the default table prefix."""
    return make_settings()


@pytest.fixture
def mock_settings():
    """
    Mock application settings for testing.

    Returns a MagicMock with the attributes the Redis client reads.
    """
    from object_cache.core.config.settings import Settings

    settings = MagicMock(spec=Settings)

    settings.redis.REDIS_HOST = "localhost"
    settings.redis.REDIS_PORT = 6379
    settings.redis.REDIS_DB = 0
    settings.redis.REDIS_PASSWORD = None
    settings.redis.REDIS_MAX_CONNECTIONS = 10
    settings.redis.REDIS_SOCKET_TIMEOUT = 1
    settings.redis.REDIS_SOCKET_CONNECT_TIMEOUT = 1
    settings.redis.REDIS_HEALTH_CHECK_INTERVAL = 30

    return settings


# ============================================================================
# Environment-Based Integration Toggles
# ============================================================================


@pytest.fixture(scope="session")
def use_real_redis():
    """Check if real Redis should be used for integration tests."""
    return os.getenv("USE_REAL_REDIS", "0").lower() in ("1", "true", "yes")


# ============================================================================
# Backend Fixtures
# ============================================================================


@pytest.fixture
def in_memory_backend():
    """Fresh in-memory key-value store with Redis semantics."""
    from object_cache.core.interfaces.cache import InMemoryBackend

    return InMemoryBackend()


@pytest.fixture
def mock_redis():
    """
    Mock redis.asyncio.Redis client.

    Command methods are AsyncMocks; ``pipeline()`` returns an async context
    manager whose ``execute`` is an AsyncMock.
    """
    client = MagicMock()
    for command in ("get", "set", "setex", "delete", "exists", "incrby", "decrby", "flushall", "ping"):
        setattr(client, command, AsyncMock())

    pipe = MagicMock()
    pipe.__aenter__ = AsyncMock(return_value=pipe)
    pipe.__aexit__ = AsyncMock(return_value=False)
    pipe.execute = AsyncMock(return_value=[])
    client.pipeline = MagicMock(return_value=pipe)
    client.pipe = pipe

    return client


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
async def object_cache(in_memory_backend, test_settings):
    """Connected ObjectCache over the in-memory backend."""
    from object_cache.infrastructure.cache.cache_manager import ObjectCache

    cache = ObjectCache(backend=in_memory_backend, settings=test_settings)
    await cache.initialize()

    yield cache

    await cache.close()


@pytest.fixture
def make_cache(in_memory_backend, make_settings):
    """
    Factory for ObjectCache instances sharing one backend.

    Each instance stands in for a separate process: own runtime tier, same
    Redis.
    """
    from object_cache.infrastructure.cache.cache_manager import ObjectCache

    def _make(backend=None, **setting_overrides):
        return ObjectCache(
            backend=backend if backend is not None else in_memory_backend,
            settings=make_settings(**setting_overrides),
        )

    return _make
