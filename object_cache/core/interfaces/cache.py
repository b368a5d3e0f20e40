"""
Key-Value Backend Protocol

This module defines the protocol the backend tier adapter needs from the
external key-value store, plus an in-memory implementation used for tests
and local development.

Architectural Decision: Protocol-based abstraction
- The cache facade never imports a Redis client directly
- Facilitates testing with in-memory or mocked implementations
- Type-safe interface with runtime checking
"""

import time
from typing import Any, Protocol, runtime_checkable

from object_cache.core.exceptions import CacheKeyError


@runtime_checkable
class KeyValueBackend(Protocol):
    """
    Protocol defining the primitive operations of the external store.

    The store only offers unconditional set, set-with-expiry, get, delete,
    exists, atomic increment/decrement and flush-all. Conditional writes,
    bulk writes and counter mirroring are built on top of these by
    ``BackendTier``.

    Implementations:
    - RedisClient: Production Redis-backed store
    - InMemoryBackend: Testing/development in-memory store

    Implementations raise ``CacheError`` subclasses on failure.
    """

    async def connect(self) -> None:
        """
        Establish connection to the store.

        Raises:
            CacheConnectionError: If connection fails
        """
        ...

    async def disconnect(self) -> None:
        """Close connection to the store."""
        ...

    async def ping(self) -> bool:
        """Return True if the store answers."""
        ...

    async def exists(self, *keys: str) -> int:
        """Return how many of ``keys`` exist."""
        ...

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key does not exist."""
        ...

    async def set(self, key: str, value: str) -> bool:
        """Store ``value`` under ``key`` with no expiration."""
        ...

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        """Store ``value`` under ``key``, expiring after ``ttl`` seconds."""
        ...

    async def delete(self, *keys: str) -> int:
        """Delete keys; return the number removed."""
        ...

    async def incrby(self, key: str, amount: int) -> int:
        """Atomically add ``amount``; a missing key counts as 0."""
        ...

    async def decrby(self, key: str, amount: int) -> int:
        """Atomically subtract ``amount``; a missing key counts as 0."""
        ...

    async def flushall(self) -> bool:
        """Remove every key of every database on the server."""
        ...

    async def get_many(self, keys: list[str]) -> list[str | None]:
        """Fetch several keys in one round trip, in order."""
        ...

    async def set_many(self, items: list[tuple[str, str, int]]) -> bool:
        """
        Store several ``(key, value, ttl)`` triples in one round trip.

        A ttl of 0 means no expiration.
        """
        ...

    async def health_check(self) -> dict[str, Any]:
        """Return health status and metrics."""
        ...


class InMemoryBackend:
    """
    In-memory key-value store implementing ``KeyValueBackend``.

    Mirrors the Redis semantics the cache relies on: values are strings,
    ``incrby``/``decrby`` refuse non-integer values, expirations are relative
    and lazily enforced.

    Note: This is NOT shared between processes. Use only for testing and
    single-process development.
    """

    def __init__(self, clock=time.monotonic):
        self._store: dict[str, str] = {}
        self._expires_at: dict[str, float] = {}
        self._clock = clock
        self._connected = False

    async def connect(self) -> None:
        """Simulate connection."""
        self._connected = True

    async def disconnect(self) -> None:
        """Simulate disconnection; data survives like a real server."""
        self._connected = False

    async def ping(self) -> bool:
        return self._connected

    def _purge_if_expired(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._store.pop(key, None)
            self._expires_at.pop(key, None)

    async def exists(self, *keys: str) -> int:
        for key in keys:
            self._purge_if_expired(key)
        return sum(1 for key in keys if key in self._store)

    async def get(self, key: str) -> str | None:
        self._purge_if_expired(key)
        return self._store.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._store[key] = value
        self._expires_at.pop(key, None)
        return True

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        if ttl <= 0:
            raise CacheKeyError(
                message="invalid expire time in 'setex' command",
                details={"key": key, "ttl": ttl},
            )
        self._store[key] = value
        self._expires_at[key] = self._clock() + ttl
        return True

    async def delete(self, *keys: str) -> int:
        count = 0
        for key in keys:
            self._purge_if_expired(key)
            if key in self._store:
                del self._store[key]
                self._expires_at.pop(key, None)
                count += 1
        return count

    async def incrby(self, key: str, amount: int) -> int:
        self._purge_if_expired(key)
        current = self._store.get(key, "0")
        try:
            value = int(current) + amount
        except ValueError:
            raise CacheKeyError(
                message="value is not an integer or out of range",
                details={"key": key},
            )
        self._store[key] = str(value)
        return value

    async def decrby(self, key: str, amount: int) -> int:
        return await self.incrby(key, -amount)

    async def flushall(self) -> bool:
        self._store.clear()
        self._expires_at.clear()
        return True

    async def get_many(self, keys: list[str]) -> list[str | None]:
        return [await self.get(key) for key in keys]

    async def set_many(self, items: list[tuple[str, str, int]]) -> bool:
        for key, value, ttl in items:
            if ttl:
                await self.setex(key, ttl, value)
            else:
                await self.set(key, value)
        return True

    async def health_check(self) -> dict[str, Any]:
        """Health check."""
        return {
            "status": "healthy" if self._connected else "unhealthy",
            "connected": self._connected,
            "keys_count": len(self._store),
        }
