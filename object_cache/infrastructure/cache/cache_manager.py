#!/usr/bin/env python3
"""
Tiered Object Cache

Architecture:
    ObjectCache (Public API)
        ├── KeyBuilder (derived keys from key + group + scope + salt)
        │   └── GroupClassifier (global / non-persistent groups)
        ├── RuntimeTier (process-local dict, no expiry)
        ├── BackendTier (facade operations on top of Redis primitives)
        │   ├── KeyValueBackend (RedisClient in production)
        │   └── ValueCodec (wire encoding + clone-on-read)
        └── CacheObserver (metrics & logging)

Routing:
    Non-persistent group → RuntimeTier only, never touches the network.
    Any other group      → BackendTier, result mirrored into RuntimeTier.
    Global vs local only changes the derived key, never the routing.

Consistency:
    Read-your-writes inside one process (via the runtime mirror). Nothing
    stronger across processes: Redis is the only shared state, and add /
    replace are check-then-write, so two processes can both "add" the same
    key. That race is accepted.
"""

import asyncio
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from object_cache.core.config.constants import (
    DEFAULT_GROUP,
    LOG_KEY_MAX_LENGTH,
    CacheTier,
    Stage,
)
from object_cache.core.config.settings import Settings, get_settings
from object_cache.core.exceptions import CacheConnectionError, CacheError, CodecError
from object_cache.core.interfaces.cache import KeyValueBackend
from object_cache.core.logging.logger import get_logger, log_stage
from object_cache.infrastructure.cache.codec import ValueCodec
from object_cache.infrastructure.cache.keys import GroupClassifier, KeyBuilder, KeyScope
from object_cache.infrastructure.cache.redis_client import RedisClient

logger = get_logger(__name__)


class _Miss:
    """Marker for "not cached". Falsy, and distinct from a cached None/False/0."""

    _instance: "_Miss | None" = None

    def __new__(cls) -> "_Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"

    def __reduce__(self):
        return (_Miss, ())


MISS = _Miss()


# =============================================================================
# LAYER 1: RUNTIME TIER
# Process-local storage - no business logic
# =============================================================================


class RuntimeTier:
    """
    In-process mirror of recently written or read values.

    STAGE-2.1: Runtime tier

    Unbounded, no expiration, no I/O. Every read-modify-write runs under a
    single asyncio.Lock. Values are stored as given; callers pass in copies
    and clone on the way out.
    """

    def __init__(self):
        self._entries: dict[str, Any] = {}
        self._lock = asyncio.Lock()

    async def put(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, overwriting any previous entry."""
        async with self._lock:
            self._entries[key] = value

    async def get(self, key: str) -> Any:
        """Return the entry or MISS."""
        async with self._lock:
            return self._entries.get(key, MISS)

    async def add_if_absent(self, key: str, value: Any) -> bool:
        """Store ``value`` only if ``key`` has no entry yet."""
        async with self._lock:
            if key in self._entries:
                return False
            self._entries[key] = value
            return True

    async def replace_if_present(self, key: str, value: Any) -> bool:
        """Store ``value`` only if ``key`` already has an entry."""
        async with self._lock:
            if key not in self._entries:
                return False
            self._entries[key] = value
            return True

    async def adjust(self, key: str, offset: int) -> int | None:
        """
        Add ``offset`` to an integer entry; a missing entry counts as 0.

        Returns:
            The new value, or None if the current entry is not an int
        """
        async with self._lock:
            current = self._entries.get(key, 0)
            if type(current) is not int:
                return None
            updated = current + offset
            self._entries[key] = updated
            return updated

    async def remove(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, MISS) is not MISS

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def size(self) -> int:
        return len(self._entries)


# =============================================================================
# LAYER 2: OBSERVABILITY
# Tracks metrics and logs operations
# =============================================================================


class CacheObserver:
    """
    Tracks cache metrics and logs operations.

    Metrics Tracked:
    - Runtime hits, backend hits, misses
    - Writes, deletes, flushes
    - Backend failures absorbed by the adapter
    """

    def __init__(self, logger_instance=None):
        self._logger = logger_instance or logger

        self._hits_runtime = 0
        self._hits_backend = 0
        self._misses = 0
        self._writes = 0
        self._deletes = 0
        self._flushes = 0
        self._backend_errors = 0

    def record_lookup(self, source: CacheTier, key: str, runtime_only: bool = False) -> None:
        """
        Record the tier that answered a get.

        A miss is logged under the runtime stage when the group never reaches
        the backend.
        """
        short_key = key[:LOG_KEY_MAX_LENGTH]

        if source is CacheTier.RUNTIME:
            self._hits_runtime += 1
            log_stage(self._logger, Stage.RUNTIME_LOOKUP, "Runtime tier hit", level="debug", cache_key=short_key)
        elif source is CacheTier.BACKEND:
            self._hits_backend += 1
            log_stage(self._logger, Stage.BACKEND_LOOKUP, "Backend tier hit", level="debug", cache_key=short_key)
        else:
            self._misses += 1
            stage = Stage.RUNTIME_LOOKUP if runtime_only else Stage.BACKEND_LOOKUP
            log_stage(self._logger, stage, "Cache miss", level="debug", cache_key=short_key)

    def record_write(self, operation: str, key: str, tier: CacheTier) -> None:
        self._writes += 1
        log_stage(
            self._logger, Stage.CACHE_WRITE, "Cache write", level="debug",
            operation=operation, tier=tier.value, cache_key=key[:LOG_KEY_MAX_LENGTH],
        )

    def record_delete(self, key: str) -> None:
        self._deletes += 1
        log_stage(self._logger, Stage.CACHE_DELETE, "Cache invalidated", level="debug", cache_key=key[:LOG_KEY_MAX_LENGTH])

    def record_flush(self, succeeded: bool) -> None:
        self._flushes += 1
        log_stage(
            self._logger, Stage.CACHE_FLUSH, "Cache flushed",
            level="info" if succeeded else "warning", backend_flushed=succeeded,
        )

    def record_failure(self, operation: str, key: str | None, error: Exception) -> None:
        """Log a backend error the adapter turned into a False/MISS result."""
        self._backend_errors += 1
        log_stage(
            self._logger, Stage.REDIS, "Backend operation failed",
            level="warning",
            operation=operation,
            cache_key=key[:LOG_KEY_MAX_LENGTH] if key else None,
            error_type=error.__class__.__name__,
            error=str(error),
        )

    def get_stats(self) -> dict[str, Any]:
        """
        Get cache performance statistics.

        Returns:
            Dict with hit counters and hit rates
        """
        total = self._hits_runtime + self._hits_backend + self._misses
        hit_rate = (self._hits_runtime + self._hits_backend) / total if total > 0 else 0.0

        return {
            "runtime_hits": self._hits_runtime,
            "backend_hits": self._hits_backend,
            "misses": self._misses,
            "total_lookups": total,
            "hit_rate": round(hit_rate, 3),
            "runtime_hit_rate": round(self._hits_runtime / total, 3) if total > 0 else 0.0,
            "writes": self._writes,
            "deletes": self._deletes,
            "flushes": self._flushes,
            "backend_errors": self._backend_errors,
        }


# =============================================================================
# LAYER 3: BACKEND TIER ADAPTER
# Facade operations built on Redis primitives
# =============================================================================


class BackendTier:
    """
    Implements cache operations against a store that only offers set, setex,
    get, delete, exists, incrby, decrby and flushall.

    STAGE-2.2: Backend tier

    Every backend error stops here: it is logged through the observer and
    reported as False (writes) or MISS (reads). Successful writes and reads
    are mirrored into the runtime tier.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        runtime: RuntimeTier,
        codec: ValueCodec,
        observer: CacheObserver,
    ):
        self._backend = backend
        self._runtime = runtime
        self._codec = codec
        self._observer = observer

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    async def _write(self, key: str, value: Any, expiration: int) -> bool:
        wire = self._codec.encode(value)
        ttl = abs(int(expiration))
        if ttl:
            return await self._backend.setex(key, ttl, wire)
        return await self._backend.set(key, wire)

    async def _write_and_mirror(self, key: str, value: Any, expiration: int) -> bool:
        stored = await self._write(key, value, expiration)
        if stored:
            await self._runtime.put(key, self._codec.clone(value))
        return stored

    async def add(self, key: str, value: Any, expiration: int = 0) -> bool:
        """
        Write only if the key is absent from the backend.

        The exists check and the write are two commands; another process can
        write in between and both adds report success.
        """
        try:
            if await self._backend.exists(key):
                return False
            return await self._write_and_mirror(key, value, expiration)
        except CacheError as e:
            self._observer.record_failure("add", key, e)
            return False

    async def replace(self, key: str, value: Any, expiration: int = 0) -> bool:
        """Write only if the key already exists in the backend."""
        try:
            if not await self._backend.exists(key):
                return False
            return await self._write_and_mirror(key, value, expiration)
        except CacheError as e:
            self._observer.record_failure("replace", key, e)
            return False

    async def set(self, key: str, value: Any, expiration: int = 0) -> bool:
        """Unconditional write; expiration 0 means no TTL."""
        try:
            return await self._write_and_mirror(key, value, expiration)
        except CacheError as e:
            self._observer.record_failure("set", key, e)
            return False

    async def get(self, key: str) -> Any:
        """
        Fetch, decode and mirror a record.

        Returns:
            A copy of the value, or MISS if absent, unreadable or the
            backend is unavailable
        """
        try:
            if not await self._backend.exists(key):
                return MISS
            wire = await self._backend.get(key)
            if wire is None:
                # expired between EXISTS and GET
                return MISS
            value = self._codec.decode(wire)
            await self._runtime.put(key, value)
            return self._codec.clone(value)
        except CacheError as e:
            self._observer.record_failure("get", key, e)
            return MISS

    async def delete(self, key: str) -> bool:
        """Delete from the backend; the runtime entry is removed regardless."""
        try:
            return await self._backend.delete(key) > 0
        except CacheError as e:
            self._observer.record_failure("delete", key, e)
            return False
        finally:
            await self._runtime.remove(key)

    async def flush(self, delay: float = 0) -> bool:
        """
        Wait ``delay`` seconds, clear the runtime tier, then FLUSHALL.

        FLUSHALL empties the whole Redis server: every installation and tenant
        sharing it loses its keys. If it fails the runtime tier is already
        empty and the two tiers disagree until the records expire.
        """
        if delay > 0:
            await asyncio.sleep(delay)

        await self._runtime.clear()

        try:
            return await self._backend.flushall()
        except CacheError as e:
            self._observer.record_failure("flush", None, e)
            return False

    async def _adjust(self, operation: str, key: str, offset: int) -> Any:
        try:
            if operation == "increment":
                await self._backend.incrby(key, offset)
            else:
                await self._backend.decrby(key, offset)

            # INCRBY only returns the number; re-read so the mirror holds
            # whatever the backend now has, including other writers' changes
            wire = await self._backend.get(key)
            if wire is None:
                return False
            value = self._codec.decode(wire)
        except CacheError as e:
            self._observer.record_failure(operation, key, e)
            return False

        await self._runtime.put(key, value)
        log_stage(
            logger, Stage.COUNTER_UPDATE, "Counter updated", level="debug",
            operation=operation, cache_key=key[:LOG_KEY_MAX_LENGTH], value=value,
        )
        return value

    async def increment(self, key: str, offset: int = 1) -> Any:
        """Atomic INCRBY followed by a re-read; False on failure."""
        return await self._adjust("increment", key, offset)

    async def decrement(self, key: str, offset: int = 1) -> Any:
        """Atomic DECRBY followed by a re-read; False on failure."""
        return await self._adjust("decrement", key, offset)

    async def set_many(self, items: Mapping[str, Any], expiration: int = 0) -> bool:
        """
        Write several records in one backend round trip.

        Nothing is mirrored unless the whole batch was accepted.
        """
        ttl = abs(int(expiration))
        try:
            batch = [(key, self._codec.encode(value), ttl) for key, value in items.items()]
            stored = await self._backend.set_many(batch)
            if stored:
                for key, value in items.items():
                    await self._runtime.put(key, self._codec.clone(value))
            return stored
        except CacheError as e:
            self._observer.record_failure("set_many", None, e)
            return False

    async def get_many(self, keys: list[str]) -> dict[str, Any]:
        """
        Fetch several records in one backend round trip.

        Returns:
            Dict mapping key → copy of the value, or MISS
        """
        results: dict[str, Any] = {key: MISS for key in keys}
        if not keys:
            return results

        try:
            wires = await self._backend.get_many(keys)
        except CacheError as e:
            self._observer.record_failure("get_many", None, e)
            return results

        for key, wire in zip(keys, wires):
            if wire is None:
                continue
            try:
                value = self._codec.decode(wire)
            except CodecError as e:
                self._observer.record_failure("get_many", key, e)
                continue
            await self._runtime.put(key, value)
            results[key] = self._codec.clone(value)

        return results


# =============================================================================
# LAYER 4: PUBLIC API
# =============================================================================


class ObjectCache:
    """
    Two-tier object cache: runtime tier in front of a shared Redis.

    Usage:
        cache = ObjectCache()
        await cache.initialize()

        await cache.set("post:42", {"title": "Hello"}, group="posts", expiration=300)
        post = await cache.get("post:42", group="posts")
        if post is MISS:
            ...

        cache.add_non_persistent_groups("counts")
        await cache.increment("hits", 3, group="counts")

        await cache.close()

    Ordinary conditions never raise: a miss returns ``MISS``, an add on an
    existing key returns False, and an unreachable backend makes every
    backend-routed call return False / MISS.

    Construct one instance per process and pass it to call sites; the
    ``get_object_cache()`` accessor is provided for code that needs a
    process-wide handle.
    """

    def __init__(
        self,
        backend: KeyValueBackend | None = None,
        settings: Settings | None = None,
        classifier: GroupClassifier | None = None,
        codec: ValueCodec | None = None,
    ):
        """
        Initialize the cache.

        STAGE-0.0: Cache initialization

        Args:
            backend: External store (default: RedisClient built from settings)
            settings: Application settings (default: get_settings())
            classifier: Group classifier (default: built-in group lists)
            codec: Value codec (default: pickle for opaque objects)
        """
        self._settings = settings or get_settings()
        cache_settings = self._settings.cache

        self._classifier = classifier or GroupClassifier()
        self._classifier.add_global_groups(cache_settings.CACHE_GLOBAL_GROUPS)
        self._classifier.add_non_persistent_groups(cache_settings.CACHE_NON_PERSISTENT_GROUPS)

        self._keys = KeyBuilder(KeyScope.from_settings(self._settings), self._classifier)
        self._codec = codec or ValueCodec()
        self._runtime = RuntimeTier()
        self._observer = CacheObserver()
        self._backend = BackendTier(
            backend if backend is not None else RedisClient(self._settings),
            self._runtime,
            self._codec,
            self._observer,
        )
        self._initialized = False

        log_stage(
            logger, Stage.INITIALIZATION, "Object cache initialized",
            multi_tenant=cache_settings.CACHE_MULTI_TENANT,
            global_groups=len(self._classifier.global_groups),
            non_persistent_groups=len(self._classifier.non_persistent_groups),
        )

    async def initialize(self) -> None:
        """
        Connect the backend.

        STAGE-0.1: Backend connection

        A connection failure is logged and the cache keeps running in
        degraded mode: non-persistent groups work, everything else reports
        False / MISS.
        """
        if self._initialized:
            return

        try:
            await self._backend.backend.connect()
        except CacheConnectionError as e:
            log_stage(
                logger, Stage.INITIALIZATION, "Backend unavailable, running degraded",
                level="warning", error=e.message, details=e.details,
            )
            return

        self._initialized = True
        log_stage(logger, Stage.INITIALIZATION, "Object cache backend connected")

    async def close(self) -> None:
        """
        Disconnect the backend and drop the runtime tier.

        STAGE-3.0: Shutdown
        """
        await self._runtime.clear()
        await self._backend.backend.disconnect()
        self._initialized = False

        log_stage(logger, Stage.SHUTDOWN, "Object cache closed")

    @property
    def is_connected(self) -> bool:
        return self._initialized

    # -------------------------------------------------------------------------
    # Group Classification
    # -------------------------------------------------------------------------

    def add_global_groups(self, groups: str | Iterable[str]) -> None:
        """Share one or more groups across every tenant of the installation."""
        self._classifier.add_global_groups(groups)

    def add_non_persistent_groups(self, groups: str | Iterable[str]) -> None:
        """Keep one or more groups in this process only."""
        self._classifier.add_non_persistent_groups(groups)

    def build_key(self, key: Any, group: str | None = DEFAULT_GROUP) -> str:
        """Derived storage key for ``(key, group)``."""
        return self._keys.build_key(key, group)

    def _is_runtime_only(self, group: str | None) -> bool:
        return self._classifier.is_non_persistent(group)

    # -------------------------------------------------------------------------
    # Core Cache Operations
    # -------------------------------------------------------------------------

    async def add(
        self, key: Any, value: Any, group: str | None = DEFAULT_GROUP, expiration: int = 0
    ) -> bool:
        """
        Store ``value`` only if ``key`` is not cached yet.

        Returns:
            True if stored, False if the key exists or the backend failed
        """
        derived_key = self._keys.build_key(key, group)

        if self._is_runtime_only(group):
            try:
                added = await self._runtime.add_if_absent(derived_key, self._codec.clone(value))
            except CodecError as e:
                self._observer.record_failure("add", derived_key, e)
                return False
            if added:
                self._observer.record_write("add", derived_key, CacheTier.RUNTIME)
            return added

        added = await self._backend.add(derived_key, value, expiration)
        if added:
            self._observer.record_write("add", derived_key, CacheTier.BACKEND)
        return added

    async def replace(
        self, key: Any, value: Any, group: str | None = DEFAULT_GROUP, expiration: int = 0
    ) -> bool:
        """
        Store ``value`` only if ``key`` is already cached.

        Returns:
            True if stored, False if the key is missing or the backend failed
        """
        derived_key = self._keys.build_key(key, group)

        if self._is_runtime_only(group):
            try:
                replaced = await self._runtime.replace_if_present(derived_key, self._codec.clone(value))
            except CodecError as e:
                self._observer.record_failure("replace", derived_key, e)
                return False
            if replaced:
                self._observer.record_write("replace", derived_key, CacheTier.RUNTIME)
            return replaced

        replaced = await self._backend.replace(derived_key, value, expiration)
        if replaced:
            self._observer.record_write("replace", derived_key, CacheTier.BACKEND)
        return replaced

    async def set(
        self, key: Any, value: Any, group: str | None = DEFAULT_GROUP, expiration: int = 0
    ) -> bool:
        """
        Store ``value`` whether or not ``key`` exists.

        STAGE-2.3: Cache write

        Args:
            key: Key within the group
            value: Any value the codec supports
            group: Group name (default: "default")
            expiration: TTL in seconds, 0 for none (ignored for non-persistent groups)

        Returns:
            True on success
        """
        derived_key = self._keys.build_key(key, group)

        if self._is_runtime_only(group):
            try:
                await self._runtime.put(derived_key, self._codec.clone(value))
            except CodecError as e:
                self._observer.record_failure("set", derived_key, e)
                return False
            self._observer.record_write("set", derived_key, CacheTier.RUNTIME)
            return True

        stored = await self._backend.set(derived_key, value, expiration)
        if stored:
            self._observer.record_write("set", derived_key, CacheTier.BACKEND)
        return stored

    async def get(self, key: Any, group: str | None = DEFAULT_GROUP, force: bool = False) -> Any:
        """
        Look up ``key``: runtime tier first, then the backend.

        STAGE-2.1: Runtime lookup
        STAGE-2.2: Backend lookup (if runtime miss)

        Args:
            key: Key within the group
            group: Group name
            force: Skip the runtime tier and refresh it from the backend

        Returns:
            A copy of the cached value, or MISS
        """
        derived_key = self._keys.build_key(key, group)
        runtime_only = self._is_runtime_only(group)

        if runtime_only or not force:
            value = await self._runtime.get(derived_key)
            if value is not MISS:
                self._observer.record_lookup(CacheTier.RUNTIME, derived_key)
                return self._codec.clone(value)
            if runtime_only:
                self._observer.record_lookup(CacheTier.MISS, derived_key, runtime_only=True)
                return MISS

        value = await self._backend.get(derived_key)
        self._observer.record_lookup(CacheTier.MISS if value is MISS else CacheTier.BACKEND, derived_key)
        return value

    async def get_from_runtime_cache(self, key: Any, group: str | None = DEFAULT_GROUP) -> Any:
        """Look at the runtime tier only; never touches the backend."""
        value = await self._runtime.get(self._keys.build_key(key, group))
        return MISS if value is MISS else self._codec.clone(value)

    async def delete(self, key: Any, group: str | None = DEFAULT_GROUP) -> bool:
        """
        Remove ``key`` from both tiers.

        STAGE-2.4: Cache invalidation

        Returns:
            True if a record was removed (always True for non-persistent groups)
        """
        derived_key = self._keys.build_key(key, group)

        if self._is_runtime_only(group):
            await self._runtime.remove(derived_key)
            self._observer.record_delete(derived_key)
            return True

        deleted = await self._backend.delete(derived_key)
        self._observer.record_delete(derived_key)
        return deleted

    async def increment(self, key: Any, offset: int = 1, group: str | None = DEFAULT_GROUP) -> int | bool:
        """
        Add ``offset`` to an integer value; a missing key starts at 0.

        STAGE-2.5: Counter update

        Returns:
            The new value, or False if the value is not an integer or the
            backend failed. Compare with ``is False``: 0 is a valid result.
        """
        return await self._adjust("increment", key, offset, group)

    async def decrement(self, key: Any, offset: int = 1, group: str | None = DEFAULT_GROUP) -> int | bool:
        """
        Subtract ``offset`` from an integer value; a missing key starts at 0.

        Values may go negative.
        """
        return await self._adjust("decrement", key, offset, group)

    async def _adjust(self, operation: str, key: Any, offset: int, group: str | None) -> int | bool:
        derived_key = self._keys.build_key(key, group)

        if self._is_runtime_only(group):
            signed = offset if operation == "increment" else -offset
            updated = await self._runtime.adjust(derived_key, signed)
            if updated is None:
                return False
            self._observer.record_write(operation, derived_key, CacheTier.RUNTIME)
            return updated

        if operation == "increment":
            updated = await self._backend.increment(derived_key, offset)
        else:
            updated = await self._backend.decrement(derived_key, offset)

        if updated is not False:
            self._observer.record_write(operation, derived_key, CacheTier.BACKEND)
        return updated

    async def flush(self, delay: float = 0) -> bool:
        """
        Drop everything, after waiting ``delay`` seconds.

        STAGE-2.6: Cache flush

        Warning: this issues FLUSHALL, which wipes the entire Redis server,
        including keys of other installations and tenants sharing it. The
        runtime tier (non-persistent groups included) is cleared first; if
        the backend flush fails the tiers are left inconsistent.

        Returns:
            True if the backend was flushed
        """
        flushed = await self._backend.flush(delay)
        self._observer.record_flush(flushed)
        return flushed

    # -------------------------------------------------------------------------
    # Bulk Operations
    # -------------------------------------------------------------------------

    async def set_multi(
        self, items: Mapping[Any, Any], group: str | None = DEFAULT_GROUP, expiration: int = 0
    ) -> bool:
        """
        Store several values of one group at once.

        Backend-routed groups are written in a single pipelined round trip.

        Returns:
            True if every item was stored
        """
        derived_items = {
            derived_key: items[raw_key] for derived_key, raw_key in self._keys.build_keys(items, group).items()
        }

        if self._is_runtime_only(group):
            try:
                for derived_key, value in derived_items.items():
                    await self._runtime.put(derived_key, self._codec.clone(value))
                    self._observer.record_write("set_multi", derived_key, CacheTier.RUNTIME)
            except CodecError as e:
                self._observer.record_failure("set_multi", None, e)
                return False
            return True

        stored = await self._backend.set_many(derived_items, expiration)
        if stored:
            for derived_key in derived_items:
                self._observer.record_write("set_multi", derived_key, CacheTier.BACKEND)
        return stored

    async def get_multi(
        self, keys: Iterable[Any], group: str | None = DEFAULT_GROUP, force: bool = False
    ) -> dict[Any, Any]:
        """
        Look up several keys of one group.

        Runtime hits are served locally; the rest are fetched from the
        backend in one pipelined round trip.

        Returns:
            Dict mapping each requested key → copy of its value, or MISS
        """
        derived_by_key = {key: self._keys.build_key(key, group) for key in keys}
        runtime_only = self._is_runtime_only(group)
        results: dict[Any, Any] = {}
        pending: dict[str, list[Any]] = {}

        for key, derived_key in derived_by_key.items():
            if runtime_only or not force:
                value = await self._runtime.get(derived_key)
                if value is not MISS:
                    self._observer.record_lookup(CacheTier.RUNTIME, derived_key)
                    results[key] = self._codec.clone(value)
                    continue
            if runtime_only:
                self._observer.record_lookup(CacheTier.MISS, derived_key, runtime_only=True)
                results[key] = MISS
                continue
            pending.setdefault(derived_key, []).append(key)

        if pending:
            fetched = await self._backend.get_many(list(pending))
            for derived_key, raw_keys in pending.items():
                value = fetched[derived_key]
                self._observer.record_lookup(
                    CacheTier.MISS if value is MISS else CacheTier.BACKEND, derived_key
                )
                for index, key in enumerate(raw_keys):
                    # each caller-visible key gets its own copy
                    results[key] = value if index == 0 or value is MISS else self._codec.clone(value)

        return {key: results[key] for key in derived_by_key}

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    def stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with hit rates, runtime size and group counts
        """
        return {
            **self._observer.get_stats(),
            "runtime_size": self._runtime.size(),
            "backend_connected": self._initialized,
            "global_groups": sorted(self._classifier.global_groups),
            "non_persistent_groups": sorted(self._classifier.non_persistent_groups),
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on both tiers.

        Returns:
            Dict with health status for each tier
        """
        health = {
            "status": "healthy",
            "runtime": {
                "status": "healthy",
                "size": self._runtime.size(),
            },
            "backend": None,
        }

        if not self._initialized:
            health["status"] = "degraded"
            health["backend"] = {"status": "not_connected"}
            return health

        try:
            backend_health = await self._backend.backend.health_check()
        except CacheError as e:
            health["status"] = "degraded"
            health["backend"] = {"status": "error", "error": str(e)}
            return health

        health["backend"] = backend_health
        if backend_health.get("status") != "healthy":
            health["status"] = "degraded"

        return health


# =============================================================================
# PROCESS-WIDE INSTANCE
# =============================================================================

_object_cache: ObjectCache | None = None


def get_object_cache() -> ObjectCache:
    """
    Get the process-wide cache instance, constructing it on first use.

    Returns:
        ObjectCache: Process-wide cache instance
    """
    global _object_cache

    if _object_cache is None:
        _object_cache = ObjectCache()

    return _object_cache


async def init_object_cache() -> ObjectCache:
    """
    Construct (once) and connect the process-wide cache.

    Returns:
        ObjectCache: Initialized cache
    """
    cache = get_object_cache()
    await cache.initialize()
    return cache


async def close_object_cache() -> None:
    """Close and forget the process-wide cache."""
    global _object_cache

    if _object_cache:
        await _object_cache.close()
        _object_cache = None
