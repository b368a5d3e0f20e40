"""
Redis Client - the external store behind the backend tier

Architecture:
    RedisClient (Public API, implements KeyValueBackend)
        ├── ConnectionManager (Connection lifecycle)
        ├── OperationExecutor (Command execution with error handling)
        └── HealthMonitor (Health checks)

The client exposes only the primitives the cache needs: get, set, setex,
delete, exists, incrby, decrby and flushall, plus pipelined bulk get/set.
Every redis-py error is logged and re-raised as a CacheError subclass so the
backend tier adapter has a single exception family to absorb.
"""

import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from object_cache.core.config.settings import Settings, get_settings
from object_cache.core.exceptions import CacheConnectionError, CacheKeyError
from object_cache.core.logging.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# Handles connection lifecycle
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle.

    Responsibility: Connection establishment and cleanup.

    One pool per process; every cache operation shares it.
    """

    def __init__(self, settings: Settings):
        """
        Initialize connection manager.

        Args:
            settings: Application settings
        """
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis.

        STAGE-REDIS.2: Connection establishment

        Returns:
            redis.Redis: Connected Redis client

        Raises:
            CacheConnectionError: If connection fails
        """
        if self._is_connected and self._client:
            return self._client

        redis_settings = self._settings.redis

        try:
            self._pool = ConnectionPool(
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                db=redis_settings.REDIS_DB,
                password=redis_settings.REDIS_PASSWORD,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
                health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,  # Codec works on str
            )
            self._client = redis.Redis(connection_pool=self._pool)

            # Verify connection with ping
            await self._client.ping()

            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage="REDIS.2",
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                db=redis_settings.REDIS_DB,
            )

            return self._client

        except RedisError as e:
            # AUTH, SELECT and server-state errors fail the handshake too
            logger.error(
                "Failed to connect to Redis", stage="REDIS.2", error_type=e.__class__.__name__, error=str(e)
            )
            if self._pool:
                await self._pool.disconnect()
            self._client = None
            self._pool = None
            raise CacheConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={
                    "host": redis_settings.REDIS_HOST,
                    "port": redis_settings.REDIS_PORT,
                },
            )

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        if self._client:
            await self._client.aclose()

        if self._pool:
            await self._pool.disconnect()

        self._client = None
        self._pool = None
        self._is_connected = False

        logger.info("Redis disconnected", stage="REDIS.3")

    async def ping(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            True if healthy, False otherwise
        """
        try:
            if self._client and self._is_connected:
                await self._client.ping()
                return True
        except (ConnectionError, TimeoutError):
            pass
        return False

    def get_client(self) -> redis.Redis | None:
        """Get the Redis client instance."""
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        """Get the connection pool instance."""
        return self._pool

    def is_connected(self) -> bool:
        """Check if connected to Redis."""
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# Executes Redis commands with error handling and logging
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Error Handling Strategy:
    - Catch RedisError exceptions
    - Log error with context (stage, key)
    - Raise CacheKeyError with details
    """

    def __init__(self, redis_client: redis.Redis):
        """
        Initialize operation executor.

        Args:
            redis_client: Redis client instance
        """
        self._redis = redis_client

    # -------------------------------------------------------------------------
    # Basic Operations
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """
        Get value from Redis.

        STAGE-REDIS.GET: Redis GET operation
        """
        try:
            return await self._redis.get(key)
        except RedisError as e:
            logger.error("Redis GET failed", stage="REDIS.GET", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis GET failed: {e}", details={"key": key})
        except UnicodeDecodeError as e:
            logger.error("Redis GET returned a non-UTF-8 value", stage="REDIS.GET", key=key, error=str(e))
            raise CacheKeyError(message="Redis GET returned a non-UTF-8 value", details={"key": key})

    async def set(self, key: str, value: str) -> bool:
        """
        Set value in Redis with no expiration.

        STAGE-REDIS.SET: Redis SET operation
        """
        try:
            result = await self._redis.set(key, value)
            return bool(result)
        except RedisError as e:
            logger.error("Redis SET failed", stage="REDIS.SET", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis SET failed: {e}", details={"key": key})

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        """
        Set value in Redis with a relative expiration.

        STAGE-REDIS.SETEX: Redis SETEX operation

        Args:
            key: Redis key
            ttl: Time-to-live in seconds
            value: Value to set
        """
        try:
            result = await self._redis.setex(key, ttl, value)
            return bool(result)
        except RedisError as e:
            logger.error("Redis SETEX failed", stage="REDIS.SETEX", key=key, ttl=ttl, error=str(e))
            raise CacheKeyError(
                message=f"Redis SETEX failed: {e}", details={"key": key, "ttl": ttl}
            )

    async def delete(self, *keys: str) -> int:
        """
        Delete keys from Redis.

        STAGE-REDIS.DEL: Redis DELETE operation

        Returns:
            Number of keys deleted
        """
        try:
            return await self._redis.delete(*keys)
        except RedisError as e:
            logger.error("Redis DELETE failed", stage="REDIS.DEL", keys=keys, error=str(e))
            raise CacheKeyError(message=f"Redis DELETE failed: {e}", details={"keys": keys})

    async def exists(self, *keys: str) -> int:
        """
        Check if keys exist in Redis.

        Returns:
            Number of keys that exist
        """
        try:
            return await self._redis.exists(*keys)
        except RedisError as e:
            logger.error("Redis EXISTS failed", stage="REDIS.EXISTS", keys=keys, error=str(e))
            raise CacheKeyError(message=f"Redis EXISTS failed: {e}", details={"keys": keys})

    # -------------------------------------------------------------------------
    # Counter Operations
    # -------------------------------------------------------------------------

    async def incrby(self, key: str, amount: int) -> int:
        """
        Increment a counter by amount.

        Fails with CacheKeyError when the stored value is not an integer.
        """
        try:
            return await self._redis.incrby(key, amount)
        except RedisError as e:
            logger.error("Redis INCRBY failed", stage="REDIS.INCRBY", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis INCRBY failed: {e}", details={"key": key})

    async def decrby(self, key: str, amount: int) -> int:
        """Decrement a counter by amount."""
        try:
            return await self._redis.decrby(key, amount)
        except RedisError as e:
            logger.error("Redis DECRBY failed", stage="REDIS.DECRBY", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis DECRBY failed: {e}", details={"key": key})

    # -------------------------------------------------------------------------
    # Server Operations
    # -------------------------------------------------------------------------

    async def flushall(self) -> bool:
        """
        Remove every key from every database on the server.

        STAGE-REDIS.FLUSHALL: this is not scoped to the installation's keys.
        """
        try:
            return bool(await self._redis.flushall())
        except RedisError as e:
            logger.error("Redis FLUSHALL failed", stage="REDIS.FLUSHALL", error=str(e))
            raise CacheKeyError(message=f"Redis FLUSHALL failed: {e}")

    # -------------------------------------------------------------------------
    # Pipelined Bulk Operations
    # -------------------------------------------------------------------------

    async def get_many(self, keys: list[str]) -> list[str | None]:
        """
        Fetch several keys in a single pipeline round trip.

        Returns:
            Values in the same order as ``keys`` (None where missing)
        """
        if not keys:
            return []

        try:
            async with self._redis.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.get(key)
                return await pipe.execute()
        except RedisError as e:
            logger.error("Redis pipelined GET failed", stage="REDIS.MGET", count=len(keys), error=str(e))
            raise CacheKeyError(
                message=f"Redis pipelined GET failed: {e}", details={"count": len(keys)}
            )
        except UnicodeDecodeError as e:
            # one undecodable reply fails the whole pipeline
            logger.error(
                "Redis pipelined GET returned a non-UTF-8 value", stage="REDIS.MGET", count=len(keys), error=str(e)
            )
            raise CacheKeyError(
                message="Redis pipelined GET returned a non-UTF-8 value", details={"count": len(keys)}
            )

    async def set_many(self, items: list[tuple[str, str, int]]) -> bool:
        """
        Store several ``(key, value, ttl)`` triples in a single pipeline.

        A ttl of 0 issues SET, anything else SETEX.

        Returns:
            True only if every write succeeded
        """
        if not items:
            return True

        try:
            async with self._redis.pipeline(transaction=False) as pipe:
                for key, value, ttl in items:
                    if ttl:
                        pipe.setex(key, ttl, value)
                    else:
                        pipe.set(key, value)
                results = await pipe.execute()
            return all(results)
        except RedisError as e:
            logger.error("Redis pipelined SET failed", stage="REDIS.MSET", count=len(items), error=str(e))
            raise CacheKeyError(
                message=f"Redis pipelined SET failed: {e}", details={"count": len(items)}
            )


# =============================================================================
# LAYER 3: HEALTH MONITORING
# =============================================================================


class HealthMonitor:
    """
    Monitors Redis health.

    Metrics Tracked:
    - Connection status
    - Ping latency
    """

    def __init__(self, connection_manager: ConnectionManager, settings: Settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on Redis connection.

        STAGE-REDIS.HEALTH: Redis health check

        Returns:
            Dict with health status and metrics
        """
        health = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "host": self._settings.redis.REDIS_HOST,
            "port": self._settings.redis.REDIS_PORT,
            "db": self._settings.redis.REDIS_DB,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# =============================================================================


class RedisClient:
    """
    Async Redis client implementing the ``KeyValueBackend`` protocol.

    Usage:
        client = RedisClient()
        await client.connect()

        await client.setex("key", 3600, "value")
        value = await client.get("key")

        await client.disconnect()

    Raises ``CacheConnectionError`` for any operation attempted while not
    connected, and ``CacheKeyError`` for failed commands.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize Redis client.

        STAGE-REDIS.1: Client initialization
        """
        self._settings = settings or get_settings()

        # Build layers
        self._conn_mgr = ConnectionManager(self._settings)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)

        logger.info(
            "Redis client initialized",
            stage="REDIS.1",
            host=self._settings.redis.REDIS_HOST,
            port=self._settings.redis.REDIS_PORT,
        )

    async def connect(self) -> None:
        """
        Establish connection to Redis.

        Raises:
            CacheConnectionError: If connection fails
        """
        client = await self._conn_mgr.connect()
        self._executor = OperationExecutor(client)

    async def disconnect(self) -> None:
        """Close Redis connection and pool."""
        await self._conn_mgr.disconnect()
        self._executor = None

    async def ping(self) -> bool:
        """Check Redis connection health."""
        return await self._conn_mgr.ping()

    def is_connected(self) -> bool:
        return self._conn_mgr.is_connected()

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise CacheConnectionError(
                message="Redis client is not connected",
                details={"host": self._settings.redis.REDIS_HOST},
            ).with_suggestion("Call connect() before issuing commands")
        return self._executor

    # -------------------------------------------------------------------------
    # Delegate to OperationExecutor
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """Get value from Redis."""
        return await self._require_executor().get(key)

    async def set(self, key: str, value: str) -> bool:
        """Set value in Redis."""
        return await self._require_executor().set(key, value)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        """Set value in Redis with expiration."""
        return await self._require_executor().setex(key, ttl, value)

    async def delete(self, *keys: str) -> int:
        """Delete keys from Redis."""
        return await self._require_executor().delete(*keys)

    async def exists(self, *keys: str) -> int:
        """Check if keys exist in Redis."""
        return await self._require_executor().exists(*keys)

    async def incrby(self, key: str, amount: int) -> int:
        """Increment a counter by amount."""
        return await self._require_executor().incrby(key, amount)

    async def decrby(self, key: str, amount: int) -> int:
        """Decrement a counter by amount."""
        return await self._require_executor().decrby(key, amount)

    async def flushall(self) -> bool:
        """Flush every database on the server."""
        return await self._require_executor().flushall()

    async def get_many(self, keys: list[str]) -> list[str | None]:
        """Pipelined bulk get."""
        return await self._require_executor().get_many(keys)

    async def set_many(self, items: list[tuple[str, str, int]]) -> bool:
        """Pipelined bulk set."""
        return await self._require_executor().set_many(items)

    async def health_check(self) -> dict[str, Any]:
        """Perform health check on Redis connection."""
        return await self._health_monitor.health_check()

