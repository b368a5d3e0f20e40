"""
Unit Tests for RedisClient

Tests connection lifecycle, command error translation and pipelined bulk
operations against a mocked redis.asyncio client.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import AuthenticationError, ConnectionError, RedisError, ResponseError

from object_cache.core.exceptions import CacheConnectionError, CacheKeyError
from object_cache.core.interfaces.cache import KeyValueBackend
from object_cache.infrastructure.cache.cache_manager import MISS, ObjectCache
from object_cache.infrastructure.cache.redis_client import HealthMonitor, OperationExecutor, RedisClient

MODULE = "object_cache.infrastructure.cache.redis_client"


@pytest.fixture
def connected_client(mock_settings, mock_redis):
    """RedisClient whose pool and client are mocked."""
    with (
        patch(f"{MODULE}.ConnectionPool") as mock_pool_cls,
        patch(f"{MODULE}.redis.Redis", return_value=mock_redis),
    ):
        mock_pool_cls.return_value.disconnect = AsyncMock()
        mock_redis.aclose = AsyncMock()
        yield RedisClient(mock_settings)


@pytest.mark.unit
class TestConnectionLifecycle:
    """Test connect / disconnect."""

    def test_implements_backend_protocol(self, mock_settings):
        """Test that RedisClient satisfies KeyValueBackend."""
        assert isinstance(RedisClient(mock_settings), KeyValueBackend)

    async def test_connect_pings_and_marks_connected(self, connected_client, mock_redis):
        """Test a successful connection."""
        await connected_client.connect()

        mock_redis.ping.assert_awaited_once()
        assert connected_client.is_connected()

    async def test_connect_builds_decoding_pool(self, mock_settings, mock_redis):
        """Test that the pool is built from settings with str responses."""
        with (
            patch(f"{MODULE}.ConnectionPool") as mock_pool_cls,
            patch(f"{MODULE}.redis.Redis", return_value=mock_redis),
        ):
            await RedisClient(mock_settings).connect()

        kwargs = mock_pool_cls.call_args.kwargs
        assert kwargs["host"] == "localhost"
        assert kwargs["max_connections"] == 10
        assert kwargs["decode_responses"] is True

    async def test_connect_failure_raises_cache_connection_error(self, connected_client, mock_redis):
        """Test that an unreachable server surfaces as CacheConnectionError."""
        mock_redis.ping.side_effect = ConnectionError("Connection refused")

        with pytest.raises(CacheConnectionError) as exc_info:
            await connected_client.connect()

        assert exc_info.value.details["host"] == "localhost"
        assert not connected_client.is_connected()

    @pytest.mark.parametrize(
        "error",
        [
            ResponseError("DB index is out of range"),
            AuthenticationError("invalid username-password pair"),
        ],
    )
    async def test_handshake_error_raises_and_releases_pool(self, connected_client, mock_redis, error):
        """Test that a server-side handshake error is a connection failure and frees the pool."""
        mock_redis.ping.side_effect = error

        with pytest.raises(CacheConnectionError):
            await connected_client.connect()

        conn_mgr = connected_client._conn_mgr
        assert conn_mgr.get_pool() is None
        assert conn_mgr.get_client() is None
        assert not connected_client.is_connected()

    async def test_handshake_error_disconnects_pool(self, mock_settings, mock_redis):
        """Test that the half-built pool is disconnected after a failed handshake."""
        mock_redis.ping.side_effect = ResponseError("DB index is out of range")
        with (
            patch(f"{MODULE}.ConnectionPool") as mock_pool_cls,
            patch(f"{MODULE}.redis.Redis", return_value=mock_redis),
        ):
            mock_pool_cls.return_value.disconnect = AsyncMock()
            with pytest.raises(CacheConnectionError):
                await RedisClient(mock_settings).connect()

        mock_pool_cls.return_value.disconnect.assert_awaited_once()

    async def test_cache_degrades_on_handshake_error(self, connected_client, mock_redis, test_settings):
        """Test that the cache starts degraded instead of raising."""
        mock_redis.ping.side_effect = ResponseError("DB index is out of range")
        cache = ObjectCache(backend=connected_client, settings=test_settings)

        await cache.initialize()

        assert cache.is_connected is False
        assert await cache.get("k", group="posts") is MISS
        assert await cache.set("k", 1, group="counts") is True

    async def test_commands_before_connect_raise(self, mock_settings):
        """Test that commands need a connection."""
        client = RedisClient(mock_settings)

        with pytest.raises(CacheConnectionError) as exc_info:
            await client.get("k")

        assert "suggestion" in exc_info.value.details

    async def test_disconnect_closes_client_and_pool(self, connected_client, mock_redis):
        """Test cleanup."""
        await connected_client.connect()
        pool = connected_client._conn_mgr.get_pool()

        await connected_client.disconnect()

        mock_redis.aclose.assert_awaited_once()
        pool.disconnect.assert_awaited_once()
        assert not connected_client.is_connected()

        with pytest.raises(CacheConnectionError):
            await connected_client.set("k", "v")

    async def test_ping_reports_false_when_disconnected(self, mock_settings):
        """Test ping without a connection."""
        assert await RedisClient(mock_settings).ping() is False


@pytest.mark.unit
class TestOperationExecutor:
    """Test command execution and error translation."""

    async def test_commands_delegate_to_redis(self, mock_redis):
        """Test that each primitive maps to one Redis command."""
        mock_redis.get.return_value = "v"
        mock_redis.set.return_value = True
        mock_redis.setex.return_value = True
        mock_redis.exists.return_value = 1
        mock_redis.delete.return_value = 1
        mock_redis.incrby.return_value = 5
        mock_redis.decrby.return_value = 3
        mock_redis.flushall.return_value = True
        executor = OperationExecutor(mock_redis)

        assert await executor.get("k") == "v"
        assert await executor.set("k", "v") is True
        assert await executor.setex("k", 30, "v") is True
        assert await executor.exists("k") == 1
        assert await executor.delete("k") == 1
        assert await executor.incrby("n", 2) == 5
        assert await executor.decrby("n", 2) == 3
        assert await executor.flushall() is True

        mock_redis.setex.assert_awaited_once_with("k", 30, "v")
        mock_redis.incrby.assert_awaited_once_with("n", 2)

    @pytest.mark.parametrize(
        ("command", "args"),
        [
            ("get", ("k",)),
            ("set", ("k", "v")),
            ("setex", ("k", 10, "v")),
            ("delete", ("k",)),
            ("exists", ("k",)),
            ("incrby", ("k", 1)),
            ("decrby", ("k", 1)),
            ("flushall", ()),
        ],
    )
    async def test_redis_errors_become_cache_key_errors(self, mock_redis, command, args):
        """Test that every redis-py error is translated."""
        getattr(mock_redis, command).side_effect = RedisError("boom")
        executor = OperationExecutor(mock_redis)

        with pytest.raises(CacheKeyError):
            await getattr(executor, command)(*args)

    async def test_incrby_on_non_integer(self, mock_redis):
        """Test the error Redis returns for INCRBY on a non-integer."""
        mock_redis.incrby.side_effect = ResponseError("value is not an integer or out of range")

        with pytest.raises(CacheKeyError, match="not an integer"):
            await OperationExecutor(mock_redis).incrby("k", 1)

    async def test_get_many_uses_one_pipeline(self, mock_redis):
        """Test pipelined bulk get."""
        mock_redis.pipe.execute.return_value = ["1", None]

        result = await OperationExecutor(mock_redis).get_many(["a", "b"])

        assert result == ["1", None]
        mock_redis.pipeline.assert_called_once_with(transaction=False)
        assert mock_redis.pipe.get.call_count == 2

    async def test_get_many_empty_skips_round_trip(self, mock_redis):
        """Test that an empty batch does not touch Redis."""
        assert await OperationExecutor(mock_redis).get_many([]) == []
        mock_redis.pipeline.assert_not_called()

    async def test_set_many_picks_set_or_setex(self, mock_redis):
        """Test that ttl 0 issues SET and anything else SETEX."""
        mock_redis.pipe.execute.return_value = [True, True]

        stored = await OperationExecutor(mock_redis).set_many([("a", "1", 0), ("b", "2", 60)])

        assert stored is True
        mock_redis.pipe.set.assert_called_once_with("a", "1")
        mock_redis.pipe.setex.assert_called_once_with("b", 60, "2")

    async def test_set_many_reports_partial_failure(self, mock_redis):
        """Test that one refused write fails the batch."""
        mock_redis.pipe.execute.return_value = [True, False]

        assert await OperationExecutor(mock_redis).set_many([("a", "1", 0), ("b", "2", 0)]) is False

    async def test_pipeline_errors_become_cache_key_errors(self, mock_redis):
        """Test error translation for pipelines."""
        mock_redis.pipe.execute.side_effect = RedisError("pipeline broken")

        with pytest.raises(CacheKeyError):
            await OperationExecutor(mock_redis).get_many(["a"])

    async def test_non_utf8_value_becomes_cache_key_error(self, mock_redis):
        """Test that a value the client cannot decode is translated."""
        mock_redis.get.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        with pytest.raises(CacheKeyError, match="non-UTF-8"):
            await OperationExecutor(mock_redis).get("k")

    async def test_non_utf8_value_in_pipeline_becomes_cache_key_error(self, mock_redis):
        """Test decode failures in a pipelined bulk get."""
        mock_redis.pipe.execute.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        with pytest.raises(CacheKeyError, match="non-UTF-8"):
            await OperationExecutor(mock_redis).get_many(["a", "b"])

    async def test_non_utf8_record_reads_as_miss(self, connected_client, mock_redis, test_settings):
        """Test that the cache reports a foreign binary record as a miss."""
        mock_redis.exists.return_value = 1
        mock_redis.get.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        mock_redis.pipe.execute.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        cache = ObjectCache(backend=connected_client, settings=test_settings)
        await cache.initialize()

        assert await cache.get("k", group="posts") is MISS
        assert await cache.get_multi(["k"], group="posts") == {"k": MISS}
        assert cache.stats()["backend_errors"] == 2


@pytest.mark.unit
class TestHealthMonitor:
    """Test Redis health reporting."""

    async def test_unhealthy_without_client(self, mock_settings):
        """Test health before connect."""
        client = RedisClient(mock_settings)

        health = await client.health_check()

        assert health["status"] == "unhealthy"
        assert health["connected"] is False

    async def test_healthy_reports_latency(self, mock_settings, mock_redis):
        """Test health of a live connection."""
        conn_mgr = MagicMock()
        conn_mgr.is_connected.return_value = True
        conn_mgr.get_client.return_value = mock_redis

        health = await HealthMonitor(conn_mgr, mock_settings).health_check()

        assert health["status"] == "healthy"
        assert health["ping_latency_ms"] is not None

    async def test_ping_failure_is_unhealthy(self, mock_settings, mock_redis):
        """Test health when ping fails."""
        mock_redis.ping.side_effect = ConnectionError("gone")
        conn_mgr = MagicMock()
        conn_mgr.get_client.return_value = mock_redis

        health = await HealthMonitor(conn_mgr, mock_settings).health_check()

        assert health["status"] == "unhealthy"
        assert "gone" in health["error"]

