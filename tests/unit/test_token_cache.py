"""Unit tests for the Redis token verification cache."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from resource_server.clients.cache import KEY_PREFIX, CacheError, TokenVerificationCache

REDIS_URL = "redis://localhost:6379/0"


def connected_client() -> MagicMock:
    client = MagicMock()
    client.ping = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


class TestTokenVerificationCacheInitialization:
    """Test construction and connection."""

    def test_init_with_empty_url(self):
        with pytest.raises(CacheError, match="redis_url cannot be empty"):
            TokenVerificationCache(redis_url="")

    def test_init_with_non_positive_ttl(self):
        with pytest.raises(CacheError, match="default_ttl must be positive"):
            TokenVerificationCache(redis_url=REDIS_URL, default_ttl=0)

    @patch("resource_server.clients.cache.redis.from_url")
    async def test_connect_success(self, mock_redis):
        mock_redis.return_value = connected_client()

        cache = TokenVerificationCache(redis_url=REDIS_URL)
        await cache.connect()

        assert await cache.is_connected()

    @patch("resource_server.clients.cache.logger")
    @patch("resource_server.clients.cache.redis.from_url")
    async def test_connect_failure_degrades(self, mock_redis, mock_logger):
        mock_redis.side_effect = RedisConnectionError("Connection refused")

        cache = TokenVerificationCache(redis_url=REDIS_URL)
        await cache.connect()

        assert not await cache.is_connected()
        mock_logger.warning.assert_called_once()


class TestTokenVerificationCacheOperations:
    """Test get/set behaviour."""

    @pytest.fixture
    async def cache_and_client(self):
        client = connected_client()
        with patch("resource_server.clients.cache.redis.from_url", return_value=client):
            cache = TokenVerificationCache(redis_url=REDIS_URL, default_ttl=60)
            await cache.connect()
        return cache, client

    async def test_get_owner_uses_prefixed_key(self, cache_and_client):
        cache, client = cache_and_client
        client.get.return_value = "user-1"

        assert await cache.get_owner("abc") == "user-1"
        client.get.assert_awaited_once_with(KEY_PREFIX + "abc")

    async def test_set_owner_uses_default_ttl(self, cache_and_client):
        cache, client = cache_and_client

        assert await cache.set_owner("abc", "user-1") is True
        client.setex.assert_awaited_once_with(KEY_PREFIX + "abc", timedelta(seconds=60), "user-1")

    async def test_set_owner_custom_ttl(self, cache_and_client):
        cache, client = cache_and_client
        await cache.set_owner("abc", "user-1", ttl=5)
        client.setex.assert_awaited_once_with(KEY_PREFIX + "abc", timedelta(seconds=5), "user-1")

    async def test_get_error_reports_miss_and_disconnects(self, cache_and_client):
        cache, client = cache_and_client
        client.get.side_effect = RedisError("boom")

        assert await cache.get_owner("abc") is None
        assert not await cache.is_connected()

    async def test_set_error_returns_false(self, cache_and_client):
        cache, client = cache_and_client
        client.setex.side_effect = RedisError("boom")
        assert await cache.set_owner("abc", "user-1") is False

    async def test_empty_key_is_rejected(self, cache_and_client):
        cache, _ = cache_and_client
        with pytest.raises(CacheError):
            await cache.get_owner("")

    async def test_close(self, cache_and_client):
        cache, client = cache_and_client
        await cache.close()
        client.aclose.assert_awaited_once()
        assert not await cache.is_connected()


class TestDisconnectedCache:
    """Test behaviour before connect() or after a failed connection."""

    async def test_get_returns_none(self):
        cache = TokenVerificationCache(redis_url=REDIS_URL)
        assert await cache.get_owner("abc") is None

    async def test_set_returns_false(self):
        cache = TokenVerificationCache(redis_url=REDIS_URL)
        assert await cache.set_owner("abc", "user-1") is False
