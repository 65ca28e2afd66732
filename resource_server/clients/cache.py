# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Redis-backed cache for verified bearer tokens.

Only SHA-256 token digests are used as keys; raw tokens never reach Redis.
Every operation degrades gracefully: when Redis is unreachable the cache
reports a miss and callers fall back to the identity provider.
"""

import logging
from datetime import timedelta
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

KEY_PREFIX = "auth:token:"


class CacheError(Exception):
    """Raised when the cache is misconfigured or misused."""

    pass


class TokenVerificationCache:
    """
    Caches the owner identifier resolved for a token digest.

    Falls back gracefully when Redis is unavailable.
    """

    def __init__(self, redis_url: str, default_ttl: int = 60):
        """
        Initialize the cache client.

        Args:
            redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
            default_ttl: Default time-to-live in seconds for cached verifications

        Raises:
            CacheError: If Redis URL is empty or the TTL is not positive
        """
        if not redis_url:
            raise CacheError("redis_url cannot be empty")
        if default_ttl <= 0:
            raise CacheError("default_ttl must be positive")

        self.redis_url = redis_url
        self.default_ttl = default_ttl
        self._client: Optional[redis.Redis] = None
        self._connected = False

    async def connect(self) -> None:
        """
        Establish connection to Redis.

        Logs connection status but doesn't raise - allows graceful degradation.
        """
        try:
            self._client = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
                health_check_interval=30,
            )
            await self._client.ping()
            self._connected = True
            logger.info("Connected to Redis token cache")
        except (RedisConnectionError, RedisError) as e:
            self._connected = False
            logger.warning(f"Failed to connect to Redis: {str(e)}. Token cache disabled.")

    async def is_connected(self) -> bool:
        """Check if the Redis connection is active."""
        if not self._connected or self._client is None:
            return False

        try:
            await self._client.ping()
            return True
        except (RedisConnectionError, RedisError):
            self._connected = False
            return False

    async def get_owner(self, token_digest: str) -> Optional[str]:
        """
        Look up a cached owner identifier.

        Args:
            token_digest: SHA-256 digest of the bearer token

        Returns:
            The cached owner identifier, or None on miss or unavailability
        """
        if not token_digest:
            raise CacheError("token_digest cannot be empty")

        if not self._connected or self._client is None:
            return None

        try:
            return await self._client.get(KEY_PREFIX + token_digest)
        except (RedisConnectionError, RedisError) as e:
            self._connected = False
            logger.warning(f"Token cache lookup failed: {str(e)}")
            return None

    async def set_owner(
        self,
        token_digest: str,
        owner_id: str,
        ttl: Optional[int] = None,
    ) -> bool:
        """
        Cache an owner identifier for a token digest.

        Args:
            token_digest: SHA-256 digest of the bearer token
            owner_id: Verified owner identifier
            ttl: Time-to-live in seconds (uses default_ttl if not specified)

        Returns:
            True if cached, False if the cache is unavailable
        """
        if not token_digest:
            raise CacheError("token_digest cannot be empty")

        if not self._connected or self._client is None:
            return False

        try:
            await self._client.setex(
                KEY_PREFIX + token_digest,
                timedelta(seconds=ttl or self.default_ttl),
                owner_id,
            )
            return True
        except (RedisConnectionError, RedisError) as e:
            self._connected = False
            logger.warning(f"Token cache store failed: {str(e)}")
            return False

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            try:
                await self._client.aclose()
            except RedisError as e:
                logger.error(f"Error closing Redis connection: {str(e)}")
            finally:
                self._connected = False
                logger.info("Redis connection closed")
