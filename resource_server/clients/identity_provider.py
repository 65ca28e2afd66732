# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Identity provider clients used to verify bearer tokens.

A provider either returns the verified owner identifier, raises
``TokenRejectedError`` when the token itself is bad (invalid signature,
expired, malformed), or raises ``IdentityProviderError`` when identity could
not be established for any other reason. Neither error message ever contains
the token.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from .cache import TokenVerificationCache

logger = logging.getLogger(__name__)


class TokenRejectedError(Exception):
    """Raised when the identity provider rejects a token."""

    pass


class IdentityProviderError(Exception):
    """Raised when the identity provider cannot be reached or misbehaves."""

    pass


def token_digest(token: str) -> str:
    """Full SHA-256 hex digest of a token, used as a cache key."""
    return hashlib.sha256(token.encode()).hexdigest()


class IdentityProvider(ABC):
    """Verifies bearer tokens against an external identity authority."""

    @abstractmethod
    async def verify(self, token: str) -> str:
        """
        Verify a bearer token.

        Args:
            token: The raw bearer credential

        Returns:
            The verified owner identifier

        Raises:
            TokenRejectedError: If the token is invalid or expired
            IdentityProviderError: If verification could not be performed
        """

    async def close(self) -> None:
        """Release any held resources."""
        return None


class StaticTokenIdentityProvider(IdentityProvider):
    """Verifies tokens against a fixed token -> owner table."""

    def __init__(self, tokens: dict[str, str]):
        self._tokens = dict(tokens)

    async def verify(self, token: str) -> str:
        owner_id = self._tokens.get(token)
        if not owner_id:
            raise TokenRejectedError("Token not recognised")
        return owner_id


def parse_static_tokens(tokens_str: str) -> dict[str, str]:
    """
    Parse a comma-separated list of ``token:owner_id`` pairs.

    Args:
        tokens_str: e.g. ``"dev-token-1:user-a,dev-token-2:user-b"``

    Returns:
        Mapping of token to owner identifier (empty entries filtered out)

    Raises:
        ValueError: If an entry lacks a token or an owner identifier
    """
    if not tokens_str:
        return {}

    tokens: dict[str, str] = {}
    for entry in tokens_str.split(","):
        entry = entry.strip()
        if not entry:
            continue
        token, sep, owner_id = entry.partition(":")
        token, owner_id = token.strip(), owner_id.strip()
        if not sep or not token or not owner_id:
            raise ValueError("STATIC_TOKENS entries must look like token:owner_id")
        tokens[token] = owner_id
    return tokens


class HTTPIdentityProvider(IdentityProvider):
    """
    Verifies tokens by calling a user-info endpoint.

    Compatible with Supabase ``GET /auth/v1/user``: the token is sent as a
    Bearer credential and, when configured, the project key in ``apikey``.
    A 200 response must carry the user identifier in ``id`` (or ``sub``).
    """

    REJECTED_STATUSES = {400, 401, 403}

    def __init__(
        self,
        userinfo_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the provider.

        Args:
            userinfo_url: Absolute URL of the user-info endpoint
            api_key: Optional project key sent in the ``apikey`` header
            timeout: Request timeout in seconds
            client: Optional pre-built HTTP client (owned by the caller)
        """
        if not userinfo_url:
            raise ValueError("userinfo_url cannot be empty")
        self.userinfo_url = userinfo_url
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def verify(self, token: str) -> str:
        headers = {"Authorization": f"Bearer {token}"}
        if self._api_key:
            headers["apikey"] = self._api_key

        try:
            response = await self._client.get(self.userinfo_url, headers=headers)
        except httpx.TimeoutException as e:
            raise IdentityProviderError("Identity provider request timed out") from e
        except httpx.RequestError as e:
            raise IdentityProviderError(
                f"Failed to reach identity provider: {type(e).__name__}"
            ) from e

        if response.status_code in self.REJECTED_STATUSES:
            raise TokenRejectedError(
                f"Identity provider rejected token (HTTP {response.status_code})"
            )
        if response.status_code != 200:
            raise IdentityProviderError(
                f"Identity provider returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise IdentityProviderError("Identity provider returned a non-JSON body") from e

        owner_id = None
        if isinstance(payload, dict):
            owner_id = payload.get("id") or payload.get("sub")
        if not isinstance(owner_id, str) or not owner_id:
            raise IdentityProviderError("Identity provider response has no user id")
        return owner_id

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class CachingIdentityProvider(IdentityProvider):
    """
    Wraps another provider with a Redis cache of successful verifications.

    Rejections and provider errors are never cached. A token revoked or
    expired at the provider keeps verifying until its cache entry expires,
    so the TTL bounds the revocation delay (capped by ``MAX_TOKEN_CACHE_TTL``
    in settings).
    """

    def __init__(
        self,
        inner: IdentityProvider,
        cache: TokenVerificationCache,
        ttl: Optional[int] = None,
    ):
        self.inner = inner
        self.cache = cache
        self.ttl = ttl

    async def verify(self, token: str) -> str:
        key = token_digest(token)

        cached = await self.cache.get_owner(key)
        if cached:
            logger.debug("Token verification served from cache")
            return cached

        owner_id = await self.inner.verify(token)
        await self.cache.set_owner(key, owner_id, self.ttl)
        return owner_id

    async def close(self) -> None:
        await self.inner.close()
        await self.cache.close()
