"""Clients for external collaborators: storage, identity and caching."""

from .cache import CacheError, TokenVerificationCache
from .identity_provider import (
    CachingIdentityProvider,
    HTTPIdentityProvider,
    IdentityProvider,
    IdentityProviderError,
    StaticTokenIdentityProvider,
    TokenRejectedError,
    parse_static_tokens,
)
from .resource_store import OwnerScope, ResourceStore, ScopedQuery, SQLiteResourceStore

__all__ = [
    "CacheError",
    "TokenVerificationCache",
    "CachingIdentityProvider",
    "HTTPIdentityProvider",
    "IdentityProvider",
    "IdentityProviderError",
    "StaticTokenIdentityProvider",
    "TokenRejectedError",
    "parse_static_tokens",
    "OwnerScope",
    "ResourceStore",
    "ScopedQuery",
    "SQLiteResourceStore",
]
