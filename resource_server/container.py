# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Service container for dependency wiring and lifecycle management.

The container builds every long-lived collaborator once per process: the
resource store, the audit logger and its sinks, the identity provider and
the optional token verification cache. Per-request objects (the owner scope
and the resource service bound to it) are created from it by
``resource_service_for``.
"""

import logging
from typing import Optional

from .clients.cache import TokenVerificationCache
from .clients.identity_provider import (
    CachingIdentityProvider,
    HTTPIdentityProvider,
    IdentityProvider,
    StaticTokenIdentityProvider,
    parse_static_tokens,
)
from .clients.resource_store import OwnerScope, ResourceStore, SQLiteResourceStore
from .config import Settings, settings as get_default_settings
from .services.audit_service import (
    AuditLogger,
    AuditSink,
    LoggingAuditSink,
    SQLiteAuditSink,
)
from .services.resource_service import Clock, ResourceService, utc_now

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Wires together all services with proper dependency injection.

    Usage::

        container = ServiceContainer()          # uses default settings
        await container.initialize()

        service = container.resource_service_for(owner_id)

        await container.shutdown()

    Collaborators can be replaced for tests::

        container = ServiceContainer(
            settings=my_settings,
            audit_sinks=[MemoryAuditSink()],
        )
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[ResourceStore] = None,
        identity_provider: Optional[IdentityProvider] = None,
        audit_sinks: Optional[list[AuditSink]] = None,
        clock: Clock = utc_now,
    ) -> None:
        """
        Create a ServiceContainer.

        Args:
            settings: Application settings. If None, loads from environment
                      variables / .env via the default ``settings()`` helper.
            store: Resource store (defaults to SQLite at DATABASE_PATH)
            identity_provider: Token verifier (defaults per AUTH_PROVIDER)
            audit_sinks: Audit sinks (defaults to the log, plus SQLite when
                         AUDIT_DB_PATH is set)
            clock: Time source for record timestamps
        """
        self._settings: Settings = settings or get_default_settings()
        self._initialized = False
        self._clock = clock
        s = self._settings

        self._store: ResourceStore = store or SQLiteResourceStore(db_path=s.database_path)
        logger.info(f"ServiceContainer: resource store ready ({type(self._store).__name__})")

        if audit_sinks is None:
            audit_sinks = [LoggingAuditSink()]
            if s.audit_db_path:
                audit_sinks.append(SQLiteAuditSink(db_path=s.audit_db_path))
                logger.info(f"ServiceContainer: audit events persisted to {s.audit_db_path}")
        self._audit = AuditLogger(sinks=audit_sinks)

        self._token_cache: Optional[TokenVerificationCache] = None
        self._identity_provider = identity_provider or self._build_identity_provider()

    def _build_identity_provider(self) -> IdentityProvider:
        s = self._settings

        provider: IdentityProvider
        if s.auth_provider == "http":
            if not s.identity_userinfo_url:
                raise ValueError("IDENTITY_USERINFO_URL is required when AUTH_PROVIDER=http")
            provider = HTTPIdentityProvider(
                userinfo_url=s.identity_userinfo_url,
                api_key=s.identity_api_key,
                timeout=s.identity_timeout_seconds,
            )
            logger.info("ServiceContainer: using HTTP identity provider")
        else:
            tokens = parse_static_tokens(s.static_tokens)
            if not tokens:
                logger.warning(
                    "ServiceContainer: static identity provider has no tokens; "
                    "every authenticated request will be rejected"
                )
            provider = StaticTokenIdentityProvider(tokens)
            logger.info(f"ServiceContainer: using static identity provider ({len(tokens)} tokens)")

        if s.redis_url:
            self._token_cache = TokenVerificationCache(
                redis_url=s.redis_url, default_ttl=s.token_cache_ttl
            )
            provider = CachingIdentityProvider(provider, self._token_cache)

        return provider

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Connect to external services.

        Redis connection failures are logged and tolerated; token
        verification then goes straight to the identity provider.
        """
        if self._initialized:
            logger.warning("ServiceContainer.initialize() called more than once")
            return

        logger.info("ServiceContainer: initializing services")

        if self._token_cache is not None:
            await self._token_cache.connect()

        self._initialized = True
        logger.info("ServiceContainer: all services initialized")

    async def shutdown(self) -> None:
        """Clean up connections and resources."""
        logger.info("ServiceContainer: shutting down")
        try:
            await self._identity_provider.close()
        except Exception as e:
            logger.warning(f"ServiceContainer: error closing identity provider: {e}")
        try:
            await self._store.close()
        except Exception as e:
            logger.warning(f"ServiceContainer: error closing resource store: {e}")
        self._initialized = False
        logger.info("ServiceContainer: shutdown complete")

    def resource_service_for(self, owner_id: str) -> ResourceService:
        """Build a resource service bound to one verified owner."""
        return ResourceService(
            store=self._store,
            scope=OwnerScope(owner_id),
            audit=self._audit,
            clock=self._clock,
        )

    # ------------------------------------------------------------------
    # Accessor properties
    # ------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def store(self) -> ResourceStore:
        return self._store

    @property
    def audit(self) -> AuditLogger:
        return self._audit

    @property
    def identity_provider(self) -> IdentityProvider:
        return self._identity_provider

    @property
    def token_cache(self) -> Optional[TokenVerificationCache]:
        return self._token_cache
