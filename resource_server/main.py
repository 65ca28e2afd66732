# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""FastAPI application factory for the Resource Server.

Request flow, outermost first:

    CorrelationIDMiddleware
    PipelineMiddleware: ErrorBoundary -> SecurityHeaders -> Authenticator
    route: ValidationStage(s) -> ResourceService
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .container import ServiceContainer
from .errors import from_http_exception
from .middleware.auth_middleware import Authenticator
from .middleware.correlation_middleware import CorrelationIDMiddleware
from .middleware.error_boundary import ErrorBoundary
from .middleware.pipeline import PipelineMiddleware
from .middleware.security_headers import SecurityHeaders
from .models import HealthStatus
from .routes import resources_router

logger = logging.getLogger(__name__)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Service container to use; built from the default
                   settings when omitted

    Returns:
        Configured FastAPI application
    """
    container = container or ServiceContainer()
    app_settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Connect external services on startup and release them on shutdown."""
        logger.info("Starting Resource Server")
        await container.initialize()
        logger.info(f"Resource Server v{__version__} started successfully on port {app_settings.port}")

        yield

        logger.info("Shutting down Resource Server")
        await container.shutdown()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Resource Server",
        description="Authenticated, owner-scoped bookmark storage with cursor pagination.",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.container = container

    # Stage order matters: the boundary must see every failure and the
    # header stage must see the boundary's response.
    app.add_middleware(
        PipelineMiddleware,
        stages=[
            ErrorBoundary(container.audit),
            SecurityHeaders(),
            Authenticator(
                container.identity_provider,
                container.audit,
                public_prefixes=app_settings.get_public_prefixes(),
            ),
        ],
    )
    # Added last so it runs first
    app.add_middleware(CorrelationIDMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Render routing failures (unknown path, wrong method) as error bodies."""
        return from_http_exception(exc.status_code, exc.detail).to_json_response(
            headers=exc.headers
        )

    @app.get("/health", response_model=HealthStatus)
    async def health_check() -> HealthStatus:
        """Liveness probe; does not require authentication."""
        cache = container.token_cache
        if cache is None:
            return HealthStatus()
        connected = await cache.is_connected()
        return HealthStatus(token_cache="connected" if connected else "unavailable")

    app.include_router(resources_router, prefix=app_settings.api_prefix)

    return app
