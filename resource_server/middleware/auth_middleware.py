# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Bearer token authentication stage.

Extracts the bearer credential from the Authorization header, verifies it
with the identity provider and attaches the verified owner identifier to the
request context. Every failure is a 401 with a generic message; the caller is
never told why a token was rejected.
"""

import logging
from typing import Iterable, Optional

from fastapi.responses import JSONResponse
from starlette.responses import Response

from ..clients.identity_provider import (
    IdentityProvider,
    IdentityProviderError,
    TokenRejectedError,
)
from ..errors import AuthenticationFailure
from ..services.audit_service import AuditLogger
from ..utils.redaction import fingerprint
from .pipeline import RequestContext, Stage

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

# Path prefixes that bypass authentication
DEFAULT_PUBLIC_PREFIXES = ("/health", "/api/auth")

AUTH_REQUIRED_MESSAGE = "Authentication required"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"
VERIFICATION_FAILED_MESSAGE = "Authentication failed"


def extract_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """
    Pull the credential out of an Authorization header value.

    Returns:
        The credential, or None when the header is missing, uses another
        scheme, or carries an empty credential
    """
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        return None
    token = auth_header[len(BEARER_PREFIX) :].strip()
    return token or None


class Authenticator(Stage):
    """
    Pipeline stage enforcing bearer token authentication.

    This stage:
    - Lets requests under a public path prefix through without identity
    - Returns 401 before calling the provider when no usable token is present
    - Verifies the token with the identity provider
    - Stores the verified owner identifier on the request context
    - Treats provider outages as authentication failures, not server errors
    """

    def __init__(
        self,
        provider: IdentityProvider,
        audit: AuditLogger,
        public_prefixes: Iterable[str] = DEFAULT_PUBLIC_PREFIXES,
        realm: str = "resource-server",
    ):
        """
        Initialize the authenticator.

        Args:
            provider: Identity provider that verifies tokens
            audit: Audit logger for authentication outcomes
            public_prefixes: Path prefixes that bypass authentication
            realm: The authentication realm for the WWW-Authenticate header
        """
        self.provider = provider
        self.audit = audit
        self.public_prefixes = tuple(public_prefixes)
        self.realm = realm

    def is_public(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.public_prefixes)

    async def before(self, ctx: RequestContext) -> Optional[Response]:
        if self.is_public(ctx.path):
            return None

        request_meta = {"path": ctx.path, "method": ctx.method}

        token = extract_bearer_token(ctx.request.headers.get("Authorization"))
        if token is None:
            self.audit.warning("auth.missing_token", ctx.actor, metadata=request_meta)
            return self._unauthorized_response(AUTH_REQUIRED_MESSAGE, "invalid_request")

        try:
            owner_id = await self.provider.verify(token)
        except TokenRejectedError as e:
            self.audit.warning(
                "auth.invalid_token",
                ctx.actor,
                metadata={**request_meta, "token_fingerprint": fingerprint(token), "reason": str(e)},
            )
            return self._unauthorized_response(INVALID_TOKEN_MESSAGE, "invalid_token")
        except Exception as e:
            # Identity could not be established; still an authentication failure
            if not isinstance(e, IdentityProviderError):
                logger.warning(f"Identity provider raised {type(e).__name__} during verification")
            self.audit.error(
                "auth.verification_error",
                ctx.actor,
                metadata={
                    **request_meta,
                    "token_fingerprint": fingerprint(token),
                    "error": str(e) or type(e).__name__,
                    "error_type": type(e).__name__,
                },
            )
            return self._unauthorized_response(VERIFICATION_FAILED_MESSAGE, "invalid_token")

        ctx.owner_id = owner_id
        self.audit.info("auth.verified", owner_id, metadata=request_meta)
        return None

    def _unauthorized_response(self, message: str, error_code: str) -> JSONResponse:
        """
        Build a 401 response.

        Per RFC 6750 the response carries a WWW-Authenticate header with the
        Bearer scheme and an error code.
        """
        www_authenticate = f'Bearer realm="{self.realm}", error="{error_code}"'
        return AuthenticationFailure(message).to_json_response(
            headers={"WWW-Authenticate": www_authenticate}
        )
