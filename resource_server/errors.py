# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Error taxonomy for the Resource Server.

Every client-visible failure maps to one of these classes. Each class knows
its HTTP status and renders the only permitted error body shape:
``{"error": str}`` plus ``{"details": {field: [str]}}`` for schema failures.
"""

from http import HTTPStatus
from typing import Any, Optional

from fastapi.responses import JSONResponse


class ResourceServerError(Exception):
    """Base class for failures that are rendered to the client."""

    http_status: int = 500
    default_message: str = "An internal error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        """Build the client-facing error body."""
        return {"error": self.message}

    def to_json_response(self, headers: Optional[dict[str, str]] = None) -> JSONResponse:
        """Render this error as a JSON response."""
        return JSONResponse(
            status_code=self.http_status,
            content=self.to_response(),
            headers=headers,
        )


class ValidationFailure(ResourceServerError):
    """Input parsed but violated the schema."""

    http_status = 400
    default_message = "Validation failed"

    def __init__(
        self,
        field_errors: dict[str, list[str]],
        message: Optional[str] = None,
    ):
        super().__init__(message)
        self.field_errors = field_errors

    def to_response(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.field_errors}


class MalformedRequest(ResourceServerError):
    """Input could not be parsed at all."""

    http_status = 400
    default_message = "Invalid JSON in request body"


class AuthenticationFailure(ResourceServerError):
    """Identity could not be established."""

    http_status = 401
    default_message = "Authentication required"


class ResourceNotFoundError(ResourceServerError):
    """Resource is absent, owned by someone else, or soft-deleted."""

    http_status = 404
    default_message = "Resource not found"


class ServiceFailure(ResourceServerError):
    """Opaque service-layer failure; rendered only by the error boundary."""

    http_status = 500


class RouteNotFoundError(ResourceServerError):
    """No route matches the request path."""

    http_status = 404
    default_message = "Not found"


class MethodNotAllowedError(ResourceServerError):
    """The path exists but not for this method."""

    http_status = 405
    default_message = "Method not allowed"


ROUTING_ERRORS: dict[int, type[ResourceServerError]] = {
    404: RouteNotFoundError,
    405: MethodNotAllowedError,
}


def from_http_exception(status_code: int, detail: Any = None) -> ResourceServerError:
    """
    Map a framework HTTP exception onto the error taxonomy.

    Routing failures get fixed messages; any other status keeps a string
    detail as its message, or the standard reason phrase.
    """
    error_class = ROUTING_ERRORS.get(status_code)
    if error_class is not None:
        return error_class()

    message = detail if isinstance(detail, str) else HTTPStatus(status_code).phrase
    error = ResourceServerError(message)
    error.http_status = status_code
    return error
