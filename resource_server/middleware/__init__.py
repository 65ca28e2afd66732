"""Request pipeline stages and HTTP middleware for the Resource Server."""

from .auth_middleware import Authenticator, extract_bearer_token
from .correlation_middleware import CorrelationIDMiddleware
from .error_boundary import ErrorBoundary, describe_error
from .pipeline import (
    Pipeline,
    PipelineMiddleware,
    RequestContext,
    Stage,
    get_request_context,
    run_route,
)
from .security_headers import SECURITY_HEADERS, SecurityHeaders
from .validation_middleware import ValidationSource, ValidationStage

__all__ = [
    "Authenticator",
    "extract_bearer_token",
    "CorrelationIDMiddleware",
    "ErrorBoundary",
    "describe_error",
    "Pipeline",
    "PipelineMiddleware",
    "RequestContext",
    "Stage",
    "get_request_context",
    "run_route",
    "SECURITY_HEADERS",
    "SecurityHeaders",
    "ValidationSource",
    "ValidationStage",
]
