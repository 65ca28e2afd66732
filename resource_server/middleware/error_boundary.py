# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Error boundary stage.

Outermost pipeline stage. Any exception raised below it becomes a fixed
500 response for the client and one detailed ``server.unhandled_error``
audit event for operators. Nothing from the original error reaches the
client.
"""

import logging
import traceback
from typing import Optional

from starlette.responses import Response

from ..errors import ResourceServerError
from ..services.audit_service import AuditLogger
from .pipeline import RequestContext, Stage

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"


def describe_error(error: object) -> tuple[str, str, Optional[str]]:
    """
    Summarize a raised value for the server-side log.

    Args:
        error: Whatever was raised (normally an exception)

    Returns:
        Tuple of (message, type name, formatted stack or None)
    """
    if not isinstance(error, BaseException):
        return UNKNOWN_ERROR, type(error).__name__, None

    message = str(error).strip() or UNKNOWN_ERROR
    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return message, type(error).__name__, stack


class ErrorBoundary(Stage):
    """Converts every exception into the generic 500 response."""

    handles_errors = True

    def __init__(self, audit: AuditLogger):
        self.audit = audit

    async def contain(self, ctx: RequestContext, exc: Exception) -> Response:
        try:
            message, error_type, stack = describe_error(exc)
            self.audit.error(
                "server.unhandled_error",
                ctx.actor,
                metadata={
                    "path": ctx.path,
                    "method": ctx.method,
                    "error": message,
                    "error_type": error_type,
                    "stack": stack,
                },
            )
        except Exception:
            logger.exception("Failed to record unhandled error")

        return ResourceServerError().to_json_response()
