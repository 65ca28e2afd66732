# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""HTTP middleware for correlation ID propagation."""

import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..utils.correlation import (
    CORRELATION_ID_HEADER,
    accept_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Assigns every request a correlation ID.

    The ID comes from the ``X-Correlation-ID`` request header when the client
    sent a usable one, otherwise a new UUID4 is generated. It is placed in the
    request context for audit events and echoed on the response.

    Registered outermost so that the ID is available to every stage,
    including the error boundary.
    """

    async def dispatch(
        self,
        request: Request,
        call_next,
    ) -> Response:
        correlation_id = accept_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        token = set_correlation_id(correlation_id)

        logger.debug(
            f"Request started with correlation ID: {correlation_id}",
            extra={"correlation_id": correlation_id},
        )

        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
