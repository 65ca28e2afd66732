# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Validation stage: schema-checks one request source before the handler.

The stage reads the raw body, query string or path parameters, runs the
configured schema validator and either stores the typed value on the
request context or short-circuits with a 400.
"""

import json
import logging
from enum import Enum
from typing import Any, Optional

from starlette.responses import Response

from ..errors import MalformedRequest, ValidationFailure
from ..models.audit import AuditOutcome
from ..services.audit_service import AuditLogger
from ..utils.input_validation import SchemaValidator
from .pipeline import RequestContext, Stage

logger = logging.getLogger(__name__)


class ValidationSource(str, Enum):
    """Part of the request a validation stage reads."""

    BODY = "body"
    QUERY = "query"
    PATH = "path"


DEFAULT_ERROR_MESSAGES = {
    ValidationSource.BODY: "Validation failed",
    ValidationSource.QUERY: "Invalid query parameters",
    ValidationSource.PATH: "Invalid resource ID",
}


class ValidationStage(Stage):
    """Validates one request source and stores the result on the context."""

    def __init__(
        self,
        validator: SchemaValidator,
        source: ValidationSource,
        audit: AuditLogger,
        error_message: Optional[str] = None,
    ):
        """
        Initialize the validation stage.

        Args:
            validator: Schema validator returning Valid or Invalid
            source: Request part to validate
            audit: Audit logger for pass/fail events
            error_message: Message for schema failures (defaults per source)
        """
        self.validator = validator
        self.source = ValidationSource(source)
        self.audit = audit
        self.error_message = error_message or DEFAULT_ERROR_MESSAGES[self.source]

    async def _read_source(self, ctx: RequestContext) -> Any:
        request = ctx.request
        if self.source is ValidationSource.QUERY:
            return dict(request.query_params)
        if self.source is ValidationSource.PATH:
            return dict(request.path_params)

        body = await request.body()
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise MalformedRequest() from e
        if not isinstance(payload, dict):
            raise MalformedRequest()
        return payload

    async def before(self, ctx: RequestContext) -> Optional[Response]:
        event_prefix = f"validation.{self.source.value}"
        request_meta = {"path": ctx.path, "method": ctx.method}

        try:
            raw = await self._read_source(ctx)
        except MalformedRequest as e:
            self.audit.info(
                f"{event_prefix}.failed",
                ctx.actor,
                outcome=AuditOutcome.FAILURE,
                metadata={**request_meta, "reason": "malformed"},
            )
            return e.to_json_response()

        result = self.validator(raw)
        if not result.ok:
            self.audit.info(
                f"{event_prefix}.failed",
                ctx.actor,
                outcome=AuditOutcome.FAILURE,
                metadata={**request_meta, "fields": sorted(result.errors)},
            )
            return ValidationFailure(result.errors, self.error_message).to_json_response()

        setattr(ctx, f"validated_{self.source.value}", result.value)
        self.audit.info(f"{event_prefix}.passed", ctx.actor, metadata=request_meta)
        return None
