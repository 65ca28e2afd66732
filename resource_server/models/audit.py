"""Audit event data models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_serializer


class AuditOutcome(str, Enum):
    """Outcome recorded on an audit event."""

    SUCCESS = "success"
    FAILURE = "failure"


class AuditLevel(str, Enum):
    """Severity of an audit event."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single structured audit record.

    The shape is fixed: every sink receives exactly these fields.
    """

    id: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    level: AuditLevel
    event: str
    actor: str
    resource: Optional[str] = None
    outcome: AuditOutcome
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_serializer("timestamp")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()
