"""Data models for the Resource Server."""

from .audit import AuditEvent, AuditLevel, AuditOutcome
from .health import HealthStatus
from .resource import (
    CreateResourceInput,
    ResourceListQuery,
    ResourcePage,
    ResourcePath,
    ResourceRecord,
    UpdateResourceInput,
)
from .validation import Invalid, Valid, ValidationResult

__all__ = [
    "AuditEvent",
    "AuditLevel",
    "AuditOutcome",
    "HealthStatus",
    "CreateResourceInput",
    "ResourceListQuery",
    "ResourcePage",
    "ResourcePath",
    "ResourceRecord",
    "UpdateResourceInput",
    "Invalid",
    "Valid",
    "ValidationResult",
]
