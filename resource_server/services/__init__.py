"""Service layer for the Resource Server."""

from .audit_service import (
    AuditLogger,
    AuditSink,
    LoggingAuditSink,
    MemoryAuditSink,
    SQLiteAuditSink,
)
from .resource_service import ResourceService, utc_now

__all__ = [
    "AuditLogger",
    "AuditSink",
    "LoggingAuditSink",
    "MemoryAuditSink",
    "SQLiteAuditSink",
    "ResourceService",
    "utc_now",
]
