# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Structured audit logging.

``AuditLogger`` is the single entry point for audit events. It applies the
redaction rules, stamps the request correlation ID, builds a fixed-shape
``AuditEvent`` and hands it to every configured sink.
"""

import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, Optional

from ..models.audit import AuditEvent, AuditLevel, AuditOutcome
from ..utils.correlation import get_correlation_id
from ..utils.redaction import redact_metadata

logger = logging.getLogger(__name__)

AUDIT_LOGGER_NAME = "audit"

_LOG_LEVELS = {
    AuditLevel.DEBUG: logging.DEBUG,
    AuditLevel.INFO: logging.INFO,
    AuditLevel.WARNING: logging.WARNING,
    AuditLevel.ERROR: logging.ERROR,
}


class AuditSink:
    """Destination for audit events."""

    def write(self, event: AuditEvent) -> AuditEvent:
        raise NotImplementedError


class LoggingAuditSink(AuditSink):
    """Writes each event as one JSON line on the ``audit`` logger."""

    def __init__(self, logger_name: str = AUDIT_LOGGER_NAME):
        self._logger = logging.getLogger(logger_name)

    def write(self, event: AuditEvent) -> AuditEvent:
        self._logger.log(
            _LOG_LEVELS[event.level],
            event.model_dump_json(exclude={"id"}),
        )
        return event


class MemoryAuditSink(AuditSink):
    """Keeps events in memory; used by tests and diagnostics."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def write(self, event: AuditEvent) -> AuditEvent:
        self.events.append(event)
        return event

    def named(self, event_name: str) -> list[AuditEvent]:
        """Return recorded events with the given name, oldest first."""
        return [e for e in self.events if e.event == event_name]

    def clear(self) -> None:
        self.events.clear()


class SQLiteAuditSink(AuditSink):
    """Persists audit events to a SQLite table."""

    def __init__(self, db_path: str = "audit_events.db"):
        """
        Initialize the SQLite audit sink.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._connection: Optional[sqlite3.Connection] = None
        self._init_database()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a database connection."""
        if self.db_path == ":memory:":
            # For in-memory databases, keep a persistent connection
            if self._connection is None:
                self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
            return self._connection
        return sqlite3.connect(self.db_path)

    def _release(self, conn: sqlite3.Connection) -> None:
        if self.db_path != ":memory:":
            conn.close()

    def _init_database(self) -> None:
        """Initialize the SQLite database with the audit_events table."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS audit_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    level TEXT NOT NULL,
                    event TEXT NOT NULL,
                    actor TEXT NOT NULL,
                    resource TEXT,
                    outcome TEXT NOT NULL,
                    metadata TEXT NOT NULL
                )
                """
            )
            # Create index on timestamp for faster queries
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_audit_events_timestamp
                ON audit_events(timestamp)
                """
            )
            conn.commit()
        finally:
            self._release(conn)

    def write(self, event: AuditEvent) -> AuditEvent:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO audit_events
                (timestamp, level, event, actor, resource, outcome, metadata)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.timestamp.isoformat(),
                    event.level.value,
                    event.event,
                    event.actor,
                    event.resource,
                    event.outcome.value,
                    json.dumps(event.metadata),
                ),
            )
            conn.commit()
            entry_id = cursor.lastrowid
        finally:
            self._release(conn)

        return event.model_copy(update={"id": entry_id})

    def get_events(
        self,
        event: Optional[str] = None,
        actor: Optional[str] = None,
        outcome: Optional[AuditOutcome] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Retrieve audit events with optional filtering, newest first.

        Args:
            event: Filter by event name
            actor: Filter by actor
            outcome: Filter by outcome
            limit: Maximum number of events to return

        Returns:
            List of audit events
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            query = "SELECT * FROM audit_events WHERE 1=1"
            params: list[Any] = []

            if event:
                query += " AND event = ?"
                params.append(event)

            if actor:
                query += " AND actor = ?"
                params.append(actor)

            if outcome:
                query += " AND outcome = ?"
                params.append(outcome.value)

            query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
            params.append(limit)

            cursor.execute(query, params)
            rows = cursor.fetchall()
        finally:
            self._release(conn)

        return [
            AuditEvent(
                id=row[0],
                timestamp=datetime.fromisoformat(row[1]),
                level=AuditLevel(row[2]),
                event=row[3],
                actor=row[4],
                resource=row[5],
                outcome=AuditOutcome(row[6]),
                metadata=json.loads(row[7]),
            )
            for row in rows
        ]


class AuditLogger:
    """
    Emits structured audit events to one or more sinks.

    Created once per process by the service container and injected into
    every stage and service that records events.
    """

    def __init__(self, sinks: Optional[list[AuditSink]] = None):
        self.sinks: list[AuditSink] = sinks if sinks is not None else [LoggingAuditSink()]

    def emit(
        self,
        level: AuditLevel,
        event: str,
        actor: str,
        outcome: AuditOutcome,
        resource: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> AuditEvent:
        """
        Record one audit event.

        Args:
            level: Severity of the event
            event: Dotted event name, e.g. ``resource.created``
            actor: Caller identity, or ``anonymous``/``unauthenticated``
            outcome: Success or failure
            resource: Identifier of the affected resource, if any
            metadata: Non-sensitive context; redacted before writing

        Returns:
            The event as recorded
        """
        safe_metadata = _json_safe(redact_metadata(dict(metadata or {})))
        correlation_id = get_correlation_id()
        if correlation_id:
            safe_metadata.setdefault("correlation_id", correlation_id)

        record = AuditEvent(
            level=level,
            event=event,
            actor=actor,
            resource=resource,
            outcome=outcome,
            metadata=safe_metadata,
        )

        for sink in self.sinks:
            try:
                sink.write(record)
            except Exception as e:
                logger.error(
                    f"Audit sink {type(sink).__name__} failed to record {event}: {e}"
                )

        return record

    def debug(self, event: str, actor: str, outcome: AuditOutcome = AuditOutcome.SUCCESS, **kwargs) -> AuditEvent:
        return self.emit(AuditLevel.DEBUG, event, actor, outcome, **kwargs)

    def info(self, event: str, actor: str, outcome: AuditOutcome = AuditOutcome.SUCCESS, **kwargs) -> AuditEvent:
        return self.emit(AuditLevel.INFO, event, actor, outcome, **kwargs)

    def warning(self, event: str, actor: str, outcome: AuditOutcome = AuditOutcome.FAILURE, **kwargs) -> AuditEvent:
        return self.emit(AuditLevel.WARNING, event, actor, outcome, **kwargs)

    def error(self, event: str, actor: str, outcome: AuditOutcome = AuditOutcome.FAILURE, **kwargs) -> AuditEvent:
        return self.emit(AuditLevel.ERROR, event, actor, outcome, **kwargs)


def _json_safe(metadata: dict[str, Any]) -> dict[str, Any]:
    """Coerce metadata values that JSON cannot represent to strings."""
    return json.loads(json.dumps(metadata, default=str))
