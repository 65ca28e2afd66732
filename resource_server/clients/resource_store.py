# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Owner-scoped persistence for resource records.

Every ``ResourceStore`` method takes an ``OwnerScope`` as its first argument,
so no query can be expressed without naming the owner. The SQLite
implementation additionally builds all of its SQL through ``ScopedQuery``,
which always starts from the ``user_id = ?`` predicate.
"""

import json
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..models.resource import ResourceRecord

# Columns a partial update is allowed to write
UPDATABLE_COLUMNS = ("url", "title", "description", "tags")

# (created_at, id) of a record, the key listings are ordered by
OrderingKey = tuple[datetime, str]


@dataclass(frozen=True)
class OwnerScope:
    """The owner every store operation is restricted to."""

    owner_id: str

    def __post_init__(self):
        if not self.owner_id:
            raise ValueError("owner_id cannot be empty")


class ResourceStore(ABC):
    """Durable storage for resource records, always queried per owner."""

    @abstractmethod
    async def insert(self, scope: OwnerScope, record: ResourceRecord) -> ResourceRecord:
        """Persist a new record owned by ``scope`` and return it as stored."""

    @abstractmethod
    async def fetch_active(
        self, scope: OwnerScope, resource_id: str
    ) -> Optional[ResourceRecord]:
        """Return the active record with this id, or None."""

    @abstractmethod
    async def fetch_ordering_key(
        self, scope: OwnerScope, resource_id: str
    ) -> Optional[OrderingKey]:
        """Return ``(created_at, id)`` of the record, active or deleted, or None."""

    @abstractmethod
    async def fetch_page(
        self,
        scope: OwnerScope,
        tag: Optional[str],
        before: Optional[OrderingKey],
        limit: int,
    ) -> list[ResourceRecord]:
        """
        Return up to ``limit`` active records, newest first.

        Args:
            scope: Owner to list for
            tag: Only records whose tag list contains this exact tag
            before: Only records strictly after this key in listing order
            limit: Maximum number of rows to return
        """

    @abstractmethod
    async def update_active(
        self,
        scope: OwnerScope,
        resource_id: str,
        changes: dict[str, Any],
        updated_at: datetime,
    ) -> Optional[ResourceRecord]:
        """Apply ``changes`` to an active record; None if there was none."""

    @abstractmethod
    async def soft_delete(
        self, scope: OwnerScope, resource_id: str, deleted_at: datetime
    ) -> bool:
        """Mark an active record deleted; False if there was none."""

    @abstractmethod
    async def fetch_active_tags(self, scope: OwnerScope) -> list[list[str]]:
        """Return the tag list of every active record that has one."""

    async def close(self) -> None:
        return None


class ScopedQuery:
    """
    WHERE-clause builder that always restricts rows to one owner.

    Example:
        query = ScopedQuery(scope).active().where("id = ?", resource_id)
        where_sql, params = query.render()
    """

    def __init__(self, scope: OwnerScope):
        self._clauses = ["user_id = ?"]
        self._params: list[Any] = [scope.owner_id]

    def where(self, clause: str, *params: Any) -> "ScopedQuery":
        self._clauses.append(f"({clause})")
        self._params.extend(params)
        return self

    def active(self) -> "ScopedQuery":
        return self.where("deleted_at IS NULL")

    def render(self) -> tuple[str, list[Any]]:
        return "WHERE " + " AND ".join(self._clauses), list(self._params)


def _format_timestamp(value: datetime) -> str:
    # Fixed precision keeps lexicographic order equal to chronological order
    return value.isoformat(timespec="microseconds")


def _encode_tags(tags: Optional[list[str]]) -> Optional[str]:
    return json.dumps(tags) if tags is not None else None


class SQLiteResourceStore(ResourceStore):
    """
    SQLite-backed resource store.

    Queries run synchronously inside the async methods and block the event
    loop for their duration; statements are short indexed lookups.
    """

    COLUMNS = (
        "id, user_id, url, title, description, tags, created_at, updated_at, deleted_at"
    )

    def __init__(self, db_path: str = "resources.db"):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file, or ``:memory:``
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
        """Initialize the SQLite database schema."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS resources (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    url TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    tags TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    deleted_at TEXT
                )
                """
            )
            # Listing order within one owner
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_resources_owner_created
                ON resources(user_id, created_at DESC, id DESC)
                """
            )
            conn.commit()
        finally:
            self._release(conn)

    def _query(self, sql: str, params: list[Any]) -> list[tuple]:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            return cursor.fetchall()
        finally:
            self._release(conn)

    def _execute(self, sql: str, params: list[Any]) -> int:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            conn.commit()
            return cursor.rowcount
        finally:
            self._release(conn)

    @staticmethod
    def _row_to_record(row: tuple) -> ResourceRecord:
        return ResourceRecord(
            id=row[0],
            user_id=row[1],
            url=row[2],
            title=row[3],
            description=row[4],
            tags=json.loads(row[5]) if row[5] is not None else None,
            created_at=datetime.fromisoformat(row[6]),
            updated_at=datetime.fromisoformat(row[7]),
            deleted_at=datetime.fromisoformat(row[8]) if row[8] is not None else None,
        )

    async def insert(self, scope: OwnerScope, record: ResourceRecord) -> ResourceRecord:
        if record.user_id != scope.owner_id:
            raise ValueError("Record owner does not match the store scope")

        self._execute(
            f"INSERT INTO resources ({self.COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                record.id,
                scope.owner_id,
                record.url,
                record.title,
                record.description,
                _encode_tags(record.tags),
                _format_timestamp(record.created_at),
                _format_timestamp(record.updated_at),
                _format_timestamp(record.deleted_at) if record.deleted_at else None,
            ],
        )
        return record

    async def fetch_active(
        self, scope: OwnerScope, resource_id: str
    ) -> Optional[ResourceRecord]:
        where_sql, params = ScopedQuery(scope).active().where("id = ?", resource_id).render()
        rows = self._query(f"SELECT {self.COLUMNS} FROM resources {where_sql}", params)
        return self._row_to_record(rows[0]) if rows else None

    async def fetch_ordering_key(
        self, scope: OwnerScope, resource_id: str
    ) -> Optional[OrderingKey]:
        where_sql, params = ScopedQuery(scope).where("id = ?", resource_id).render()
        rows = self._query(f"SELECT created_at, id FROM resources {where_sql}", params)
        if not rows:
            return None
        return datetime.fromisoformat(rows[0][0]), rows[0][1]

    async def fetch_page(
        self,
        scope: OwnerScope,
        tag: Optional[str],
        before: Optional[OrderingKey],
        limit: int,
    ) -> list[ResourceRecord]:
        query = ScopedQuery(scope).active()
        if tag is not None:
            query.where(
                "EXISTS (SELECT 1 FROM json_each(resources.tags) WHERE json_each.value = ?)",
                tag,
            )
        if before is not None:
            created_at = _format_timestamp(before[0])
            query.where(
                "created_at < ? OR (created_at = ? AND id < ?)",
                created_at,
                created_at,
                before[1],
            )

        where_sql, params = query.render()
        rows = self._query(
            f"SELECT {self.COLUMNS} FROM resources {where_sql} "
            "ORDER BY created_at DESC, id DESC LIMIT ?",
            params + [limit],
        )
        return [self._row_to_record(row) for row in rows]

    async def update_active(
        self,
        scope: OwnerScope,
        resource_id: str,
        changes: dict[str, Any],
        updated_at: datetime,
    ) -> Optional[ResourceRecord]:
        unknown = set(changes) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")

        assignments = ["updated_at = ?"]
        values: list[Any] = [_format_timestamp(updated_at)]
        for column in UPDATABLE_COLUMNS:
            if column in changes:
                assignments.append(f"{column} = ?")
                value = changes[column]
                values.append(_encode_tags(value) if column == "tags" else value)

        where_sql, params = ScopedQuery(scope).active().where("id = ?", resource_id).render()
        updated = self._execute(
            f"UPDATE resources SET {', '.join(assignments)} {where_sql}",
            values + params,
        )
        if not updated:
            return None
        return await self.fetch_active(scope, resource_id)

    async def soft_delete(
        self, scope: OwnerScope, resource_id: str, deleted_at: datetime
    ) -> bool:
        where_sql, params = ScopedQuery(scope).active().where("id = ?", resource_id).render()
        deleted = self._execute(
            f"UPDATE resources SET deleted_at = ? {where_sql}",
            [_format_timestamp(deleted_at)] + params,
        )
        return deleted > 0

    async def fetch_active_tags(self, scope: OwnerScope) -> list[list[str]]:
        where_sql, params = ScopedQuery(scope).active().where("tags IS NOT NULL").render()
        rows = self._query(f"SELECT tags FROM resources {where_sql}", params)
        return [json.loads(row[0]) for row in rows]

    async def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
