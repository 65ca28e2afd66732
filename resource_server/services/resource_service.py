# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Resource service: owner-scoped CRUD, cursor pagination and tag listing."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..clients.resource_store import OwnerScope, ResourceStore
from ..errors import ResourceNotFoundError, ServiceFailure
from ..models.resource import (
    CreateResourceInput,
    ResourceListQuery,
    ResourcePage,
    ResourceRecord,
    UpdateResourceInput,
)
from .audit_service import AuditLogger

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ResourceService:
    """
    Business logic for one caller's resources.

    Built per request from the verified owner scope, so every store call is
    made on behalf of that owner and no operation can reach another owner's
    records. Absent, foreign and soft-deleted records all surface as
    ``ResourceNotFoundError``. Store failures are recorded and re-raised as
    an opaque ``ServiceFailure``.
    """

    def __init__(
        self,
        store: ResourceStore,
        scope: OwnerScope,
        audit: AuditLogger,
        clock: Clock = utc_now,
    ):
        """
        Initialize the resource service.

        Args:
            store: Resource store
            scope: Owner every operation is restricted to
            audit: Audit logger for operation events
            clock: Source of the current UTC time
        """
        self.store = store
        self.scope = scope
        self.audit = audit
        self.clock = clock

    @property
    def actor(self) -> str:
        return self.scope.owner_id

    async def _call_store(
        self,
        operation: str,
        call: Awaitable[T],
        resource_id: Optional[str] = None,
    ) -> T:
        try:
            return await call
        except Exception as e:
            logger.error(f"Store call for {operation} failed: {type(e).__name__}")
            self.audit.error(
                f"resource.{operation}.failed",
                self.actor,
                resource=resource_id,
                metadata={
                    "error": str(e) or type(e).__name__,
                    "error_type": type(e).__name__,
                },
            )
            raise ServiceFailure() from e

    def _not_found(self, operation: str, resource_id: str) -> ResourceNotFoundError:
        self.audit.warning(f"resource.{operation}.not_found", self.actor, resource=resource_id)
        return ResourceNotFoundError()

    async def create(self, data: CreateResourceInput) -> ResourceRecord:
        """
        Create a resource owned by the caller.

        Args:
            data: Validated create input

        Returns:
            The stored record
        """
        now = self.clock()
        record = ResourceRecord(
            id=str(uuid.uuid4()),
            user_id=self.scope.owner_id,
            url=data.url,
            title=data.title,
            description=data.description,
            tags=data.tags,
            created_at=now,
            updated_at=now,
            deleted_at=None,
        )

        stored = await self._call_store("create", self.store.insert(self.scope, record))

        self.audit.info(
            "resource.created",
            self.actor,
            resource=stored.id,
            metadata={"url": stored.url, "tag_count": len(stored.tags or [])},
        )
        return stored

    async def list_resources(self, query: ResourceListQuery) -> ResourcePage:
        """
        List active resources newest first, one page at a time.

        The cursor is the id of the last record on the previous page. It is
        resolved to that record's ordering key within the caller's scope,
        deleted records included; a cursor that resolves to nothing applies
        no filter.

        Args:
            query: Validated list query

        Returns:
            A page of records with the continuation cursor when more exist
        """
        before = None
        if query.cursor is not None:
            before = await self._call_store(
                "list", self.store.fetch_ordering_key(self.scope, str(query.cursor))
            )

        # One extra row tells us whether another page exists
        rows = await self._call_store(
            "list",
            self.store.fetch_page(self.scope, query.tag, before, query.limit + 1),
        )

        has_more = len(rows) > query.limit
        items = rows[: query.limit]
        cursor = items[-1].id if has_more and items else None

        self.audit.info(
            "resource.listed",
            self.actor,
            metadata={
                "count": len(items),
                "has_more": has_more,
                "tag": query.tag,
                "cursor_resolved": before is not None,
            },
        )
        return ResourcePage(items=items, has_more=has_more, cursor=cursor)

    async def get(self, resource_id: str) -> ResourceRecord:
        """Return one active resource owned by the caller."""
        record = await self._call_store(
            "get", self.store.fetch_active(self.scope, resource_id), resource_id
        )
        if record is None:
            raise self._not_found("get", resource_id)

        self.audit.info("resource.retrieved", self.actor, resource=resource_id)
        return record

    async def update(self, resource_id: str, data: UpdateResourceInput) -> ResourceRecord:
        """
        Apply a partial update.

        Only fields the caller supplied are written; ``updated_at`` is always
        refreshed.
        """
        changes = data.changes()
        record = await self._call_store(
            "update",
            self.store.update_active(self.scope, resource_id, changes, self.clock()),
            resource_id,
        )
        if record is None:
            raise self._not_found("update", resource_id)

        metadata: dict[str, Any] = {"fields": sorted(changes)}
        if "url" in changes:
            metadata["url"] = changes["url"]
        self.audit.info("resource.updated", self.actor, resource=resource_id, metadata=metadata)
        return record

    async def delete(self, resource_id: str) -> None:
        """Soft-delete an active resource owned by the caller."""
        deleted = await self._call_store(
            "delete",
            self.store.soft_delete(self.scope, resource_id, self.clock()),
            resource_id,
        )
        if not deleted:
            raise self._not_found("delete", resource_id)

        self.audit.info("resource.deleted", self.actor, resource=resource_id)

    async def list_tags(self) -> list[str]:
        """Return the distinct tags of the caller's active resources, sorted."""
        tag_lists = await self._call_store(
            "tags", self.store.fetch_active_tags(self.scope)
        )
        tags = sorted({tag for tags in tag_lists for tag in tags})

        self.audit.info("resource.tags.listed", self.actor, metadata={"count": len(tags)})
        return tags
