"""
Property-based tests for cursor pagination and owner scoping.

Following cursors from the first page visits every active record the caller
owns exactly once, newest first, regardless of page size, soft deletes,
identical timestamps, or records owned by someone else.
"""

from datetime import datetime, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from resource_server.clients.resource_store import OwnerScope, SQLiteResourceStore
from resource_server.models.resource import CreateResourceInput, ResourceListQuery
from resource_server.services.audit_service import AuditLogger, MemoryAuditSink
from resource_server.services.resource_service import ResourceService

from ..conftest import ALICE, BOB, FakeClock

# =============================================================================
# Strategies for generating test data
# =============================================================================

tag_pool = st.sampled_from(["python", "rust", "news", "recipes", "later"])


@st.composite
def resource_batch(draw):
    """Generate create inputs plus which of them to delete afterwards."""
    count = draw(st.integers(min_value=0, max_value=25))
    inputs = [
        CreateResourceInput(
            url=f"https://example.com/{i}",
            title=f"Resource {i}",
            tags=draw(st.lists(tag_pool, max_size=3, unique=True)) or None,
        )
        for i in range(count)
    ]
    deleted = draw(st.sets(st.integers(min_value=0, max_value=max(count - 1, 0)), max_size=count))
    return inputs, {i for i in deleted if i < count}


class FrozenClock:
    """Clock that always returns the same instant."""

    def __init__(self):
        self.instant = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.instant


def new_service(store, owner_id, clock) -> ResourceService:
    audit = AuditLogger(sinks=[MemoryAuditSink()])
    return ResourceService(store=store, scope=OwnerScope(owner_id), audit=audit, clock=clock)


async def collect_pages(service, limit, tag=None):
    """Follow cursors from the first page until hasMore is false."""
    pages = []
    cursor = None
    while True:
        page = await service.list_resources(ResourceListQuery(limit=limit, cursor=cursor, tag=tag))
        pages.append(page)
        if not page.has_more:
            return pages
        assert page.cursor == page.items[-1].id
        cursor = page.cursor


# =============================================================================
# Properties
# =============================================================================


class TestCursorTraversal:
    """Cursor traversal partitions the active set."""

    @given(
        batch=resource_batch(),
        limit=st.integers(min_value=1, max_value=10),
        frozen=st.booleans(),
    )
    @settings(max_examples=50, deadline=None)
    @pytest.mark.asyncio
    async def test_traversal_visits_each_active_record_once(self, batch, limit, frozen):
        inputs, deleted = batch
        store = SQLiteResourceStore(db_path=":memory:")
        clock = FrozenClock() if frozen else FakeClock()
        try:
            alice = new_service(store, ALICE, clock)
            bob = new_service(store, BOB, clock)

            created = [await alice.create(data) for data in inputs]
            await bob.create(CreateResourceInput(url="https://example.com/bob", title="Bob's"))
            for i in deleted:
                await alice.delete(created[i].id)

            pages = await collect_pages(alice, limit)
            seen = [item for page in pages for item in page.items]

            active = [r for i, r in enumerate(created) if i not in deleted]
            assert len(seen) == len(active)
            assert {r.id for r in seen} == {r.id for r in active}
            assert all(r.user_id == ALICE and r.deleted_at is None for r in seen)

            keys = [(r.created_at, r.id) for r in seen]
            assert keys == sorted(keys, reverse=True)

            for page in pages[:-1]:
                assert len(page.items) == limit
            assert len(pages[-1].items) <= limit
            assert pages[-1].cursor is None
        finally:
            await store.close()

    @given(batch=resource_batch(), limit=st.integers(min_value=1, max_value=10), tag=tag_pool)
    @settings(max_examples=50, deadline=None)
    @pytest.mark.asyncio
    async def test_tag_filter_traversal(self, batch, limit, tag):
        inputs, deleted = batch
        store = SQLiteResourceStore(db_path=":memory:")
        try:
            alice = new_service(store, ALICE, FakeClock())
            created = [await alice.create(data) for data in inputs]
            for i in deleted:
                await alice.delete(created[i].id)

            pages = await collect_pages(alice, limit, tag=tag)
            seen = {item.id for page in pages for item in page.items}

            expected = {
                r.id
                for i, r in enumerate(created)
                if i not in deleted and tag in (r.tags or [])
            }
            assert seen == expected
        finally:
            await store.close()


class TestTagListing:
    """Tag listing reflects only active records."""

    @given(batch=resource_batch())
    @settings(max_examples=50, deadline=None)
    @pytest.mark.asyncio
    async def test_tags_are_distinct_sorted_and_active(self, batch):
        inputs, deleted = batch
        store = SQLiteResourceStore(db_path=":memory:")
        try:
            alice = new_service(store, ALICE, FakeClock())
            created = [await alice.create(data) for data in inputs]
            for i in deleted:
                await alice.delete(created[i].id)

            tags = await alice.list_tags()

            expected = sorted(
                {t for i, r in enumerate(created) if i not in deleted for t in (r.tags or [])}
            )
            assert tags == expected
        finally:
            await store.close()
