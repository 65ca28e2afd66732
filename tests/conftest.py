"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from resource_server.clients.resource_store import OwnerScope, SQLiteResourceStore
from resource_server.config import Settings
from resource_server.container import ServiceContainer
from resource_server.main import create_app
from resource_server.services.audit_service import AuditLogger, MemoryAuditSink
from resource_server.services.resource_service import ResourceService

ALICE_TOKEN = "token-alice"
BOB_TOKEN = "token-bob"
ALICE = "user-alice"
BOB = "user-bob"


@pytest.fixture
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


class FakeClock:
    """Deterministic clock that advances one millisecond per reading."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(milliseconds=1)
        return self.current


# =============================================================================
# Audit and storage fixtures
# =============================================================================


@pytest.fixture
def memory_sink() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def audit(memory_sink) -> AuditLogger:
    return AuditLogger(sinks=[memory_sink])


@pytest.fixture
def store() -> SQLiteResourceStore:
    return SQLiteResourceStore(db_path=":memory:")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def alice_service(store, audit, clock) -> ResourceService:
    return ResourceService(store=store, scope=OwnerScope(ALICE), audit=audit, clock=clock)


@pytest.fixture
def bob_service(store, audit, clock) -> ResourceService:
    return ResourceService(store=store, scope=OwnerScope(BOB), audit=audit, clock=clock)


# =============================================================================
# Application fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_path=":memory:",
        audit_db_path=None,
        auth_provider="static",
        static_tokens=f"{ALICE_TOKEN}:{ALICE},{BOB_TOKEN}:{BOB}",
        redis_url=None,
        api_prefix="/api",
        public_path_prefixes="/health,/api/auth",
    )


@pytest.fixture
def container(test_settings, store, memory_sink, clock) -> ServiceContainer:
    return ServiceContainer(
        settings=test_settings, store=store, audit_sinks=[memory_sink], clock=clock
    )


@pytest.fixture
def client(container):
    """Test client for the full application; runs startup and shutdown."""
    with TestClient(create_app(container)) as test_client:
        yield test_client


@pytest.fixture
def alice_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {ALICE_TOKEN}"}


@pytest.fixture
def bob_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {BOB_TOKEN}"}


# =============================================================================
# Pytest hooks
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory."""
    markers = {
        "unit": pytest.mark.unit,
        "property": pytest.mark.property,
        "integration": pytest.mark.integration,
    }
    for item in items:
        marker = markers.get(item.path.parent.name)
        if marker is not None:
            item.add_marker(marker)
