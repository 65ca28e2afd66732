"""Unit tests for the validation stage."""

import uuid

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from resource_server.middleware.pipeline import run_route
from resource_server.middleware.validation_middleware import ValidationSource, ValidationStage
from resource_server.models.audit import AuditLevel, AuditOutcome
from resource_server.utils.input_validation import (
    validate_create_input,
    validate_list_query,
    validate_resource_path,
)


def build_app(audit) -> FastAPI:
    app = FastAPI()

    async def echo_body(ctx):
        return JSONResponse(ctx.validated_body.model_dump())

    async def echo_query(ctx):
        return JSONResponse(ctx.validated_query.model_dump(mode="json"))

    async def echo_path(ctx):
        return JSONResponse({"id": str(ctx.validated_path.id)})

    @app.post("/items")
    async def create(request: Request):
        stage = ValidationStage(validate_create_input, ValidationSource.BODY, audit)
        return await run_route(request, [stage], echo_body)

    @app.get("/items")
    async def list_items(request: Request):
        stage = ValidationStage(validate_list_query, ValidationSource.QUERY, audit)
        return await run_route(request, [stage], echo_query)

    @app.get("/items/{id}")
    async def get_item(request: Request):
        stage = ValidationStage(validate_resource_path, ValidationSource.PATH, audit)
        return await run_route(request, [stage], echo_path)

    return app


@pytest.fixture
def client(audit) -> TestClient:
    return TestClient(build_app(audit))


class TestBodyValidation:
    """Test request body validation."""

    def test_valid_body_reaches_handler_pruned(self, client):
        response = client.post(
            "/items",
            json={"url": "https://example.com", "title": "T", "user_id": "mallory"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "url": "https://example.com",
            "title": "T",
            "description": None,
            "tags": None,
        }

    def test_schema_failure(self, client):
        response = client.post("/items", json={"url": "ftp://x", "title": ""})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert set(body["details"]) == {"url", "title"}
        assert all(isinstance(m, list) for m in body["details"].values())

    @pytest.mark.parametrize("content", [b"{not json", b"", b"\xff\xfe"])
    def test_unparsable_body(self, client, content):
        response = client.post(
            "/items", content=content, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON in request body"}

    @pytest.mark.parametrize("payload", [[1, 2], "text", 42, None])
    def test_non_object_json_is_malformed(self, client, payload):
        response = client.post("/items", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON in request body"}

    def test_audit_events(self, client, memory_sink):
        client.post("/items", json={"url": "https://example.com", "title": "T"})
        client.post("/items", json={})

        passed = memory_sink.named("validation.body.passed")
        failed = memory_sink.named("validation.body.failed")
        assert len(passed) == 1
        assert len(failed) == 1
        assert passed[0].level == AuditLevel.INFO
        assert failed[0].level == AuditLevel.INFO
        assert failed[0].outcome == AuditOutcome.FAILURE
        assert failed[0].actor == "unauthenticated"
        assert failed[0].metadata["fields"] == ["title", "url"]


class TestQueryValidation:
    """Test query string validation."""

    def test_defaults_applied(self, client):
        response = client.get("/items")
        assert response.json() == {"tag": None, "cursor": None, "limit": 20}

    def test_invalid_query(self, client):
        response = client.get("/items", params={"limit": "500"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid query parameters"
        assert "limit" in body["details"]

    def test_unknown_parameters_ignored(self, client):
        response = client.get("/items", params={"limit": "5", "sort": "asc"})
        assert response.status_code == 200
        assert response.json()["limit"] == 5


class TestPathValidation:
    """Test path parameter validation."""

    def test_valid_id(self, client):
        resource_id = str(uuid.uuid4())
        assert client.get(f"/items/{resource_id}").json() == {"id": resource_id}

    def test_invalid_id(self, client, memory_sink):
        response = client.get("/items/not-a-uuid")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid resource ID"
        assert "id" in body["details"]
        assert len(memory_sink.named("validation.path.failed")) == 1


class TestStageConfiguration:
    """Test stage construction."""

    def test_custom_error_message(self, audit):
        stage = ValidationStage(validate_create_input, "body", audit, error_message="Nope")
        assert stage.error_message == "Nope"
        assert stage.source is ValidationSource.BODY

    def test_unknown_source_rejected(self, audit):
        with pytest.raises(ValueError):
            ValidationStage(validate_create_input, "headers", audit)
