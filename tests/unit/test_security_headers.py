"""Unit tests for the security header stage."""

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from resource_server.middleware.pipeline import PipelineMiddleware
from resource_server.middleware.security_headers import (
    NO_STORE_HEADERS,
    SECURITY_HEADERS,
    SecurityHeaders,
)


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    app.add_middleware(PipelineMiddleware, stages=[SecurityHeaders()])

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    @app.get("/not-found")
    async def not_found():
        return JSONResponse(status_code=404, content={"error": "Resource not found"})

    return TestClient(app)


class TestSecurityHeaderValues:
    """Test the fixed header set."""

    def test_hsts(self):
        assert SECURITY_HEADERS["Strict-Transport-Security"] == (
            "max-age=63072000; includeSubDomains; preload"
        )

    def test_csp_forbids_framing(self):
        csp = SECURITY_HEADERS["Content-Security-Policy"]
        assert csp.startswith("default-src 'self'")
        assert "frame-ancestors 'none'" in csp
        assert "upgrade-insecure-requests" in csp

    def test_permissions_policy_disables_features(self):
        policy = SECURITY_HEADERS["Permissions-Policy"]
        for feature in ("camera", "microphone", "geolocation", "payment", "usb"):
            assert f"{feature}=()" in policy


class TestSecurityHeaders:
    """Test headers applied to responses."""

    @pytest.mark.parametrize("path", ["/ok", "/not-found", "/missing-route"])
    def test_headers_on_every_response(self, client, path):
        response = client.get(path)
        for name, value in SECURITY_HEADERS.items():
            assert response.headers[name] == value

    def test_no_cache_headers_without_credentials(self, client):
        response = client.get("/ok")
        assert "Pragma" not in response.headers
        assert response.headers.get("Cache-Control") != NO_STORE_HEADERS["Cache-Control"]

    def test_no_cache_headers_with_credentials(self, client):
        response = client.get("/ok", headers={"Authorization": "Bearer anything"})
        assert response.headers["Cache-Control"] == "no-store, no-cache, must-revalidate"
        assert response.headers["Pragma"] == "no-cache"

    def test_body_is_untouched(self, client):
        assert client.get("/ok").json() == {"ok": True}
