"""Unit tests for the error taxonomy."""

import json

import pytest

from resource_server.errors import (
    MethodNotAllowedError,
    ResourceNotFoundError,
    RouteNotFoundError,
    ValidationFailure,
    from_http_exception,
)


class TestErrorRendering:
    """Test error body shapes."""

    def test_plain_error_body(self):
        response = ResourceNotFoundError().to_json_response()
        assert response.status_code == 404
        assert json.loads(response.body) == {"error": "Resource not found"}

    def test_validation_body_carries_details(self):
        error = ValidationFailure({"title": ["Field required"]})
        assert error.to_response() == {
            "error": "Validation failed",
            "details": {"title": ["Field required"]},
        }

    def test_headers_are_passed_through(self):
        response = MethodNotAllowedError().to_json_response(headers={"Allow": "GET"})
        assert response.headers["Allow"] == "GET"


class TestFromHttpException:
    """Test mapping framework HTTP exceptions onto the taxonomy."""

    @pytest.mark.parametrize(
        "status_code, error_class, message",
        [
            (404, RouteNotFoundError, "Not found"),
            (405, MethodNotAllowedError, "Method not allowed"),
        ],
    )
    def test_routing_failures_use_fixed_messages(self, status_code, error_class, message):
        error = from_http_exception(status_code, "Not Found")
        assert isinstance(error, error_class)
        assert error.to_response() == {"error": message}

    def test_other_statuses_keep_string_detail(self):
        error = from_http_exception(413, "Payload too large")
        assert error.http_status == 413
        assert error.to_response() == {"error": "Payload too large"}

    def test_non_string_detail_uses_reason_phrase(self):
        error = from_http_exception(409, {"reason": "x"})
        assert error.http_status == 409
        assert error.to_response() == {"error": "Conflict"}
