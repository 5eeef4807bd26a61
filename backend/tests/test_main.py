"""Tests for application wiring: health, root and middleware headers."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_usecase_service
from app.core.rate_limit import limiter
from app.main import app


@pytest.fixture(autouse=True)
def disable_rate_limit():
    enabled = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = enabled


class TestHealth:
    def test_health(self):
        client = TestClient(app)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self):
        client = TestClient(app)

        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "Use Case Library API"


class TestMiddleware:
    """Request ID and timing headers are set on every response."""

    def test_request_id_header(self):
        client = TestClient(app)

        first = client.get("/health")
        second = client.get("/health")

        assert first.headers["X-Request-ID"]
        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]

    def test_caller_request_id_is_kept(self):
        client = TestClient(app)

        response = client.get("/health", headers={"X-Request-ID": "edge-7f3a"})

        assert response.headers["X-Request-ID"] == "edge-7f3a"

    def test_response_time_header(self):
        client = TestClient(app)

        response = client.get("/health")

        assert float(response.headers["X-Response-Time-Ms"]) >= 0

    def test_routes_are_under_api_prefix(self):
        paths = {getattr(route, "path", None) for route in app.routes}

        assert {
            "/api/get-usecase-data",
            "/api/get-usecase-image",
            "/api/export-usecase-cover-image",
            "/api/get-usecase-facets",
            "/api/get-page-data",
            "/api/list-items-via-graph",
            "/api/list-items-via-cert",
        } <= paths


class TestUnhandledErrors:
    """Errors no route handles still produce the JSON error body."""

    @pytest.fixture
    def failing_service(self):
        service = MagicMock()
        service.list_use_cases = AsyncMock(side_effect=RuntimeError("unexpected"))
        app.dependency_overrides[get_usecase_service] = lambda: service
        yield service
        app.dependency_overrides.pop(get_usecase_service, None)

    def test_unexpected_exception_is_json_500(self, failing_service):
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/get-usecase-data")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "unexpected" not in response.text
