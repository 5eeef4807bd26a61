"""Tests for GET /api/get-page-data."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.deps import get_page_service
from app.api.pages import router
from app.core.exceptions import DataProcessingError, PageNotFoundError
from app.core.rate_limit import limiter
from app.core.sharepoint import SharePointError, SharePointRemoteError
from app.schemas.page import Asset, Page, PageData, Section, SectionItem


@pytest.fixture(autouse=True)
def disable_rate_limit():
    enabled = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = enabled


@pytest.fixture
def mock_service():
    service = MagicMock()
    service.get_page_data = AsyncMock()
    return service


@pytest.fixture
def client(mock_service):
    app = FastAPI()
    app.include_router(router, prefix="/api")
    app.dependency_overrides[get_page_service] = lambda: mock_service
    return TestClient(app)


def sample_page() -> PageData:
    return PageData(
        page=Page(id=1, title="Home", slug="home", seo_title="Library"),
        sections=[
            Section(
                id=10,
                section_key="hero",
                hero_bg_image_url="https://cdn/bg.png",
                items=[SectionItem(id=100, section_key="hero", value_text="42")],
            )
        ],
        assets={"logo": Asset(key="logo", url="https://cdn/logo.svg", alt_text="Logo")},
    )


class TestGetPageData:
    """Tests for the page assembly endpoint."""

    def test_returns_camel_case_page(self, client, mock_service):
        mock_service.get_page_data.return_value = sample_page()

        response = client.get("/api/get-page-data", params={"slug": "home"})

        assert response.status_code == 200
        data = response.json()
        assert data["page"]["seoTitle"] == "Library"
        assert data["sections"][0]["heroBgImageUrl"] == "https://cdn/bg.png"
        assert data["sections"][0]["items"][0]["valueText"] == "42"
        assert data["assets"]["logo"]["altText"] == "Logo"
        mock_service.get_page_data.assert_awaited_once_with("home")

    def test_accepts_capitalised_slug_parameter(self, client, mock_service):
        mock_service.get_page_data.return_value = sample_page()

        response = client.get("/api/get-page-data", params={"Slug": "home"})

        assert response.status_code == 200
        mock_service.get_page_data.assert_awaited_once_with("home")

    @pytest.mark.parametrize("params", [{}, {"slug": ""}, {"slug": "   "}])
    def test_missing_slug(self, client, mock_service, params):
        response = client.get("/api/get-page-data", params=params)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing 'slug' query parameter"}
        mock_service.get_page_data.assert_not_awaited()

    def test_unknown_slug(self, client, mock_service):
        mock_service.get_page_data.side_effect = PageNotFoundError("abc")

        response = client.get("/api/get-page-data", params={"slug": "abc"})

        assert response.status_code == 404
        assert response.json() == {"error": "Page not found for slug 'abc'"}

    def test_upstream_failure_hides_details(self, client, mock_service):
        mock_service.get_page_data.side_effect = SharePointRemoteError(
            "SharePoint request failed", status_code=403, body={"odata.error": "denied"}
        )

        response = client.get("/api/get-page-data", params={"slug": "home"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_debug_exposes_upstream_response(self, client, mock_service):
        mock_service.get_page_data.side_effect = SharePointRemoteError(
            "SharePoint request failed", status_code=403, body={"odata.error": "denied"}
        )

        response = client.get("/api/get-page-data", params={"slug": "home", "debug": "1"})

        assert response.status_code == 500
        assert response.json() == {
            "error": "SharePoint call failed",
            "status": 403,
            "message": "SharePoint request failed",
            "spResponse": {"odata.error": "denied"},
        }

    def test_debug_without_upstream_status(self, client, mock_service):
        mock_service.get_page_data.side_effect = SharePointError(
            "Connection error calling SharePoint: timed out"
        )

        response = client.get("/api/get-page-data", params={"slug": "home", "debug": "1"})

        assert response.status_code == 500
        data = response.json()
        assert data["status"] == 500
        assert data["spResponse"] is None

    def test_invalid_page_rows_return_json_error(self, client, mock_service):
        mock_service.get_page_data.side_effect = DataProcessingError(
            "Invalid page data for slug 'home'"
        )

        response = client.get("/api/get-page-data", params={"slug": "home"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_invalid_page_rows_in_debug_mode(self, client, mock_service):
        mock_service.get_page_data.side_effect = DataProcessingError(
            "Invalid page data for slug 'home'"
        )

        response = client.get("/api/get-page-data", params={"slug": "home", "debug": "1"})

        assert response.status_code == 500
        data = response.json()
        assert data["message"] == "Invalid page data for slug 'home'"
        assert data["spResponse"] is None

    def test_is_rate_limited(self):
        assert "app.api.pages.get_page_data" in limiter._Limiter__marked_for_limiting
