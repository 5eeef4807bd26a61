"""Tests for UseCaseService."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import ImageNotFoundError
from app.core.sharepoint import Attachment, SharePointRemoteError
from app.services.usecase_service import UseCaseService, enrich_use_case, normalize_kind

LIST_TITLE = "Use Cases"


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.get_list_items = AsyncMock(return_value=[])
    client.get_list_item_by_id = AsyncMock()
    client.get_list_item_attachments = AsyncMock(return_value=[])
    client.download_attachment_by_server_relative_url = AsyncMock(return_value=b"img")
    return client


@pytest.fixture
def service(mock_client):
    return UseCaseService(mock_client, LIST_TITLE)


class TestEnrichUseCase:
    """Tests for enrich_use_case."""

    def test_adds_image_urls_and_keeps_columns(self):
        item = {
            "Id": 3,
            "Title": "Digital ID",
            "Thumbnail": "https://contoso/x/thumb.png",
            "Cover_x0020_Image": {
                "serverUrl": "https://contoso.sharepoint.com",
                "serverRelativeUrl": "/sites/U/cover.png",
            },
        }

        enriched = enrich_use_case(item)

        assert enriched["Id"] == 3
        assert enriched["Title"] == "Digital ID"
        assert enriched["ThumbnailUrl"] == "https://contoso/x/thumb.png"
        assert enriched["ThumbnailServerRelativeUrl"] is None
        assert enriched["CoverImageUrl"] == "https://contoso.sharepoint.com/sites/U/cover.png"
        assert enriched["CoverImageServerRelativeUrl"] == "/sites/U/cover.png"
        assert "ThumbnailUrl" not in item

    def test_reserved_attachment_json_has_no_url(self):
        enriched = enrich_use_case({"Thumbnail": '{"fileName":"Reserved_1.png"}'})

        assert enriched["ThumbnailUrl"] is None
        assert enriched["CoverImageUrl"] is None

    def test_normalize_kind(self):
        assert normalize_kind("cover") == "cover"
        assert normalize_kind("COVER") == "cover"
        assert normalize_kind("anything") == "thumbnail"
        assert normalize_kind(None) == "thumbnail"


class TestListUseCases:
    """Tests for list_use_cases."""

    @pytest.mark.asyncio
    async def test_orders_newest_first(self, service, mock_client):
        mock_client.get_list_items.return_value = [{"Id": 2}, {"Id": 1}]

        result = await service.list_use_cases()

        mock_client.get_list_items.assert_awaited_once_with(LIST_TITLE, orderby="Created desc")
        assert [row["Id"] for row in result] == [2, 1]
        assert all("CoverImageUrl" in row for row in result)

    @pytest.mark.asyncio
    async def test_propagates_upstream_errors(self, service, mock_client):
        mock_client.get_list_items.side_effect = SharePointRemoteError("boom", status_code=500)

        with pytest.raises(SharePointRemoteError):
            await service.list_use_cases()


class TestGetImage:
    """Tests for strict image resolution."""

    @pytest.mark.asyncio
    async def test_thumbnail_resolved_by_exact_attachment(self, service, mock_client):
        mock_client.get_list_item_by_id.return_value = {
            "Id": 7,
            "Thumbnail": '{"fileName":"Reserved_ImageAttachment_1.png"}',
        }
        mock_client.get_list_item_attachments.return_value = [
            Attachment(file_name="other.png", server_relative_url="/a/other.png"),
            Attachment(
                file_name="Reserved_ImageAttachment_1.png",
                server_relative_url="/a/Reserved_ImageAttachment_1.png",
            ),
        ]

        image = await service.get_image(7, "thumbnail")

        mock_client.get_list_item_by_id.assert_awaited_once_with(
            LIST_TITLE, 7, select="Id,ID,Thumbnail,Attachments,Modified"
        )
        mock_client.download_attachment_by_server_relative_url.assert_awaited_once_with(
            "/a/Reserved_ImageAttachment_1.png"
        )
        assert image.content == b"img"
        assert image.kind == "thumbnail"
        assert image.file_name == "Reserved_ImageAttachment_1.png"
        assert image.content_type == "image/png"

    @pytest.mark.asyncio
    async def test_cover_reads_cover_column(self, service, mock_client):
        mock_client.get_list_item_by_id.return_value = {
            "Cover_x0020_Image": '{"fileName":"c.webp"}',
        }
        mock_client.get_list_item_attachments.return_value = [
            Attachment(file_name="c.webp", server_relative_url="/a/c.webp"),
        ]

        image = await service.get_image(7, "cover")

        mock_client.get_list_item_by_id.assert_awaited_once_with(
            LIST_TITLE, 7, select="Id,ID,Cover_x0020_Image,Attachments,Modified"
        )
        assert image.kind == "cover"
        assert image.content_type == "image/webp"

    @pytest.mark.asyncio
    async def test_item_zero_is_accepted(self, service, mock_client):
        mock_client.get_list_item_by_id.return_value = {"Thumbnail": '{"fileName":"a.png"}'}
        mock_client.get_list_item_attachments.return_value = [
            Attachment(file_name="a.png", server_relative_url="/a/a.png"),
        ]

        image = await service.get_image(0)

        assert image.item_id == 0

    @pytest.mark.asyncio
    async def test_unset_thumbnail_raises(self, service, mock_client):
        mock_client.get_list_item_by_id.return_value = {"Thumbnail": None}

        with pytest.raises(ImageNotFoundError, match="No Thumbnail set for this item"):
            await service.get_image(7, "thumbnail")

        mock_client.get_list_item_attachments.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unset_cover_raises(self, service, mock_client):
        mock_client.get_list_item_by_id.return_value = {}

        with pytest.raises(ImageNotFoundError, match="No CoverImage set for this item"):
            await service.get_image(7, "cover")

    @pytest.mark.asyncio
    async def test_plain_string_column_is_not_trusted(self, service, mock_client):
        """Only a structured value can name the attachment."""
        mock_client.get_list_item_by_id.return_value = {"Thumbnail": "a.png"}

        with pytest.raises(ImageNotFoundError):
            await service.get_image(7)

    @pytest.mark.asyncio
    async def test_no_matching_attachment_raises(self, service, mock_client):
        """No fallback to another attachment."""
        mock_client.get_list_item_by_id.return_value = {"Thumbnail": '{"fileName":"a.png"}'}
        mock_client.get_list_item_attachments.return_value = [
            Attachment(file_name="b.png", server_relative_url="/a/b.png"),
        ]

        with pytest.raises(ImageNotFoundError) as exc_info:
            await service.get_image(7)

        assert str(exc_info.value) == "Image field is set but attachment not found: a.png"
        assert exc_info.value.file_name == "a.png"
        mock_client.download_attachment_by_server_relative_url.assert_not_awaited()


class TestGetCoverExport:
    """Tests for get_cover_export."""

    @pytest.mark.asyncio
    async def test_extension_from_attachment(self, service, mock_client):
        mock_client.get_list_item_by_id.return_value = {
            "Cover_x0020_Image": '{"fileName":"Hero.JPEG"}',
        }
        mock_client.get_list_item_attachments.return_value = [
            Attachment(file_name="Hero.JPEG", server_relative_url="/a/Hero.JPEG"),
        ]

        image = await service.get_cover_export(5)

        assert image.extension == "jpeg"
        assert image.content_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_missing_attachment_message(self, service, mock_client):
        mock_client.get_list_item_by_id.return_value = {
            "Cover_x0020_Image": '{"fileName":"gone.png"}',
        }

        with pytest.raises(ImageNotFoundError) as exc_info:
            await service.get_cover_export(5)

        assert str(exc_info.value) == "CoverImage is set but attachment not found: gone.png"
