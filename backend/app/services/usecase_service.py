"""Use case catalog service: list enrichment and image resolution."""

from dataclasses import dataclass
from typing import Any

from app.core.exceptions import ImageNotFoundError
from app.core.logging import get_logger
from app.core.sharepoint import (
    FIELD_CANDIDATES,
    IMAGE_FIELD_NAMES,
    Attachment,
    ListItem,
    SharePointRestClient,
    file_extension,
    find_attachment,
    guess_content_type,
    image_field_file_name,
    parse_image_field,
    pick_field,
)

logger = get_logger(__name__)

IMAGE_KINDS = ("thumbnail", "cover")

_UNSET_MESSAGES = {
    "thumbnail": "No Thumbnail set for this item",
    "cover": "No CoverImage set for this item",
}


def normalize_kind(kind: str | None) -> str:
    """Anything other than "cover" falls back to the thumbnail."""
    return "cover" if str(kind or "").lower() == "cover" else "thumbnail"


def enrich_use_case(item: ListItem) -> dict[str, Any]:
    """Add resolved image URLs to a raw list row.

    The row is copied; all original columns are kept.
    """
    thumbnail = parse_image_field(pick_field(item, FIELD_CANDIDATES["thumbnail"]))
    cover = parse_image_field(pick_field(item, FIELD_CANDIDATES["cover"]))

    return {
        **item,
        "ThumbnailUrl": thumbnail.url or None,
        "ThumbnailServerRelativeUrl": thumbnail.server_relative_url or None,
        "CoverImageUrl": cover.url or None,
        "CoverImageServerRelativeUrl": cover.server_relative_url or None,
    }


@dataclass(frozen=True)
class ImageContent:
    """A downloaded image attachment."""

    item_id: int
    kind: str
    attachment: Attachment
    content: bytes

    @property
    def file_name(self) -> str:
        return self.attachment.file_name

    @property
    def content_type(self) -> str:
        return guess_content_type(self.attachment.file_name)

    @property
    def extension(self) -> str:
        return file_extension(self.attachment.file_name) or "jpg"


class UseCaseService:
    """Reads the use case list and its image attachments."""

    def __init__(self, client: SharePointRestClient, list_title: str):
        self.client = client
        self.list_title = list_title

    async def list_use_cases(self) -> list[dict[str, Any]]:
        """All catalog rows, newest first, with image URLs resolved."""
        items = await self.client.get_list_items(self.list_title, orderby="Created desc")
        logger.info("use_cases_listed", list_title=self.list_title, count=len(items))
        return [enrich_use_case(item) for item in items]

    async def get_image(
        self,
        item_id: int,
        kind: str = "thumbnail",
        *,
        missing_attachment_label: str = "Image field",
    ) -> ImageContent:
        """Download the attachment referenced by the item's image column.

        The column must name the attachment exactly; there is no fallback
        to another attachment.

        Raises:
            ImageNotFoundError: If the column is unset or no attachment matches
        """
        kind = normalize_kind(kind)
        field_name = IMAGE_FIELD_NAMES[kind]

        item = await self.client.get_list_item_by_id(
            self.list_title,
            item_id,
            select=f"Id,ID,{field_name},Attachments,Modified",
        )
        target = image_field_file_name((item or {}).get(field_name))
        if not target:
            logger.info("use_case_image_unset", item_id=item_id, kind=kind)
            raise ImageNotFoundError(_UNSET_MESSAGES[kind])

        attachments = await self.client.get_list_item_attachments(self.list_title, item_id)
        chosen = find_attachment(attachments, target)
        if chosen is None:
            logger.warning(
                "use_case_image_attachment_missing",
                item_id=item_id,
                kind=kind,
                file_name=target,
                attachment_count=len(attachments),
            )
            raise ImageNotFoundError(
                f"{missing_attachment_label} is set but attachment not found: {target}",
                file_name=target,
            )

        content = await self.client.download_attachment_by_server_relative_url(
            chosen.server_relative_url
        )
        return ImageContent(item_id=item_id, kind=kind, attachment=chosen, content=content)

    async def get_cover_export(self, item_id: int) -> ImageContent:
        """Cover image for export, served as cover.<ext>."""
        return await self.get_image(item_id, "cover", missing_attachment_label="CoverImage")
