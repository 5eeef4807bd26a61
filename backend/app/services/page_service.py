"""CMS page assembly from the Pages, Sections, SectionItems and Assets lists."""

from collections import defaultdict
from typing import Any

from pydantic import ValidationError

from app.config import Settings
from app.core.exceptions import DataProcessingError, PageNotFoundError
from app.core.logging import get_logger
from app.core.sharepoint import SharePointRestClient, escape_odata_literal
from app.schemas.page import Asset, Page, PageData, Section, SectionItem

logger = get_logger(__name__)


def _section_key(value: Any) -> str | None:
    # Lookup columns arrive as objects; group them by their text form
    return None if value is None else str(value)


class PageService:
    """Builds the render payload for one page slug."""

    def __init__(
        self,
        client: SharePointRestClient,
        pages_list: str = "Pages",
        sections_list: str = "Sections",
        section_items_list: str = "SectionItems",
        assets_list: str = "Assets",
    ):
        self.client = client
        self.pages_list = pages_list
        self.sections_list = sections_list
        self.section_items_list = section_items_list
        self.assets_list = assets_list

    @classmethod
    def from_settings(cls, client: SharePointRestClient, settings: Settings) -> "PageService":
        return cls(
            client,
            pages_list=settings.sp_list_pages,
            sections_list=settings.sp_list_sections,
            section_items_list=settings.sp_list_sectionitems,
            assets_list=settings.sp_list_assets,
        )

    async def get_page_data(self, slug: str) -> PageData:
        """
        Assemble a page, its ordered sections with their items, and all assets.

        Raises:
            PageNotFoundError: If no Pages row has this slug
        """
        slug_literal = escape_odata_literal(slug)

        pages = await self.client.get_list_items(
            self.pages_list,
            filter=f"Slug eq '{slug_literal}'",
            top=1,
        )
        if not pages:
            logger.info("page_not_found", slug=slug)
            raise PageNotFoundError(slug)

        page_row = pages[0]

        section_rows = await self.client.get_list_items(
            self.sections_list,
            filter=f"PageSlug eq '{slug_literal}'",
            orderby="SortOrder asc",
        )
        item_rows = await self.client.get_list_items(
            self.section_items_list,
            filter=f"PageSlug eq '{slug_literal}'",
            orderby="SectionKey asc, SortOrder asc",
        )

        asset_rows = await self.client.get_list_items(self.assets_list)

        try:
            page_data = self._assemble(page_row, section_rows, item_rows, asset_rows)
        except ValidationError as e:
            logger.error("page_data_invalid", slug=slug, error_count=e.error_count(), error=str(e))
            raise DataProcessingError(f"Invalid page data for slug '{slug}'") from e

        logger.info(
            "page_data_assembled",
            slug=slug,
            section_count=len(page_data.sections),
            item_count=len(item_rows),
            asset_count=len(page_data.assets),
        )
        return page_data

    @staticmethod
    def _assemble(
        page_row: dict[str, Any],
        section_rows: list[dict[str, Any]],
        item_rows: list[dict[str, Any]],
        asset_rows: list[dict[str, Any]],
    ) -> PageData:
        items_by_key: dict[str | None, list[SectionItem]] = defaultdict(list)
        for row in item_rows:
            item = SectionItem.from_list_item(row)
            items_by_key[_section_key(item.section_key)].append(item)

        sections = []
        for row in section_rows:
            section = Section.from_list_item(row)
            section.items = list(items_by_key.get(_section_key(section.section_key), []))
            sections.append(section)

        assets: dict[str, Asset] = {}
        for row in asset_rows:
            asset = Asset.from_list_item(row)
            # Rows without a key cannot be referenced by the front end
            if asset.key is None:
                continue
            assets[asset.key] = asset

        return PageData(page=Page.from_list_item(page_row), sections=sections, assets=assets)

