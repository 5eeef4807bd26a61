"""Schemas for CMS page assembly (Pages, Sections, SectionItems, Assets)."""

from typing import Any

from pydantic import Field

from app.schemas.base import CamelModel


class Page(CamelModel):
    """A row of the Pages list."""

    id: int | None = None
    title: Any = None
    slug: Any = None
    seo_title: Any = None
    seo_description: Any = None
    social_image_url: Any = None
    language: Any = None

    @classmethod
    def from_list_item(cls, row: dict[str, Any]) -> "Page":
        return cls(
            id=row.get("Id"),
            title=row.get("Title"),
            slug=row.get("Slug"),
            seo_title=row.get("SeoTitle"),
            seo_description=row.get("SeoDescription"),
            social_image_url=row.get("SocialImageUrl"),
            language=row.get("Language"),
        )


class SectionItem(CamelModel):
    """A row of the SectionItems list, shown inside a section."""

    id: int | None = None
    page_slug: Any = None
    section_key: Any = None
    item_type: Any = None
    group_label: Any = None
    label: Any = None
    subtitle: Any = None
    title: Any = None
    description: Any = None
    bullets: Any = None
    value_text: Any = None
    url: Any = None
    icon_url: Any = None
    location: Any = None
    stage_code: Any = None
    date_range: Any = None
    extra_json: Any = None
    sort_order: int | float | None = None

    @classmethod
    def from_list_item(cls, row: dict[str, Any]) -> "SectionItem":
        return cls(
            id=row.get("Id"),
            page_slug=row.get("PageSlug"),
            section_key=row.get("SectionKey"),
            item_type=row.get("ItemType"),
            group_label=row.get("GroupLabel"),
            label=row.get("Label"),
            subtitle=row.get("Subtitle"),
            title=row.get("Title"),
            description=row.get("Description"),
            bullets=row.get("Bullets"),
            value_text=row.get("ValueText"),
            url=row.get("Url"),
            icon_url=row.get("IconUrl"),
            location=row.get("Location"),
            stage_code=row.get("StageCode"),
            date_range=row.get("DateRange"),
            extra_json=row.get("ExtraJson"),
            sort_order=row.get("SortOrder"),
        )


class Section(CamelModel):
    """A row of the Sections list with its items attached."""

    id: int | None = None
    page_slug: Any = None
    section_key: Any = None
    section_type: Any = None
    heading: Any = None
    subheading: Any = None
    intro_text: Any = None
    body_text: Any = None
    hero_bg_image_url: Any = None
    hero_icon_url: Any = None
    primary_cta_label: Any = None
    primary_cta_href: Any = None
    extra_json: Any = None
    sort_order: int | float | None = None
    items: list[SectionItem] = Field(default_factory=list)

    @classmethod
    def from_list_item(cls, row: dict[str, Any]) -> "Section":
        return cls(
            id=row.get("Id"),
            page_slug=row.get("PageSlug"),
            section_key=row.get("SectionKey"),
            section_type=row.get("SectionType"),
            heading=row.get("Heading"),
            subheading=row.get("Subheading"),
            intro_text=row.get("IntroText"),
            body_text=row.get("BodyText"),
            hero_bg_image_url=row.get("HeroBgImageUrl"),
            hero_icon_url=row.get("HeroIconUrl"),
            primary_cta_label=row.get("PrimaryCtaLabel"),
            primary_cta_href=row.get("PrimaryCtaHref"),
            extra_json=row.get("ExtraJson"),
            sort_order=row.get("SortOrder"),
        )


class Asset(CamelModel):
    """A row of the Assets list (shared images, logos)."""

    key: str | None = None
    title: Any = None
    url: Any = None
    alt_text: Any = None

    @classmethod
    def from_list_item(cls, row: dict[str, Any]) -> "Asset":
        key = row.get("Key")
        return cls(
            key=str(key) if key is not None else None,
            title=row.get("Title"),
            url=row.get("Url"),
            alt_text=row.get("AltText"),
        )


class PageData(CamelModel):
    """Everything the front end needs to render one page."""

    page: Page
    sections: list[Section]
    assets: dict[str, Asset]
