"""Schemas for the use case catalog facets."""

from pydantic import Field

from app.schemas.base import CamelModel


class FilterField(CamelModel):
    """One catalog filter, as configured in filter_config.json."""

    id: str
    label: str
    field: str | None = None
    multi_value: bool = False
    uses_subregion: bool = False


class FilterFacet(CamelModel):
    """A filter with the distinct values found in the catalog."""

    id: str
    label: str
    field: str | None = None
    multi_value: bool = False
    uses_subregion: bool = False
    options: list[str] = Field(default_factory=list)
    selected: list[str] = Field(default_factory=list)


class HeatmapRow(CamelModel):
    sector: str
    values: list[int]


class Heatmap(CamelModel):
    """Sector-by-column count matrix."""

    sectors: list[str] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)
    rows: list[HeatmapRow] = Field(default_factory=list)
    max_value: int = 0


class SectorCount(CamelModel):
    name: str
    value: int


class UseCaseFacets(CamelModel):
    """Filter options and chart data for the catalog page."""

    total: int
    filters: list[FilterFacet]
    sector_maturity: Heatmap
    sector_country: Heatmap
    sector_distribution: list[SectorCount]
