"""Filter options, filtering and chart matrices for the use case catalog.

All functions work on raw catalog rows (see UseCaseService.list_use_cases);
multi-valued columns such as Sectors or Country hold comma-separated text.
"""

import re
from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from app.core.exceptions import ConfigurationError
from app.core.logging import get_logger
from app.schemas.usecase import (
    FilterFacet,
    FilterField,
    Heatmap,
    HeatmapRow,
    SectorCount,
    UseCaseFacets,
)

logger = get_logger(__name__)

REGION_SEPARATOR = " — "

DEFAULT_MATURITY_ORDER = (
    "Conceptual/Research",
    "Pilot/Testing",
    "Production/Scale",
    "Unknown",
)

SEARCH_FIELDS = ("Title", "Country", "Sectors", "KeyTerms", "Remarks")

DEFAULT_FILTER_CONFIG = (
    FilterField(id="country", label="Country", field="Country", multi_value=True),
    FilterField(id="region", label="Region", field="Region", uses_subregion=True),
    FilterField(id="sector", label="Sector", field="Sectors", multi_value=True),
    FilterField(id="maturity", label="Maturity", field="MaturityLevel"),
    FilterField(
        id="authModalities",
        label="Authentication",
        field="AuthModalities",
        multi_value=True,
    ),
)

_filter_config_adapter = TypeAdapter(list[FilterField])
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")


def load_filter_config(path: str | None = None) -> list[FilterField]:
    """
    Load the filter definitions.

    Args:
        path: JSON file with [{id, label, field, multiValue, usesSubregion}];
            the built-in configuration is used when empty

    Raises:
        ConfigurationError: If the file cannot be read or is malformed
    """
    if not path:
        return list(DEFAULT_FILTER_CONFIG)

    try:
        raw = Path(path).read_text(encoding="utf-8")
        config = _filter_config_adapter.validate_json(raw)
    except OSError as e:
        raise ConfigurationError(f"Cannot read filter config {path}: {e}") from e
    except ValidationError as e:
        raise ConfigurationError(f"Invalid filter config {path}: {e}") from e

    logger.info("filter_config_loaded", path=path, filter_count=len(config))
    return config


def split_values(value: Any) -> list[str]:
    """Split "A, B, C" into ["A", "B", "C"], dropping empty parts."""
    if not value:
        return []
    return [part.strip() for part in str(value).split(",") if part.strip()]


def region_label(item: Mapping[str, Any]) -> str:
    """Join Region and Subregion with REGION_SEPARATOR; either half alone, or "" when neither exists."""
    region = item.get("Region") or ""
    subregion = item.get("Subregion") or ""
    if region and subregion:
        return f"{region}{REGION_SEPARATOR}{subregion}"
    return region or subregion


def _field_values(item: Mapping[str, Any], field: FilterField) -> list[str]:
    if field.uses_subregion:
        label = region_label(item)
        return [label] if label else []

    raw = item.get(field.field) if field.field else None
    if not raw:
        return []
    return split_values(raw) if field.multi_value else [str(raw)]


def build_filter_options(
    items: Iterable[Mapping[str, Any]],
    config: Sequence[FilterField],
) -> dict[str, list[str]]:
    """Distinct values per filter id, sorted for display."""
    options: dict[str, set] = {field.id: set() for field in config if field.id}

    for item in items:
        for field in config:
            if not field.id:
                continue
            options[field.id].update(_field_values(item, field))

    return {
        filter_id: sorted(values, key=lambda v: (str(v).casefold(), str(v)))
        for filter_id, values in options.items()
    }


def _matches_search(item: Mapping[str, Any], search: str) -> bool:
    haystack = " ".join(str(item[key]) for key in SEARCH_FIELDS if item.get(key)).lower()
    return search.lower() in haystack


def filter_use_cases(
    items: Iterable[Mapping[str, Any]],
    config: Sequence[FilterField],
    selected: Mapping[str, Sequence[str]] | None = None,
    search: str = "",
) -> list[Mapping[str, Any]]:
    """
    Apply free-text search and filter selections to catalog rows.

    Search is a case-insensitive substring match over Title, Country,
    Sectors, KeyTerms and Remarks. Filters combine with AND; values selected
    within one filter combine with OR. A filter with nothing selected
    matches every row.
    """
    selected = selected or {}
    result = []

    for item in items:
        if search.strip() and not _matches_search(item, search):
            continue

        keep = True
        for field in config:
            wanted = selected.get(field.id) if field.id else None
            if not wanted:
                continue
            values = _field_values(item, field)
            if not any(value in values for value in wanted):
                keep = False
                break

        if keep:
            result.append(item)

    return result


def sector_maturity_heatmap(
    items: Iterable[Mapping[str, Any]],
    maturity_order: Sequence[str] = DEFAULT_MATURITY_ORDER,
) -> Heatmap:
    """Use case counts per sector and maturity level.

    Rows without a maturity level or without sectors are left out.
    Columns follow maturity_order, then any other levels alphabetically.
    """
    counts: dict[str, Counter] = defaultdict(Counter)
    maturities: set[str] = set()

    for item in items:
        maturity = str(item.get("MaturityLevel") or "").strip()
        if not maturity:
            continue
        sectors = split_values(item.get("Sectors"))
        if not sectors:
            continue

        maturities.add(maturity)
        for sector in sectors:
            counts[sector][maturity] += 1

    columns = [m for m in maturity_order if m in maturities]
    columns += sorted(m for m in maturities if m not in maturity_order)

    return _heatmap(counts, columns, sort_key=lambda s: (s.casefold(), s))


def sector_country_heatmap(
    items: Iterable[Mapping[str, Any]],
    top_n: int = 10,
) -> Heatmap:
    """Sector-by-country counts for the top_n countries.

    Countries are ranked by their number of (sector, country) pairs, so a
    use case with three sectors counts three times for its country.
    """
    counts: dict[str, Counter] = defaultdict(Counter)
    country_totals: Counter = Counter()

    for item in items:
        sectors = split_values(item.get("Sectors"))
        countries = split_values(item.get("Country"))
        if not sectors or not countries:
            continue

        for sector in sectors:
            for country in countries:
                country_totals[country] += 1
                counts[sector][country] += 1

    # Counter.most_common keeps first-seen order for ties
    columns = [country for country, _ in country_totals.most_common(top_n)]
    return _heatmap(counts, columns)


def _heatmap(counts: Mapping[str, Counter], columns: list[str], sort_key=None) -> Heatmap:
    sectors = sorted(counts, key=sort_key)
    rows = [
        HeatmapRow(sector=sector, values=[counts[sector].get(column, 0) for column in columns])
        for sector in sectors
    ]
    max_value = max((value for row in rows for value in row.values), default=0)
    return Heatmap(sectors=sectors, columns=columns, rows=rows, max_value=max_value)


def sector_distribution(
    items: Iterable[Mapping[str, Any]],
    top_n: int | None = 10,
) -> list[SectorCount]:
    """Use cases per sector, largest first; the tail beyond top_n is summed as "Other"."""
    counts: Counter = Counter()
    for item in items:
        counts.update(split_values(item.get("Sectors")))

    rows = [SectorCount(name=name, value=value) for name, value in counts.most_common()]
    if top_n and len(rows) > top_n:
        other = sum(row.value for row in rows[top_n:])
        rows = [*rows[:top_n], SectorCount(name="Other", value=other)]
    return rows


def normalize_label(label: Any) -> str:
    """Lower-case, punctuation to spaces, whitespace collapsed."""
    if not label:
        return ""
    text = _NON_ALNUM.sub(" ", str(label).strip().lower())
    return _SPACES.sub(" ", text).strip()


def match_option(options: Iterable[str], label: Any) -> str | None:
    """Map a loosely written label (e.g. from a URL) onto one of the options."""
    target = normalize_label(label)
    if not target:
        return None
    for option in options:
        if normalize_label(option) == target:
            return option
    return None


def resolve_selection(
    options: Mapping[str, Iterable[str]],
    requested: Mapping[str, Iterable[str]],
) -> dict[str, list[str]]:
    """Map requested filter labels onto known options; unknown filters and labels are dropped."""
    selected: dict[str, list[str]] = {}
    for filter_id, labels in requested.items():
        known = list(options.get(filter_id, ()))
        matched = []
        for label in labels:
            option = match_option(known, label)
            if option is None:
                logger.info("filter_value_ignored", filter_id=filter_id, value=label)
            elif option not in matched:
                matched.append(option)
        if matched:
            selected[filter_id] = matched
    return selected


def build_catalog_facets(
    items: Sequence[Mapping[str, Any]],
    config: Sequence[FilterField],
    selected: Mapping[str, Sequence[str]] | None = None,
    search: str = "",
) -> UseCaseFacets:
    """Everything the catalog page needs besides the rows themselves.

    Options always come from the whole catalog; the total and the charts
    cover only the rows left after search and selection.
    """
    options = build_filter_options(items, config)
    matching = filter_use_cases(items, config, selected, search)
    filters = [
        FilterFacet(
            **field.model_dump(),
            options=options.get(field.id, []),
            selected=list((selected or {}).get(field.id, [])),
        )
        for field in config
        if field.id
    ]
    return UseCaseFacets(
        total=len(matching),
        filters=filters,
        sector_maturity=sector_maturity_heatmap(matching),
        sector_country=sector_country_heatmap(matching),
        sector_distribution=sector_distribution(matching),
    )
