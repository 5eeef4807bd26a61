"""Business logic services."""

from .catalog_facets import (
    build_catalog_facets,
    build_filter_options,
    filter_use_cases,
    load_filter_config,
    match_option,
    resolve_selection,
    split_values,
)
from .page_service import PageService
from .usecase_service import ImageContent, UseCaseService, enrich_use_case

__all__ = [
    "ImageContent",
    "PageService",
    "UseCaseService",
    "build_catalog_facets",
    "build_filter_options",
    "enrich_use_case",
    "filter_use_cases",
    "load_filter_config",
    "match_option",
    "resolve_selection",
    "split_values",
]
