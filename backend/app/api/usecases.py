"""Use case catalog endpoints: rows, images and facets."""

from urllib.parse import quote

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from app.api.deps import UseCaseServiceDep
from app.config import get_settings
from app.core.exceptions import ImageNotFoundError, UseCaseLibraryError
from app.core.logging import get_logger
from app.core.rate_limit import image_limit, limiter, public_limit
from app.core.sharepoint import SharePointError
from app.schemas.base import ErrorResponse
from app.schemas.usecase import FilterField, UseCaseFacets
from app.services import (
    ImageContent,
    build_catalog_facets,
    build_filter_options,
    filter_use_cases,
    load_filter_config,
    resolve_selection,
    split_values,
)

logger = get_logger(__name__)

router = APIRouter(tags=["use-cases"])

INVALID_ITEM_ID = "Missing or invalid itemId"


def parse_item_id(raw: str | None) -> int | None:
    """Parse the itemId query value; None when absent, non-integer or negative.

    0 is a valid id.
    """
    if raw is None:
        return None
    try:
        item_id = int(raw.strip())
    except ValueError:
        return None
    return item_id if item_id >= 0 else None


def requested_filters(request: Request, config: list[FilterField]) -> dict[str, list[str]]:
    """Filter labels from the query string, keyed by filter id.

    A filter may repeat (?sector=Health&sector=Finance); multi-valued
    filters also accept comma-separated labels.
    """
    requested: dict[str, list[str]] = {}
    for field in config:
        raw = request.query_params.getlist(field.id)
        if not raw:
            continue
        labels = []
        for value in raw:
            labels.extend(split_values(value) if field.multi_value else [value.strip()])
        requested[field.id] = [label for label in labels if label]
    return requested


def _server_error(event: str, exc: Exception, **context) -> JSONResponse:
    logger.error(
        event,
        error_type=type(exc).__name__,
        error=str(exc),
        status_code=getattr(exc, "status_code", None),
        body=str(getattr(exc, "body", ""))[:500] or None,
        **context,
    )
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal server error").model_dump(),
    )


def content_disposition(disposition_type: str, file_name: str) -> str:
    """Content-Disposition with an ASCII filename and an RFC 5987 filename*.

    Attachment names can hold any character; header values must stay latin-1.
    """
    fallback = "".join(
        ch if " " <= ch <= "~" and ch not in '"\\' else "_" for ch in file_name
    )
    encoded = quote(file_name, safe="")
    return f'{disposition_type}; filename="{fallback}"; filename*=UTF-8\'\'{encoded}'


def _image_response(
    image: ImageContent,
    disposition_type: str,
    file_name: str,
    headers: dict[str, str],
) -> Response:
    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={
            "Content-Disposition": content_disposition(disposition_type, file_name),
            "Cache-Control": "no-store",
            "X-Item-Id": str(image.item_id),
            "X-Source-Filename": quote(image.file_name, safe=""),
            **headers,
        },
    )



@router.get("/get-usecase-data")
@limiter.limit(public_limit)
async def get_usecase_data(
    request: Request,
    service: UseCaseServiceDep,
    search: str = Query(""),
):
    """All use cases, newest first, with ThumbnailUrl and CoverImageUrl resolved.

    Optional search text and filter labels (?country=Kenya&sector=Health)
    narrow the rows the same way the catalog page does.
    """
    try:
        items = await service.list_use_cases()
        if not search.strip() and not set(request.query_params) - {"search"}:
            return items
        config = load_filter_config(get_settings().filter_config_path)
    except (SharePointError, UseCaseLibraryError) as e:
        return _server_error("get_usecase_data_failed", e)

    selected = resolve_selection(
        build_filter_options(items, config),
        requested_filters(request, config),
    )
    rows = filter_use_cases(items, config, selected, search)
    logger.info(
        "use_cases_filtered",
        search=search or None,
        selected=selected,
        total=len(items),
        count=len(rows),
    )
    return rows


@router.get("/get-usecase-image")
@limiter.limit(image_limit)
async def get_usecase_image(
    request: Request,
    service: UseCaseServiceDep,
    item_id: str | None = Query(None, alias="itemId"),
    kind: str = Query("thumbnail"),
):
    """Stream the thumbnail or cover attachment referenced by a use case."""
    parsed_id = parse_item_id(item_id)
    if parsed_id is None:
        return PlainTextResponse(INVALID_ITEM_ID, status_code=400)

    try:
        image = await service.get_image(parsed_id, kind)
    except ImageNotFoundError as e:
        return PlainTextResponse(str(e), status_code=404)
    except (SharePointError, UseCaseLibraryError) as e:
        return _server_error("get_usecase_image_failed", e, item_id=parsed_id, kind=kind)

    logger.info(
        "usecase_image_served",
        item_id=parsed_id,
        kind=image.kind,
        file_name=image.file_name,
        size=len(image.content),
    )
    return _image_response(
        image,
        "inline",
        image.file_name,
        {"X-Image-Kind": image.kind},
    )


@router.get("/export-usecase-cover-image")
@limiter.limit(image_limit)
async def export_usecase_cover_image(
    request: Request,
    service: UseCaseServiceDep,
    item_id: str | None = Query(None, alias="itemId"),
    download: str = Query(""),
):
    """Cover image renamed to cover.<ext>; download=1 forces an attachment."""
    parsed_id = parse_item_id(item_id)
    if parsed_id is None:
        return PlainTextResponse(INVALID_ITEM_ID, status_code=400)

    disposition_type = "attachment" if download.lower() in ("1", "true") else "inline"

    try:
        image = await service.get_cover_export(parsed_id)
    except ImageNotFoundError as e:
        return PlainTextResponse(str(e), status_code=404)
    except (SharePointError, UseCaseLibraryError) as e:
        return _server_error("export_usecase_cover_image_failed", e, item_id=parsed_id)

    logger.info(
        "usecase_cover_exported",
        item_id=parsed_id,
        file_name=image.file_name,
        disposition=disposition_type,
    )
    return _image_response(
        image,
        disposition_type,
        f"cover.{image.extension}",
        {},
    )


@router.get(
    "/get-usecase-facets",
    response_model=UseCaseFacets,
    responses={500: {"model": ErrorResponse}},
)
@limiter.limit(public_limit)
async def get_usecase_facets(
    request: Request,
    service: UseCaseServiceDep,
    search: str = Query(""),
):
    """Filter options, heatmaps and sector distribution for the catalog page.

    Accepts the same search text and filter labels as get-usecase-data;
    the charts then cover only the matching rows.
    """
    try:
        config = load_filter_config(get_settings().filter_config_path)
        items = await service.list_use_cases()
    except (SharePointError, UseCaseLibraryError) as e:
        return _server_error("get_usecase_facets_failed", e)

    selected = resolve_selection(
        build_filter_options(items, config),
        requested_filters(request, config),
    )
    return build_catalog_facets(items, config, selected, search)
