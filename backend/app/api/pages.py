"""CMS page endpoint."""

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from app.api.deps import PageServiceDep
from app.core.exceptions import PageNotFoundError, UseCaseLibraryError
from app.core.logging import get_logger
from app.core.rate_limit import limiter, public_limit
from app.core.sharepoint import SharePointError, SharePointRemoteError
from app.schemas.base import DebugErrorResponse, ErrorResponse
from app.schemas.page import PageData

logger = get_logger(__name__)

router = APIRouter(tags=["pages"])


@router.get(
    "/get-page-data",
    response_model=PageData,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
@limiter.limit(public_limit)
async def get_page_data(
    request: Request,
    service: PageServiceDep,
    slug: str | None = Query(None),
    slug_upper: str | None = Query(None, alias="Slug"),
    debug: str | None = Query(None),
):
    """
    Page metadata, ordered sections with their items, and the asset map.

    Pass debug=1 to see the upstream SharePoint failure in the 500 body.
    """
    page_slug = (slug or slug_upper or "").strip()
    if not page_slug:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="Missing 'slug' query parameter").model_dump(),
        )

    try:
        return await service.get_page_data(page_slug)
    except PageNotFoundError as e:
        return JSONResponse(status_code=404, content=ErrorResponse(error=str(e)).model_dump())
    except (SharePointError, UseCaseLibraryError) as e:
        status_code = e.status_code if isinstance(e, SharePointRemoteError) else 500
        body = e.body if isinstance(e, SharePointRemoteError) else None
        logger.error(
            "get_page_data_failed",
            slug=page_slug,
            error_type=type(e).__name__,
            error=str(e),
            status_code=status_code,
            body=str(body)[:500] if body is not None else None,
        )

        if debug == "1":
            content = DebugErrorResponse(
                error="SharePoint call failed",
                status=status_code,
                message=str(e),
                sp_response=body,
            ).model_dump(by_alias=True)
        else:
            content = ErrorResponse(error="Internal server error").model_dump()
        return JSONResponse(status_code=500, content=content)
