"""Raw list endpoints: one through Microsoft Graph, one through SharePoint REST."""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.api.deps import GraphClient, RestClient
from app.config import get_settings
from app.core.exceptions import ConfigurationError, GraphAPIError
from app.core.logging import get_logger
from app.core.rate_limit import limiter, public_limit
from app.core.sharepoint import SharePointError, SharePointRemoteError
from app.schemas.base import UpstreamErrorResponse
from app.schemas.lists import GraphListItem, PublicListItem

logger = get_logger(__name__)

router = APIRouter(tags=["lists"])

GRAPH_FIELDS = ("Id", "Title", "Modified")
PUBLIC_LIST_SELECT = "Id,Text,Title,Modified,No"


def _upstream_error(error: str, exc: Exception) -> JSONResponse:
    status: int | None = None
    data: Any = None
    if isinstance(exc, (SharePointRemoteError, GraphAPIError)):
        status = exc.status_code
        data = exc.body
    body = UpstreamErrorResponse(error=error, message=str(exc), status=status, data=data)
    return JSONResponse(status_code=500, content=body.model_dump())


def _require_settings(*names: str) -> None:
    settings = get_settings()
    missing = [name for name in names if not getattr(settings, name.lower())]
    if missing:
        raise ConfigurationError(
            "Missing environment variables: " + ", ".join(missing),
            missing=missing,
        )


@router.get("/list-items-via-graph", response_model=list[GraphListItem])
@limiter.limit(public_limit)
async def list_items_via_graph(request: Request, client: GraphClient):
    """Read the list through Microsoft Graph using the managed identity."""
    settings = get_settings()
    try:
        _require_settings("SP_SITE_URL", "SP_LIST_ID")
        raw_items = await client.get_list_items(
            settings.sp_site_url,
            settings.sp_list_id,
            fields=GRAPH_FIELDS,
        )
    except (GraphAPIError, SharePointError, ConfigurationError) as e:
        logger.error(
            "graph_list_read_failed",
            error_type=type(e).__name__,
            error=str(e),
            status_code=getattr(e, "status_code", None),
        )
        return _upstream_error("Failed to read SharePoint list via Graph + Managed Identity", e)

    logger.info("graph_list_read", item_count=len(raw_items))
    return [GraphListItem.from_graph(raw) for raw in raw_items]


@router.get("/list-items-via-cert", response_model=list[PublicListItem])
@limiter.limit(public_limit)
async def list_items_via_cert(request: Request, client: RestClient):
    """Read the list through SharePoint REST with the certificate credential."""
    settings = get_settings()
    try:
        _require_settings(
            "TENANT_ID",
            "CLIENT_ID",
            "SP_SITE_URL",
            "SP_LIST_ID",
            "CERT_THUMBPRINT",
            "CERT_PRIVATE_KEY",
        )
        raw_items = await client.get_list_items_by_guid(
            settings.sp_list_id,
            select=PUBLIC_LIST_SELECT,
        )
    except (SharePointError, ConfigurationError) as e:
        logger.error(
            "sharepoint_list_read_failed",
            error_type=type(e).__name__,
            error=str(e),
            status_code=getattr(e, "status_code", None),
        )
        return _upstream_error("Failed to read SharePoint list", e)

    logger.info("sharepoint_list_read", item_count=len(raw_items))
    return [PublicListItem.from_rest(raw) for raw in raw_items]
