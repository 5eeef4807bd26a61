"""API dependencies: shared SharePoint/Graph clients and services."""

from typing import Annotated

from fastapi import Depends

from app.config import get_settings
from app.core.logging import get_logger
from app.core.sharepoint import (
    GraphListClient,
    SharePointRestClient,
    get_graph_auth,
    get_sharepoint_auth,
)
from app.services import PageService, UseCaseService

logger = get_logger(__name__)

# One HTTP connection pool per upstream for the whole process
_rest_client: SharePointRestClient | None = None
_graph_client: GraphListClient | None = None


def get_rest_client() -> SharePointRestClient:
    """Get the shared SharePoint REST client."""
    global _rest_client
    if _rest_client is None:
        settings = get_settings()
        _rest_client = SharePointRestClient(
            get_sharepoint_auth(),
            settings.sp_site_url,
            timeout=settings.sharepoint_timeout_seconds,
            max_retries=settings.sharepoint_max_retries,
        )
    return _rest_client


def get_graph_client() -> GraphListClient:
    """Get the shared Microsoft Graph list client."""
    global _graph_client
    if _graph_client is None:
        settings = get_settings()
        _graph_client = GraphListClient(
            get_graph_auth(),
            timeout=settings.sharepoint_timeout_seconds,
        )
    return _graph_client


async def close_clients() -> None:
    """Close the shared clients; called from the application lifespan."""
    global _rest_client, _graph_client
    if _rest_client is not None:
        await _rest_client.close()
        _rest_client = None
    if _graph_client is not None:
        await _graph_client.close()
        _graph_client = None
    get_graph_auth().close()
    logger.debug("api_clients_closed")


RestClient = Annotated[SharePointRestClient, Depends(get_rest_client)]
GraphClient = Annotated[GraphListClient, Depends(get_graph_client)]


def get_usecase_service(client: RestClient) -> UseCaseService:
    return UseCaseService(client, get_settings().sp_list_title)


def get_page_service(client: RestClient) -> PageService:
    return PageService.from_settings(client, get_settings())


UseCaseServiceDep = Annotated[UseCaseService, Depends(get_usecase_service)]
PageServiceDep = Annotated[PageService, Depends(get_page_service)]

__all__ = [
    "GraphClient",
    "PageServiceDep",
    "RestClient",
    "UseCaseServiceDep",
    "close_clients",
    "get_graph_client",
    "get_page_service",
    "get_rest_client",
    "get_usecase_service",
]
