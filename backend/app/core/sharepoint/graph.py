"""Microsoft Graph reader for SharePoint list items.

Reads a list through Graph's sites/lists surface using a managed identity
token, as opposed to the certificate-authenticated REST client.
"""

from typing import Any
from urllib.parse import urlsplit

import httpx

from app.core.exceptions import ConfigurationError, GraphAPIError
from app.core.logging import get_logger
from app.core.sharepoint.auth import GraphManagedIdentityAuth

logger = get_logger(__name__)


def graph_site_reference(site_url: str) -> str:
    """Turn https://host/sites/X into Graph's "host:/sites/X:" site address."""
    parts = urlsplit(site_url)
    if not parts.netloc:
        raise ConfigurationError(f"Invalid SharePoint site URL: {site_url!r}", ["SP_SITE_URL"])
    return f"{parts.netloc}:{parts.path.rstrip('/')}:"


class GraphListClient:
    """Read list items via Microsoft Graph.

    Attributes:
        GRAPH_BASE_URL: Base URL for Microsoft Graph API v1.0
    """

    GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

    def __init__(self, auth: GraphManagedIdentityAuth, timeout: float = 30.0) -> None:
        self._auth = auth
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.GRAPH_BASE_URL, timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.debug("graph_client_closed")

    async def get_list_items(
        self,
        site_url: str,
        list_id: str,
        fields: tuple[str, ...] = ("Id", "Title", "Modified"),
        top: int = 100,
    ) -> list[dict[str, Any]]:
        """Get list items with the selected fields expanded.

        Args:
            site_url: Absolute SharePoint site URL
            list_id: List GUID
            fields: Columns to expand into each item's "fields"
            top: Page size (first page only)

        Returns:
            Raw Graph listItem objects

        Raises:
            GraphAPIError: On non-2xx responses or connection errors
        """
        path = f"/sites/{graph_site_reference(site_url)}/lists/{list_id}/items"
        params = {
            "$expand": f"fields($select={','.join(fields)})",
            "$top": top,
        }

        token = await self._auth.get_access_token()
        client = self._get_client()

        logger.debug("graph_get_list_items", path=path, top=top)

        try:
            response = await client.get(
                path,
                params=params,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            )
        except httpx.RequestError as e:
            logger.error("graph_connection_error", path=path, error=str(e))
            raise GraphAPIError(f"Connection error calling Graph: {e}") from e

        if response.status_code >= 400:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            logger.error(
                "graph_request_failed",
                path=path,
                status_code=response.status_code,
                body=str(body)[:500],
            )
            raise GraphAPIError(
                f"Graph request failed with status {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        payload = response.json()
        return list(payload.get("value") or [])
