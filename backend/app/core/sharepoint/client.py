"""SharePoint REST API client for list items and attachments.

Provides authenticated GET access to the site's `_api` surface with:
- OData query building ($select, $filter, $orderby, $top)
- JSON (odata=nometadata) and binary ($value) responses
- Retry with exponential backoff for throttling (HTTP 429) and
  unavailability (HTTP 503) only; other failures propagate immediately
- Error mapping to SharePoint exception classes carrying status and body

Only the first page of a list query is returned; SharePoint's default
page size applies.
"""

import asyncio
from typing import Any
from urllib.parse import quote

import httpx

from app.core.logging import get_logger
from app.core.sharepoint.auth import SharePointAuthService
from app.core.sharepoint.exceptions import (
    SharePointError,
    SharePointNotFoundError,
    SharePointRateLimitError,
    SharePointRemoteError,
    SharePointValidationError,
)
from app.core.sharepoint.models import Attachment, ListItem

logger = get_logger(__name__)

JSON_ACCEPT = "application/json;odata=nometadata"
BINARY_ACCEPT = "*/*"


def escape_odata_literal(value: Any) -> str:
    """Escape a value for use inside an OData single-quoted string literal."""
    return str(value if value is not None else "").replace("'", "''")


def build_odata_query(
    select: str | None = None,
    filter: str | None = None,
    orderby: str | None = None,
    top: int | None = None,
) -> str:
    """Build the query string for a list request.

    Every clause, option name included, is percent-encoded, so
    ``filter="Slug eq 'x'"`` becomes ``%24filter=Slug%20eq%20%27x%27``.

    Returns:
        Query string with leading "?", or "" when no clause is set
    """
    clauses = [
        ("$select", select),
        ("$filter", filter),
        ("$orderby", orderby),
        ("$top", top),
    ]
    params = [
        f"{quote(name, safe='')}={quote(str(value), safe='')}"
        for name, value in clauses
        if value
    ]
    return f"?{'&'.join(params)}" if params else ""


def _require_item_id(item_id: int | None) -> None:
    # 0 is a legitimate value, only a missing id is rejected
    if item_id is None:
        raise SharePointValidationError("itemId is required")


def _items_from_payload(payload: Any) -> list[ListItem]:
    """Extract rows from nometadata ({value}) or verbose ({d: {results}}) payloads."""
    if not isinstance(payload, dict):
        return []
    if payload.get("value") is not None:
        return list(payload["value"])
    verbose = payload.get("d")
    if isinstance(verbose, dict) and verbose.get("results") is not None:
        return list(verbose["results"])
    return []


class SharePointRestClient:
    """Low-level SharePoint REST client with throttling retry.

    Attributes:
        RETRYABLE_STATUS_CODES: Status codes retried with backoff
    """

    RETRYABLE_STATUS_CODES = (429, 503)

    def __init__(
        self,
        auth_service: SharePointAuthService,
        site_url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
    ) -> None:
        """Initialize the client.

        Args:
            auth_service: Token provider for the site's tenant
            site_url: Absolute site URL, e.g. https://tenant.sharepoint.com/sites/X
            timeout: Per-request timeout in seconds
            max_retries: Retries for 429/503 responses
        """
        self._auth = auth_service
        self._site_url = site_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._client: httpx.AsyncClient | None = None

    @property
    def site_url(self) -> str:
        return self._site_url

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.debug("sharepoint_client_closed")

    async def _request(
        self,
        relative_url: str,
        accept: str,
        retry_count: int | None = None,
    ) -> httpx.Response:
        """GET a site-relative URL with auth, throttling retry and error mapping.

        Args:
            relative_url: Path below the site URL, starting with "/_api/"
            accept: Accept header value
            retry_count: Retries for 429/503 (defaults to the client setting)

        Returns:
            httpx.Response with a 2xx status

        Raises:
            SharePointNotFoundError: On HTTP 404
            SharePointRateLimitError: On HTTP 429 after retries exhausted
            SharePointRemoteError: On any other non-2xx status
            SharePointError: On connection errors and timeouts
        """
        retries = self._max_retries if retry_count is None else retry_count
        url = f"{self._site_url}{relative_url}"
        client = self._get_client()

        for attempt in range(retries + 1):
            token = await self._auth.get_access_token()

            logger.debug(
                "sharepoint_request_attempt",
                url=url,
                attempt=attempt + 1,
                max_attempts=retries + 1,
            )

            try:
                response = await client.get(
                    url,
                    headers={"Authorization": f"Bearer {token}", "Accept": accept},
                )
            except httpx.RequestError as e:
                logger.error(
                    "sharepoint_connection_error",
                    url=url,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise SharePointError(f"Connection error calling SharePoint: {e}") from e

            status_code = response.status_code

            if status_code in self.RETRYABLE_STATUS_CODES:
                delay = self._retry_delay(response, attempt)
                # Waits longer than the request timeout are not retried
                if attempt < retries and delay <= self._timeout:
                    logger.warning(
                        "sharepoint_throttled_retrying",
                        url=url,
                        status_code=status_code,
                        delay=delay,
                        attempt=attempt + 1,
                    )
                    await asyncio.sleep(delay)
                    continue

                body = self._response_body(response)
                logger.error(
                    "sharepoint_throttling_exhausted",
                    url=url,
                    status_code=status_code,
                    delay=delay,
                    max_delay=self._timeout,
                    body=str(body)[:500],
                )
                if status_code == 429:
                    raise SharePointRateLimitError(
                        "SharePoint rate limit exceeded",
                        retry_after_seconds=self._retry_after(response),
                        body=body,
                    )
                raise SharePointRemoteError(
                    f"SharePoint unavailable ({status_code})",
                    status_code=status_code,
                    body=body,
                )

            if status_code == 401:
                # Next invocation starts from a fresh token
                self._auth.invalidate()

            if status_code == 404:
                body = self._response_body(response)
                logger.warning("sharepoint_not_found", url=url, status_code=status_code)
                raise SharePointNotFoundError(f"Resource not found: {relative_url}", body=body)

            if status_code >= 400:
                body = self._response_body(response)
                logger.error(
                    "sharepoint_request_failed",
                    url=url,
                    status_code=status_code,
                    body=str(body)[:500],
                )
                raise SharePointRemoteError(
                    f"SharePoint request failed with status {status_code}",
                    status_code=status_code,
                    body=body,
                )

            logger.debug("sharepoint_request_success", url=url, status_code=status_code)
            return response

        # Unreachable: the loop either returns or raises
        raise SharePointError(f"Request failed after {retries + 1} attempts")

    @staticmethod
    def _retry_after(response: httpx.Response) -> int | None:
        value = response.headers.get("Retry-After")
        if value is not None and str(value).strip().isdigit():
            return int(value)
        return None

    def _retry_delay(self, response: httpx.Response, attempt: int) -> int:
        """Retry-After when SharePoint sends seconds, else 1, 2, 4... seconds."""
        retry_after = self._retry_after(response)
        if retry_after is not None:
            return retry_after
        return 2**attempt

    @staticmethod
    def _response_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    async def get_json(self, relative_url: str) -> Any:
        """GET JSON (odata=nometadata) from the REST API."""
        response = await self._request(relative_url, accept=JSON_ACCEPT)
        try:
            return response.json()
        except ValueError as e:
            # Sign-in pages and proxy error pages arrive as 2xx HTML
            logger.error(
                "sharepoint_invalid_json",
                url=relative_url,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise SharePointRemoteError(
                "SharePoint returned a non-JSON response",
                status_code=response.status_code,
                body=response.text,
            ) from e

    async def get_binary(self, relative_url: str) -> bytes:
        """GET raw bytes from the REST API."""
        response = await self._request(relative_url, accept=BINARY_ACCEPT)
        return response.content

    async def get_list_items(
        self,
        list_title: str,
        select: str | None = None,
        filter: str | None = None,
        orderby: str | None = None,
        top: int | None = None,
    ) -> list[ListItem]:
        """Get items from a list by its title.

        Args:
            list_title: Display title of the list
            select: Comma-separated column names
            filter: OData filter expression (literals already escaped)
            orderby: OData order expression, e.g. "Created desc"
            top: Maximum number of rows

        Returns:
            First page of list items, [] if the payload has none
        """
        query = build_odata_query(select=select, filter=filter, orderby=orderby, top=top)
        relative_url = f"/_api/web/lists/getbytitle('{escape_odata_literal(list_title)}')/items{query}"

        logger.debug("sharepoint_get_list_items", list_title=list_title, query=query)
        payload = await self.get_json(relative_url)
        return _items_from_payload(payload)

    async def get_list_items_by_guid(
        self,
        list_id: str,
        select: str | None = None,
        filter: str | None = None,
        orderby: str | None = None,
        top: int | None = None,
    ) -> list[ListItem]:
        """Get items from a list addressed by its GUID."""
        query = build_odata_query(select=select, filter=filter, orderby=orderby, top=top)
        relative_url = f"/_api/web/lists(guid'{escape_odata_literal(list_id)}')/items{query}"

        logger.debug("sharepoint_get_list_items_by_guid", list_id=list_id, query=query)
        payload = await self.get_json(relative_url)
        return _items_from_payload(payload)

    async def get_list_item_by_id(
        self,
        list_title: str,
        item_id: int | None,
        select: str | None = None,
    ) -> ListItem:
        """Get a single list item.

        Raises:
            SharePointValidationError: If item_id is None
        """
        _require_item_id(item_id)

        query = build_odata_query(select=select)
        relative_url = (
            f"/_api/web/lists/getbytitle('{escape_odata_literal(list_title)}')"
            f"/items({item_id}){query}"
        )
        return await self.get_json(relative_url)

    async def get_list_item_attachments(
        self,
        list_title: str,
        item_id: int | None,
    ) -> list[Attachment]:
        """List the files attached to a list item.

        Raises:
            SharePointValidationError: If item_id is None
        """
        _require_item_id(item_id)

        relative_url = (
            f"/_api/web/lists/getbytitle('{escape_odata_literal(list_title)}')"
            f"/items({item_id})/AttachmentFiles"
        )
        payload = await self.get_json(relative_url)
        return [Attachment.from_api(raw) for raw in _items_from_payload(payload)]

    async def download_attachment_by_server_relative_url(self, server_relative_url: str) -> bytes:
        """Download a file by its server relative URL.

        Raises:
            SharePointValidationError: If the URL is empty
        """
        if not server_relative_url:
            raise SharePointValidationError("serverRelativeUrl is required")

        escaped = escape_odata_literal(server_relative_url)
        relative_url = f"/_api/web/GetFileByServerRelativeUrl('{escaped}')/$value"

        content = await self.get_binary(relative_url)
        logger.info(
            "sharepoint_attachment_downloaded",
            server_relative_url=server_relative_url,
            size=len(content),
        )
        return content
