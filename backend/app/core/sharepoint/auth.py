"""Token management for SharePoint REST and Microsoft Graph.

Provides token acquisition with explicit caching for:
- App-only certificate flow (MSAL): SharePoint REST, scope {site_origin}/.default
- Managed identity (azure-identity): Microsoft Graph, scope graph/.default

A cached token is reused while it has more than the refresh margin
(60 seconds by default) left. Refreshes are single-flight: concurrent
callers wait on one lock and share the token the first caller obtained.
The blocking credential calls run in a worker thread.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import msal
from azure.core.exceptions import AzureError
from azure.identity import ManagedIdentityCredential

from app.config import Settings, get_settings
from app.core.logging import get_logger, mask_identifier
from app.core.sharepoint.exceptions import SharePointAuthenticationError
from app.core.sharepoint.pem import normalize_private_key

logger = get_logger(__name__)

GRAPH_DEFAULT_SCOPE = ["https://graph.microsoft.com/.default"]


@dataclass(frozen=True)
class CachedToken:
    """Bearer token and the epoch second at which it expires."""

    access_token: str
    expires_at: float

    def is_valid(self, now: float, margin_seconds: float) -> bool:
        """True while the token has more than margin_seconds left."""
        return now < self.expires_at - margin_seconds


class SharePointAuthService:
    """MSAL-based app-only authentication for SharePoint REST.

    Uses a certificate credential (thumbprint plus PKCS#8 private key).
    The private key is normalised to strict PEM before it reaches MSAL.

    Attributes:
        _msal_app: MSAL ConfidentialClientApplication instance
        _settings: Application settings
        _cached: Last token obtained from Azure AD
    """

    def __init__(
        self,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the MSAL client when the credential is configured.

        Args:
            settings: Application settings (defaults to get_settings())
            clock: Returns the current epoch time in seconds
        """
        self._settings = settings or get_settings()
        self._clock = clock
        self._msal_app: msal.ConfidentialClientApplication | None = None
        self._cached: CachedToken | None = None
        self._lock = asyncio.Lock()

        if self.is_configured:
            self._msal_app = self._create_msal_app()
            logger.info(
                "sharepoint_auth_initialized",
                tenant_id=mask_identifier(self._settings.tenant_id),
                client_id=mask_identifier(self._settings.client_id),
            )
        else:
            logger.warning(
                "sharepoint_auth_not_configured",
                missing=self._settings.missing_sharepoint_settings,
            )

    def _create_msal_app(self) -> msal.ConfidentialClientApplication:
        """Create the confidential client with the certificate credential."""
        authority = f"https://login.microsoftonline.com/{self._settings.tenant_id}"
        private_key = normalize_private_key(self._settings.cert_private_key)

        logger.debug(
            "sharepoint_msal_app_creating",
            authority=authority,
            private_key_length=len(private_key) if private_key else 0,
        )

        return msal.ConfidentialClientApplication(
            client_id=self._settings.client_id,
            authority=authority,
            client_credential={
                "thumbprint": self._settings.cert_thumbprint,
                "private_key": private_key,
            },
        )

    @property
    def is_configured(self) -> bool:
        """Check if the certificate credential is fully configured."""
        return self._settings.is_sharepoint_configured

    @property
    def scopes(self) -> list[str]:
        """App-only scope derived from the site origin."""
        return self._settings.sharepoint_scope

    async def get_access_token(self) -> str:
        """Return a bearer token for SharePoint REST.

        Returns the cached token while it is valid for at least the refresh
        margin, otherwise exchanges the certificate credential for a new one.

        Returns:
            Access token string

        Raises:
            SharePointAuthenticationError: If SharePoint is not configured or
                the exchange does not yield a token
        """
        token = self._valid_cached_token()
        if token:
            return token

        if not self.is_configured or self._msal_app is None:
            logger.error("sharepoint_token_failed", reason="not_configured")
            raise SharePointAuthenticationError(
                "SharePoint authentication is not configured"
            )

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self._valid_cached_token()
            if token:
                return token

            logger.debug("sharepoint_token_acquiring", scopes=self.scopes)
            result = await asyncio.to_thread(
                self._msal_app.acquire_token_for_client,
                scopes=self.scopes,
            )
            access_token = self._handle_auth_result(result)

            now = self._clock()
            expires_in = result.get("expires_in")
            lifetime = (
                float(expires_in)
                if expires_in
                else float(self._settings.token_default_lifetime_seconds)
            )
            self._cached = CachedToken(access_token=access_token, expires_at=now + lifetime)

            logger.info(
                "sharepoint_token_acquired",
                expires_in=expires_in,
                token_type=result.get("token_type"),
            )
            return access_token

    def invalidate(self) -> None:
        """Forget the cached token so the next call exchanges a new one."""
        self._cached = None

    def _valid_cached_token(self) -> str | None:
        if self._cached and self._cached.is_valid(
            self._clock(), self._settings.token_refresh_margin_seconds
        ):
            return self._cached.access_token
        return None

    def _handle_auth_result(self, result: dict[str, Any] | None) -> str:
        """Process the MSAL result dictionary.

        Args:
            result: MSAL result containing access_token or error

        Returns:
            Access token string

        Raises:
            SharePointAuthenticationError: If result is None or contains error
        """
        if result is None:
            logger.error("sharepoint_token_failed", reason="null_result")
            raise SharePointAuthenticationError(
                "Failed to acquire access token for SharePoint: no result from MSAL"
            )

        if "error" in result:
            error_code = result.get("error", "unknown")
            error_description = result.get("error_description") or "No description"

            logger.error(
                "sharepoint_token_failed",
                error_code=error_code,
                error_description=error_description[:100],
            )
            raise SharePointAuthenticationError(
                f"Failed to acquire access token for SharePoint: {error_code} - {error_description}"
            )

        access_token = result.get("access_token")
        if not access_token:
            logger.error("sharepoint_token_failed", reason="missing_access_token")
            raise SharePointAuthenticationError(
                "Failed to acquire access token for SharePoint"
            )

        return access_token


class GraphManagedIdentityAuth:
    """Managed identity tokens for Microsoft Graph.

    Used by the Graph list reader; no secret or certificate is involved,
    the hosting platform vouches for the process.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        credential: ManagedIdentityCredential | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or get_settings()
        self._credential = credential
        self._clock = clock
        self._cached: CachedToken | None = None
        self._lock = asyncio.Lock()

    def _get_credential(self) -> ManagedIdentityCredential:
        if self._credential is None:
            self._credential = ManagedIdentityCredential()
        return self._credential

    async def get_access_token(self) -> str:
        """Return a Graph bearer token for the managed identity.

        Raises:
            SharePointAuthenticationError: If the identity endpoint fails or
                returns an empty token
        """
        margin = self._settings.token_refresh_margin_seconds
        if self._cached and self._cached.is_valid(self._clock(), margin):
            return self._cached.access_token

        async with self._lock:
            if self._cached and self._cached.is_valid(self._clock(), margin):
                return self._cached.access_token

            credential = self._get_credential()
            try:
                result = await asyncio.to_thread(credential.get_token, *GRAPH_DEFAULT_SCOPE)
            except AzureError as e:
                logger.error(
                    "graph_managed_identity_token_failed",
                    error_type=type(e).__name__,
                    error=str(e)[:200],
                )
                raise SharePointAuthenticationError(
                    f"Failed to acquire Managed Identity access token for Graph: {e}"
                ) from e

            if not result or not result.token:
                logger.error("graph_managed_identity_token_failed", reason="empty_token")
                raise SharePointAuthenticationError(
                    "Failed to acquire Managed Identity access token for Graph"
                )

            expires_at = (
                float(result.expires_on)
                if result.expires_on
                else self._clock() + self._settings.token_default_lifetime_seconds
            )
            self._cached = CachedToken(access_token=result.token, expires_at=expires_at)
            logger.info("graph_managed_identity_token_acquired")
            return result.token

    def close(self) -> None:
        """Release the credential's transport."""
        if self._credential is not None:
            self._credential.close()
            self._credential = None


# Module-level singletons, one token cache per process
_auth_service: SharePointAuthService | None = None
_graph_auth: GraphManagedIdentityAuth | None = None


def get_sharepoint_auth() -> SharePointAuthService:
    """Get the SharePoint authentication service singleton.

    Returns:
        SharePointAuthService instance
    """
    global _auth_service
    if _auth_service is None:
        _auth_service = SharePointAuthService()
    return _auth_service


def get_graph_auth() -> GraphManagedIdentityAuth:
    """Get the Graph managed identity singleton."""
    global _graph_auth
    if _graph_auth is None:
        _graph_auth = GraphManagedIdentityAuth()
    return _graph_auth


def reset_sharepoint_auth() -> None:
    """Reset the authentication singletons.

    Used primarily for testing to ensure clean state between tests.
    """
    global _auth_service, _graph_auth
    _auth_service = None
    _graph_auth = None
