"""SharePoint integration for the use case catalog.

This package provides read-only access to SharePoint lists and their
attachments.

Modules:
    - exceptions: SharePoint-specific exception classes
    - pem: private key normalisation for the certificate credential
    - auth: cached app-only (MSAL) and managed identity tokens
    - client: SharePoint REST client for list items and attachments
    - graph: Microsoft Graph list reader
    - fields: image column parsers and attachment matching
"""

from app.core.sharepoint.auth import (
    GRAPH_DEFAULT_SCOPE,
    CachedToken,
    GraphManagedIdentityAuth,
    SharePointAuthService,
    get_graph_auth,
    get_sharepoint_auth,
    reset_sharepoint_auth,
)
from app.core.sharepoint.client import (
    SharePointRestClient,
    build_odata_query,
    escape_odata_literal,
)
from app.core.sharepoint.exceptions import (
    SharePointAuthenticationError,
    SharePointError,
    SharePointNotFoundError,
    SharePointRateLimitError,
    SharePointRemoteError,
    SharePointValidationError,
)
from app.core.sharepoint.fields import (
    FIELD_CANDIDATES,
    IMAGE_FIELD_NAMES,
    file_extension,
    find_attachment,
    guess_content_type,
    image_field_file_name,
    parse_image_field,
    pick_field,
)
from app.core.sharepoint.graph import GraphListClient
from app.core.sharepoint.models import Attachment, ImageFieldValue, ListItem
from app.core.sharepoint.pem import normalize_private_key

__all__ = [
    # Exceptions
    "SharePointError",
    "SharePointAuthenticationError",
    "SharePointValidationError",
    "SharePointRemoteError",
    "SharePointNotFoundError",
    "SharePointRateLimitError",
    # Auth
    "CachedToken",
    "SharePointAuthService",
    "GraphManagedIdentityAuth",
    "get_sharepoint_auth",
    "get_graph_auth",
    "reset_sharepoint_auth",
    "GRAPH_DEFAULT_SCOPE",
    "normalize_private_key",
    # Clients
    "SharePointRestClient",
    "GraphListClient",
    "build_odata_query",
    "escape_odata_literal",
    # Fields
    "FIELD_CANDIDATES",
    "IMAGE_FIELD_NAMES",
    "file_extension",
    "guess_content_type",
    "parse_image_field",
    "image_field_file_name",
    "pick_field",
    "find_attachment",
    # Models
    "Attachment",
    "ImageFieldValue",
    "ListItem",
]
