"""SharePoint-specific exception classes.

These exceptions map to the failure modes of the SharePoint REST API
calls made by the list and attachment readers.
"""

from typing import Any


class SharePointError(Exception):
    """Base exception for SharePoint operations.

    All SharePoint-related errors should inherit from this class
    to allow catching all SharePoint errors with a single except clause.
    """

    pass


class SharePointAuthenticationError(SharePointError):
    """Raised when an app-only token cannot be acquired.

    This can occur when:
    - The certificate credential is missing or malformed
    - Azure AD rejects the client credential exchange
    - The exchange returns no access token
    """

    pass


class SharePointValidationError(SharePointError, ValueError):
    """Raised when a call is made with missing or invalid input.

    For example a list item id of None or an empty server relative URL.
    No request is sent to SharePoint.
    """

    pass


class SharePointRemoteError(SharePointError):
    """Raised when SharePoint answers with a non-2xx status.

    The upstream status code and response body are kept so that handlers
    can log them (and, in debug mode, echo them).
    """

    def __init__(self, message: str, status_code: int, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SharePointNotFoundError(SharePointRemoteError):
    """Raised for HTTP 404, e.g. an unknown list title or item id."""

    def __init__(self, message: str, body: Any = None):
        super().__init__(message, status_code=404, body=body)


class SharePointRateLimitError(SharePointRemoteError):
    """Raised when SharePoint keeps throttling after all retries.

    SharePoint returns HTTP 429 with a Retry-After header.
    The retry_after_seconds attribute indicates when to retry.
    """

    def __init__(
        self,
        message: str,
        retry_after_seconds: int | None = None,
        body: Any = None,
    ):
        super().__init__(message, status_code=429, body=body)
        self.retry_after_seconds = retry_after_seconds
