"""Core application exception classes.

Exception Hierarchy:
    UseCaseLibraryError (base)
    +-- ExternalServiceError (API/service failures)
    |   +-- GraphAPIError
    +-- DataProcessingError (reshaping of list data)
    |   +-- ImageNotFoundError
    |   +-- PageNotFoundError
    +-- ConfigurationError (missing/invalid configuration)

SharePoint REST failures use the SharePointError hierarchy in
app.core.sharepoint.exceptions.
"""


class UseCaseLibraryError(Exception):
    """Base exception for all application errors.

    Example:
        try:
            await service.get_image(item_id, kind)
        except UseCaseLibraryError as e:
            logger.error("application_error", error=str(e), exc_info=True)
            return JSONResponse(status_code=500, content={"error": "Internal server error"})
    """

    pass


# --- Category Exceptions ---


class ExternalServiceError(UseCaseLibraryError):
    """Base exception for external service/API failures."""

    pass


class DataProcessingError(UseCaseLibraryError):
    """Base exception for failures while reshaping list data."""

    pass


class ConfigurationError(UseCaseLibraryError):
    """Exception for missing or invalid configuration.

    Raised when an endpoint needs settings that were not provided, such as
    SP_SITE_URL or SP_LIST_ID. Typically indicates a deployment issue.
    """

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


# --- Service-Specific Exceptions ---


class GraphAPIError(ExternalServiceError):
    """Exception for Microsoft Graph API failures.

    Carries the upstream HTTP status and body when Graph answered at all.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: object | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ImageNotFoundError(DataProcessingError):
    """The item has no image reference, or the referenced attachment is missing.

    The message is safe to return to clients.
    """

    def __init__(self, message: str, file_name: str | None = None):
        super().__init__(message)
        self.file_name = file_name


class PageNotFoundError(DataProcessingError):
    """No page exists for the requested slug."""

    def __init__(self, slug: str):
        super().__init__(f"Page not found for slug '{slug}'")
        self.slug = slug
