"""Base schemas for common response patterns."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model serialised with camelCase keys, as the front end expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Generic error body; upstream details stay in the server logs."""

    error: str


class UpstreamErrorResponse(BaseModel):
    """Error body of the list endpoints, which echo the upstream failure."""

    error: str
    message: str
    status: int | None = None
    data: Any = None


class DebugErrorResponse(CamelModel):
    """Error body of get-page-data when debug=1 is passed."""

    error: str
    status: int
    message: str
    sp_response: Any = None
