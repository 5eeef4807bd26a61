"""Rate limiting configuration using slowapi."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)

settings = get_settings()


def get_rate_limit_key(request: Request) -> str:
    """
    Get rate limit key for an anonymous caller.

    The catalog is public, so callers are told apart by address. Behind the
    Functions/App Service front end the client address arrives in
    X-Forwarded-For; the first hop is the original client.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        client = forwarded.split(",")[0].strip()
        if client:
            return client
    return get_remote_address(request)


# headers_enabled=False: the image endpoints return raw Response objects and
# the JSON endpoints return plain lists, slowapi cannot inject into both.
limiter = Limiter(
    key_func=get_rate_limit_key,
    storage_uri=settings.rate_limit_storage_uri,
    headers_enabled=False,
    enabled=settings.rate_limit_enabled,
)


def public_limit() -> str:
    """Get JSON endpoint rate limit."""
    return settings.rate_limit_public


def image_limit() -> str:
    """Get image endpoint rate limit."""
    return settings.rate_limit_image
