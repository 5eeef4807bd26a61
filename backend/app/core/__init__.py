"""Core application utilities and configuration."""

from app.core.logging import (
    bind_request_context,
    configure_logging,
    get_logger,
    mask_identifier,
    request_id_from,
)

__all__ = [
    "bind_request_context",
    "configure_logging",
    "get_logger",
    "mask_identifier",
    "request_id_from",
]
