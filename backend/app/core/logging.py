"""Structured logging for the API and the export script.

Every entry passes through redact_secrets before rendering, so bearer
tokens, certificate material and the image function key never reach
stdout even when an upstream error body echoes them back.
"""

import logging
import re
import sys
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

import structlog

from app.config import get_settings

REDACTED = "[redacted]"

# Keys whose values are secrets wherever they appear in an event
SECRET_KEYS = frozenset(
    {
        "access_token",
        "authorization",
        "azure_func_key",
        "cert_private_key",
        "client_secret",
        "code",
        "private_key",
        "token",
    }
)

# Azure AD identifiers are not secret but are shortened in logs
IDENTIFIER_KEYS = frozenset({"tenant_id", "client_id"})

_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_CODE_PARAM = re.compile(r"([?&]code=)[^&#\s]+")
_PEM_BLOCK = re.compile(
    r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?(?:-----END [A-Z ]*PRIVATE KEY-----|$)",
    re.DOTALL,
)

# Chatty client libraries that should only surface warnings
_QUIET_LOGGERS = ("httpx", "httpcore", "msal", "azure", "urllib3")

_REQUEST_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")


def mask_identifier(value: str | None) -> str:
    """Shorten tenant/client ids before they reach the logs."""
    if not value:
        return "not_set"
    if value.endswith("..."):
        return value
    return value[:8] + "..."


def scrub_text(text: str) -> str:
    """Remove bearer tokens, function keys and PEM private keys from free text."""
    text = _BEARER.sub(rf"\1{REDACTED}", text)
    text = _CODE_PARAM.sub(rf"\1{REDACTED}", text)
    return _PEM_BLOCK.sub(REDACTED, text)


def _scrub(key: str, value: Any) -> Any:
    if key.lower() in SECRET_KEYS:
        return REDACTED if value else value
    if key.lower() in IDENTIFIER_KEYS and isinstance(value, str):
        return mask_identifier(value)
    if isinstance(value, str):
        return scrub_text(value)
    if isinstance(value, Mapping):
        return {k: _scrub(str(k), v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_scrub(key, v) for v in value]
    return value


def redact_secrets(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor applying the SharePoint redaction rules to every field."""
    for key, value in event_dict.items():
        if key == "event":
            continue
        event_dict[key] = _scrub(key, value)
    return event_dict


def configure_logging() -> None:
    """Configure structured logging for the API and the export script."""
    settings = get_settings()

    log_level = getattr(logging, settings.log_level, logging.INFO)

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        redact_secrets,
    ]

    if settings.is_development:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        # Function hosts ship stdout to log analytics, keep one JSON object per line
        processors.extend(
            [
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ]
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def request_id_from(header_value: str | None) -> str:
    """Reuse a caller's X-Request-ID when it is a plain token, otherwise mint one."""
    if header_value and _REQUEST_ID.fullmatch(header_value):
        return header_value
    return uuid4().hex[:8]


def bind_request_context(request_id: str, **context: Any) -> None:
    """Start a fresh log context for one request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **context)
