"""Request timing middleware with per-endpoint slow thresholds."""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging import get_logger

logger = get_logger(__name__)

# One list query against SharePoint
JSON_SLOW_THRESHOLD_MS = 2000

# Item lookup, attachment listing and the $value download
IMAGE_SLOW_THRESHOLD_MS = 5000

IMAGE_PATHS = frozenset({"/api/get-usecase-image", "/api/export-usecase-cover-image"})

# Query parameters worth keeping on the timing entry
_CONTEXT_PARAMS = {"itemId": "item_id", "kind": "kind", "slug": "slug"}


def slow_threshold_ms(path: str) -> int:
    return IMAGE_SLOW_THRESHOLD_MS if path in IMAGE_PATHS else JSON_SLOW_THRESHOLD_MS


class TimingMiddleware(BaseHTTPMiddleware):
    """Time each request; warn when it exceeds its endpoint's threshold."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        path = request.url.path
        threshold_ms = slow_threshold_ms(path)

        log_data = {
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
        for param, key in _CONTEXT_PARAMS.items():
            value = request.query_params.get(param)
            if value:
                log_data[key] = value

        if duration_ms > threshold_ms:
            logger.warning("slow_request", threshold_ms=threshold_ms, **log_data)
        else:
            logger.debug("request_timing", **log_data)

        response.headers["X-Response-Time-Ms"] = str(duration_ms)

        return response
