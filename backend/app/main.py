"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api import lists, pages, usecases
from app.api.deps import close_clients
from app.config import get_settings
from app.core.logging import (
    bind_request_context,
    configure_logging,
    get_logger,
    mask_identifier,
    request_id_from,
)
from app.core.rate_limit import limiter
from app.schemas.base import ErrorResponse
from app.middleware.timing import TimingMiddleware

settings = get_settings()

# Configure structured logging
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug,
    )

    if settings.is_sharepoint_configured:
        logger.info(
            "sharepoint_configured",
            site_url=settings.sp_site_url,
            tenant_id=mask_identifier(settings.tenant_id),
            client_id=mask_identifier(settings.client_id),
        )
    else:
        logger.warning(
            "sharepoint_not_configured",
            missing=settings.missing_sharepoint_settings,
            message="SharePoint endpoints will fail until these are set.",
        )

    if not settings.sp_list_title:
        logger.warning(
            "use_case_list_not_configured",
            message="Set SP_LIST_TITLE to serve the use case catalog.",
        )

    yield

    await close_clients()

    logger.info("application_shutdown")


app = FastAPI(
    title="Use Case Library API",
    description=(
        "Read-only API over the Use Case Library SharePoint lists. "
        "Serves catalog rows, image attachments, CMS pages and "
        "catalog facets to the front end."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    expose_headers=[
        "X-Request-ID",
        "X-Response-Time-Ms",
        "Content-Disposition",
        "X-Item-Id",
        "X-Image-Kind",
        "X-Source-Filename",
    ],
)

app.add_middleware(TimingMiddleware)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return the JSON 500 body for errors no route handled."""
    logger.error(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal server error").model_dump(),
    )


# Request correlation ID middleware
@app.middleware("http")
async def add_request_id_middleware(request, call_next):
    """Add correlation ID to each request."""
    request_id = request_id_from(request.headers.get("X-Request-ID"))
    bind_request_context(request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Include routers
app.include_router(lists.router, prefix="/api")
app.include_router(usecases.router, prefix="/api")
app.include_router(pages.router, prefix="/api")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "Use Case Library API",
        "version": "1.0.0",
        "docs": "/docs" if settings.debug else "disabled",
    }
