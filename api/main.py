"""FastAPI application for the certificate PDF service."""

import logging
from contextlib import asynccontextmanager

import fastapi
import httpx
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.cache import create_template_store
from core.config import get_settings
from core.errors import (
    CertificateServiceError,
    DecodeError,
    FetchError,
)
from core.logger import configure_logging
from rendering.placements import PlacementLayouts
from routes import certificates_router, health_router
from services.certificates_service import CertificateRenderer
from services.template_service import TemplateCache

configure_logging()
logger = logging.getLogger(__name__)


def _status_for_error(exc: CertificateServiceError) -> int:
    if isinstance(exc, DecodeError):
        return 422
    if isinstance(exc, FetchError):
        return 502
    return 500


async def certificate_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Translate pipeline errors into a single descriptive error response."""
    if not isinstance(exc, CertificateServiceError):
        return JSONResponse(status_code=500, content={"detail": "Unexpected error"})

    status_code = _status_for_error(exc)
    logger.warning(
        "certificate.render_failed",
        extra={
            "error_type": type(exc).__name__,
            "error": str(exc),
            "path": request.url.path,
            "status_code": status_code,
        },
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        extra={
            "exc_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again."},
    )


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handler for request validation errors."""
    if not isinstance(exc, RequestValidationError):
        return JSONResponse(status_code=500, content={"detail": "Unexpected error"})

    logger.warning(
        "request.validation_error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(exc.errors()),
        },
    )
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors()},
    )


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Wire the template store, HTTP client and renderer; close them on shutdown."""
    settings = get_settings()
    store = create_template_store(settings)
    client = httpx.AsyncClient(timeout=settings.http_timeout, follow_redirects=True)

    app.state.renderer = CertificateRenderer(
        settings=settings,
        template_cache=TemplateCache(store, client),
        layouts=PlacementLayouts(),
    )
    logger.info(
        "init.complete",
        extra={
            "qr_type": settings.qr_type,
            "template_cache": "redis" if settings.use_redis_cache else "memory",
        },
    )

    try:
        yield
    finally:
        app.state.renderer = None
        await client.aclose()
        await store.close()


_settings = get_settings()

app = fastapi.FastAPI(
    title="Certificate PDF Service",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if _settings.enable_docs or _settings.debug else None,
    redoc_url="/redoc" if _settings.enable_docs or _settings.debug else None,
    openapi_url=("/openapi.json" if _settings.enable_docs or _settings.debug else None),
)

app.add_exception_handler(CertificateServiceError, certificate_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(health_router)
app.include_router(certificates_router)
