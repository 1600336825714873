"""
FastAPI Application Factory

Creates and configures the API application: middleware, routers and the
mapping from domain errors onto HTTP responses.
"""

from typing import Any, Callable, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from webhub.config import get_settings
from webhub.errors import WebHubError
from webhub.serving.api.middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from webhub.serving.api.routes import (
    accounts_router,
    admin_router,
    collections_router,
    health_router,
    notifications_router,
    reviews_router,
    stats_router,
    webapps_router,
)

settings = get_settings()
logger = structlog.get_logger(__name__)


async def webhub_error_handler(request: Request, exc: WebHubError) -> JSONResponse:
    """Render a domain error as ``{"success": false, "message": ...}``."""
    log = logger.warning if exc.status_code in (401, 403) else logger.info
    log(
        "Request failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query strings are reported like domain validation failures."""
    errors = [
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    logger.info("Request validation failed", path=request.url.path, errors=errors)
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": ", ".join(errors) or "Invalid request", "errors": errors},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


def create_api_app(lifespan: Optional[Callable[[FastAPI], Any]] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        lifespan: Startup/shutdown context manager

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Nexus Web Hub API",
        description="Webapp catalog with reviews, reputation signals, collections and moderation",
        version=settings.version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    app.add_exception_handler(WebHubError, webhub_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Custom middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.security.rate_limit_requests,
        window_seconds=settings.security.rate_limit_window_seconds,
    )

    # API routes
    app.include_router(health_router, prefix="/api", tags=["Health"])
    app.include_router(accounts_router, prefix="/api", tags=["Accounts"])
    app.include_router(webapps_router, prefix="/api", tags=["Webapps"])
    app.include_router(reviews_router, prefix="/api", tags=["Reviews & Reports"])
    app.include_router(notifications_router, prefix="/api", tags=["Notifications"])
    app.include_router(collections_router, prefix="/api", tags=["Collections"])
    app.include_router(stats_router, prefix="/api", tags=["Stats"])
    app.include_router(admin_router, prefix="/api", tags=["Admin"])

    return app
