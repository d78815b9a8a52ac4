"""RivalMap API - Main FastAPI Application.

This module provides the main FastAPI application for RivalMap.
It includes:
- CORS middleware configuration
- API versioning (/api/v1)
- Exception handlers mapping validation, auth and dependency failures to envelopes
- Health, identity and competitor search endpoints
- Prometheus metrics at /metrics

Usage:
    # Run with uvicorn
    uvicorn src.api.main:app --reload

    # Or run directly
    python -m src.api.main
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src import __version__
from src.api.dependencies import reset_dependencies
from src.api.routes.auth import router as auth_router
from src.api.routes.competitors import router as competitors_router
from src.api.routes.health import router as health_router, set_server_start_time
from src.config.settings import get_settings
from src.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DependencyError,
    SearchValidationError,
)
from src.core.rate_limiter import reset_rate_limiter
from src.core.responses import error_response, service_unavailable_response, unauthorized_response
from src.monitoring.metrics import get_metrics_app

logger = structlog.get_logger(__name__)

API_TITLE = "RivalMap API"
API_DESCRIPTION = """
## Local Competitor Discovery

Submit a street address, a search radius and how many competitors you want;
RivalMap validates the request, resolves nearby competitors through the
configured search provider and returns them ready to draw on a map.

### Getting Started

1. **Search**: `POST /api/v1/competitors/search` with `{address, radius, competitorCount}`
2. **Map page**: add `?format=html` to get a standalone map page
3. **Who am I**: `GET /api/v1/auth/me` with `Authorization: Bearer <token>`

Searches are rate limited per hour: by user and subscription tier when a bearer
token is sent, otherwise by client address. Limits come back in `X-RateLimit-*`
headers.
"""

# Dependency component -> (client-facing message, error code)
UNAVAILABLE_MESSAGES = {
    "competitor_search": ("Competitor search is unavailable", "SEARCH_UNAVAILABLE"),
    "identity": ("Authentication service unavailable", "AUTH_UNAVAILABLE"),
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup records the start time for uptime; shutdown drops cached clients
    and closes the rate limiter.
    """
    logger.info("application_starting", version=__version__)
    set_server_start_time()
    logger.info("application_started")

    yield

    logger.info("application_stopping")
    reset_dependencies()
    await reset_rate_limiter()
    logger.info("application_stopped")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {"name": "Health", "description": "System health and store connectivity"},
            {"name": "Auth", "description": "Identity of the calling user"},
            {"name": "Competitors", "description": "Competitor search and map rendering"},
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )

    _register_exception_handlers(app)

    # Health endpoints (and /api/test-db) at root level
    app.include_router(health_router)

    api_v1_router = APIRouter(prefix="/api/v1")
    api_v1_router.include_router(auth_router)
    api_v1_router.include_router(competitors_router)
    app.include_router(api_v1_router)

    app.mount("/metrics", get_metrics_app())

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        return {
            "name": API_TITLE,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "api": "/api/v1",
        }

    return app


# =============================================================================
# Exception Handlers
# =============================================================================


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SearchValidationError)
    async def search_validation_handler(
        request: Request, exc: SearchValidationError
    ) -> JSONResponse:
        return error_response(
            "Validation error",
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            exc.fields,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = {}
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"] if loc != "body") or "body"
            details.setdefault(field, error["msg"])
        return error_response(
            "Validation error",
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            details,
        )

    @app.exception_handler(AuthenticationError)
    async def authentication_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        return unauthorized_response(exc.message)

    @app.exception_handler(DependencyError)
    async def dependency_handler(request: Request, exc: DependencyError) -> JSONResponse:
        logger.error(
            "dependency_failed",
            path=request.url.path,
            component=exc.component,
            error=exc.message,
            error_type=type(exc).__name__,
        )
        message, code = UNAVAILABLE_MESSAGES.get(
            exc.component, ("A required service is unavailable", "SERVICE_UNAVAILABLE")
        )
        return service_unavailable_response(message, code)

    @app.exception_handler(ConfigurationError)
    async def configuration_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("configuration_error", path=request.url.path, config_key=exc.config_key)
        return service_unavailable_response(
            "Service is not configured",
            "SERVICE_UNAVAILABLE",
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return error_response(
            "An unexpected error occurred",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_SERVER_ERROR",
        )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
