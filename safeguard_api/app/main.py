"""Main application module for the SafeGuard moderation relay."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from safeguard_api.app import telemetry
from safeguard_api.app.api.routes import router
from safeguard_api.app.config import settings
from safeguard_api.app.errors import InternalError, RelayError
from safeguard_api.app.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from safeguard_api.app.prometheus import setup_prometheus

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan events."""
    await startup_event(app)
    yield
    await shutdown_event(app)


async def startup_event(app: FastAPI) -> None:
    """Perform startup activities."""
    logger.info("Application startup")

    if not settings.moderation_configured:
        logger.warning(
            "OPENAI_API_KEY is not set; analysis requests will fail until it is configured"
        )

    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.MODERATION_TIMEOUT),
        limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
    )
    logger.info("HTTP client initialized for %s", settings.MODERATION_API_URL)
    logger.info("Application startup complete")


async def shutdown_event(app: FastAPI) -> None:
    """Perform shutdown activities."""
    logger.info("Application shutdown")
    http_client = getattr(app.state, "http_client", None)
    if http_client is not None:
        await http_client.aclose()
    telemetry.shutdown_telemetry()


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTPError", "details": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error while processing %s", request.url.path)
    return JSONResponse(status_code=InternalError.status_code, content=InternalError().to_dict())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    app = FastAPI(
        title=f"SafeGuard Moderation API {settings.API_VERSION}",
        description="Relays text to a content-moderation provider and scores the result",
        docs_url=f"/api/{settings.API_VERSION}/docs",
        redoc_url=f"/api/{settings.API_VERSION}/redoc",
        openapi_url=f"/api/{settings.API_VERSION}/openapi.json",
        lifespan=lifespan,
    )

    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Added innermost first: CORS ends up outermost.
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    setup_prometheus(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
        max_age=86400,
    )
    telemetry.setup_telemetry(app)

    app.include_router(router)

    return app


app = create_app()
