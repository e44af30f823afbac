"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Settings are validated when the app is built, so bad configuration
  stops the process before it accepts connections
- Tests can build apps with their own settings and collaborators

For local development:
    uvicorn content_archiver.main:create_app --factory --reload

For production:
    uvicorn content_archiver.main:create_app --factory --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from . import __version__
from .api.dependencies import InvalidCredentials
from .api.routes import archive, health
from .config.settings import Settings, get_settings
from .core.archive.errors import ArchiveError
from .core.archive.pipeline import ServiceContext
from .infrastructure.http.fetcher import FetcherConfig, create_content_fetcher
from .infrastructure.storage.client import StorageConfig, create_object_store

logger = logging.getLogger(__name__)


def build_service_context(settings: Settings) -> ServiceContext:
    """
    Build the process-wide context from settings.

    Called once at startup. The clients created here are shared by every
    request for the lifetime of the process.
    """
    storage_config = None
    if not settings.store_mock_mode:
        storage_config = StorageConfig(
            bucket_name=settings.bucket_name,
            endpoint_url=settings.endpoint,
            access_key_id=settings.access_key_id,
            secret_access_key=settings.secret_access_key,
            region=settings.region,
        )

    return ServiceContext(
        fetcher=create_content_fetcher(
            FetcherConfig(timeout_seconds=settings.fetch_timeout_seconds)
        ),
        store=create_object_store(storage_config, mock_mode=settings.store_mock_mode),
        bucket_name=settings.bucket_name,
        bearer_token=settings.bearer_token,
        public_url=settings.public_url,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the ServiceContext on startup unless one was injected, and
    closes the outbound connection pool it owns on shutdown.
    """
    settings: Settings = app.state.settings
    owns_context = getattr(app.state, "service_context", None) is None

    if owns_context:
        app.state.service_context = build_service_context(settings)

    logger.info(
        "Content Archiver starting",
        extra={
            "version": __version__,
            "bucket": settings.bucket_name,
            "mock_mode": {"store": settings.store_mock_mode},
        }
    )

    yield

    if owns_context:
        await app.state.service_context.fetcher.aclose()

    logger.info("Content Archiver shutting down")


def create_app(
    settings: Optional[Settings] = None,
    context: Optional[ServiceContext] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to use instead of reading the environment
        context: Pre-built ServiceContext (tests); built at startup otherwise

    Raises pydantic's ValidationError when the environment is missing or
    has invalid configuration.
    """
    if settings is None:
        settings = get_settings()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level,
    )

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Archives remote content into object storage.

        ## Authentication

        `POST /archive` requires `Authorization: Bearer <token>`.

        ## Workflow

        1. `POST /archive` with `{"source": <url>, "suffix": <key>, "public": true}`
        2. The source is streamed into the bucket under `suffix`
        3. The response carries the public `location` of the object
        """,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.service_context = context
    app.dependency_overrides[get_settings] = lambda: settings

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        archive.router,
        tags=["Archive"],
    )

    # Root endpoint
    @app.get("/", include_in_schema=False, response_class=PlainTextResponse)
    async def root() -> str:
        """Plain greeting, doubles as a liveness probe."""
        return "Hello, world!"

    @app.exception_handler(ArchiveError)
    async def archive_error_handler(request: Request, exc: ArchiveError):
        """Report the failed stage as {"error": <kind>}."""
        return JSONResponse(
            status_code=400,
            content={"error": exc.kind.value},
        )

    @app.exception_handler(InvalidCredentials)
    async def invalid_credentials_handler(request: Request, exc: InvalidCredentials):
        """Bare 400, indistinguishable from any other malformed request."""
        return Response(status_code=400)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info(
            "Rejected malformed request",
            extra={"path": request.url.path, "errors": len(exc.errors())}
        )
        return Response(status_code=400)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Every expected failure is reported as a 400 above; this only sees
        bugs. Log them in full, return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "content_archiver.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )
