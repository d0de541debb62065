"""FastAPI application factory for ArtistLink."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from artistlink import __version__
from artistlink.api.exception_handlers import register_exception_handlers
from artistlink.api.routers import api_router
from artistlink.config import Settings, get_settings
from artistlink.infrastructure.integrations import InstagramClient, YouTubeClient
from artistlink.infrastructure.observability import (
    RequestLoggingMiddleware,
    configure_logging,
)
from artistlink.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Hey future me - everything with a connection lives on app.state and is created HERE, inside
# the running event loop: the DB engine and the two platform clients (each lazily opens one
# pooled httpx.AsyncClient). Shutdown closes them in reverse order. Outside production we also
# create missing tables so a fresh checkout (and the tests) run without "alembic upgrade head".
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: open and close DB + HTTP clients."""
    settings: Settings = app.state.settings
    logger.info("Starting %s (%s)", settings.app.name, settings.app_env)

    db = Database(settings)
    if settings.app_env != "production":
        await db.create_tables()
    app.state.db = db

    http_client: httpx.AsyncClient | None = getattr(app.state, "http_client", None)
    app.state.youtube_client = YouTubeClient(
        settings.youtube, settings.integrations, http_client=http_client
    )
    app.state.instagram_client = InstagramClient(
        settings.instagram, settings.integrations, http_client=http_client
    )

    for platform_settings, name in (
        (settings.youtube, "YouTube"),
        (settings.instagram, "Instagram"),
    ):
        if not platform_settings.is_configured:
            logger.warning("%s OAuth client is not configured - connect will fail", name)

    try:
        yield
    finally:
        logger.info("Shutting down %s", settings.app.name)
        await app.state.instagram_client.close()
        await app.state.youtube_client.close()
        await db.close()


def create_app(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        http_client: Optional shared HTTP client for the platform clients (tests)

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    configure_logging(
        log_level=settings.observability.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app.name,
    )

    app = FastAPI(
        title=settings.app.name,
        version=__version__,
        description="YouTube and Instagram integrations for artist profiles",
        lifespan=lifespan,
    )
    app.state.settings = settings
    if http_client is not None:
        app.state.http_client = http_client

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("artistlink.main:create_app", factory=True, host="0.0.0.0", port=8000)  # nosec B104
