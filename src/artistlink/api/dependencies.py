"""Dependency injection for API endpoints."""

import logging
from collections.abc import AsyncGenerator
from typing import cast

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from artistlink.application.services import (
    IntegrationAuthService,
    IntegrationStatusProjector,
    LongLivedCredential,
    MediaSyncService,
    RefreshTokenCredential,
    StateTokenCodec,
    TokenLifecycleManager,
)
from artistlink.config import Settings
from artistlink.domain.entities import Platform
from artistlink.domain.exceptions import AuthenticationError
from artistlink.infrastructure.integrations import InstagramClient, YouTubeClient
from artistlink.infrastructure.persistence.database import Database
from artistlink.infrastructure.persistence.repositories import (
    ArtistProfileDirectory,
    IntegrationAccountRepository,
    MediaItemRepository,
)

logger = logging.getLogger(__name__)


# Hey future me - this is a FastAPI dependency that yields a DB session to endpoints.
# session_scope() commits when the endpoint returns normally and rolls back on exceptions,
# so one request == one transaction. Don't commit inside services!
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    db: Database = request.app.state.db
    async with db.session_scope() as session:
        yield session


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with (tests build apps with their own)."""
    return cast(Settings, request.app.state.settings)


# Yo, caller identity comes from the upstream session layer as a plain header. We don't do
# login here - if the header is missing, the request never went through the session layer.
def get_current_owner_id(
    x_owner_id: str | None = Header(default=None, alias="X-Owner-Id"),
) -> str:
    """Return the authenticated owner id.

    Raises:
        AuthenticationError: If no owner id reached the service (401)
    """
    if not x_owner_id or not x_owner_id.strip():
        raise AuthenticationError("Unauthorized")
    return x_owner_id.strip()


def get_platform(platform: str) -> Platform:
    """Resolve the {platform} path segment; unknown platforms are 404."""
    try:
        return Platform(platform.lower())
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown platform: {platform}") from None


# Hey - the platform clients are created ONCE in the lifespan (main.py) and live on app.state,
# so every request shares their pooled httpx connections.
def get_youtube_client(request: Request) -> YouTubeClient:
    """Get the shared YouTube client from app state."""
    if not hasattr(request.app.state, "youtube_client"):
        raise HTTPException(status_code=503, detail="YouTube client not initialized")
    return cast(YouTubeClient, request.app.state.youtube_client)


def get_instagram_client(request: Request) -> InstagramClient:
    """Get the shared Instagram client from app state."""
    if not hasattr(request.app.state, "instagram_client"):
        raise HTTPException(status_code=503, detail="Instagram client not initialized")
    return cast(InstagramClient, request.app.state.instagram_client)


def get_state_codec(settings: Settings = Depends(get_app_settings)) -> StateTokenCodec:
    """State token codec with the configured TTL."""
    return StateTokenCodec(ttl_seconds=settings.integrations.state_ttl_seconds)


def get_token_manager(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
    youtube: YouTubeClient = Depends(get_youtube_client),
    instagram: InstagramClient = Depends(get_instagram_client),
) -> TokenLifecycleManager:
    """Token lifecycle manager bound to the request session."""
    return TokenLifecycleManager(
        IntegrationAccountRepository(session),
        credentials=[
            RefreshTokenCredential(youtube),
            LongLivedCredential(
                instagram,
                extension_window_seconds=settings.integrations.long_lived_extension_window_seconds,
            ),
        ],
        max_refresh_failures=settings.integrations.max_refresh_failures,
    )


def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
    codec: StateTokenCodec = Depends(get_state_codec),
    youtube: YouTubeClient = Depends(get_youtube_client),
    instagram: InstagramClient = Depends(get_instagram_client),
) -> IntegrationAuthService:
    """Connect/callback/disconnect orchestration."""
    return IntegrationAuthService(
        IntegrationAccountRepository(session),
        ArtistProfileDirectory(session),
        clients=[youtube, instagram],
        state_codec=codec,
        app_settings=settings.app,
    )


def get_sync_service(
    session: AsyncSession = Depends(get_db_session),
    token_manager: TokenLifecycleManager = Depends(get_token_manager),
    youtube: YouTubeClient = Depends(get_youtube_client),
    instagram: InstagramClient = Depends(get_instagram_client),
) -> MediaSyncService:
    """Catalog sync trigger + catalog read."""
    return MediaSyncService(
        IntegrationAccountRepository(session),
        MediaItemRepository(session),
        token_manager=token_manager,
        fetchers=[youtube, instagram],
    )


def get_status_projector(
    session: AsyncSession = Depends(get_db_session),
) -> IntegrationStatusProjector:
    """Read-only integration status view."""
    return IntegrationStatusProjector(
        IntegrationAccountRepository(session), MediaItemRepository(session)
    )
