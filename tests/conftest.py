"""Shared fixtures: in-memory database, settings, repositories and platform clients."""

from collections.abc import AsyncIterator, Awaitable, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from artistlink.config import (
    InstagramSettings,
    IntegrationSettings,
    Settings,
    YouTubeSettings,
)
from artistlink.domain.entities import (
    ExternalProfile,
    IntegrationAccount,
    LongLivedToken,
    Platform,
)
from artistlink.infrastructure.integrations import InstagramClient, YouTubeClient
from artistlink.infrastructure.persistence import (
    ArtistProfileDirectory,
    Database,
    IntegrationAccountRepository,
    MediaItemRepository,
)

OWNER_ID = "user-1"


@pytest.fixture
def youtube_settings() -> YouTubeSettings:
    """Configured Google OAuth client."""
    return YouTubeSettings(
        client_id="yt-client-id",
        client_secret="yt-client-secret",
        redirect_uri="http://localhost:8000/api/artists/integrations/youtube/callback",
    )


@pytest.fixture
def instagram_settings() -> InstagramSettings:
    """Configured Instagram Business Login app."""
    return InstagramSettings(
        client_id="ig-client-id",
        client_secret="ig-client-secret",
        redirect_uri="http://localhost:8000/api/artists/integrations/instagram/callback",
        verify_token="verify-me",
    )


@pytest.fixture
def settings(
    youtube_settings: YouTubeSettings, instagram_settings: InstagramSettings
) -> Settings:
    """Settings pointing at a private in-memory SQLite database."""
    return Settings(
        app_env="test",
        database={"url": "sqlite+aiosqlite:///:memory:"},
        youtube=youtube_settings,
        instagram=instagram_settings,
        integrations=IntegrationSettings(page_size=50),
    )


@pytest.fixture
async def db(settings: Settings) -> AsyncIterator[Database]:
    """Database with all tables created."""
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
async def session(db: Database) -> AsyncIterator[AsyncSession]:
    """One transactional session (committed at teardown)."""
    async with db.session_scope() as session:
        yield session


@pytest.fixture
def account_repo(session: AsyncSession) -> IntegrationAccountRepository:
    return IntegrationAccountRepository(session)


@pytest.fixture
def media_repo(session: AsyncSession) -> MediaItemRepository:
    return MediaItemRepository(session)


@pytest.fixture
def owner_directory(session: AsyncSession) -> ArtistProfileDirectory:
    return ArtistProfileDirectory(session)


@pytest.fixture
async def profile_id(owner_directory: ArtistProfileDirectory) -> str:
    """Artist profile of OWNER_ID."""
    return await owner_directory.create_profile(OWNER_ID, display_name="Test Artist")


@pytest.fixture
async def youtube_client(
    settings: Settings, youtube_settings: YouTubeSettings
) -> AsyncIterator[YouTubeClient]:
    """YouTube client (its lazy httpx client is intercepted by httpx_mock)."""
    client = YouTubeClient(youtube_settings, settings.integrations)
    yield client
    await client.close()


@pytest.fixture
async def instagram_client(
    settings: Settings, instagram_settings: InstagramSettings
) -> AsyncIterator[InstagramClient]:
    """Instagram client (its lazy httpx client is intercepted by httpx_mock)."""
    client = InstagramClient(instagram_settings, settings.integrations)
    yield client
    await client.close()


@pytest.fixture
def connect_account(
    account_repo: IntegrationAccountRepository,
) -> Callable[..., Awaitable[IntegrationAccount]]:
    """Factory storing a connected account the way the OAuth callback does."""

    async def _connect(
        platform: Platform,
        *,
        owner_id: str = OWNER_ID,
        access_token: str = "stored-access-token",
        refresh_token: str | None = "stored-refresh-token",
        expires_in: int = 3600,
        external_id: str = "UC123",
        display_name: str = "Test Channel",
    ) -> IntegrationAccount:
        return await account_repo.save_connection(
            owner_id,
            platform,
            LongLivedToken(
                access_token=access_token,
                expires_in=expires_in,
                refresh_token=refresh_token,
            ),
            ExternalProfile(external_id=external_id, display_name=display_name),
        )

    return _connect


@pytest.fixture
def owner_id() -> str:
    return OWNER_ID
