"""Application settings loaded from environment variables and .env."""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RETURN_URL = "/artist/profile?tab=integrations"


class AppSettings(BaseModel):
    """General application settings."""

    name: str = "ArtistLink"
    # Public origin the OAuth callbacks redirect back to (the web frontend).
    public_base_url: str = "http://localhost:3000"
    default_return_url: str = DEFAULT_RETURN_URL


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = "sqlite+aiosqlite:///./artistlink.db"
    echo: bool = False
    pool_pre_ping: bool = True
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


# Hey future me - both platforms share ONE shape on purpose: client_id, client_secret,
# redirect_uri, verify_token. YouTube never uses verify_token (Google has no hub challenge),
# but keeping the shape uniform means every client/credential takes the same settings type.
class PlatformSettings(BaseSettings):
    """OAuth application credentials for one external platform."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""
    verify_token: str = ""

    @property
    def is_configured(self) -> bool:
        """True when the client id and secret are both present."""
        return bool(self.client_id.strip() and self.client_secret.strip())


class YouTubeSettings(PlatformSettings):
    """Google OAuth client used for the YouTube Data API."""

    model_config = SettingsConfigDict(
        env_prefix="YOUTUBE_", env_file=".env", extra="ignore"
    )

    redirect_uri: str = (
        "http://localhost:8000/api/artists/integrations/youtube/callback"
    )


class InstagramSettings(PlatformSettings):
    """Instagram Business Login application."""

    model_config = SettingsConfigDict(
        env_prefix="INSTAGRAM_", env_file=".env", extra="ignore"
    )

    redirect_uri: str = (
        "http://localhost:8000/api/artists/integrations/instagram/callback"
    )


class IntegrationSettings(BaseModel):
    """Tunables of the OAuth handshake, token lifecycle and catalog sync."""

    state_ttl_seconds: int = Field(default=15 * 60, ge=1)
    page_size: int = Field(default=50, ge=1, le=50)
    max_refresh_failures: int = Field(default=3, ge=1)
    long_lived_extension_window_seconds: int = Field(default=5 * 60, ge=0)
    http_timeout_seconds: float = Field(default=30.0, gt=0)


class ObservabilitySettings(BaseModel):
    """Logging settings."""

    log_level: str = "INFO"
    log_json_format: bool = False


class Settings(BaseSettings):
    """Root settings object.

    Nested values come from ARTISTLINK_<SECTION>__<FIELD> variables, e.g.
    ARTISTLINK_DATABASE__URL. Platform credentials use their own prefixes
    (YOUTUBE_CLIENT_ID, INSTAGRAM_VERIFY_TOKEN, ...).
    """

    model_config = SettingsConfigDict(
        env_prefix="ARTISTLINK_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_env: str = "development"
    app: AppSettings = Field(default_factory=AppSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    youtube: YouTubeSettings = Field(default_factory=YouTubeSettings)
    instagram: InstagramSettings = Field(default_factory=InstagramSettings)
    integrations: IntegrationSettings = Field(default_factory=IntegrationSettings)
    observability: ObservabilitySettings = Field(
        default_factory=ObservabilitySettings
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
