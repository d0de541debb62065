"""Configuration module for ArtistLink."""

from .settings import (
    InstagramSettings,
    IntegrationSettings,
    PlatformSettings,
    Settings,
    YouTubeSettings,
    get_settings,
)

__all__ = [
    "InstagramSettings",
    "IntegrationSettings",
    "PlatformSettings",
    "Settings",
    "YouTubeSettings",
    "get_settings",
]
