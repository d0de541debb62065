"""Persistence layer: SQLAlchemy models, session management and repositories."""

from .database import Database
from .models import (
    ArtistProfileModel,
    Base,
    IntegrationAccountModel,
    MediaItemModel,
)
from .repositories import (
    ArtistProfileDirectory,
    IntegrationAccountRepository,
    MediaItemRepository,
)

__all__ = [
    "ArtistProfileDirectory",
    "ArtistProfileModel",
    "Base",
    "Database",
    "IntegrationAccountModel",
    "IntegrationAccountRepository",
    "MediaItemModel",
    "MediaItemRepository",
]
