"""Domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class Platform(str, Enum):
    """External platform an artist can link."""

    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"

    @property
    def label(self) -> str:
        """Human readable platform name for result messages."""
        return "YouTube" if self is Platform.YOUTUBE else "Instagram"


# Hey future me, approval is decided ONCE at creation time per platform! YouTube uploads are
# auto-approved (the artist owns the channel). Instagram reels land as PENDING so an admin
# reviews them first. Reconciliation never touches this field after the row exists.
class ApprovalState(str, Enum):
    """Moderation state of a synced media item."""

    APPROVED = "approved"
    PENDING = "pending"


class MediaKind(str, Enum):
    """Catalog read filter."""

    ALL = "all"
    SHORTS = "shorts"
    VIDEOS = "videos"

    @property
    def is_short(self) -> bool | None:
        """Translate the filter to an is_short predicate (None = no filter)."""
        if self is MediaKind.SHORTS:
            return True
        if self is MediaKind.VIDEOS:
            return False
        return None


@dataclass
class IntegrationAccount:
    """A linked external platform account for one owner.

    At most one account exists per (owner_id, platform). access_token and
    refresh_token are secrets - never return them from the API.
    """

    id: str
    owner_id: str
    platform: Platform
    external_account_id: str
    external_display_name: str
    access_token: str
    token_expires_at: datetime
    refresh_token: str | None = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    # Validity flag - False after repeated refresh failures (UI shows "reconnect")
    is_valid: bool = True
    refresh_failures: int = 0
    last_error: str | None = None
    last_error_at: datetime | None = None
    last_refreshed_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the access token is past its expiry."""
        return (now or datetime.now(UTC)) >= self.token_expires_at


# Listen up, MediaItem is keyed by the NATURAL KEY (external_id, owner_id), not by id!
# Reconciliation looks rows up by that pair. The id is just our surrogate primary key.
@dataclass
class MediaItem:
    """A synced media item (video, short, reel) in the local catalog."""

    id: str
    external_id: str
    owner_id: str
    title: str
    source_url: str
    source_platform: Platform
    description: str = ""
    thumbnail_url: str | None = None
    duration_seconds: int = 0
    duration_formatted: str = "0:00"
    view_count: int = 0
    published_at: datetime | None = None
    is_short: bool = False
    approval_state: ApprovalState = ApprovalState.APPROVED
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def natural_key(self) -> tuple[str, str]:
        """The (external_id, owner_id) pair that identifies this item."""
        return (self.external_id, self.owner_id)


@dataclass(frozen=True)
class StateToken:
    """Request context round-tripped through the OAuth redirect.

    issued_at is epoch milliseconds (the wire format of the frontend).
    """

    resource_id: str
    owner_id: str
    issued_at: int
    return_url: str | None = None


# =============================================================================
# Token exchange results
# =============================================================================


@dataclass(frozen=True)
class ShortLivedToken:
    """Result of the authorization-code grant."""

    access_token: str
    expires_in: int | None = None
    refresh_token: str | None = None
    user_id: str | None = None


@dataclass(frozen=True)
class LongLivedToken:
    """Final credential stored on the integration account."""

    access_token: str
    expires_in: int
    refresh_token: str | None = None


@dataclass(frozen=True)
class ExternalProfile:
    """Identity of the linked external account."""

    external_id: str
    display_name: str


# =============================================================================
# Catalog
# =============================================================================


@dataclass(frozen=True)
class RemoteMediaItem:
    """One entry of a remote catalog listing."""

    external_id: str
    title: str
    source_url: str
    description: str = ""
    thumbnail_url: str | None = None
    published_at: datetime | None = None


@dataclass(frozen=True)
class MediaDetails:
    """Per-item detail fetched in a batch (duration + statistics)."""

    duration_raw: str = "PT0S"
    view_count: int = 0


@dataclass(frozen=True)
class CatalogPage:
    """One page of a remote catalog listing."""

    items: list[RemoteMediaItem]
    next_page_token: str | None = None


@dataclass
class SyncRun:
    """Counters of one reconciliation pass."""

    created: int = 0
    updated: int = 0
    total: int = 0

    @property
    def changed(self) -> bool:
        """True when the pass wrote anything."""
        return (self.created + self.updated) > 0


@dataclass
class SyncResult:
    """Result of a sync trigger as returned to the UI.

    synced = newly created items, skipped = already known items that were
    refreshed (the frontend's naming).
    """

    success: bool
    message: str
    synced: int | None = None
    skipped: int | None = None
    total: int | None = None


# =============================================================================
# Status projection
# =============================================================================


@dataclass(frozen=True)
class PlatformStatus:
    """Connection state of one platform for one owner."""

    connected: bool
    display_identity: str | None = None
    external_id: str | None = None
    connected_at: datetime | None = None
    reconnect_required: bool = False


@dataclass(frozen=True)
class MediaCounts:
    """Catalog counts grouped by is_short."""

    videos: int = 0
    shorts: int = 0


@dataclass(frozen=True)
class IntegrationStatus:
    """Read-only view of all platform connections of an owner."""

    youtube: PlatformStatus
    instagram: PlatformStatus
    counts: MediaCounts


__all__ = [
    "ApprovalState",
    "CatalogPage",
    "ExternalProfile",
    "IntegrationAccount",
    "IntegrationStatus",
    "LongLivedToken",
    "MediaCounts",
    "MediaDetails",
    "MediaItem",
    "MediaKind",
    "Platform",
    "PlatformStatus",
    "RemoteMediaItem",
    "ShortLivedToken",
    "StateToken",
    "SyncResult",
    "SyncRun",
]
