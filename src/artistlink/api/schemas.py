"""Response models shared by the integration and media routers.

The frontend speaks camelCase; models are written in snake_case and serialized
through the camelCase alias generator.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from artistlink.domain.entities import IntegrationStatus, MediaItem, SyncResult


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(CamelModel):
    """Plain success/message envelope."""

    success: bool
    message: str


class AuthUrlResponse(CamelModel):
    """Provider consent URL for the connect button."""

    success: bool = True
    auth_url: str = Field(description="Provider authorization URL carrying the state token")


class YouTubeStatus(CamelModel):
    connected: bool
    channel_name: str | None = None
    channel_id: str | None = None
    connected_at: datetime | None = None
    reconnect_required: bool = False


class InstagramStatus(CamelModel):
    connected: bool
    username: str | None = None
    instagram_id: str | None = None
    connected_at: datetime | None = None
    reconnect_required: bool = False


class MediaCountsResponse(CamelModel):
    videos: int = 0
    shorts: int = 0


class IntegrationStatusData(CamelModel):
    youtube: YouTubeStatus
    instagram: InstagramStatus
    counts: MediaCountsResponse

    @classmethod
    def from_status(cls, status: IntegrationStatus) -> "IntegrationStatusData":
        youtube, instagram = status.youtube, status.instagram
        return cls(
            youtube=YouTubeStatus(
                connected=youtube.connected,
                channel_name=youtube.display_identity,
                channel_id=youtube.external_id,
                connected_at=youtube.connected_at,
                reconnect_required=youtube.reconnect_required,
            ),
            instagram=InstagramStatus(
                connected=instagram.connected,
                username=instagram.display_identity,
                instagram_id=instagram.external_id,
                connected_at=instagram.connected_at,
                reconnect_required=instagram.reconnect_required,
            ),
            counts=MediaCountsResponse(
                videos=status.counts.videos, shorts=status.counts.shorts
            ),
        )


class IntegrationStatusResponse(CamelModel):
    success: bool = True
    data: IntegrationStatusData


class SyncResultResponse(CamelModel):
    """Sync trigger result (synced = new items, skipped = refreshed ones)."""

    success: bool
    message: str
    synced: int | None = None
    skipped: int | None = None
    total: int | None = None

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResultResponse":
        return cls(
            success=result.success,
            message=result.message,
            synced=result.synced,
            skipped=result.skipped,
            total=result.total,
        )


class MediaItemResponse(CamelModel):
    """One catalog entry. Never exposes owner data beyond the id."""

    id: str
    external_id: str
    title: str
    description: str
    source_url: str
    thumbnail_url: str | None = None
    duration_seconds: int
    duration_formatted: str
    view_count: int
    published_at: datetime | None = None
    is_short: bool
    source_platform: str
    approval_state: str

    @classmethod
    def from_entity(cls, item: MediaItem) -> "MediaItemResponse":
        return cls(
            id=item.id,
            external_id=item.external_id,
            title=item.title,
            description=item.description,
            source_url=item.source_url,
            thumbnail_url=item.thumbnail_url,
            duration_seconds=item.duration_seconds,
            duration_formatted=item.duration_formatted,
            view_count=item.view_count,
            published_at=item.published_at,
            is_short=item.is_short,
            source_platform=item.source_platform.value,
            approval_state=item.approval_state.value,
        )


class MediaListResponse(CamelModel):
    success: bool = True
    data: list[MediaItemResponse]
