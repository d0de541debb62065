"""SQLAlchemy ORM models for ArtistLink."""

import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Hey future me, utc_now() ensures ALL timestamps are UTC! Never use datetime.now() without
# timezone - naive datetimes break every expiry comparison the token lifecycle does.
def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! Stored UTC datetimes come back naive.
# ALWAYS run DB datetimes through this before comparing with datetime.now(UTC), or you get
# "can't compare offset-naive and offset-aware datetimes".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Yo, the artist profile itself is owned by the (external) profile CRUD. We only need the
# id -> owner mapping: state tokens carry the profile id and the callback checks it still exists.
class ArtistProfileModel(Base):
    """Minimal artist profile row (id, owning user, display name)."""

    __tablename__ = "artist_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )


class IntegrationAccountModel(Base):
    """Linked YouTube/Instagram account with its OAuth credential.

    Exactly one row per (owner_id, platform). The is_valid flag drives the
    "reconnect required" hint after repeated refresh failures.
    """

    __tablename__ = "integration_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    external_account_id: Mapped[str] = mapped_column(String(128), nullable=False)
    external_display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # OAuth tokens (NOT encrypted - same trust level as the rest of the DB)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    token_expires_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )
    connected_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )
    is_valid: Mapped[bool] = mapped_column(default=True, nullable=False)
    refresh_failures: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_error_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    last_refreshed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "platform", name="uq_integration_owner_platform"),
        Index("ix_integration_accounts_expires", "token_expires_at"),
    )


# Listen up, the unique constraint on (external_id, owner_id) is THE safety net of the
# reconciliation engine. Two concurrent syncs can both miss the lookup, but only one insert
# wins - the loser falls back to an update (see MediaItemRepository.upsert).
class MediaItemModel(Base):
    """Synced video/short/reel."""

    __tablename__ = "media_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    external_id: Mapped[str] = mapped_column(String(128), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_formatted: Mapped[str] = mapped_column(
        String(16), nullable=False, default="0:00"
    )
    view_count: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    published_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    is_short: Mapped[bool] = mapped_column(default=False, nullable=False)
    source_platform: Mapped[str] = mapped_column(String(20), nullable=False)
    approval_state: Mapped[str] = mapped_column(
        String(20), nullable=False, default="approved"
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        UniqueConstraint("external_id", "owner_id", name="uq_media_items_natural_key"),
        Index("ix_media_items_owner_short", "owner_id", "is_short"),
        Index("ix_media_items_published", "published_at"),
    )
