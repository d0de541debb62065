"""Repository implementations using SQLAlchemy."""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from artistlink.domain.entities import (
    ApprovalState,
    ExternalProfile,
    IntegrationAccount,
    LongLivedToken,
    MediaItem,
    Platform,
)
from artistlink.domain.ports import (
    IIntegrationAccountRepository,
    IMediaItemRepository,
    IOwnerDirectory,
)

from .models import (
    ArtistProfileModel,
    IntegrationAccountModel,
    MediaItemModel,
    ensure_utc_aware,
    utc_now,
)

logger = logging.getLogger(__name__)

# Columns reconciliation may change on an existing row. Everything else is frozen at creation.
MEDIA_MUTABLE_COLUMNS = ("title", "description", "thumbnail_url", "view_count", "updated_at")


def _optional_utc(dt: datetime | None) -> datetime | None:
    return ensure_utc_aware(dt) if dt is not None else None


class IntegrationAccountRepository(IIntegrationAccountRepository):
    """Repository for linked platform accounts and their OAuth tokens.

    Key methods:
    - save_connection(): Store account after OAuth callback (UPSERT per owner+platform)
    - update_token(): Persist a refreshed token
    - record_refresh_failure(): Count failures, flag invalid at the threshold
    - delete(): Disconnect
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    @staticmethod
    def _to_entity(model: IntegrationAccountModel) -> IntegrationAccount:
        return IntegrationAccount(
            id=model.id,
            owner_id=model.owner_id,
            platform=Platform(model.platform),
            external_account_id=model.external_account_id,
            external_display_name=model.external_display_name,
            access_token=model.access_token,
            refresh_token=model.refresh_token,
            token_expires_at=ensure_utc_aware(model.token_expires_at),
            connected_at=ensure_utc_aware(model.connected_at),
            is_valid=model.is_valid,
            refresh_failures=model.refresh_failures,
            last_error=model.last_error,
            last_error_at=_optional_utc(model.last_error_at),
            last_refreshed_at=_optional_utc(model.last_refreshed_at),
        )

    async def _get_model(self, account_id: str) -> IntegrationAccountModel | None:
        stmt = select(IntegrationAccountModel).where(
            IntegrationAccountModel.id == account_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_model_for(
        self, owner_id: str, platform: Platform
    ) -> IntegrationAccountModel | None:
        stmt = select(IntegrationAccountModel).where(
            IntegrationAccountModel.owner_id == owner_id,
            IntegrationAccountModel.platform == platform.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, account_id: str) -> IntegrationAccount | None:
        model = await self._get_model(account_id)
        return self._to_entity(model) if model else None

    async def get_by_owner_and_platform(
        self, owner_id: str, platform: Platform
    ) -> IntegrationAccount | None:
        model = await self._get_model_for(owner_id, platform)
        return self._to_entity(model) if model else None

    async def list_by_owner(self, owner_id: str) -> list[IntegrationAccount]:
        stmt = (
            select(IntegrationAccountModel)
            .where(IntegrationAccountModel.owner_id == owner_id)
            .order_by(IntegrationAccountModel.platform)
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    # Listen up - OAuth callback calls this after ALL exchange stages succeeded! UPSERT pattern:
    # reconnecting replaces the old credential and identity, resets validity and errors.
    # connected_at is bumped on every (re)connect.
    async def save_connection(
        self,
        owner_id: str,
        platform: Platform,
        token: LongLivedToken,
        profile: ExternalProfile,
    ) -> IntegrationAccount:
        now = utc_now()
        expires_at = now + timedelta(seconds=token.expires_in)
        model = await self._get_model_for(owner_id, platform)

        if model:
            model.external_account_id = profile.external_id
            model.external_display_name = profile.display_name
            model.access_token = token.access_token
            model.refresh_token = token.refresh_token
            model.token_expires_at = expires_at
            model.connected_at = now
            model.is_valid = True
            model.refresh_failures = 0
            model.last_error = None
            model.last_error_at = None
            model.updated_at = now
        else:
            model = IntegrationAccountModel(
                owner_id=owner_id,
                platform=platform.value,
                external_account_id=profile.external_id,
                external_display_name=profile.display_name,
                access_token=token.access_token,
                refresh_token=token.refresh_token,
                token_expires_at=expires_at,
                connected_at=now,
                is_valid=True,
                refresh_failures=0,
                updated_at=now,
            )
            self.session.add(model)

        await self.session.flush()
        return self._to_entity(model)

    # Hey - token and expiry are written in the SAME flush, so a reader never sees a new
    # token with an old expiry. Concurrent refreshes simply overwrite each other (last wins).
    async def update_token(
        self,
        account_id: str,
        access_token: str,
        token_expires_at: datetime,
        refresh_token: str | None = None,
    ) -> bool:
        model = await self._get_model(account_id)
        if not model:
            return False

        now = utc_now()
        model.access_token = access_token
        model.token_expires_at = token_expires_at
        model.last_refreshed_at = now
        model.updated_at = now
        model.is_valid = True
        model.refresh_failures = 0
        model.last_error = None
        model.last_error_at = None

        # Providers sometimes rotate refresh tokens - keep the old one otherwise
        if refresh_token:
            model.refresh_token = refresh_token

        await self.session.flush()
        return True

    async def record_refresh_failure(
        self, account_id: str, error_message: str, max_failures: int
    ) -> IntegrationAccount | None:
        model = await self._get_model(account_id)
        if not model:
            return None

        now = utc_now()
        model.refresh_failures += 1
        model.last_error = error_message
        model.last_error_at = now
        model.updated_at = now
        if model.refresh_failures >= max_failures and model.is_valid:
            model.is_valid = False
            logger.warning(
                "Marking %s account %s as reconnect-required after %d failed refreshes",
                model.platform,
                model.id,
                model.refresh_failures,
            )

        await self.session.flush()
        return self._to_entity(model)

    async def delete(self, owner_id: str, platform: Platform) -> bool:
        stmt = delete(IntegrationAccountModel).where(
            IntegrationAccountModel.owner_id == owner_id,
            IntegrationAccountModel.platform == platform.value,
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0


class MediaItemRepository(IMediaItemRepository):
    """Repository for synced media items, keyed by (external_id, owner_id)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    @staticmethod
    def _to_entity(model: MediaItemModel) -> MediaItem:
        return MediaItem(
            id=model.id,
            external_id=model.external_id,
            owner_id=model.owner_id,
            title=model.title,
            description=model.description,
            source_url=model.source_url,
            thumbnail_url=model.thumbnail_url,
            duration_seconds=model.duration_seconds,
            duration_formatted=model.duration_formatted,
            view_count=model.view_count,
            published_at=_optional_utc(model.published_at),
            is_short=model.is_short,
            source_platform=Platform(model.source_platform),
            approval_state=ApprovalState(model.approval_state),
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )

    @staticmethod
    def _to_row(item: MediaItem) -> dict[str, Any]:
        return {
            "id": item.id,
            "external_id": item.external_id,
            "owner_id": item.owner_id,
            "title": item.title,
            "description": item.description,
            "source_url": item.source_url,
            "thumbnail_url": item.thumbnail_url,
            "duration_seconds": item.duration_seconds,
            "duration_formatted": item.duration_formatted,
            "view_count": item.view_count,
            "published_at": item.published_at,
            "is_short": item.is_short,
            "source_platform": item.source_platform.value,
            "approval_state": item.approval_state.value,
            "created_at": item.created_at,
            "updated_at": item.updated_at,
        }

    async def get_by_natural_key(
        self, external_id: str, owner_id: str
    ) -> MediaItem | None:
        stmt = select(MediaItemModel).where(
            MediaItemModel.external_id == external_id,
            MediaItemModel.owner_id == owner_id,
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    # Hey future me - this is a REAL database upsert (INSERT ... ON CONFLICT DO UPDATE)!
    # The conflict branch only touches MEDIA_MUTABLE_COLUMNS, so even if two syncs race and
    # both think the item is new, the second insert degrades into a display-field update and
    # duration/is_short/source_url/approval_state keep their creation values.
    async def upsert(self, item: MediaItem) -> MediaItem:
        row = self._to_row(item)
        dialect = self.session.get_bind().dialect.name

        if dialect in ("sqlite", "postgresql"):
            insert_fn = sqlite_insert if dialect == "sqlite" else pg_insert
            stmt = insert_fn(MediaItemModel).values(**row)
            stmt = stmt.on_conflict_do_update(
                index_elements=["external_id", "owner_id"],
                set_={column: stmt.excluded[column] for column in MEDIA_MUTABLE_COLUMNS},
            )
            await self.session.execute(stmt)
        else:
            await self._upsert_portable(row)

        # Core statements bypass the identity map - populate_existing refreshes stale instances
        stmt = (
            select(MediaItemModel)
            .where(
                MediaItemModel.external_id == item.external_id,
                MediaItemModel.owner_id == item.owner_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return self._to_entity(result.scalar_one())

    async def _upsert_portable(self, row: dict[str, Any]) -> None:
        stmt = select(MediaItemModel).where(
            MediaItemModel.external_id == row["external_id"],
            MediaItemModel.owner_id == row["owner_id"],
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            self.session.add(MediaItemModel(**row))
        else:
            for column in MEDIA_MUTABLE_COLUMNS:
                setattr(model, column, row[column])
        await self.session.flush()

    async def count_by_owner_and_class(self, owner_id: str, is_short: bool) -> int:
        stmt = select(func.count(MediaItemModel.id)).where(
            MediaItemModel.owner_id == owner_id,
            MediaItemModel.is_short == is_short,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_by_owner(
        self,
        owner_id: str,
        is_short: bool | None = None,
        platform: Platform | None = None,
    ) -> list[MediaItem]:
        stmt = select(MediaItemModel).where(MediaItemModel.owner_id == owner_id)
        if is_short is not None:
            stmt = stmt.where(MediaItemModel.is_short == is_short)
        if platform is not None:
            stmt = stmt.where(MediaItemModel.source_platform == platform.value)
        stmt = stmt.order_by(
            MediaItemModel.published_at.desc().nulls_last(),
            MediaItemModel.created_at.desc(),
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]


class ArtistProfileDirectory(IOwnerDirectory):
    """Owner directory backed by the artist_profiles table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_resource_id_for_owner(self, owner_id: str) -> str | None:
        stmt = select(ArtistProfileModel.id).where(ArtistProfileModel.owner_id == owner_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def resource_exists(self, resource_id: str) -> bool:
        stmt = select(func.count(ArtistProfileModel.id)).where(
            ArtistProfileModel.id == resource_id
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one()) > 0

    async def create_profile(
        self, owner_id: str, display_name: str | None = None
    ) -> str:
        """Insert a profile row (used by seeding scripts and tests)."""
        model = ArtistProfileModel(owner_id=owner_id, display_name=display_name)
        self.session.add(model)
        await self.session.flush()
        return model.id
