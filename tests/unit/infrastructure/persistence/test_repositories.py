"""Tests for the SQLAlchemy repositories (in-memory SQLite)."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from artistlink.domain.entities import (
    ApprovalState,
    ExternalProfile,
    LongLivedToken,
    MediaItem,
    Platform,
)
from artistlink.infrastructure.persistence import (
    ArtistProfileDirectory,
    IntegrationAccountRepository,
    MediaItemRepository,
)


def _media(
    external_id: str,
    owner_id: str = "user-1",
    *,
    is_short: bool = False,
    platform: Platform = Platform.YOUTUBE,
    published_at: datetime | None = None,
    title: str = "Title",
    duration_seconds: int = 200,
) -> MediaItem:
    return MediaItem(
        id=str(uuid.uuid4()),
        external_id=external_id,
        owner_id=owner_id,
        title=title,
        source_url=f"https://www.youtube.com/watch?v={external_id}",
        source_platform=platform,
        duration_seconds=duration_seconds,
        duration_formatted="3:20",
        is_short=is_short,
        published_at=published_at,
    )


class TestIntegrationAccountRepository:
    """Test account storage and token bookkeeping."""

    async def test_save_connection_creates_account(
        self, account_repo: IntegrationAccountRepository, connect_account
    ) -> None:
        """Test first connect stores identity, token and a future expiry."""
        account = await connect_account(Platform.YOUTUBE)

        assert account.external_account_id == "UC123"
        assert account.external_display_name == "Test Channel"
        assert account.is_valid is True
        assert account.token_expires_at > datetime.now(UTC)

        loaded = await account_repo.get_by_owner_and_platform("user-1", Platform.YOUTUBE)
        assert loaded is not None
        assert loaded.id == account.id
        assert loaded.token_expires_at.tzinfo is not None

    async def test_reconnect_replaces_single_row(
        self, account_repo: IntegrationAccountRepository, connect_account
    ) -> None:
        """Test reconnecting keeps one account per (owner, platform) and resets errors."""
        first = await connect_account(Platform.YOUTUBE)
        await account_repo.record_refresh_failure(first.id, "boom", max_failures=1)

        second = await connect_account(
            Platform.YOUTUBE, external_id="UC999", access_token="new-token"
        )

        assert second.id == first.id
        assert second.external_account_id == "UC999"
        assert second.access_token == "new-token"
        assert second.is_valid is True
        assert second.refresh_failures == 0
        assert second.last_error is None
        assert len(await account_repo.list_by_owner("user-1")) == 1

    async def test_update_token_keeps_refresh_token_when_not_rotated(
        self, account_repo: IntegrationAccountRepository, connect_account
    ) -> None:
        account = await connect_account(Platform.YOUTUBE)
        expires_at = datetime.now(UTC) + timedelta(hours=1)

        assert await account_repo.update_token(account.id, "fresh", expires_at) is True

        updated = await account_repo.get(account.id)
        assert updated is not None
        assert updated.access_token == "fresh"
        assert updated.refresh_token == "stored-refresh-token"
        assert updated.last_refreshed_at is not None

    async def test_update_token_stores_rotated_refresh_token(
        self, account_repo: IntegrationAccountRepository, connect_account
    ) -> None:
        account = await connect_account(Platform.YOUTUBE)
        await account_repo.update_token(
            account.id,
            "fresh",
            datetime.now(UTC) + timedelta(hours=1),
            refresh_token="rotated",
        )

        updated = await account_repo.get(account.id)
        assert updated is not None
        assert updated.refresh_token == "rotated"

    async def test_update_token_unknown_account(
        self, account_repo: IntegrationAccountRepository
    ) -> None:
        assert await account_repo.update_token("missing", "t", datetime.now(UTC)) is False

    async def test_refresh_failures_flag_account_at_threshold(
        self, account_repo: IntegrationAccountRepository, connect_account
    ) -> None:
        """Test the account stays valid until max_failures is reached."""
        account = await connect_account(Platform.YOUTUBE)

        first = await account_repo.record_refresh_failure(account.id, "e1", max_failures=3)
        second = await account_repo.record_refresh_failure(account.id, "e2", max_failures=3)
        third = await account_repo.record_refresh_failure(account.id, "e3", max_failures=3)

        assert first is not None and first.is_valid is True
        assert second is not None and second.is_valid is True
        assert third is not None
        assert third.is_valid is False
        assert third.refresh_failures == 3
        assert third.last_error == "e3"

    async def test_successful_refresh_resets_failures(
        self, account_repo: IntegrationAccountRepository, connect_account
    ) -> None:
        account = await connect_account(Platform.YOUTUBE)
        await account_repo.record_refresh_failure(account.id, "e1", max_failures=1)

        await account_repo.update_token(
            account.id, "fresh", datetime.now(UTC) + timedelta(hours=1)
        )

        updated = await account_repo.get(account.id)
        assert updated is not None
        assert updated.is_valid is True
        assert updated.refresh_failures == 0

    async def test_delete(
        self, account_repo: IntegrationAccountRepository, connect_account
    ) -> None:
        await connect_account(Platform.INSTAGRAM)

        assert await account_repo.delete("user-1", Platform.INSTAGRAM) is True
        assert await account_repo.delete("user-1", Platform.INSTAGRAM) is False
        assert await account_repo.get_by_owner_and_platform("user-1", Platform.INSTAGRAM) is None

    async def test_accounts_are_scoped_by_owner(
        self, account_repo: IntegrationAccountRepository
    ) -> None:
        token = LongLivedToken(access_token="t", expires_in=3600)
        await account_repo.save_connection(
            "user-2", Platform.YOUTUBE, token, ExternalProfile("UC2", "Other")
        )

        assert await account_repo.get_by_owner_and_platform("user-1", Platform.YOUTUBE) is None
        assert await account_repo.list_by_owner("user-1") == []


class TestMediaItemRepository:
    """Test the natural-key upsert and catalog reads."""

    async def test_upsert_inserts_new_item(self, media_repo: MediaItemRepository) -> None:
        stored = await media_repo.upsert(_media("vid-1"))

        assert stored.external_id == "vid-1"
        loaded = await media_repo.get_by_natural_key("vid-1", "user-1")
        assert loaded is not None
        assert loaded.id == stored.id

    async def test_upsert_conflict_only_touches_mutable_columns(
        self, media_repo: MediaItemRepository
    ) -> None:
        """Test a second insert for the same natural key keeps immutable fields."""
        original = await media_repo.upsert(_media("vid-1", duration_seconds=200))

        clash = _media("vid-1", title="Renamed", duration_seconds=30, is_short=True)
        clash.approval_state = ApprovalState.PENDING
        clash.view_count = 42
        updated = await media_repo.upsert(clash)

        assert updated.id == original.id
        assert updated.title == "Renamed"
        assert updated.view_count == 42
        assert updated.duration_seconds == 200
        assert updated.is_short is False
        assert updated.approval_state is ApprovalState.APPROVED

    async def test_same_external_id_for_two_owners(
        self, media_repo: MediaItemRepository
    ) -> None:
        await media_repo.upsert(_media("vid-1", owner_id="user-1"))
        await media_repo.upsert(_media("vid-1", owner_id="user-2"))

        assert len(await media_repo.list_by_owner("user-1")) == 1
        assert len(await media_repo.list_by_owner("user-2")) == 1

    async def test_counts_by_class(self, media_repo: MediaItemRepository) -> None:
        await media_repo.upsert(_media("long-1"))
        await media_repo.upsert(_media("long-2"))
        await media_repo.upsert(_media("short-1", is_short=True))

        assert await media_repo.count_by_owner_and_class("user-1", is_short=False) == 2
        assert await media_repo.count_by_owner_and_class("user-1", is_short=True) == 1
        assert await media_repo.count_by_owner_and_class("user-2", is_short=True) == 0

    async def test_list_orders_newest_published_first(
        self, media_repo: MediaItemRepository
    ) -> None:
        """Test ordering by published_at desc with unpublished items last."""
        base = datetime(2024, 1, 1, tzinfo=UTC)
        await media_repo.upsert(_media("old", published_at=base))
        await media_repo.upsert(_media("undated"))
        await media_repo.upsert(_media("new", published_at=base + timedelta(days=10)))

        items = await media_repo.list_by_owner("user-1")

        assert [item.external_id for item in items] == ["new", "old", "undated"]

    async def test_list_filters(self, media_repo: MediaItemRepository) -> None:
        await media_repo.upsert(_media("yt-long"))
        await media_repo.upsert(_media("yt-short", is_short=True))
        await media_repo.upsert(
            _media("ig-reel", is_short=True, platform=Platform.INSTAGRAM)
        )

        shorts = await media_repo.list_by_owner("user-1", is_short=True)
        reels = await media_repo.list_by_owner(
            "user-1", is_short=True, platform=Platform.INSTAGRAM
        )

        assert {item.external_id for item in shorts} == {"yt-short", "ig-reel"}
        assert [item.external_id for item in reels] == ["ig-reel"]


class TestArtistProfileDirectory:
    """Test the owner -> artist profile lookup."""

    async def test_lookup(self, owner_directory: ArtistProfileDirectory) -> None:
        profile_id = await owner_directory.create_profile("user-1")

        assert await owner_directory.get_resource_id_for_owner("user-1") == profile_id
        assert await owner_directory.get_resource_id_for_owner("nobody") is None
        assert await owner_directory.resource_exists(profile_id) is True
        assert await owner_directory.resource_exists("missing") is False


@pytest.mark.parametrize("platform", list(Platform))
async def test_platform_round_trip(
    account_repo: IntegrationAccountRepository, connect_account, platform: Platform
) -> None:
    """Test both platforms persist and load with their enum value."""
    await connect_account(platform)
    loaded = await account_repo.get_by_owner_and_platform("user-1", platform)
    assert loaded is not None
    assert loaded.platform is platform
