"""Catalog sync trigger and catalog read."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from artistlink.domain.entities import MediaItem, MediaKind, Platform, SyncResult
from artistlink.domain.exceptions import RemoteFetchFailed
from artistlink.domain.ports import (
    ICatalogFetcher,
    IIntegrationAccountRepository,
    IMediaItemRepository,
)

from .reconciliation_service import ReconciliationEngine
from .token_lifecycle_service import TokenLifecycleManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _SyncWording:
    noun: str
    empty: str
    fetch_failed: str


# The frontend shows these strings verbatim
_WORDING = {
    Platform.YOUTUBE: _SyncWording(
        noun="videos",
        empty="No videos found on YouTube channel",
        fetch_failed="Failed to fetch videos",
    ),
    Platform.INSTAGRAM: _SyncWording(
        noun="reels",
        empty="No reels found",
        fetch_failed="Failed to fetch Instagram media",
    ),
}


class MediaSyncService:
    """Pulls a platform catalog into the local media table.

    Hey future me - sync() NEVER raises for integration trouble! Not connected, dead token,
    provider down - all of it comes back as SyncResult(success=False, message=...) because the
    UI shows the message in a toast. Only real bugs/DB errors bubble up to the exception handlers.
    A failed run writes nothing: all remote calls happen BEFORE reconciliation starts.
    """

    def __init__(
        self,
        account_repository: IIntegrationAccountRepository,
        media_repository: IMediaItemRepository,
        token_manager: TokenLifecycleManager,
        fetchers: Iterable[ICatalogFetcher],
        reconciliation_engine: ReconciliationEngine | None = None,
    ) -> None:
        self._accounts = account_repository
        self._media = media_repository
        self._tokens = token_manager
        self._fetchers = {fetcher.platform: fetcher for fetcher in fetchers}
        self._engine = reconciliation_engine or ReconciliationEngine(media_repository)

    async def sync(self, owner_id: str, platform: Platform) -> SyncResult:
        """
        Sync the owner's remote catalog for one platform.

        Args:
            owner_id: Owner whose account is synced
            platform: Platform to sync

        Returns:
            SyncResult (synced = new items, skipped = refreshed existing items)
        """
        wording = _WORDING[platform]

        account = await self._accounts.get_by_owner_and_platform(owner_id, platform)
        if account is None:
            return SyncResult(success=False, message=f"{platform.label} not connected")

        access_token = await self._tokens.get_valid_access_token(account.id)
        if not access_token:
            return SyncResult(
                success=False,
                message=f"Failed to get valid {platform.label} token. Please reconnect.",
            )

        fetcher = self._fetchers[platform]
        try:
            collection_id = await fetcher.resolve_collection_id(
                account.external_account_id, access_token
            )
            remote_items = await fetcher.list_all_items(collection_id, access_token)
            if not remote_items:
                return SyncResult(
                    success=True, message=wording.empty, synced=0, skipped=0, total=0
                )
            # Detail batch is all-or-nothing: one failed chunk aborts the run
            ids = list(dict.fromkeys(item.external_id for item in remote_items))
            details = await fetcher.fetch_details(ids, access_token)
        except RemoteFetchFailed as e:
            logger.warning(
                "%s sync for owner %s aborted: %s", platform.value, owner_id, e.message
            )
            return SyncResult(success=False, message=wording.fetch_failed)

        run = await self._engine.reconcile(
            owner_id=owner_id,
            platform=platform,
            remote_items=remote_items,
            details=details,
            approval_state=fetcher.approval_state,
        )

        logger.info(
            "%s sync for owner %s: %d new, %d updated, %d total",
            platform.value,
            owner_id,
            run.created,
            run.updated,
            run.total,
        )
        return SyncResult(
            success=True,
            message=(
                f"Sync complete! {run.created} new {wording.noun} added, "
                f"{run.updated} updated."
            ),
            synced=run.created,
            skipped=run.updated,
            total=run.total,
        )

    async def list_media(
        self,
        owner_id: str,
        kind: MediaKind = MediaKind.ALL,
        platform: Platform | None = None,
    ) -> list[MediaItem]:
        """List the owner's catalog, newest published first."""
        return await self._media.list_by_owner(
            owner_id, is_short=kind.is_short, platform=platform
        )
