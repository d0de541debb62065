"""Reconcile a remote catalog listing into local media items."""

import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime

from artistlink.domain.entities import (
    ApprovalState,
    MediaDetails,
    MediaItem,
    Platform,
    RemoteMediaItem,
    SyncRun,
)
from artistlink.domain.ports import IMediaItemRepository
from artistlink.domain.value_objects import DurationClassifier

logger = logging.getLogger(__name__)

CatalogChangedHook = Callable[[str, Platform, SyncRun], Awaitable[None] | None]


def log_catalog_changed(owner_id: str, platform: Platform, run: SyncRun) -> None:
    """Default catalog-changed hook: just a log line."""
    logger.info(
        "Catalog of owner %s changed via %s sync (%d new, %d updated)",
        owner_id,
        platform.value,
        run.created,
        run.updated,
    )


class ReconciliationEngine:
    """Create-or-update local MediaItems from a remote listing.

    Hey future me - "reconcile" here is ADDITIVE only! Items deleted on YouTube/Instagram
    stay in our catalog (no pruning). Per remote item:
    - unknown natural key -> create the full record (duration, is_short, approval fixed forever)
    - known natural key -> refresh ONLY title, description, thumbnail_url, view_count
    Running it twice over the same listing gives created=0, updated=N the second time.
    """

    def __init__(
        self,
        media_repository: IMediaItemRepository,
        classifier: DurationClassifier | None = None,
        on_catalog_changed: CatalogChangedHook | None = log_catalog_changed,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._media = media_repository
        self._classifier = classifier or DurationClassifier()
        self._on_catalog_changed = on_catalog_changed
        self._clock = clock or (lambda: datetime.now(UTC))

    async def reconcile(
        self,
        owner_id: str,
        platform: Platform,
        remote_items: Iterable[RemoteMediaItem],
        details: dict[str, MediaDetails],
        approval_state: ApprovalState,
    ) -> SyncRun:
        """
        Upsert every distinct remote item for the owner.

        Args:
            owner_id: Owner the items belong to
            platform: Source platform
            remote_items: Flattened remote listing (may contain repeats)
            details: Duration/statistics keyed by external id (missing -> PT0S, 0 views)
            approval_state: Moderation state for newly created items

        Returns:
            SyncRun with created/updated/total counters
        """
        run = SyncRun()
        seen: set[str] = set()

        for remote in remote_items:
            # Providers occasionally repeat an item across pages - process it once
            if remote.external_id in seen:
                continue
            seen.add(remote.external_id)

            detail = details.get(remote.external_id) or MediaDetails()
            existing = await self._media.get_by_natural_key(remote.external_id, owner_id)

            if existing is None:
                await self._media.upsert(
                    self._new_item(owner_id, platform, remote, detail, approval_state)
                )
                run.created += 1
            else:
                await self._media.upsert(
                    replace(
                        existing,
                        title=remote.title,
                        description=remote.description,
                        thumbnail_url=remote.thumbnail_url,
                        view_count=detail.view_count,
                        updated_at=self._clock(),
                    )
                )
                run.updated += 1

        run.total = len(seen)
        logger.debug(
            "Reconciled %d %s items for owner %s (%d new, %d updated)",
            run.total,
            platform.value,
            owner_id,
            run.created,
            run.updated,
        )

        if run.changed and self._on_catalog_changed is not None:
            result = self._on_catalog_changed(owner_id, platform, run)
            if inspect.isawaitable(result):
                await result

        return run

    def _new_item(
        self,
        owner_id: str,
        platform: Platform,
        remote: RemoteMediaItem,
        detail: MediaDetails,
        approval_state: ApprovalState,
    ) -> MediaItem:
        seconds = self._classifier.parse(detail.duration_raw)
        now = self._clock()
        return MediaItem(
            id=str(uuid.uuid4()),
            external_id=remote.external_id,
            owner_id=owner_id,
            title=remote.title,
            description=remote.description,
            source_url=remote.source_url,
            source_platform=platform,
            thumbnail_url=remote.thumbnail_url,
            duration_seconds=seconds,
            duration_formatted=self._classifier.format(seconds),
            view_count=detail.view_count,
            published_at=remote.published_at,
            is_short=self._classifier.classify(seconds),
            approval_state=approval_state,
            created_at=now,
            updated_at=now,
        )
