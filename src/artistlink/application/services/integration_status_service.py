"""Read-only view of an owner's platform connections."""

from artistlink.domain.entities import (
    IntegrationAccount,
    IntegrationStatus,
    MediaCounts,
    Platform,
    PlatformStatus,
)
from artistlink.domain.ports import IIntegrationAccountRepository, IMediaItemRepository


class IntegrationStatusProjector:
    """Project accounts + media counts into the integrations tab view.

    Pure read - never refreshes tokens or touches the network. An expired token still
    shows as connected; reconnect_required only flips after repeated refresh failures.
    """

    def __init__(
        self,
        account_repository: IIntegrationAccountRepository,
        media_repository: IMediaItemRepository,
    ) -> None:
        self._accounts = account_repository
        self._media = media_repository

    async def get_status(self, owner_id: str) -> IntegrationStatus:
        accounts = {
            account.platform: account
            for account in await self._accounts.list_by_owner(owner_id)
        }
        counts = MediaCounts(
            videos=await self._media.count_by_owner_and_class(owner_id, is_short=False),
            shorts=await self._media.count_by_owner_and_class(owner_id, is_short=True),
        )
        return IntegrationStatus(
            youtube=self._project(accounts.get(Platform.YOUTUBE)),
            instagram=self._project(accounts.get(Platform.INSTAGRAM)),
            counts=counts,
        )

    @staticmethod
    def _project(account: IntegrationAccount | None) -> PlatformStatus:
        if account is None:
            return PlatformStatus(connected=False)
        return PlatformStatus(
            connected=True,
            display_identity=account.external_display_name,
            external_id=account.external_account_id,
            connected_at=account.connected_at,
            reconnect_required=not account.is_valid,
        )
