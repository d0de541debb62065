"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from datetime import datetime

from artistlink.domain.entities import (
    ApprovalState,
    CatalogPage,
    ExternalProfile,
    IntegrationAccount,
    LongLivedToken,
    MediaDetails,
    MediaItem,
    Platform,
    RemoteMediaItem,
    ShortLivedToken,
)


# Hey future me, these repository interfaces are PORTS (Hexagonal Architecture)! Services take
# the interface, the SQLAlchemy implementation lives in infrastructure/persistence. Tests swap
# in in-memory fakes. If you change a signature here, ALL implementations (and fakes!) change too.
class IIntegrationAccountRepository(ABC):
    """Repository interface for linked platform accounts."""

    @abstractmethod
    async def get(self, account_id: str) -> IntegrationAccount | None:
        """Get an account by its id."""

    @abstractmethod
    async def get_by_owner_and_platform(
        self, owner_id: str, platform: Platform
    ) -> IntegrationAccount | None:
        """Get the (single) account an owner linked for a platform."""

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[IntegrationAccount]:
        """List all accounts of an owner."""

    @abstractmethod
    async def save_connection(
        self,
        owner_id: str,
        platform: Platform,
        token: LongLivedToken,
        profile: ExternalProfile,
    ) -> IntegrationAccount:
        """Create or replace the account after a successful OAuth callback."""

    @abstractmethod
    async def update_token(
        self,
        account_id: str,
        access_token: str,
        token_expires_at: datetime,
        refresh_token: str | None = None,
    ) -> bool:
        """Store a refreshed token; resets validity and the failure counter."""

    @abstractmethod
    async def record_refresh_failure(
        self, account_id: str, error_message: str, max_failures: int
    ) -> IntegrationAccount | None:
        """Count a failed refresh; mark invalid once max_failures is reached."""

    @abstractmethod
    async def delete(self, owner_id: str, platform: Platform) -> bool:
        """Remove the account (disconnect). Returns False if none existed."""


class IMediaItemRepository(ABC):
    """Repository interface for synced media items (natural key: external_id + owner_id)."""

    @abstractmethod
    async def get_by_natural_key(
        self, external_id: str, owner_id: str
    ) -> MediaItem | None:
        """Look up an item by its natural key."""

    @abstractmethod
    async def upsert(self, item: MediaItem) -> MediaItem:
        """Create or update the row identified by item.natural_key."""

    @abstractmethod
    async def count_by_owner_and_class(self, owner_id: str, is_short: bool) -> int:
        """Count an owner's items with the given is_short classification."""

    @abstractmethod
    async def list_by_owner(
        self,
        owner_id: str,
        is_short: bool | None = None,
        platform: Platform | None = None,
    ) -> list[MediaItem]:
        """List an owner's items, newest published first."""


class IOwnerDirectory(ABC):
    """Lookup of the artist profile that OAuth state tokens point at."""

    @abstractmethod
    async def get_resource_id_for_owner(self, owner_id: str) -> str | None:
        """Return the artist profile id owned by a user, if any."""

    @abstractmethod
    async def resource_exists(self, resource_id: str) -> bool:
        """Check whether an artist profile still exists."""


# =============================================================================
# External platform ports
# =============================================================================


class ITokenExchangeClient(ABC):
    """Staged OAuth code -> token -> profile exchange for one platform.

    Each stage raises its own exception (TokenExchangeFailed,
    LongTokenExchangeFailed, ProfileFetchFailed) and is never retried.
    """

    platform: Platform

    @abstractmethod
    def build_authorization_url(self, state: str) -> str:
        """Build the provider consent URL carrying the state token."""

    @abstractmethod
    async def exchange_code(self, code: str) -> ShortLivedToken:
        """Stage 1: exchange the authorization code."""

    @abstractmethod
    async def exchange_for_long_lived(self, token: ShortLivedToken) -> LongLivedToken:
        """Stage 2: upgrade to the credential that gets stored."""

    @abstractmethod
    async def fetch_profile(self, access_token: str) -> ExternalProfile:
        """Stage 3: read the external account identity."""

    def verify_webhook(self, mode: str | None, token: str | None) -> bool:
        """Check a webhook subscription handshake (platforms without webhooks: never)."""
        return False


class ICatalogFetcher(ABC):
    """Paginated remote catalog listing plus batched detail lookup."""

    platform: Platform
    # Moderation state new items of this platform are created with
    approval_state: ApprovalState = ApprovalState.APPROVED

    @abstractmethod
    async def resolve_collection_id(
        self, account_external_id: str, access_token: str
    ) -> str:
        """Map the account id to the collection holding its uploads."""

    @abstractmethod
    async def list_items(
        self,
        collection_id: str,
        access_token: str,
        page_token: str | None = None,
    ) -> CatalogPage:
        """Fetch one page of the collection."""

    @abstractmethod
    async def fetch_details(
        self, ids: list[str], access_token: str
    ) -> dict[str, MediaDetails]:
        """Fetch duration + statistics for many items in batched calls."""

    async def list_all_items(
        self, collection_id: str, access_token: str
    ) -> list[RemoteMediaItem]:
        """Follow page tokens until the listing is exhausted."""
        items: list[RemoteMediaItem] = []
        page_token: str | None = None
        seen_tokens: set[str] = set()

        while True:
            page = await self.list_items(collection_id, access_token, page_token)
            items.extend(page.items)
            # Guard against providers echoing the same cursor forever
            if not page.next_page_token or page.next_page_token in seen_tokens:
                break
            seen_tokens.add(page.next_page_token)
            page_token = page.next_page_token

        return items


class ICredential(ABC):
    """Credential with expiry that may or may not be refreshable.

    One contract, two adapters: refresh-token grant (YouTube) and
    long-lived-no-refresh (Instagram).
    """

    platform: Platform

    def is_valid(self, account: IntegrationAccount, now: datetime) -> bool:
        """True while the stored access token has not expired."""
        return not account.is_expired(now)

    def should_extend(self, account: IntegrationAccount, now: datetime) -> bool:
        """True when a still-valid token should be proactively extended."""
        return False

    @abstractmethod
    async def refresh(self, account: IntegrationAccount) -> LongLivedToken:
        """Obtain a new token; raises TokenRefreshException on failure."""

    async def extend(self, account: IntegrationAccount) -> LongLivedToken:
        """Proactively renew a still-valid token (see should_extend)."""
        return await self.refresh(account)


__all__ = [
    "ICatalogFetcher",
    "ICredential",
    "IIntegrationAccountRepository",
    "IMediaItemRepository",
    "IOwnerDirectory",
    "ITokenExchangeClient",
]
