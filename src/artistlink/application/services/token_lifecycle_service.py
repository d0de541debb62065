"""Access token lifecycle: validity checks, refresh, failure tracking.

Hey future me - this is the ONLY place that decides whether a stored token can be used!
Sync (and anything else calling a platform API) asks get_valid_access_token() and gets either
a usable token or None ("reconnect required"). It never raises for provider trouble.

Two credential flavours behind one ICredential contract:
- RefreshTokenCredential (YouTube): 1h access token + refresh token grant
- LongLivedCredential (Instagram): ~60 day token, NO refresh token. Dead once expired,
  but can be extended (ig_refresh_token) while it's still alive.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

from artistlink.domain.entities import IntegrationAccount, LongLivedToken, Platform
from artistlink.domain.exceptions import TokenRefreshException
from artistlink.domain.ports import ICredential, IIntegrationAccountRepository
from artistlink.infrastructure.integrations import InstagramClient, YouTubeClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_REFRESH_FAILURES = 3
DEFAULT_EXTENSION_WINDOW_SECONDS = 5 * 60


class RefreshTokenCredential(ICredential):
    """Credential refreshed through the OAuth refresh-token grant (YouTube)."""

    platform = Platform.YOUTUBE

    def __init__(self, client: YouTubeClient) -> None:
        self._client = client

    async def refresh(self, account: IntegrationAccount) -> LongLivedToken:
        # Nothing to refresh with - fail without bothering Google
        if not account.refresh_token:
            raise TokenRefreshException(
                "No refresh token stored. Please reconnect YouTube.",
                platform=self.platform.value,
            )
        return await self._client.refresh_access_token(account.refresh_token)


class LongLivedCredential(ICredential):
    """Long-lived token that can be extended while valid but never refreshed once expired."""

    platform = Platform.INSTAGRAM

    def __init__(
        self,
        client: InstagramClient,
        extension_window_seconds: int = DEFAULT_EXTENSION_WINDOW_SECONDS,
    ) -> None:
        self._client = client
        self.extension_window = timedelta(seconds=extension_window_seconds)

    def should_extend(self, account: IntegrationAccount, now: datetime) -> bool:
        return (
            not account.is_expired(now)
            and account.token_expires_at - now <= self.extension_window
        )

    async def refresh(self, account: IntegrationAccount) -> LongLivedToken:
        raise TokenRefreshException(
            "Instagram token has expired. Please reconnect Instagram.",
            platform=self.platform.value,
        )

    async def extend(self, account: IntegrationAccount) -> LongLivedToken:
        return await self._client.extend_long_lived_token(account.access_token)


class TokenLifecycleManager:
    """Hands out valid access tokens, refreshing or extending them when needed."""

    def __init__(
        self,
        account_repository: IIntegrationAccountRepository,
        credentials: Iterable[ICredential],
        max_refresh_failures: int = DEFAULT_MAX_REFRESH_FAILURES,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize manager.

        Args:
            account_repository: Account storage (session-bound)
            credentials: One credential adapter per platform
            max_refresh_failures: Failures before the account is flagged invalid
            clock: Returns "now" (UTC-aware); tests pin it
        """
        self._accounts = account_repository
        self._credentials = {credential.platform: credential for credential in credentials}
        self.max_refresh_failures = max_refresh_failures
        self._clock = clock or (lambda: datetime.now(UTC))

    # Listen up - the order matters:
    # 1. unknown account -> None
    # 2. still valid -> stored token (Instagram may extend it first, see should_extend)
    # 3. expired -> refresh; success persists token+expiry together, failure counts up and
    #    returns None. After max_refresh_failures the account gets is_valid=False and the
    #    status view shows "reconnect required". It stays connected though!
    async def get_valid_access_token(self, account_id: str) -> str | None:
        """
        Return a usable access token for the account, or None if reconnect is required.

        Args:
            account_id: IntegrationAccount id

        Returns:
            Access token, or None when the account is unknown or refresh failed
        """
        account = await self._accounts.get(account_id)
        if account is None:
            return None

        credential = self._credentials.get(account.platform)
        if credential is None:
            logger.error("No credential adapter registered for %s", account.platform.value)
            return None

        now = self._clock()

        if credential.is_valid(account, now):
            if credential.should_extend(account, now):
                return await self._extend(credential, account, now)
            return account.access_token

        logger.info(
            "Access token for %s account %s expired at %s, refreshing",
            account.platform.value,
            account.id,
            account.token_expires_at.isoformat(),
        )
        try:
            token = await credential.refresh(account)
        except TokenRefreshException as e:
            updated = await self._accounts.record_refresh_failure(
                account.id, e.message, self.max_refresh_failures
            )
            logger.warning(
                "Token refresh failed for %s account %s (failure %d): %s",
                account.platform.value,
                account.id,
                updated.refresh_failures if updated else account.refresh_failures + 1,
                e.message,
            )
            return None

        await self._store(account, token, now)
        logger.info("Refreshed %s access token for account %s", account.platform.value, account.id)
        return token.access_token

    async def _extend(
        self, credential: ICredential, account: IntegrationAccount, now: datetime
    ) -> str:
        try:
            token = await credential.extend(account)
        except TokenRefreshException as e:
            # Stored token is still valid - use it, try extending again next time
            logger.warning(
                "Could not extend %s token for account %s: %s",
                account.platform.value,
                account.id,
                e.message,
            )
            return account.access_token

        await self._store(account, token, now)
        logger.info("Extended %s access token for account %s", account.platform.value, account.id)
        return token.access_token

    async def _store(
        self, account: IntegrationAccount, token: LongLivedToken, now: datetime
    ) -> None:
        await self._accounts.update_token(
            account.id,
            access_token=token.access_token,
            token_expires_at=now + timedelta(seconds=token.expires_in),
            refresh_token=token.refresh_token,
        )
