"""OAuth connect/disconnect orchestration for YouTube and Instagram.

Hey future me - this service owns the whole connect flow:

1. get_authorization_url() -> state token + provider consent URL
2. provider redirects the browser to /{platform}/callback
3. handle_callback() -> decode state, run the three exchange stages, store the account,
   redirect back into the frontend with ?success=... or ?error=...

The callback NEVER shows an error page. Every failure becomes a redirect with an error code the
frontend understands (see the error_code attributes in domain.exceptions). The only
non-redirect answers are the Instagram webhook handshake (plain text 200/403).
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from artistlink.config.settings import AppSettings
from artistlink.domain.entities import Platform, StateToken
from artistlink.domain.exceptions import (
    EntityNotFoundException,
    ExpiredStateError,
    ExternalServiceError,
    InvalidStateError,
    NotConnectedError,
)
from artistlink.domain.ports import (
    IIntegrationAccountRepository,
    IOwnerDirectory,
    ITokenExchangeClient,
)

from .state_token_codec import StateTokenCodec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallbackOutcome:
    """What the callback route should answer: a redirect or a plain-text body."""

    status_code: int
    redirect_url: str | None = None
    body: str | None = None
    media_type: str = "text/plain"

    @property
    def is_redirect(self) -> bool:
        return self.redirect_url is not None

    @classmethod
    def redirect(cls, url: str) -> "CallbackOutcome":
        return cls(status_code=302, redirect_url=url)

    @classmethod
    def plain(cls, status_code: int, body: str) -> "CallbackOutcome":
        return cls(status_code=status_code, body=body)


class IntegrationAuthService:
    """Connect, callback and disconnect for platform integrations."""

    def __init__(
        self,
        account_repository: IIntegrationAccountRepository,
        owner_directory: IOwnerDirectory,
        clients: Iterable[ITokenExchangeClient],
        state_codec: StateTokenCodec,
        app_settings: AppSettings,
        now_ms: Callable[[], int] | None = None,
    ) -> None:
        """Initialize auth service.

        Args:
            account_repository: Account storage (session-bound)
            owner_directory: Artist profile lookup
            clients: One token exchange client per platform
            state_codec: Encodes/validates the OAuth state parameter
            app_settings: Public base URL and default return path
            now_ms: Clock in epoch milliseconds for state expiry (tests pin it)
        """
        self._accounts = account_repository
        self._owners = owner_directory
        self._clients = {client.platform: client for client in clients}
        self._codec = state_codec
        self._app = app_settings
        self._now_ms = now_ms

    def _client(self, platform: Platform) -> ITokenExchangeClient:
        return self._clients[platform]

    async def get_authorization_url(
        self, owner_id: str, platform: Platform, return_url: str | None = None
    ) -> str:
        """
        Build the provider consent URL for the owner's artist profile.

        Args:
            owner_id: Caller (from the session layer)
            platform: Platform to connect
            return_url: Relative frontend path to land on after the callback

        Returns:
            Provider authorization URL carrying the state token

        Raises:
            EntityNotFoundException: If the owner has no artist profile
            ConfigurationError: If the platform client id is not configured
        """
        resource_id = await self._owners.get_resource_id_for_owner(owner_id)
        if resource_id is None:
            raise EntityNotFoundException("Artist profile", owner_id)

        state = self._codec.issue(
            resource_id, owner_id, return_url=self._safe_return_url(return_url)
        )
        url = self._client(platform).build_authorization_url(state)
        logger.info("Issued %s authorization URL for owner %s", platform.value, owner_id)
        return url

    # Listen up - the order of checks IS the contract (and tests pin it):
    # webhook -> provider error -> missing params -> bad state -> expired -> unknown profile
    # -> stage 1 -> stage 2 -> stage 3 -> store. The provider-error path must not make ANY
    # network call. Nothing is written unless all three stages succeeded.
    async def handle_callback(
        self, platform: Platform, query: Mapping[str, str]
    ) -> CallbackOutcome:
        """
        Process the provider redirect.

        Args:
            platform: Platform the callback belongs to
            query: Raw callback query parameters

        Returns:
            CallbackOutcome (redirect into the frontend, or webhook plain-text answer)
        """
        client = self._client(platform)

        if query.get("hub.mode") == "subscribe":
            return self._webhook_outcome(client, query)

        if query.get("error"):
            logger.info(
                "%s authorization denied: %s (%s)",
                platform.value,
                query.get("error"),
                query.get("error_reason") or query.get("error_description") or "-",
            )
            return self._redirect(None, error=f"{platform.value}_denied")

        code = query.get("code")
        raw_state = query.get("state")
        if not code or not raw_state:
            return self._redirect(None, error="missing_params")

        try:
            state = self._codec.decode(raw_state)
        except InvalidStateError as e:
            logger.warning("%s callback with invalid state: %s", platform.value, e.message)
            return self._redirect(None, error=e.error_code)

        try:
            now = self._now_ms() if self._now_ms else None
            self._codec.validate(state, now=now)
        except ExpiredStateError as e:
            return self._redirect(state, error=e.error_code)

        try:
            if not await self._owners.resource_exists(state.resource_id):
                logger.warning(
                    "%s callback for unknown artist profile %s",
                    platform.value,
                    state.resource_id,
                )
                return self._redirect(state, error="artist_not_found")
            # The account is stored under state.owner_id, so the profile must be theirs
            owner_resource = await self._owners.get_resource_id_for_owner(state.owner_id)
            if owner_resource != state.resource_id:
                logger.warning(
                    "%s callback state names profile %s, owner %s has %s",
                    platform.value,
                    state.resource_id,
                    state.owner_id,
                    owner_resource,
                )
                return self._redirect(state, error="artist_not_found")

            short_token = await client.exchange_code(code)
            long_token = await client.exchange_for_long_lived(short_token)
            profile = await client.fetch_profile(long_token.access_token)

            await self._accounts.save_connection(
                state.owner_id, platform, long_token, profile
            )
        except ExternalServiceError as e:
            logger.warning(
                "%s callback failed for owner %s: %s", platform.value, state.owner_id, e.message
            )
            return self._redirect(state, error=e.error_code)
        except Exception:
            logger.exception("%s callback failed unexpectedly", platform.value)
            return self._redirect(state, error="callback_failed")

        logger.info(
            "Connected %s account %s (%s) for owner %s",
            platform.value,
            profile.external_id,
            profile.display_name,
            state.owner_id,
        )
        return self._redirect(state, success=f"{platform.value}_connected")

    async def disconnect(self, owner_id: str, platform: Platform) -> None:
        """
        Remove the owner's account for a platform. Synced media are kept.

        Raises:
            NotConnectedError: If there is no account to remove
        """
        if not await self._accounts.delete(owner_id, platform):
            raise NotConnectedError(platform.label)
        logger.info("Disconnected %s for owner %s", platform.value, owner_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _webhook_outcome(
        self, client: ITokenExchangeClient, query: Mapping[str, str]
    ) -> CallbackOutcome:
        challenge = query.get("hub.challenge")
        if challenge and client.verify_webhook(
            query.get("hub.mode"), query.get("hub.verify_token")
        ):
            logger.info("%s webhook verification succeeded", client.platform.value)
            return CallbackOutcome.plain(200, challenge)

        logger.warning("%s webhook verification failed: token mismatch", client.platform.value)
        return CallbackOutcome.plain(403, "Forbidden")

    # Hey future me - open redirect guard! Only path-absolute URLs ("/artist/...") are honoured.
    # "//evil.com", "https://evil.com" or backslash tricks fall back to the default.
    @staticmethod
    def _safe_return_url(return_url: str | None) -> str | None:
        if not return_url:
            return None
        if not return_url.startswith("/") or return_url.startswith("//") or "\\" in return_url:
            logger.warning("Ignoring non-relative return URL %r", return_url)
            return None
        parts = urlsplit(return_url)
        if parts.scheme or parts.netloc:
            return None
        return return_url

    def _redirect(
        self,
        state: StateToken | None,
        *,
        error: str | None = None,
        success: str | None = None,
    ) -> CallbackOutcome:
        path = (
            self._safe_return_url(state.return_url) if state is not None else None
        ) or self._app.default_return_url

        base = urljoin(self._app.public_base_url.rstrip("/") + "/", path.lstrip("/"))
        parts = urlsplit(base)
        params = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key not in ("success", "error")
        ]
        if success:
            params.append(("success", success))
        if error:
            params.append(("error", error))

        return CallbackOutcome.redirect(
            urlunsplit(
                (parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment)
            )
        )


__all__ = ["CallbackOutcome", "IntegrationAuthService"]
