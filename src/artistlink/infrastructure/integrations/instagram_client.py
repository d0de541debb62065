"""Instagram Graph API client (Instagram Business Login)."""

import hmac
import logging
from typing import Any
from urllib.parse import urlencode

from artistlink.domain.entities import (
    ApprovalState,
    CatalogPage,
    ExternalProfile,
    LongLivedToken,
    MediaDetails,
    Platform,
    RemoteMediaItem,
    ShortLivedToken,
)
from artistlink.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    LongTokenExchangeFailed,
    ProfileFetchFailed,
    RemoteFetchFailed,
    TokenExchangeFailed,
    TokenRefreshException,
)
from artistlink.domain.ports import ICatalogFetcher, ITokenExchangeClient

from .base_client import PlatformHttpClient, parse_timestamp

logger = logging.getLogger(__name__)

# Long-lived tokens are valid ~60 days
LONG_LIVED_TOKEN_LIFETIME = 60 * 24 * 3600
MEDIA_FIELDS = "id,caption,media_type,media_url,thumbnail_url,permalink,timestamp"
# Only these media types are synced; images and carousels are ignored
VIDEO_MEDIA_TYPES = frozenset({"VIDEO", "REEL"})
MAX_TITLE_LENGTH = 100
DEFAULT_TITLE = "Instagram Reel"

SCOPES = [
    "instagram_business_basic",
    "instagram_business_manage_messages",
    "instagram_business_manage_comments",
    "instagram_business_content_publish",
    "instagram_business_manage_insights",
]


class InstagramClient(PlatformHttpClient, ITokenExchangeClient, ICatalogFetcher):
    """HTTP client for Instagram Business Login and the Graph API media edge."""

    platform = Platform.INSTAGRAM
    # Reels go through admin review before they show up publicly
    approval_state = ApprovalState.PENDING

    AUTHORIZE_URL = "https://www.instagram.com/oauth/authorize"
    SHORT_TOKEN_URL = "https://api.instagram.com/oauth/access_token"  # nosec B105 - public endpoint URL
    GRAPH_URL = "https://graph.instagram.com"

    def build_authorization_url(self, state: str) -> str:
        """
        Generate Instagram OAuth authorization URL.

        Args:
            state: Encoded state token round-tripped through the redirect

        Returns:
            Authorization URL

        Raises:
            ConfigurationError: If client_id or redirect_uri is not configured
        """
        if not self.settings.client_id.strip():
            raise ConfigurationError(
                "INSTAGRAM_CLIENT_ID is not configured. "
                "Create an app with Instagram Business Login at https://developers.facebook.com/apps"
            )
        if not self.settings.redirect_uri.strip():
            raise ConfigurationError("INSTAGRAM_REDIRECT_URI is not configured.")

        params = {
            "client_id": self.settings.client_id,
            "redirect_uri": self.settings.redirect_uri,
            # Instagram wants comma separated scopes, Google wants spaces. Don't unify these.
            "scope": ",".join(SCOPES),
            "response_type": "code",
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    # Hey future me, webhook subscription check! Meta pings the callback URL with
    # hub.mode=subscribe + hub.verify_token + hub.challenge when the webhook gets registered.
    # We must echo the challenge byte-for-byte. compare_digest so the token can't be
    # guessed by timing, and an unconfigured verify token never matches anything.
    def verify_webhook(self, mode: str | None, token: str | None) -> bool:
        """Check a webhook subscription handshake against the configured verify token."""
        expected = self.settings.verify_token
        if mode != "subscribe" or not expected or token is None:
            return False
        return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))

    # Stage 1: short-lived (1h) token. The Business Login endpoint sometimes wraps the
    # result in {"data": [...]} - handle both shapes.
    async def exchange_code(self, code: str) -> ShortLivedToken:
        """
        Exchange authorization code for a short-lived token.

        Raises:
            TokenExchangeFailed: If Instagram rejects the code or is unreachable
        """
        data = {
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "grant_type": "authorization_code",
            "redirect_uri": self.settings.redirect_uri,
            "code": code,
        }
        payload = await self._request_json(
            "POST",
            self.SHORT_TOKEN_URL,
            error_cls=TokenExchangeFailed,
            action="token exchange",
            data=data,
        )

        if isinstance(payload.get("data"), list) and payload["data"]:
            payload = payload["data"][0]

        access_token = payload.get("access_token")
        if not access_token:
            raise TokenExchangeFailed(
                "Instagram token response has no access_token",
                platform=self.platform.value,
            )

        user_id = payload.get("user_id")
        return ShortLivedToken(
            access_token=access_token,
            expires_in=payload.get("expires_in"),
            user_id=str(user_id) if user_id is not None else None,
        )

    # Stage 2: swap for the ~60 day token. This is what gets stored; Instagram gives us
    # NO refresh token, only ig_refresh_token extension while the token is still alive.
    async def exchange_for_long_lived(self, token: ShortLivedToken) -> LongLivedToken:
        """
        Exchange the short-lived token for a long-lived one.

        Raises:
            LongTokenExchangeFailed: If the exchange call fails
        """
        payload = await self._request_json(
            "GET",
            f"{self.GRAPH_URL}/access_token",
            error_cls=LongTokenExchangeFailed,
            action="long-lived token exchange",
            params={
                "grant_type": "ig_exchange_token",
                "client_secret": self.settings.client_secret,
                "access_token": token.access_token,
            },
        )
        return self._long_lived_from(payload, LongTokenExchangeFailed)

    async def fetch_profile(self, access_token: str) -> ExternalProfile:
        """
        Read id and username of the connected account.

        Raises:
            ProfileFetchFailed: If the call fails or returns no id
        """
        payload = await self._request_json(
            "GET",
            f"{self.GRAPH_URL}/me",
            error_cls=ProfileFetchFailed,
            action="profile lookup",
            params={"fields": "id,username", "access_token": access_token},
        )

        external_id = payload.get("id") or payload.get("user_id")
        if not external_id:
            raise ProfileFetchFailed(
                "Instagram profile response has no id", platform=self.platform.value
            )
        return ExternalProfile(
            external_id=str(external_id),
            display_name=payload.get("username") or str(external_id),
        )

    # Yo, extension only works for tokens that are still valid (and at least 24h old,
    # Instagram's rule). An expired token is dead - the artist has to reconnect.
    async def extend_long_lived_token(self, access_token: str) -> LongLivedToken:
        """
        Extend a still-valid long-lived token by another ~60 days.

        Raises:
            TokenRefreshException: If Instagram refuses the extension
        """
        payload = await self._request_json(
            "GET",
            f"{self.GRAPH_URL}/refresh_access_token",
            error_cls=TokenRefreshException,
            action="token extension",
            params={"grant_type": "ig_refresh_token", "access_token": access_token},
        )
        return self._long_lived_from(payload, TokenRefreshException)

    # =========================================================================
    # Catalog
    # =========================================================================

    async def resolve_collection_id(
        self, account_external_id: str, access_token: str
    ) -> str:
        # The account id IS the media collection - no remote call
        return account_external_id

    async def list_items(
        self,
        collection_id: str,
        access_token: str,
        page_token: str | None = None,
    ) -> CatalogPage:
        params: dict[str, Any] = {
            "fields": MEDIA_FIELDS,
            "limit": self.integration_settings.page_size,
            "access_token": access_token,
        }
        if page_token:
            params["after"] = page_token

        payload = await self._request_json(
            "GET",
            f"{self.GRAPH_URL}/{collection_id}/media",
            error_cls=RemoteFetchFailed,
            action="media listing",
            params=params,
        )

        items = [
            self._parse_media(media)
            for media in payload.get("data") or []
            if media.get("media_type") in VIDEO_MEDIA_TYPES and media.get("id")
        ]

        # Graph API cursors: "after" is only meaningful while a "next" link exists
        paging = payload.get("paging") or {}
        next_token = None
        if paging.get("next"):
            next_token = (paging.get("cursors") or {}).get("after")

        return CatalogPage(items=items, next_page_token=next_token)

    async def fetch_details(
        self, ids: list[str], access_token: str
    ) -> dict[str, MediaDetails]:
        # The media edge exposes neither duration nor view counts
        return {}

    def _parse_media(self, media: dict[str, Any]) -> RemoteMediaItem:
        caption = media.get("caption") or ""
        return RemoteMediaItem(
            external_id=str(media["id"]),
            title=caption[:MAX_TITLE_LENGTH] if caption else DEFAULT_TITLE,
            description=caption,
            thumbnail_url=media.get("thumbnail_url") or media.get("media_url"),
            source_url=media.get("permalink") or "",
            published_at=parse_timestamp(media.get("timestamp")),
        )

    def _long_lived_from(
        self, payload: dict[str, Any], error_cls: type[ExternalServiceError]
    ) -> LongLivedToken:
        access_token = payload.get("access_token")
        if not access_token:
            raise error_cls(
                "Instagram returned no access_token", platform=self.platform.value
            )
        return LongLivedToken(
            access_token=access_token,
            expires_in=int(payload.get("expires_in") or LONG_LIVED_TOKEN_LIFETIME),
        )
