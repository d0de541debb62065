"""YouTube Data API client with Google OAuth 2.0."""

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from artistlink.domain.entities import (
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
    LongTokenExchangeFailed,
    ProfileFetchFailed,
    RemoteFetchFailed,
    TokenExchangeFailed,
    TokenRefreshException,
)
from artistlink.domain.ports import ICatalogFetcher, ITokenExchangeClient

from .base_client import MAX_LOGGED_BODY, PlatformHttpClient, parse_timestamp

logger = logging.getLogger(__name__)

# Google access tokens live one hour when expires_in is missing
DEFAULT_TOKEN_LIFETIME = 3600
# Hard limit of the videos endpoint (ids per call)
DETAIL_BATCH_SIZE = 50

SCOPES = [
    "https://www.googleapis.com/auth/youtube.readonly",
    "https://www.googleapis.com/auth/youtube.force-ssl",
]


class YouTubeClient(PlatformHttpClient, ITokenExchangeClient, ICatalogFetcher):
    """HTTP client for Google OAuth and the YouTube Data API v3."""

    platform = Platform.YOUTUBE

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"  # nosec B105 - public endpoint URL
    API_BASE_URL = "https://www.googleapis.com/youtube/v3"
    WATCH_URL = "https://www.youtube.com/watch?v="

    # Listen future me, access_type=offline is what makes Google hand out a refresh token,
    # and prompt=consent forces it on EVERY connect (Google only sends it on first consent
    # otherwise - reconnecting would leave us without one).
    def build_authorization_url(self, state: str) -> str:
        """
        Generate Google OAuth authorization URL.

        Args:
            state: Encoded state token round-tripped through the redirect

        Returns:
            Authorization URL

        Raises:
            ConfigurationError: If client_id or redirect_uri is not configured
        """
        if not self.settings.client_id.strip():
            raise ConfigurationError(
                "YOUTUBE_CLIENT_ID is not configured. "
                "Create an OAuth client at https://console.cloud.google.com/apis/credentials"
            )
        if not self.settings.redirect_uri.strip():
            raise ConfigurationError("YOUTUBE_REDIRECT_URI is not configured.")

        params = {
            "client_id": self.settings.client_id,
            "redirect_uri": self.settings.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    # Yo, the code is single-use! Google rejects a replayed callback with invalid_grant, which
    # ends up as token_exchange_failed on the redirect. Form-encoded, NOT JSON.
    async def exchange_code(self, code: str) -> ShortLivedToken:
        """
        Exchange authorization code for tokens.

        Raises:
            TokenExchangeFailed: If Google rejects the code or is unreachable
        """
        data = {
            "code": code,
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "redirect_uri": self.settings.redirect_uri,
            "grant_type": "authorization_code",
        }
        payload = await self._request_json(
            "POST",
            self.TOKEN_URL,
            error_cls=TokenExchangeFailed,
            action="token exchange",
            data=data,
        )

        access_token = payload.get("access_token")
        if not access_token:
            raise TokenExchangeFailed(
                "Google token response has no access_token", platform=self.platform.value
            )

        return ShortLivedToken(
            access_token=access_token,
            expires_in=payload.get("expires_in"),
            refresh_token=payload.get("refresh_token"),
        )

    # Hey future me - Google has no "long-lived exchange" step. The code grant already IS the
    # final credential (1h access token + refresh token), so stage 2 is a pass-through and
    # makes no network call. It still exists so both platforms run the same pipeline.
    async def exchange_for_long_lived(self, token: ShortLivedToken) -> LongLivedToken:
        """Pass the Google grant through as the stored credential."""
        if not token.access_token:
            raise LongTokenExchangeFailed(
                "No access token to promote", platform=self.platform.value
            )
        return LongLivedToken(
            access_token=token.access_token,
            expires_in=token.expires_in or DEFAULT_TOKEN_LIFETIME,
            refresh_token=token.refresh_token,
        )

    async def fetch_profile(self, access_token: str) -> ExternalProfile:
        """
        Read the authenticated user's channel.

        Raises:
            ProfileFetchFailed: If the call fails or the account has no channel
        """
        payload = await self._request_json(
            "GET",
            f"{self.API_BASE_URL}/channels",
            error_cls=ProfileFetchFailed,
            action="channel lookup",
            params={"part": "snippet", "mine": "true"},
            headers=self._auth_headers(access_token),
        )

        items = payload.get("items") or []
        if not items:
            raise ProfileFetchFailed(
                "No YouTube channel found for this Google account",
                platform=self.platform.value,
            )

        channel = items[0]
        channel_id = channel.get("id")
        if not channel_id:
            raise ProfileFetchFailed(
                "YouTube channel lookup returned a channel without an id",
                platform=self.platform.value,
            )
        return ExternalProfile(
            external_id=channel_id,
            display_name=(channel.get("snippet") or {}).get("title") or channel_id,
        )

    # Hey future me, check for invalid_grant BEFORE treating a failed refresh as a generic
    # HTTP error. 400 invalid_grant / 401 / 403 all mean the user revoked us or
    # the refresh token died - only a reconnect helps. Google normally does NOT rotate the
    # refresh token, so refresh_token in the result is usually None (keep the stored one).
    async def refresh_access_token(self, refresh_token: str) -> LongLivedToken:
        """
        Refresh the access token with the stored refresh token.

        Args:
            refresh_token: Refresh token from the original grant

        Returns:
            New credential (refresh_token set only if Google rotated it)

        Raises:
            TokenRefreshException: On any refresh failure
        """
        client = await self._get_client()
        data = {
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        try:
            response = await client.post(self.TOKEN_URL, data=data)
        except httpx.HTTPError as e:
            logger.warning("youtube token refresh failed: %s", e.__class__.__name__)
            raise TokenRefreshException(
                f"YouTube token refresh failed: {e.__class__.__name__}",
                platform=self.platform.value,
            ) from e

        if response.is_error:
            provider_error = self._provider_error(response)
            logger.warning(
                "youtube token refresh failed with HTTP %d: %s",
                response.status_code,
                response.text[:MAX_LOGGED_BODY],
            )
            if provider_error == "invalid_grant" or response.status_code in (401, 403):
                message = "YouTube access was revoked. Please reconnect YouTube."
            else:
                message = f"YouTube token refresh failed with HTTP {response.status_code}"
            raise TokenRefreshException(
                message,
                platform=self.platform.value,
                http_status=response.status_code,
                provider_error=provider_error,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenRefreshException(
                "YouTube token refresh returned an invalid response",
                platform=self.platform.value,
                http_status=response.status_code,
            ) from e

        if not payload.get("access_token"):
            raise TokenRefreshException(
                "YouTube token refresh returned no access_token",
                platform=self.platform.value,
            )

        return LongLivedToken(
            access_token=payload["access_token"],
            expires_in=payload.get("expires_in") or DEFAULT_TOKEN_LIFETIME,
            refresh_token=payload.get("refresh_token"),
        )

    # =========================================================================
    # Catalog
    # =========================================================================

    # Listen up - a channel's uploads live in a hidden "uploads" playlist. One extra call per
    # sync to find its id, then everything else is plain playlist paging.
    async def resolve_collection_id(
        self, account_external_id: str, access_token: str
    ) -> str:
        payload = await self._request_json(
            "GET",
            f"{self.API_BASE_URL}/channels",
            error_cls=RemoteFetchFailed,
            action="uploads playlist lookup",
            params={"part": "contentDetails", "id": account_external_id},
            headers=self._auth_headers(access_token),
        )

        items = payload.get("items") or []
        uploads = (
            items[0].get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
            if items
            else None
        )
        if not uploads:
            raise RemoteFetchFailed(
                f"No uploads playlist for channel {account_external_id}",
                platform=self.platform.value,
            )
        return str(uploads)

    async def list_items(
        self,
        collection_id: str,
        access_token: str,
        page_token: str | None = None,
    ) -> CatalogPage:
        params: dict[str, Any] = {
            "part": "snippet",
            "playlistId": collection_id,
            "maxResults": self.integration_settings.page_size,
        }
        if page_token:
            params["pageToken"] = page_token

        payload = await self._request_json(
            "GET",
            f"{self.API_BASE_URL}/playlistItems",
            error_cls=RemoteFetchFailed,
            action="playlist listing",
            params=params,
            headers=self._auth_headers(access_token),
        )

        items = []
        for entry in payload.get("items") or []:
            item = self._parse_playlist_item(entry)
            if item is not None:
                items.append(item)

        return CatalogPage(items=items, next_page_token=payload.get("nextPageToken"))

    # Hey future me - ONE call per 50 ids, never one per video! The quota cost of per-item
    # calls adds up fast on big channels.
    async def fetch_details(
        self, ids: list[str], access_token: str
    ) -> dict[str, MediaDetails]:
        details: dict[str, MediaDetails] = {}

        for start in range(0, len(ids), DETAIL_BATCH_SIZE):
            batch = ids[start : start + DETAIL_BATCH_SIZE]
            payload = await self._request_json(
                "GET",
                f"{self.API_BASE_URL}/videos",
                error_cls=RemoteFetchFailed,
                action="video details",
                params={"part": "contentDetails,statistics", "id": ",".join(batch)},
                headers=self._auth_headers(access_token),
            )

            for video in payload.get("items") or []:
                video_id = video.get("id")
                if not video_id:
                    raise RemoteFetchFailed(
                        "YouTube video details returned an item without an id",
                        platform=self.platform.value,
                    )
                statistics = video.get("statistics") or {}
                details[video_id] = MediaDetails(
                    duration_raw=(video.get("contentDetails") or {}).get(
                        "duration", "PT0S"
                    ),
                    view_count=_to_int(statistics.get("viewCount")),
                )

        logger.debug("Fetched details for %d/%d videos", len(details), len(ids))
        return details

    @staticmethod
    def _auth_headers(access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    @staticmethod
    def _provider_error(response: httpx.Response) -> str | None:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            return str(body["error"])
        return None

    def _parse_playlist_item(self, entry: dict[str, Any]) -> RemoteMediaItem | None:
        snippet = entry.get("snippet") or {}
        video_id = (snippet.get("resourceId") or {}).get("videoId")
        if not video_id:
            return None

        thumbnails = snippet.get("thumbnails") or {}
        thumbnail = next(
            (
                thumbnails[size]["url"]
                for size in ("high", "medium", "default")
                if thumbnails.get(size, {}).get("url")
            ),
            None,
        )

        return RemoteMediaItem(
            external_id=video_id,
            title=snippet.get("title") or "",
            description=snippet.get("description") or "",
            thumbnail_url=thumbnail,
            source_url=f"{self.WATCH_URL}{video_id}",
            published_at=parse_timestamp(snippet.get("publishedAt")),
        )


def _to_int(value: Any) -> int:
    # statistics counters arrive as strings ("12345")
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
