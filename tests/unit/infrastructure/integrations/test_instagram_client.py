"""Tests for the Instagram client (HTTP mocked with pytest-httpx)."""

import re
from urllib.parse import parse_qs, urlsplit

import pytest
from pytest_httpx import HTTPXMock

from artistlink.config import InstagramSettings
from artistlink.domain.entities import ApprovalState, ShortLivedToken
from artistlink.domain.exceptions import (
    LongTokenExchangeFailed,
    ProfileFetchFailed,
    RemoteFetchFailed,
    TokenExchangeFailed,
    TokenRefreshException,
)
from artistlink.infrastructure.integrations import InstagramClient

SHORT_TOKEN_URL = "https://api.instagram.com/oauth/access_token"
LONG_TOKEN_URL = re.compile(r"https://graph\.instagram\.com/access_token\?.*")
EXTEND_URL = re.compile(r"https://graph\.instagram\.com/refresh_access_token\?.*")
ME_URL = re.compile(r"https://graph\.instagram\.com/me\?.*")
MEDIA_URL = re.compile(r"https://graph\.instagram\.com/17841400000000000/media\?.*")


def _media(media_id: str, media_type: str = "REEL", caption: str | None = "My reel") -> dict:
    return {
        "id": media_id,
        "caption": caption,
        "media_type": media_type,
        "media_url": f"https://cdn.instagram.com/{media_id}.mp4",
        "thumbnail_url": f"https://cdn.instagram.com/{media_id}.jpg",
        "permalink": f"https://www.instagram.com/reel/{media_id}/",
        "timestamp": "2024-06-01T10:00:00+0000",
    }


class TestAuthorizationUrl:
    """Test consent URL building."""

    async def test_comma_separated_business_scopes(
        self, instagram_client: InstagramClient
    ) -> None:
        url = instagram_client.build_authorization_url("STATE123")

        params = parse_qs(urlsplit(url).query)
        assert url.startswith(InstagramClient.AUTHORIZE_URL)
        assert params["response_type"] == ["code"]
        assert params["state"] == ["STATE123"]
        scopes = params["scope"][0].split(",")
        assert "instagram_business_basic" in scopes
        assert len(scopes) == 5

    def test_new_reels_need_review(self) -> None:
        assert InstagramClient.approval_state is ApprovalState.PENDING


class TestWebhookVerification:
    """Test the hub.challenge handshake check."""

    async def test_matching_token(self, instagram_client: InstagramClient) -> None:
        assert instagram_client.verify_webhook("subscribe", "verify-me") is True

    async def test_wrong_token(self, instagram_client: InstagramClient) -> None:
        assert instagram_client.verify_webhook("subscribe", "guess") is False

    async def test_wrong_mode(self, instagram_client: InstagramClient) -> None:
        assert instagram_client.verify_webhook("unsubscribe", "verify-me") is False

    def test_unconfigured_token_never_matches(self) -> None:
        client = InstagramClient(InstagramSettings(verify_token=""))
        assert client.verify_webhook("subscribe", "") is False


class TestTokenExchange:
    """Test the three connect stages."""

    async def test_exchange_code_unwraps_data_array(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            method="POST",
            url=SHORT_TOKEN_URL,
            json={"data": [{"access_token": "IGQshort", "user_id": 17841400000000000}]},
        )

        token = await instagram_client.exchange_code("auth-code")

        assert token.access_token == "IGQshort"
        assert token.user_id == "17841400000000000"

    async def test_exchange_code_flat_payload(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            method="POST", url=SHORT_TOKEN_URL, json={"access_token": "IGQshort", "user_id": "1"}
        )

        token = await instagram_client.exchange_code("auth-code")

        assert token.access_token == "IGQshort"

    async def test_exchange_code_rejected(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            method="POST",
            url=SHORT_TOKEN_URL,
            status_code=400,
            json={"error_type": "OAuthException", "error_message": "code expired"},
        )

        with pytest.raises(TokenExchangeFailed):
            await instagram_client.exchange_code("auth-code")

    async def test_long_lived_exchange(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=LONG_TOKEN_URL,
            json={"access_token": "IGQlong", "token_type": "bearer", "expires_in": 5183944},
        )

        token = await instagram_client.exchange_for_long_lived(
            ShortLivedToken(access_token="IGQshort")
        )

        assert token.access_token == "IGQlong"
        assert token.expires_in == 5183944
        assert token.refresh_token is None
        request = httpx_mock.get_request()
        assert request is not None
        assert request.url.params["grant_type"] == "ig_exchange_token"
        assert request.url.params["client_secret"] == "ig-client-secret"

    async def test_long_lived_exchange_failure(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=LONG_TOKEN_URL, status_code=400, json={})

        with pytest.raises(LongTokenExchangeFailed):
            await instagram_client.exchange_for_long_lived(ShortLivedToken("IGQshort"))

    async def test_fetch_profile(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=ME_URL, json={"id": "17841400000000000", "username": "artist.official"}
        )

        profile = await instagram_client.fetch_profile("IGQlong")

        assert profile.external_id == "17841400000000000"
        assert profile.display_name == "artist.official"

    async def test_fetch_profile_failure(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=ME_URL, text="<html>oops</html>")

        with pytest.raises(ProfileFetchFailed):
            await instagram_client.fetch_profile("IGQlong")

    async def test_extend_long_lived_token(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=EXTEND_URL, json={"access_token": "IGQextended", "expires_in": 5184000}
        )

        token = await instagram_client.extend_long_lived_token("IGQlong")

        assert token.access_token == "IGQextended"
        request = httpx_mock.get_request()
        assert request is not None
        assert request.url.params["grant_type"] == "ig_refresh_token"

    async def test_extend_failure(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=EXTEND_URL, status_code=400, json={})

        with pytest.raises(TokenRefreshException):
            await instagram_client.extend_long_lived_token("IGQlong")


class TestCatalog:
    """Test the media edge listing."""

    async def test_collection_is_account_id(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        collection = await instagram_client.resolve_collection_id("17841400000000000", "t")

        assert collection == "17841400000000000"
        assert httpx_mock.get_requests() == []

    async def test_only_video_types_are_listed(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=MEDIA_URL,
            json={
                "data": [
                    _media("1", "REEL"),
                    _media("2", "IMAGE"),
                    _media("3", "VIDEO", caption=None),
                    _media("4", "CAROUSEL_ALBUM"),
                ]
            },
        )

        page = await instagram_client.list_items("17841400000000000", "IGQlong")

        assert [item.external_id for item in page.items] == ["1", "3"]
        assert page.items[0].title == "My reel"
        assert page.items[0].source_url == "https://www.instagram.com/reel/1/"
        assert page.items[0].published_at is not None
        assert page.items[1].title == "Instagram Reel"
        assert page.next_page_token is None

    async def test_long_caption_truncated_for_title(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        caption = "x" * 250
        httpx_mock.add_response(url=MEDIA_URL, json={"data": [_media("1", caption=caption)]})

        page = await instagram_client.list_items("17841400000000000", "IGQlong")

        assert len(page.items[0].title) == 100
        assert page.items[0].description == caption

    async def test_cursor_paging(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        """Test the after cursor is followed only while a next link exists."""
        httpx_mock.add_response(
            url=MEDIA_URL,
            json={
                "data": [_media("1")],
                "paging": {
                    "cursors": {"after": "CURSOR1"},
                    "next": "https://graph.instagram.com/...&after=CURSOR1",
                },
            },
        )
        httpx_mock.add_response(
            url=MEDIA_URL,
            json={"data": [_media("2")], "paging": {"cursors": {"after": "CURSOR2"}}},
        )

        items = await instagram_client.list_all_items("17841400000000000", "IGQlong")

        assert [item.external_id for item in items] == ["1", "2"]
        first, second = httpx_mock.get_requests()
        assert "after" not in first.url.params
        assert second.url.params["after"] == "CURSOR1"

    async def test_listing_failure(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=MEDIA_URL, status_code=500)

        with pytest.raises(RemoteFetchFailed):
            await instagram_client.list_items("17841400000000000", "IGQlong")

    async def test_no_detail_calls(
        self, instagram_client: InstagramClient, httpx_mock: HTTPXMock
    ) -> None:
        assert await instagram_client.fetch_details(["1", "2"], "IGQlong") == {}
        assert httpx_mock.get_requests() == []
