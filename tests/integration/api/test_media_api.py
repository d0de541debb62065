"""API tests for the catalog read endpoint."""

import uuid
from datetime import UTC, datetime

from fastapi import FastAPI
from httpx import AsyncClient

from artistlink.domain.entities import ApprovalState, MediaItem, Platform
from artistlink.infrastructure.persistence import MediaItemRepository

MEDIA_URL = "/api/artists/media"


async def _seed(app: FastAPI) -> None:
    items = [
        MediaItem(
            id=str(uuid.uuid4()),
            external_id="long",
            owner_id="user-1",
            title="Full show",
            source_url="https://www.youtube.com/watch?v=long",
            source_platform=Platform.YOUTUBE,
            duration_seconds=3725,
            duration_formatted="1:02:05",
            published_at=datetime(2024, 1, 1, tzinfo=UTC),
        ),
        MediaItem(
            id=str(uuid.uuid4()),
            external_id="reel",
            owner_id="user-1",
            title="Teaser",
            source_url="https://www.instagram.com/reel/reel/",
            source_platform=Platform.INSTAGRAM,
            is_short=True,
            approval_state=ApprovalState.PENDING,
            published_at=datetime(2024, 2, 1, tzinfo=UTC),
        ),
        MediaItem(
            id=str(uuid.uuid4()),
            external_id="foreign",
            owner_id="user-2",
            title="Someone else",
            source_url="https://www.youtube.com/watch?v=foreign",
            source_platform=Platform.YOUTUBE,
        ),
    ]
    async with app.state.db.session_scope() as session:
        repo = MediaItemRepository(session)
        for item in items:
            await repo.upsert(item)


class TestListMedia:
    """Test GET /artists/media."""

    async def test_lists_own_media_newest_first(
        self, app: FastAPI, client: AsyncClient, owner_headers: dict[str, str]
    ) -> None:
        await _seed(app)

        response = await client.get(MEDIA_URL, headers=owner_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert [item["externalId"] for item in data] == ["reel", "long"]
        assert data[0]["sourcePlatform"] == "instagram"
        assert data[0]["approvalState"] == "pending"
        assert data[1]["durationFormatted"] == "1:02:05"

    async def test_shorts_filter(
        self, app: FastAPI, client: AsyncClient, owner_headers: dict[str, str]
    ) -> None:
        await _seed(app)

        response = await client.get(MEDIA_URL, params={"type": "shorts"}, headers=owner_headers)

        assert [item["externalId"] for item in response.json()["data"]] == ["reel"]

    async def test_platform_filter(
        self, app: FastAPI, client: AsyncClient, owner_headers: dict[str, str]
    ) -> None:
        await _seed(app)

        response = await client.get(
            MEDIA_URL, params={"platform": "youtube"}, headers=owner_headers
        )

        assert [item["externalId"] for item in response.json()["data"]] == ["long"]

    async def test_unknown_type_is_422(
        self, client: AsyncClient, owner_headers: dict[str, str]
    ) -> None:
        response = await client.get(MEDIA_URL, params={"type": "podcasts"}, headers=owner_headers)

        assert response.status_code == 422
        assert response.json()["success"] is False

    async def test_requires_owner(self, client: AsyncClient) -> None:
        response = await client.get(MEDIA_URL)

        assert response.status_code == 401
