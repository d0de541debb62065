"""Fixtures for API tests: the real app, its lifespan and an ASGI client."""

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from artistlink.config import Settings
from artistlink.main import create_app

OWNER_HEADERS = {"X-Owner-Id": "user-1"}


@pytest.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    """App with its lifespan running (DB created, platform clients on app.state)."""
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as async_client:
        yield async_client


@pytest.fixture
def owner_headers() -> dict[str, str]:
    return dict(OWNER_HEADERS)
