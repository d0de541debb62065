"""Shared HTTP plumbing for the platform clients."""

import logging
import re
from datetime import datetime
from typing import Any, cast

import httpx

from artistlink.config import IntegrationSettings, PlatformSettings
from artistlink.domain.entities import Platform
from artistlink.domain.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

# Provider error bodies are logged (never returned) and clipped to keep logs readable
MAX_LOGGED_BODY = 500

# Graph API sends "+0000" offsets, fromisoformat wants "+00:00"
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


def parse_timestamp(raw: str | None) -> datetime | None:
    """Parse a provider ISO-8601 timestamp ("...Z" or "...+0000"), None if unusable."""
    if not raw:
        return None
    try:
        return datetime.fromisoformat(
            _COMPACT_OFFSET.sub(r"\1:\2", raw.replace("Z", "+00:00"))
        )
    except ValueError:
        logger.debug("Unparseable timestamp from provider: %r", raw)
        return None


class PlatformHttpClient:
    """Base class holding settings, the lazy HTTP client and error translation."""

    platform: Platform

    # Hey future me, this init is deceptively simple - we DON'T create the HTTP client here
    # because we need to be async-friendly. The actual client gets lazy-loaded in _get_client().
    # Tests (and the app lifespan) may hand in their own AsyncClient instead.
    def __init__(
        self,
        settings: PlatformSettings,
        integration_settings: IntegrationSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.integration_settings = integration_settings or IntegrationSettings()
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.integration_settings.http_timeout_seconds
            )
            self._owns_client = True
        return self._client

    # Hey, this close() is IMPORTANT - if you don't call it, you'll leak connections.
    # The app lifespan closes every client on shutdown. Injected clients belong to the caller.
    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        error_cls: type[ExternalServiceError],
        action: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Send a request and return the JSON body, raising error_cls on any failure.

        Timeouts, transport errors, non-2xx statuses and non-JSON bodies all map to
        error_cls. The provider body is logged server-side only.
        """
        client = await self._get_client()
        platform = self.platform.value

        try:
            response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(
                "%s %s failed: %s: %s", platform, action, e.__class__.__name__, e
            )
            raise error_cls(
                f"{self.platform.label} {action} failed: {e.__class__.__name__}",
                platform=platform,
            ) from e

        if response.is_error:
            logger.warning(
                "%s %s failed with HTTP %d: %s",
                platform,
                action,
                response.status_code,
                response.text[:MAX_LOGGED_BODY],
            )
            raise error_cls(
                f"{self.platform.label} {action} failed with HTTP {response.status_code}",
                platform=platform,
                http_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning("%s %s returned a non-JSON body", platform, action)
            raise error_cls(
                f"{self.platform.label} {action} returned an invalid response",
                platform=platform,
                http_status=response.status_code,
            ) from e

        if not isinstance(payload, dict):
            raise error_cls(
                f"{self.platform.label} {action} returned an unexpected payload",
                platform=platform,
                http_status=response.status_code,
            )
        return cast(dict[str, Any], payload)
