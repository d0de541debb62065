"""Platform integration endpoints: connect, callback, disconnect, status, sync."""

# Hey future me - these routes are THIN on purpose. All OAuth logic lives in
# IntegrationAuthService, sync logic in MediaSyncService. The callback is the odd one: it's
# hit by the browser coming back from Google/Instagram (no X-Owner-Id!), and answers with a
# redirect into the frontend, never with JSON.

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from artistlink.api.dependencies import (
    get_auth_service,
    get_current_owner_id,
    get_platform,
    get_status_projector,
    get_sync_service,
)
from artistlink.api.schemas import (
    AuthUrlResponse,
    IntegrationStatusData,
    IntegrationStatusResponse,
    MessageResponse,
    SyncResultResponse,
)
from artistlink.application.services import (
    IntegrationAuthService,
    IntegrationStatusProjector,
    MediaSyncService,
)
from artistlink.domain.entities import Platform

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status")
async def get_integration_status(
    owner_id: str = Depends(get_current_owner_id),
    projector: IntegrationStatusProjector = Depends(get_status_projector),
) -> IntegrationStatusResponse:
    """Connection state of every platform plus catalog counts (read-only)."""
    status = await projector.get_status(owner_id)
    return IntegrationStatusResponse(data=IntegrationStatusData.from_status(status))


@router.get("/{platform}/auth-url")
async def get_auth_url(
    platform: Platform = Depends(get_platform),
    return_url: str | None = Query(default=None, alias="returnUrl"),
    owner_id: str = Depends(get_current_owner_id),
    auth_service: IntegrationAuthService = Depends(get_auth_service),
) -> AuthUrlResponse:
    """Get the provider consent URL.

    Raises 404 when the caller has no artist profile and 503 when the
    platform's OAuth client is not configured.
    """
    url = await auth_service.get_authorization_url(owner_id, platform, return_url)
    return AuthUrlResponse(auth_url=url)


# Yo, this one is special: NO owner header (the state token says who's connecting),
# 302 redirect on every OAuth outcome, plain text only for the Instagram webhook handshake.
@router.get("/{platform}/callback", response_model=None)
async def oauth_callback(
    request: Request,
    platform: Platform = Depends(get_platform),
    auth_service: IntegrationAuthService = Depends(get_auth_service),
) -> Response:
    """OAuth redirect target (and Instagram webhook verification endpoint)."""
    outcome = await auth_service.handle_callback(platform, dict(request.query_params))
    if outcome.redirect_url is not None:
        return RedirectResponse(url=outcome.redirect_url, status_code=outcome.status_code)
    return PlainTextResponse(content=outcome.body or "", status_code=outcome.status_code)


@router.post("/{platform}/disconnect")
async def disconnect(
    platform: Platform = Depends(get_platform),
    owner_id: str = Depends(get_current_owner_id),
    auth_service: IntegrationAuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Unlink the platform account. Synced media stay in the catalog."""
    await auth_service.disconnect(owner_id, platform)
    return MessageResponse(
        success=True, message=f"{platform.label} disconnected successfully"
    )


@router.post("/{platform}/sync")
async def sync_platform(
    platform: Platform = Depends(get_platform),
    owner_id: str = Depends(get_current_owner_id),
    sync_service: MediaSyncService = Depends(get_sync_service),
) -> SyncResultResponse:
    """Pull the remote catalog into the local media table.

    Integration failures come back as success=false with a message (HTTP 200),
    the UI shows them as a toast.
    """
    result = await sync_service.sync(owner_id, platform)
    return SyncResultResponse.from_result(result)
