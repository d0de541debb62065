"""Catalog read endpoint."""

from fastapi import APIRouter, Depends, Query

from artistlink.api.dependencies import get_current_owner_id, get_sync_service
from artistlink.api.schemas import MediaItemResponse, MediaListResponse
from artistlink.application.services import MediaSyncService
from artistlink.domain.entities import MediaKind, Platform

router = APIRouter()


@router.get("/media")
async def list_media(
    kind: MediaKind = Query(default=MediaKind.ALL, alias="type"),
    platform: Platform | None = Query(default=None),
    owner_id: str = Depends(get_current_owner_id),
    sync_service: MediaSyncService = Depends(get_sync_service),
) -> MediaListResponse:
    """List the caller's synced media, newest published first."""
    items = await sync_service.list_media(owner_id, kind=kind, platform=platform)
    return MediaListResponse(data=[MediaItemResponse.from_entity(item) for item in items])
