"""API router initialization."""

# Hey future me, this is the MAIN API router aggregator! main.py mounts it under /api, so the
# integration endpoints end up at /api/artists/integrations/... and the catalog read at
# /api/artists/media. The tags group endpoints in the OpenAPI docs.

from fastapi import APIRouter

from artistlink.api.routers import integrations, media

api_router = APIRouter()

api_router.include_router(
    integrations.router, prefix="/artists/integrations", tags=["Integrations"]
)
api_router.include_router(media.router, prefix="/artists", tags=["Media"])

__all__ = ["api_router", "integrations", "media"]
