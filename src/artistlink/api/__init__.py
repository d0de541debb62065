"""API module for ArtistLink.

The entry point is `api_router` from routers/, mounted under /api in main.py.

- routers/: integration + media endpoints
- schemas.py: camelCase response models
- dependencies.py: session, caller identity, service wiring
- exception_handlers.py: domain exception -> HTTP status mapping
"""

from artistlink.api.routers import api_router, integrations, media

__all__ = ["api_router", "integrations", "media"]
