"""Application services."""

from .integration_auth_service import CallbackOutcome, IntegrationAuthService
from .integration_status_service import IntegrationStatusProjector
from .media_sync_service import MediaSyncService
from .reconciliation_service import ReconciliationEngine, log_catalog_changed
from .state_token_codec import StateTokenCodec
from .token_lifecycle_service import (
    LongLivedCredential,
    RefreshTokenCredential,
    TokenLifecycleManager,
)

__all__ = [
    "CallbackOutcome",
    "IntegrationAuthService",
    "IntegrationStatusProjector",
    "LongLivedCredential",
    "MediaSyncService",
    "ReconciliationEngine",
    "RefreshTokenCredential",
    "StateTokenCodec",
    "TokenLifecycleManager",
    "log_catalog_changed",
]
