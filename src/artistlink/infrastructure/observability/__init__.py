"""Observability infrastructure for structured logging."""

from artistlink.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)
from artistlink.infrastructure.observability.middleware import (
    RequestLoggingMiddleware,
)

__all__ = [
    "RequestLoggingMiddleware",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
