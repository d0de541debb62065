"""Request logging middleware with correlation id propagation."""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from artistlink.infrastructure.observability.logging import (
    MASK,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# OAuth callbacks carry one-time codes, state tokens and the webhook verify token
REDACTED_QUERY_KEYS = frozenset(
    {"code", "state", "access_token", "hub.verify_token", "hub.challenge"}
)


def redact_query(request: Request) -> str:
    """Render the query string with secret-bearing parameters masked."""
    return "&".join(
        f"{key}={MASK if key in REDACTED_QUERY_KEYS else value}"
        for key, value in request.query_params.multi_items()
    )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


# Hey future me, this wraps the exception handlers too, so a 4xx produced by a handler is
# still logged here with its status and still gets the correlation header.
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request on arrival and on completion, and echo the correlation id."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        method, path = request.method, request.url.path

        logger.info(
            "→ %s %s",
            method,
            path,
            extra={
                "method": method,
                "path": path,
                "query_params": redact_query(request),
                "client_ip": request.client.host if request.client else "unknown",
            },
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Request failed: %s %s",
                method,
                path,
                extra={
                    "method": method,
                    "path": path,
                    "duration_ms": _elapsed_ms(started),
                    "error_type": type(e).__name__,
                },
            )
            raise

        duration_ms = _elapsed_ms(started)
        logger.info(
            "%s %s %s → %d (%dms)",
            "✓" if response.status_code < 400 else "✗",
            method,
            path,
            response.status_code,
            duration_ms,
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
