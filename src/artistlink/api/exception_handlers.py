"""Global exception handlers.

Every error leaves the API in the envelope the integration routes already use:
{"success": false, "message": "..."}.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from artistlink.domain.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DomainException,
    EntityNotFoundException,
    ExternalServiceError,
    NotConnectedError,
)

logger = logging.getLogger(__name__)

# Most specific first; Starlette picks the handler by walking the exception's MRO,
# DomainException is the catch-all.
DOMAIN_STATUS: list[tuple[type[DomainException], int, int]] = [
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED, logging.WARNING),
    (NotConnectedError, status.HTTP_400_BAD_REQUEST, logging.INFO),
    (EntityNotFoundException, status.HTTP_404_NOT_FOUND, logging.INFO),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY, logging.ERROR),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE, logging.ERROR),
    (DomainException, status.HTTP_400_BAD_REQUEST, logging.WARNING),
]


def error_response(status_code: int, message: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def _public_message(exc: DomainException) -> str:
    if isinstance(exc, EntityNotFoundException):
        return f"{exc.entity_type} not found"
    return exc.message


def _domain_handler(status_code: int, level: int) -> Any:
    async def handle(request: Request, exc: DomainException) -> JSONResponse:
        logger.log(
            level,
            "%s at %s: %s",
            type(exc).__name__,
            request.url.path,
            exc.message,
            extra={
                "path": request.url.path,
                "status_code": status_code,
                "platform": getattr(exc, "platform", None),
            },
        )
        return error_response(status_code, _public_message(exc))

    return handle


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    logger.warning(
        "Request validation error at %s: %s",
        request.url.path,
        errors,
        extra={"path": request.url.path},
    )
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, errors)


async def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "HTTP %d at %s: %s",
        exc.status_code,
        request.url.path,
        exc.detail,
        extra={"path": request.url.path, "status_code": exc.status_code},
    )
    return error_response(exc.status_code, exc.detail)


# Hey future me, call this from create_app BEFORE the first request. Services only raise
# domain exceptions; without these handlers a NotConnectedError would surface as a 500.
def register_exception_handlers(app: FastAPI) -> None:
    """Map domain, validation and HTTP exceptions to JSON error envelopes."""
    for exc_class, status_code, level in DOMAIN_STATUS:
        app.add_exception_handler(exc_class, _domain_handler(status_code, level))
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
