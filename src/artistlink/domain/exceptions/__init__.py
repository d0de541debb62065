"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Don't raise this directly - always raise a specific subclass so callers
    # (callback handler, sync trigger, exception handlers) can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConfigurationError(DomainException):
    """Application misconfiguration.

    Raised when required configuration is missing or invalid.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("YOUTUBE_CLIENT_ID is not configured")
    """

    pass


class AuthenticationError(DomainException):
    """No caller session reached the service.

    HTTP Status: 401
    """

    pass


class NotConnectedError(DomainException):
    """The owner has no linked account for the requested platform.

    HTTP Status: 400
    """

    def __init__(self, platform: str, message: str | None = None) -> None:
        super().__init__(message or f"{platform} is not connected")
        self.platform = platform


# =============================================================================
# State token
# =============================================================================


class InvalidStateError(DomainException):
    """The OAuth state parameter could not be decoded."""

    error_code = "invalid_state"


class ExpiredStateError(DomainException):
    """The OAuth state parameter is older than its time-to-live."""

    error_code = "expired"


# =============================================================================
# Token exchange pipeline
# Hey future me - each stage has its OWN exception so the callback handler can map
# it straight to the redirect error code. error_code IS the wire vocabulary, don't
# rename these strings without updating the frontend!
# =============================================================================


class ExternalServiceError(DomainException):
    """External platform (YouTube, Instagram) returned an error.

    HTTP Status: 502 (Bad Gateway)
    """

    error_code = "callback_failed"

    def __init__(
        self,
        message: str,
        platform: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.platform = platform
        self.http_status = http_status


class TokenExchangeFailed(ExternalServiceError):
    """Stage 1: authorization code could not be exchanged for a token."""

    error_code = "token_exchange_failed"


class LongTokenExchangeFailed(ExternalServiceError):
    """Stage 2: short-lived token could not be upgraded to a long-lived one."""

    error_code = "long_token_failed"


class ProfileFetchFailed(ExternalServiceError):
    """Stage 3: the external account profile could not be read."""

    error_code = "user_fetch_failed"


class RemoteFetchFailed(ExternalServiceError):
    """A catalog call (collection lookup, listing, detail batch) failed."""

    error_code = "remote_fetch_failed"


class TokenRefreshException(ExternalServiceError):
    """Raised when a credential refresh fails and re-authentication is required.

    Common causes:
    - User revoked app access on the platform
    - Refresh token expired or was rotated elsewhere
    - Long-lived token already expired (not refreshable)
    """

    error_code = "refresh_failed"

    def __init__(
        self,
        message: str = "Token refresh failed. Please reconnect the account.",
        platform: str | None = None,
        http_status: int | None = None,
        provider_error: str | None = None,
    ) -> None:
        super().__init__(message, platform=platform, http_status=http_status)
        self.provider_error = provider_error  # e.g., "invalid_grant"


__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "DomainException",
    "EntityNotFoundException",
    "ExpiredStateError",
    "ExternalServiceError",
    "InvalidStateError",
    "LongTokenExchangeFailed",
    "NotConnectedError",
    "ProfileFetchFailed",
    "RemoteFetchFailed",
    "TokenExchangeFailed",
    "TokenRefreshException",
]
