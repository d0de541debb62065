"""OAuth state token encoding.

Hey future me - the state parameter is how the callback knows WHO started the OAuth dance.
The callback arrives without our session (it's a top-level redirect from Google/Instagram),
so everything we need afterwards travels inside the state:

    base64(JSON{"resourceId", "ownerId", "issuedAt", "returnUrl"?})

issuedAt is epoch MILLISECONDS (the frontend's Date.now() format). The token is NOT signed -
anyone can forge one, but it only tells us which profile to attach the account to, and the
provider code that comes with it still has to be valid. Signing is a known follow-up.
"""

import base64
import binascii
import json
import logging
import math
import time
from typing import Any

from artistlink.domain.entities import StateToken
from artistlink.domain.exceptions import ExpiredStateError, InvalidStateError

logger = logging.getLogger(__name__)

DEFAULT_STATE_TTL_SECONDS = 15 * 60


def _now_ms() -> int:
    return int(time.time() * 1000)


class StateTokenCodec:
    """Encode, decode and expire OAuth state tokens."""

    def __init__(self, ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS) -> None:
        self.ttl_seconds = ttl_seconds

    def encode(self, payload: StateToken) -> str:
        """Serialize a state payload to its base64 wire form."""
        data: dict[str, Any] = {
            "resourceId": payload.resource_id,
            "ownerId": payload.owner_id,
            "issuedAt": payload.issued_at,
        }
        if payload.return_url is not None:
            data["returnUrl"] = payload.return_url
        raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    # Yo, EVERY malformed input ends up as InvalidStateError - bad base64, bad UTF-8, bad JSON,
    # a JSON array instead of an object, missing keys, wrong types. The callback maps that to
    # error=invalid_state. Never let a KeyError escape from here!
    def decode(self, token: str) -> StateToken:
        """
        Parse a state token.

        Args:
            token: base64 state from the callback query

        Returns:
            Decoded StateToken

        Raises:
            InvalidStateError: If the token is not a well-formed state payload
        """
        try:
            raw = base64.b64decode(token.encode("ascii"), validate=True)
            data = json.loads(raw.decode("utf-8"))
        except (ValueError, binascii.Error) as e:
            # UnicodeError and JSONDecodeError are ValueError subclasses
            raise InvalidStateError("State token is not valid base64 JSON") from e

        if not isinstance(data, dict):
            raise InvalidStateError("State token payload is not an object")

        resource_id = data.get("resourceId")
        owner_id = data.get("ownerId")
        issued_at = data.get("issuedAt")
        return_url = data.get("returnUrl")

        if not isinstance(resource_id, str) or not resource_id:
            raise InvalidStateError("State token has no resourceId")
        if not isinstance(owner_id, str) or not owner_id:
            raise InvalidStateError("State token has no ownerId")
        # bool is an int subclass - {"issuedAt": true} is not a timestamp
        if isinstance(issued_at, bool) or not isinstance(issued_at, int | float):
            raise InvalidStateError("State token has no issuedAt timestamp")
        # json.loads accepts NaN, Infinity and 1e400
        if not math.isfinite(issued_at):
            raise InvalidStateError("State token issuedAt is not a finite timestamp")
        if return_url is not None and not isinstance(return_url, str):
            raise InvalidStateError("State token returnUrl is not a string")

        return StateToken(
            resource_id=resource_id,
            owner_id=owner_id,
            issued_at=int(issued_at),
            return_url=return_url or None,
        )

    def validate(self, payload: StateToken, now: int | None = None) -> None:
        """
        Reject state tokens older than the TTL.

        Args:
            payload: Decoded state
            now: Current time in epoch milliseconds (defaults to the clock)

        Raises:
            ExpiredStateError: If now - issued_at exceeds the TTL
        """
        current = _now_ms() if now is None else now
        age_ms = current - payload.issued_at
        if age_ms > self.ttl_seconds * 1000:
            logger.info(
                "Rejected OAuth state for resource %s: %ds old (ttl %ds)",
                payload.resource_id,
                age_ms // 1000,
                self.ttl_seconds,
            )
            raise ExpiredStateError("OAuth state has expired")

    def issue(
        self, resource_id: str, owner_id: str, return_url: str | None = None
    ) -> str:
        """Build a state stamped with the current time and encode it."""
        return self.encode(
            StateToken(
                resource_id=resource_id,
                owner_id=owner_id,
                issued_at=_now_ms(),
                return_url=return_url,
            )
        )
