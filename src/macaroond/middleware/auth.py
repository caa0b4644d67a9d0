"""AuthGate — bearer-token authorization for key operations.

Password login happens once per session through the unauthenticated Access
operation. Every other request must present the resulting token set in an
``Authorization: Bearer <token set>`` header. The gate accepts the request
when any token in the set carries a valid signature, has not expired at the
gate's clock, and lists the required operation.
"""
from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from dataclasses import dataclass

from macaroond.errors import InvalidTokenError, UnauthorizedError
from macaroond.token.access_token import Operation
from macaroond.token.encoding import parse_token_set

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass
class AuthResult:
    """Result of an authorization attempt.

    Parameters
    ----------
    success:
        Whether authorization succeeded.
    token_id:
        ID of the token that granted access (empty string if failed).
    reason:
        Human-readable explanation of a failure (empty on success).
    """

    success: bool
    token_id: str = ""
    reason: str = ""


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class AuthGate:
    """Checks bearer token sets against the daemon's signing key.

    Parameters
    ----------
    secret_key:
        Key the daemon signs access tokens with.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        secret_key: bytes,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        self._secret_key = secret_key
        self._clock = clock

    def authenticate(self, authorization: str | None, operation: Operation) -> AuthResult:
        """Evaluate an ``Authorization`` header value for *operation*."""
        if not authorization:
            return AuthResult(success=False, reason="no access token supplied")
        if not authorization.startswith(BEARER_PREFIX):
            return AuthResult(success=False, reason="authorization is not a bearer token")

        try:
            tokens = parse_token_set(authorization[len(BEARER_PREFIX):])
        except InvalidTokenError as exc:
            return AuthResult(success=False, reason=str(exc))

        now = self._clock()
        reason = "no token authorizes the operation"
        for token in tokens:
            if token.is_expired(now):
                reason = "access token has expired"
                continue
            if not token.verify_token(self._secret_key, now):
                reason = "access token signature is invalid"
                continue
            if not token.allows(operation):
                reason = f"access token does not allow {operation}"
                continue
            return AuthResult(success=True, token_id=token.token_id)
        return AuthResult(success=False, reason=reason)

    def authorize(self, authorization: str | None, operation: Operation) -> str:
        """Like :meth:`authenticate` but raise on failure.

        Returns
        -------
        str
            ID of the token that granted access.

        Raises
        ------
        UnauthorizedError
            If no presented token authorizes *operation*.
        """
        result = self.authenticate(authorization, operation)
        if not result.success:
            logger.debug("rejected request: %s", result.reason)
            raise UnauthorizedError(result.reason)
        return result.token_id


__all__ = ["AuthGate", "AuthResult", "BEARER_PREFIX"]
