"""Route handlers for the macaroond HTTP server.

:class:`RootKeyService` holds everything a handler needs (the custodian,
the token signing key, the clock) instead of module-level state. Each
``handle_*`` method accepts parsed request data and returns a tuple of
(status_code, response_dict); the HTTP handler in app.py serializes the
result to JSON.

Access and SetPassword check the password carried in the request. Every
other handler first passes the request's bearer token through
:class:`~macaroond.middleware.auth.AuthGate`.
"""
from __future__ import annotations

import base64
import datetime
import logging
import os
from collections.abc import Callable

from pydantic import ValidationError

from macaroond.custody.custodian import MasterKeyCustodian
from macaroond.errors import InitialPasswordNeededError, MacaroondError, NotFoundError
from macaroond.middleware.auth import AuthGate
from macaroond.server.models import (
    AccessRequest,
    AccessResponse,
    ErrorResponse,
    FindRootKeyResponse,
    NewRootKeyResponse,
    SetPasswordRequest,
)
from macaroond.store.base import ROOT_KEY_ID, RootKeyRecord
from macaroond.token.access_token import GLOBAL_ACCESS, AccessToken

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 24 * 60 * 60
SIGNING_KEY_SIZE = 32

Response = tuple[int, dict[str, object]]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def error_response(exc: MacaroondError) -> Response:
    """Map a macaroond error to its status code and error body."""
    body = ErrorResponse(error=exc.code.capitalize(), code=exc.code, detail=str(exc))
    return exc.status, body.model_dump()


def _validation_error(exc: ValidationError) -> Response:
    body = ErrorResponse(error="Validation error", code="bad request", detail=str(exc))
    return 422, body.model_dump()


class RootKeyService:
    """The four root key operations plus the authorization gate.

    Parameters
    ----------
    custodian:
        Holder of the sealed master key.
    location:
        ``"<network> <address>"`` recorded in minted tokens so clients
        know where to send key requests.
    secret_key:
        Token signing key. A fresh random key is drawn when omitted, so
        tokens do not outlive the process.
    clock:
        Returns the current UTC time; used for minting and for expiry.
    token_ttl_seconds:
        Lifetime of minted access tokens.
    random_bytes:
        Source for the token signing key.
    """

    def __init__(
        self,
        custodian: MasterKeyCustodian,
        location: str = "",
        secret_key: bytes | None = None,
        clock: Callable[[], datetime.datetime] = _utcnow,
        token_ttl_seconds: int = TOKEN_TTL_SECONDS,
        random_bytes: Callable[[int], bytes] = os.urandom,
    ) -> None:
        if secret_key is None:
            secret_key = random_bytes(SIGNING_KEY_SIZE)
        self._custodian = custodian
        self.location = location
        self._secret_key = secret_key
        self._clock = clock
        self._token_ttl_seconds = token_ttl_seconds
        self._gate = AuthGate(secret_key, clock=clock)

    @property
    def custodian(self) -> MasterKeyCustodian:
        return self._custodian

    # ------------------------------------------------------------------
    # Bootstrap operations (password in the request)
    # ------------------------------------------------------------------

    def handle_access(self, body: dict[str, object]) -> Response:
        """Handle POST /macaroon.

        Exchanges a password for an access token valid for 24 hours.
        """
        try:
            request = AccessRequest.model_validate(body)
        except ValidationError as exc:
            return _validation_error(exc)

        try:
            if self._custodian.needs_password():
                raise InitialPasswordNeededError()
            self._custodian.check_password(request.password)
        except MacaroondError as exc:
            return error_response(exc)

        token = AccessToken.create_token(
            secret_key=self._secret_key,
            operations=[GLOBAL_ACCESS],
            location=self.location,
            ttl_seconds=self._token_ttl_seconds,
            now=self._clock(),
        )
        logger.info("issued access token %s", token.token_id)
        return 200, AccessResponse(macaroon=token.to_dict()).model_dump()

    def handle_set_password(self, body: dict[str, object]) -> Response:
        """Handle PUT /password."""
        try:
            request = SetPasswordRequest.model_validate(body)
        except ValidationError as exc:
            return _validation_error(exc)

        try:
            self._custodian.set_password(request.old_password, request.new_password)
        except MacaroondError as exc:
            return error_response(exc)
        return 200, {}

    # ------------------------------------------------------------------
    # Key operations (bearer token required)
    # ------------------------------------------------------------------

    def handle_new_root_key(self, authorization: str | None) -> Response:
        """Handle POST /key."""
        try:
            self._gate.authorize(authorization, GLOBAL_ACCESS)
            record = RootKeyRecord(id=ROOT_KEY_ID, key=self._custodian.get_master_key())
        except MacaroondError as exc:
            return error_response(exc)

        response = NewRootKeyResponse(id=_b64(record.id.encode("utf-8")), root_key=_b64(record.key))
        return 200, response.model_dump(by_alias=True)

    def handle_find_root_key(self, authorization: str | None, key_id: str) -> Response:
        """Handle GET /key/{id}."""
        try:
            self._gate.authorize(authorization, GLOBAL_ACCESS)
            if key_id != ROOT_KEY_ID:
                raise NotFoundError(key_id)
            key = self._custodian.get_master_key()
        except MacaroondError as exc:
            return error_response(exc)

        return 200, FindRootKeyResponse(root_key=_b64(key)).model_dump(by_alias=True)


__all__ = ["RootKeyService", "TOKEN_TTL_SECONDS", "error_response"]
