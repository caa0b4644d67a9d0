"""MacaroondClient — thin HTTP client for the root key daemon.

Speaks to the daemon over TCP or a unix socket using httpx. Error bodies
are turned back into the matching :mod:`macaroond.errors` exceptions so
callers can tell "initial password needed" from a plain wrong password.
"""
from __future__ import annotations

import base64
import binascii
import logging
import urllib.parse

import httpx

from macaroond.errors import MacaroondError, NotFoundError, error_from_code
from macaroond.store.base import RootKeyRecord
from macaroond.token.access_token import AccessToken

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class MacaroondClient:
    """Client for the four daemon operations.

    Parameters
    ----------
    network:
        ``"tcp"`` or ``"unix"``.
    address:
        ``host:port`` for tcp, a socket path for unix.
    access_token:
        Encoded token set sent as a bearer token. Without one, only
        :meth:`access` and :meth:`set_password` will succeed.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        network: str,
        address: str,
        access_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if network == "tcp":
            base_url = f"http://{address}"
        elif network == "unix":
            # The host only shows up in error messages.
            base_url = "http://localsocket"
            if transport is None:
                transport = httpx.HTTPTransport(uds=address)
        else:
            raise ValueError(f"unsupported network {network!r} (want tcp or unix)")
        self.network = network
        self.address = address
        self.access_token = access_token
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "MacaroondClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def access(self, password: str) -> AccessToken:
        """Exchange *password* for an access token.

        Raises
        ------
        InitialPasswordNeededError
            If the daemon has no password yet.
        UnauthorizedError
            If *password* is wrong.
        """
        data = self._request("POST", "/macaroon", json={"password": password})
        return AccessToken.from_dict(data["macaroon"])  # type: ignore[arg-type]

    def set_password(self, old_password: str, new_password: str) -> None:
        """Set the initial password (with an empty *old_password*) or change it."""
        self._request(
            "PUT",
            "/password",
            json={"oldPassword": old_password, "newPassword": new_password},
        )

    def new_root_key(self) -> RootKeyRecord:
        """Fetch the current root key record."""
        data = self._request("POST", "/key", json={})
        return RootKeyRecord(
            id=_decode(data, "id").decode("utf-8"),
            key=_decode(data, "rootKey"),
        )

    def find_root_key(self, key_id: str) -> bytes:
        """Fetch the root key stored under *key_id*.

        Raises
        ------
        NotFoundError
            If the daemon has no key with that id.
        """
        try:
            data = self._request("GET", f"/key/{urllib.parse.quote(key_id, safe='')}")
        except _RemoteNotFound:
            raise NotFoundError(key_id) from None
        return _decode(data, "rootKey")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, json: dict[str, object] | None = None) -> dict[str, object]:
        headers = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        try:
            response = self._http.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise MacaroondError(
                f"cannot reach macaroond at {self.network} {self.address}: {exc}"
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise MacaroondError(
                f"unexpected response from macaroond ({response.status_code})"
            ) from exc

        if response.is_success:
            return data if isinstance(data, dict) else {}

        code = str(data.get("code", "")) if isinstance(data, dict) else ""
        detail = str(data.get("detail", "")) if isinstance(data, dict) else ""
        logger.debug("%s %s failed: %s %s", method, path, response.status_code, code)
        if code == NotFoundError.code:
            raise _RemoteNotFound(detail)
        raise error_from_code(code, detail or f"{method} {path} failed with {response.status_code}")


class _RemoteNotFound(MacaroondError):
    pass


def _decode(data: dict[str, object], field: str) -> bytes:
    try:
        return base64.b64decode(str(data[field]), validate=True)
    except (KeyError, binascii.Error) as exc:
        raise MacaroondError(f"invalid {field!r} in macaroond response") from exc


__all__ = ["DEFAULT_TIMEOUT", "MacaroondClient"]
