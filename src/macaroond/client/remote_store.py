"""RemoteRootKeyStore — a root key store backed by a running daemon."""
from __future__ import annotations

import logging

from macaroond.client.http import MacaroondClient
from macaroond.errors import UnauthorizedError
from macaroond.store.base import RootKeyRecord, RootKeyStore
from macaroond.token.access_token import AccessToken
from macaroond.token.encoding import encode_token_set

logger = logging.getLogger(__name__)


class RemoteRootKeyStore(RootKeyStore):
    """Fetches root keys from macaroond over HTTP.

    Parameters
    ----------
    client:
        Client pointed at the daemon. Its ``access_token`` is used as the
        bearer token for key requests; :meth:`login` replaces it.
    """

    def __init__(self, client: MacaroondClient) -> None:
        self._client = client

    @classmethod
    def connect(
        cls,
        network: str,
        address: str,
        access_token: str | None = None,
        timeout: float | None = None,
    ) -> "RemoteRootKeyStore":
        """Build a store with its own :class:`MacaroondClient`."""
        if timeout is None:
            client = MacaroondClient(network, address, access_token=access_token)
        else:
            client = MacaroondClient(network, address, access_token=access_token, timeout=timeout)
        return cls(client)

    @property
    def client(self) -> MacaroondClient:
        return self._client

    def login(self, password: str) -> AccessToken:
        """Exchange *password* for a token and keep it for later requests."""
        token = self._client.access(password)
        self._client.access_token = encode_token_set([token])
        logger.debug("logged in to %s %s", self._client.network, self._client.address)
        return token

    def get(self, key_id: str) -> bytes:
        """Look up *key_id* on the daemon.

        Raises
        ------
        UnauthorizedError
            If no token is held or the daemon rejects it.
        NotFoundError
            If the daemon has no such key.
        """
        self._require_token()
        return self._client.find_root_key(key_id)

    def root_key(self) -> RootKeyRecord:
        """Return the daemon's current root key."""
        self._require_token()
        return self._client.new_root_key()

    def close(self) -> None:
        self._client.close()

    def _require_token(self) -> None:
        if not self._client.access_token:
            raise UnauthorizedError("not logged in to macaroond")


__all__ = ["RemoteRootKeyStore"]
