"""Pick a root key store from the ``MACAROON_ACCESS_TOKEN`` value.

``localfile:<path>`` selects a :class:`FileRootKeyStore` at *path*. Any
other value is parsed as a token set; the first token's location
(``"<network> <address>"``) says where the daemon listens.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from macaroond.config import ACCESS_TOKEN_ENV, LOCALFILE_PREFIX
from macaroond.errors import InvalidTokenError, UnauthorizedError
from macaroond.store.base import RootKeyStore
from macaroond.store.file_store import FileRootKeyStore
from macaroond.token.encoding import parse_token_set

logger = logging.getLogger(__name__)


def root_key_store_from_env(
    value: str | None = None,
    environ: Mapping[str, str] = os.environ,
    timeout: float | None = None,
) -> RootKeyStore:
    """Build the root key store named by an access token string.

    Parameters
    ----------
    value:
        The access token string. Read from ``MACAROON_ACCESS_TOKEN`` in
        *environ* when omitted.
    environ:
        Environment to read from.
    timeout:
        Request timeout for a remote store.

    Raises
    ------
    UnauthorizedError
        If no access token is available.
    InvalidTokenError
        If the token set cannot be parsed or its location is malformed.
    """
    # Imported here to keep the store package free of client imports.
    from macaroond.client.remote_store import RemoteRootKeyStore

    if value is None:
        value = environ.get(ACCESS_TOKEN_ENV, "")
    if not value:
        raise UnauthorizedError(
            'no macaroon access token found - use "macaroond login" to obtain one'
        )

    if value.startswith(LOCALFILE_PREFIX):
        path = value[len(LOCALFILE_PREFIX):]
        logger.debug("using local root key file %s", path)
        return FileRootKeyStore(path)

    tokens = parse_token_set(value)
    parts = tokens[0].location.split(" ", 1)
    if len(parts) != 2 or not all(parts):
        raise InvalidTokenError(f"invalid access token location {tokens[0].location!r}")
    network, address = parts
    logger.debug("using macaroond at %s %s", network, address)
    return RemoteRootKeyStore.connect(network, address, access_token=value, timeout=timeout)


__all__ = ["root_key_store_from_env"]
