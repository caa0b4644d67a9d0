"""macaroond — root key custody for macaroon minting.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import macaroond
>>> macaroond.__version__
'0.1.0'

Quick start
-----------
::

    from macaroond import FileRootKeyStore, root_key_store_from_env

    store = FileRootKeyStore("/var/lib/myapp/rootkey")
    record = store.root_key()
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from macaroond.errors import (
    CustodianLockedError,
    DecryptionFailedError,
    InitialPasswordNeededError,
    InvalidMacaroonError,
    InvalidStoredKeyError,
    InvalidTokenError,
    MacaroonCheckError,
    MacaroondError,
    NotFoundError,
    StorageIOError,
    UnauthorizedError,
)

# ------------------------------------------------------------------
# Sealing and custody
# ------------------------------------------------------------------
from macaroond.crypto.secretbox import seal, unseal
from macaroond.custody.custodian import CustodianState, MasterKeyCustodian

# ------------------------------------------------------------------
# Root key stores
# ------------------------------------------------------------------
from macaroond.store.base import ROOT_KEY_ID, RootKeyRecord, RootKeyStore
from macaroond.store.file_store import FileRootKeyStore
from macaroond.store.selection import root_key_store_from_env

# ------------------------------------------------------------------
# Tokens, server and client
# ------------------------------------------------------------------
from macaroond.token.access_token import GLOBAL_ACCESS, AccessToken, Operation
from macaroond.server.routes import RootKeyService
from macaroond.client.http import MacaroondClient
from macaroond.client.remote_store import RemoteRootKeyStore

# ------------------------------------------------------------------
# Macaroons
# ------------------------------------------------------------------
from macaroond.minting.oven import Oven

__all__ = [
    "__version__",
    # Errors
    "MacaroondError",
    "InitialPasswordNeededError",
    "UnauthorizedError",
    "CustodianLockedError",
    "NotFoundError",
    "InvalidStoredKeyError",
    "DecryptionFailedError",
    "StorageIOError",
    "InvalidTokenError",
    "InvalidMacaroonError",
    "MacaroonCheckError",
    # Sealing and custody
    "seal",
    "unseal",
    "CustodianState",
    "MasterKeyCustodian",
    # Stores
    "ROOT_KEY_ID",
    "RootKeyRecord",
    "RootKeyStore",
    "FileRootKeyStore",
    "RemoteRootKeyStore",
    "root_key_store_from_env",
    # Tokens, server and client
    "AccessToken",
    "GLOBAL_ACCESS",
    "Operation",
    "RootKeyService",
    "MacaroondClient",
    # Macaroons
    "Oven",
]
