"""Root key stores.

:func:`macaroond.store.selection.root_key_store_from_env` picks the local or
remote implementation from an access token string.
"""
from __future__ import annotations

from macaroond.store.base import ROOT_KEY_ID, ROOT_KEY_SIZE, RootKeyRecord, RootKeyStore
from macaroond.store.file_store import FileRootKeyStore

__all__ = [
    "ROOT_KEY_ID",
    "ROOT_KEY_SIZE",
    "RootKeyRecord",
    "RootKeyStore",
    "FileRootKeyStore",
]
