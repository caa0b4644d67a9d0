"""Client side of macaroond: HTTP client, remote key store and login."""
from __future__ import annotations

from macaroond.client.http import MacaroondClient
from macaroond.client.login import PasswordMismatchError, change_password, login
from macaroond.client.remote_store import RemoteRootKeyStore

__all__ = [
    "MacaroondClient",
    "PasswordMismatchError",
    "RemoteRootKeyStore",
    "change_password",
    "login",
]
