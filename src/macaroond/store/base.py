"""Root key storage — the key-store capability used by token minting code.

RootKeyStore defines the contract. Two implementations exist:
:class:`~macaroond.store.file_store.FileRootKeyStore` keeps the key in a
local file and :class:`~macaroond.client.remote_store.RemoteRootKeyStore`
fetches it from a running daemon.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

ROOT_KEY_ID: str = "0"
ROOT_KEY_SIZE: int = 24


@dataclass(frozen=True)
class RootKeyRecord:
    """A root key and the stable handle it is looked up by.

    Parameters
    ----------
    id:
        Key identifier. Always :data:`ROOT_KEY_ID`; the id does not take
        part in deriving the key.
    key:
        The secret handed to the token minting library.
    """

    id: str
    key: bytes


class RootKeyStore(ABC):
    """Abstract base class for root key stores."""

    @abstractmethod
    def get(self, key_id: str) -> bytes:
        """Return the key stored under *key_id*.

        Never creates a key.

        Raises
        ------
        NotFoundError
            If *key_id* is unknown or no key has been created yet.
        """

    @abstractmethod
    def root_key(self) -> RootKeyRecord:
        """Return the current root key, creating it on first use."""
