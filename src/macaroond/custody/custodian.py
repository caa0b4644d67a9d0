"""MasterKeyCustodian — keeps the daemon's master key sealed at rest.

The custodian owns ``<directory>/masterkey``, which holds the master key
sealed under the current password. It moves through three states:

* ``UNINITIALIZED`` — no sealed key exists. Only ``set_password("", new)``
  is accepted; it creates the key.
* ``LOCKED`` — a sealed key exists but no password has been proven since
  the process started.
* ``UNLOCKED`` — the plaintext key is cached in memory.

Every transition and read holds one lock, so password checks and changes
against one instance are totally ordered.
"""
from __future__ import annotations

import enum
import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from macaroond.crypto.secretbox import seal, unseal
from macaroond.errors import (
    CustodianLockedError,
    DecryptionFailedError,
    InitialPasswordNeededError,
    MacaroondError,
    UnauthorizedError,
)
from macaroond.fileio import publish_exclusive, read_key_file, replace_atomic
from macaroond.store.base import ROOT_KEY_SIZE

logger = logging.getLogger(__name__)

MASTER_KEY_FILENAME: str = "masterkey"


class CustodianState(str, enum.Enum):
    """Lifecycle state of a custodian."""

    UNINITIALIZED = "uninitialized"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class MasterKeyCustodian:
    """Server-side holder of the sealed and unsealed master key.

    The sealed key is read once at construction. Corrupt contents raise
    :class:`~macaroond.errors.InvalidStoredKeyError` immediately rather than
    being mistaken for an uninitialised directory.

    Parameters
    ----------
    directory:
        Directory that holds the ``masterkey`` file. Must exist.
    random_bytes:
        Source of master key material; defaults to :func:`os.urandom`.
    """

    def __init__(
        self,
        directory: Path | str,
        random_bytes: Callable[[int], bytes] = os.urandom,
    ) -> None:
        self._directory = Path(directory)
        self._random_bytes = random_bytes
        self._lock = threading.Lock()
        self._master_key: bytes | None = None
        self._encrypted: bytes | None = read_key_file(self.path)

    @property
    def path(self) -> Path:
        return self._directory / MASTER_KEY_FILENAME

    @property
    def state(self) -> CustodianState:
        with self._lock:
            return self._state()

    def _state(self) -> CustodianState:
        if self._encrypted is None:
            return CustodianState.UNINITIALIZED
        if self._master_key is None:
            return CustodianState.LOCKED
        return CustodianState.UNLOCKED

    def needs_password(self) -> bool:
        """Return True if no password has ever been set."""
        with self._lock:
            return self._encrypted is None

    def check_password(self, password: str) -> None:
        """Prove *password* by opening the sealed key, unlocking on success.

        Raises
        ------
        InitialPasswordNeededError
            If no password has been set yet.
        UnauthorizedError
            If *password* does not open the sealed key.
        """
        with self._lock:
            if self._encrypted is None:
                raise InitialPasswordNeededError()
            master_key = self._open(self._encrypted, password)
            self._remember(master_key)

    def get_master_key(self) -> bytes:
        """Return the unlocked master key.

        Raises
        ------
        CustodianLockedError
            If no password has been proven in this process.
        """
        with self._lock:
            if self._master_key is None:
                raise CustodianLockedError()
            return self._master_key

    def set_password(self, old_password: str, new_password: str) -> None:
        """Set the first password, or change the current one.

        On an uninitialised directory *old_password* must be empty; a new
        master key is generated, sealed under *new_password* and published
        create-only. If another process publishes first, its key is adopted
        and the call proceeds as a password change against it.

        Otherwise *old_password* must open the persisted key; the same key
        is re-sealed under *new_password* and the single file is replaced
        atomically before any in-memory state changes.

        Raises
        ------
        UnauthorizedError
            If *old_password* is wrong. No state changes.
        StorageIOError
            If the sealed key cannot be written.
        """
        with self._lock:
            encrypted = self._encrypted
            if encrypted is None:
                encrypted = self._initialize(old_password, new_password)
                if encrypted is None:
                    return
            master_key = self._open(encrypted, old_password)
            self._check_matches(master_key)
            sealed = seal(master_key, new_password)
            replace_atomic(self.path, sealed)
            self._encrypted = sealed
            self._master_key = master_key
            logger.info("master key re-sealed under a new password")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _initialize(self, old_password: str, new_password: str) -> bytes | None:
        """Create the master key.

        Returns None once this call has published the key, or the sealed
        key another writer published first.
        """
        if old_password != "":
            raise UnauthorizedError("no password has been set yet; old password must be empty")
        master_key = self._random_bytes(ROOT_KEY_SIZE)
        sealed = seal(master_key, new_password)
        if publish_exclusive(self.path, sealed):
            self._encrypted = sealed
            self._master_key = master_key
            logger.info("created master key at %s", self.path)
            return None
        logger.info("master key at %s created concurrently; adopting it", self.path)
        winner = read_key_file(self.path)
        if winner is None:
            raise MacaroondError(f"master key at {self.path} vanished after creation")
        self._encrypted = winner
        return winner

    @staticmethod
    def _open(encrypted: bytes, password: str) -> bytes:
        try:
            return unseal(encrypted, password)
        except DecryptionFailedError as exc:
            raise UnauthorizedError("invalid password") from exc

    def _check_matches(self, master_key: bytes) -> None:
        if self._master_key is not None and self._master_key != master_key:
            raise MacaroondError("key mismatch after decryption (should never happen)")

    def _remember(self, master_key: bytes) -> None:
        self._check_matches(master_key)
        self._master_key = master_key


__all__ = ["CustodianState", "MASTER_KEY_FILENAME", "MasterKeyCustodian"]
