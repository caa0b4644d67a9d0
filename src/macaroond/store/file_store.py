"""FileRootKeyStore — a single root key persisted in a local file.

Any number of processes may share one path. The first one to publish a key
wins; every other creator discards its candidate and adopts the persisted
value, so all callers converge on the same key.
"""
from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from macaroond.errors import NotFoundError
from macaroond.fileio import publish_exclusive, read_key_file
from macaroond.store.base import ROOT_KEY_ID, ROOT_KEY_SIZE, RootKeyRecord, RootKeyStore

logger = logging.getLogger(__name__)


class FileRootKeyStore(RootKeyStore):
    """File-backed root key store.

    Thread-safe. Reads and writes of the cached key hold a single lock.

    Parameters
    ----------
    path:
        File holding the base64-encoded key.
    random_bytes:
        Source of key material; defaults to :func:`os.urandom`.
    """

    def __init__(
        self,
        path: Path | str,
        random_bytes: Callable[[int], bytes] = os.urandom,
    ) -> None:
        self._path = Path(path)
        self._random_bytes = random_bytes
        self._lock = threading.Lock()
        self._key: bytes | None = None

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key_id: str) -> bytes:
        """Return the stored key for *key_id* without creating one.

        Raises
        ------
        NotFoundError
            If *key_id* is not the root key id or the file does not exist.
        InvalidStoredKeyError
            If the file exists but is not valid base64.
        """
        with self._lock:
            if key_id != ROOT_KEY_ID:
                raise NotFoundError(key_id)
            if self._key is not None:
                return self._key
            key = read_key_file(self._path)
            if key is None:
                raise NotFoundError(key_id)
            self._key = key
            return key

    def root_key(self) -> RootKeyRecord:
        """Return the root key, publishing a new one if none exists."""
        with self._lock:
            if self._key is None:
                self._key = self._load_or_create()
            return RootKeyRecord(id=ROOT_KEY_ID, key=self._key)

    def _load_or_create(self) -> bytes:
        key = read_key_file(self._path)
        if key is not None:
            return key

        candidate = self._random_bytes(ROOT_KEY_SIZE)
        if publish_exclusive(self._path, candidate):
            logger.info("created root key at %s", self._path)
            return candidate

        # Another writer published first; its key is authoritative.
        logger.debug("root key at %s created concurrently; adopting it", self._path)
        key = read_key_file(self._path)
        if key is None:
            raise NotFoundError(ROOT_KEY_ID)
        return key


__all__ = ["FileRootKeyStore"]
