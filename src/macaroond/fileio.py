"""Small file primitives for persisted key material.

Keys are stored as unpadded standard base64 text. Two publishing modes are
provided:

* :func:`publish_exclusive` writes a private temporary file and hard-links
  it to the target name. The link fails if the name already exists, so at
  most one writer ever wins and readers never observe a partial file.
* :func:`replace_atomic` writes a temporary file and renames it over the
  target, used when an existing file must be replaced.
"""
from __future__ import annotations

import base64
import binascii
import os
import tempfile
from pathlib import Path

from macaroond.errors import InvalidStoredKeyError, StorageIOError


_URLSAFE_TO_STD = str.maketrans("-_", "+/")


def b64encode_raw(data: bytes) -> str:
    """Encode *data* as standard base64 without padding."""
    return base64.b64encode(data).decode("ascii").rstrip("=")


def b64decode_any(text: str | bytes) -> bytes:
    """Decode standard or URL-safe base64, with or without padding.

    Raises
    ------
    binascii.Error
        If *text* is not valid base64 in either alphabet.
    """
    if isinstance(text, bytes):
        text = text.decode("ascii")
    text = text.strip()
    padded = text.translate(_URLSAFE_TO_STD) + "=" * (-len(text) % 4)
    return base64.b64decode(padded.encode("ascii"), validate=True)


def read_key_file(path: Path) -> bytes | None:
    """Read and decode a base64 key file.

    Returns None when the file does not exist.

    Raises
    ------
    InvalidStoredKeyError
        If the file exists but does not hold valid base64.
    StorageIOError
        For any other read failure.
    """
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise StorageIOError(f"cannot read {path}: {exc}") from exc
    try:
        return b64decode_any(raw.strip())
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise InvalidStoredKeyError(f"invalid root key contents in {path}") from exc


def _write_temp(path: Path, data: bytes) -> Path:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(b64encode_raw(data).encode("ascii"))
            tmp.flush()
            os.fsync(tmp.fileno())
    except BaseException:
        os.unlink(tmp_name)
        raise
    os.chmod(tmp_name, 0o600)
    return Path(tmp_name)


def publish_exclusive(path: Path, data: bytes) -> bool:
    """Publish *data* at *path* only if nothing exists there yet.

    Returns
    -------
    bool
        True if this call created the file, False if another writer had
        already published it.

    Raises
    ------
    StorageIOError
        If the write fails for any reason other than the name existing.
    """
    try:
        tmp = _write_temp(path, data)
    except OSError as exc:
        raise StorageIOError(f"cannot write {path}: {exc}") from exc
    try:
        os.link(tmp, path)
    except FileExistsError:
        return False
    except OSError as exc:
        raise StorageIOError(f"cannot create {path}: {exc}") from exc
    finally:
        tmp.unlink(missing_ok=True)
    return True


def replace_atomic(path: Path, data: bytes) -> None:
    """Write *data* to *path*, atomically replacing any existing file."""
    try:
        tmp = _write_temp(path, data)
        try:
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise StorageIOError(f"cannot replace {path}: {exc}") from exc


__all__ = [
    "b64encode_raw",
    "b64decode_any",
    "read_key_file",
    "publish_exclusive",
    "replace_atomic",
]
