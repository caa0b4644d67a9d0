"""Password-based authenticated encryption for data at rest.

Sealed blobs are ``nonce(24) || XSalsa20-Poly1305 ciphertext`` as produced by
PyNaCl's :class:`nacl.secret.SecretBox`. The box key is the SHA-256 digest of
the UTF-8 password.

Known limitation: the derivation has no salt and no work factor, so the
strength of the password is the only defence against offline guessing.
Changing the derivation changes the on-disk format of every existing
master key file.
"""
from __future__ import annotations

import hashlib

import nacl.secret
import nacl.utils
from nacl.exceptions import CryptoError

from macaroond.errors import DecryptionFailedError

NONCE_SIZE: int = nacl.secret.SecretBox.NONCE_SIZE


def derive_key(password: str) -> bytes:
    """Return the 32-byte box key for *password*."""
    return hashlib.sha256(password.encode("utf-8")).digest()


def seal(plaintext: bytes, password: str, nonce: bytes | None = None) -> bytes:
    """Encrypt and authenticate *plaintext* under *password*.

    Parameters
    ----------
    plaintext:
        The bytes to protect.
    password:
        Password the box key is derived from.
    nonce:
        Explicit 24-byte nonce. A fresh random nonce is drawn when omitted;
        callers must never reuse one for the same password.

    Returns
    -------
    bytes
        ``nonce || ciphertext``.
    """
    box = nacl.secret.SecretBox(derive_key(password))
    if nonce is None:
        nonce = nacl.utils.random(NONCE_SIZE)
    return bytes(box.encrypt(plaintext, nonce))


def unseal(blob: bytes, password: str) -> bytes:
    """Decrypt a blob produced by :func:`seal`.

    Raises
    ------
    DecryptionFailedError
        If *blob* is shorter than a nonce, or if authentication fails
        because the password is wrong or the data was modified.
    """
    if len(blob) < NONCE_SIZE:
        raise DecryptionFailedError("encrypted data is too small")
    box = nacl.secret.SecretBox(derive_key(password))
    try:
        return bytes(box.decrypt(blob[NONCE_SIZE:], blob[:NONCE_SIZE]))
    except (CryptoError, ValueError) as exc:
        raise DecryptionFailedError("bad password or corrupted data") from exc


__all__ = ["NONCE_SIZE", "derive_key", "seal", "unseal"]
