"""Symmetric password-based sealing for key material at rest."""
from __future__ import annotations

from macaroond.crypto.secretbox import NONCE_SIZE, derive_key, seal, unseal

__all__ = ["NONCE_SIZE", "derive_key", "seal", "unseal"]
