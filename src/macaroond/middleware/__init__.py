"""Request authorization for the root key daemon."""
from __future__ import annotations

from macaroond.middleware.auth import BEARER_PREFIX, AuthGate, AuthResult

__all__ = ["AuthGate", "AuthResult", "BEARER_PREFIX"]
