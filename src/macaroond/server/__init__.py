"""HTTP server mode for macaroond.

Provides a lightweight stdlib-based HTTP API through which clients log in
with the master password and then fetch root keys with a bearer token.
"""
from __future__ import annotations

from macaroond.server.app import RootKeyHandler, create_server, run_server
from macaroond.server.routes import RootKeyService

__all__ = ["RootKeyHandler", "RootKeyService", "create_server", "run_server"]
