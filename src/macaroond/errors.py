"""Error taxonomy shared by the daemon, the key stores and the client.

Every error carries a stable ``code`` string. The HTTP layer maps codes to
status codes and the client maps them back to the same classes, so callers
can branch on :class:`InitialPasswordNeededError` (run first-time setup)
separately from :class:`UnauthorizedError` (ask for a different password).
"""
from __future__ import annotations


class MacaroondError(Exception):
    """Base class for all macaroond errors."""

    code: str = "internal error"
    status: int = 500


class InitialPasswordNeededError(MacaroondError):
    """Raised when the daemon has no password yet and must be initialised."""

    code = "initial password needed"
    status = 412

    def __init__(self, message: str = "no password has been set yet") -> None:
        super().__init__(message)


class UnauthorizedError(MacaroondError):
    """Raised for a wrong password or a missing, expired or invalid bearer token."""

    code = "unauthorized"
    status = 401


class CustodianLockedError(UnauthorizedError):
    """Raised when the master key is requested before any password was proven."""

    def __init__(self, message: str = "locked - no password supplied yet") -> None:
        super().__init__(message)


class NotFoundError(MacaroondError):
    """Raised when a root key id is unknown or no key has been stored."""

    code = "not found"
    status = 404

    def __init__(self, key_id: str) -> None:
        super().__init__(f"root key {key_id!r} not found")
        self.key_id = key_id


class InvalidStoredKeyError(MacaroondError):
    """Raised when persisted key material exists but cannot be decoded."""


class DecryptionFailedError(MacaroondError):
    """Raised when sealed data is truncated or fails authentication."""


class StorageIOError(MacaroondError):
    """Raised for disk failures other than losing a create race."""


class InvalidTokenError(MacaroondError):
    """Raised when an access token string cannot be parsed."""

    code = "bad request"
    status = 400


class InvalidMacaroonError(MacaroondError):
    """Raised when a macaroon or its identifier cannot be decoded."""

    code = "bad request"
    status = 400


class MacaroonCheckError(UnauthorizedError):
    """Raised when a macaroon does not authorize the requested operations."""


_ERRORS_BY_CODE: dict[str, type[MacaroondError]] = {
    InitialPasswordNeededError.code: InitialPasswordNeededError,
    UnauthorizedError.code: UnauthorizedError,
    InvalidTokenError.code: InvalidTokenError,
}


def error_from_code(code: str, message: str) -> MacaroondError:
    """Rebuild the exception matching a wire error *code*.

    ``not found`` is handled by callers because it needs the key id.
    Unknown codes become a plain :class:`MacaroondError`.
    """
    cls = _ERRORS_BY_CODE.get(code)
    if cls is None:
        return MacaroondError(message)
    return cls(message)


__all__ = [
    "MacaroondError",
    "InitialPasswordNeededError",
    "UnauthorizedError",
    "CustodianLockedError",
    "NotFoundError",
    "InvalidStoredKeyError",
    "DecryptionFailedError",
    "StorageIOError",
    "InvalidTokenError",
    "InvalidMacaroonError",
    "MacaroonCheckError",
    "error_from_code",
]
