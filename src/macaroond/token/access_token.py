"""AccessToken — signed, expiring bearer capability minted by the daemon.

Tokens use HMAC-SHA256 for signing. The token payload is a deterministic
JSON serialization of all token fields except the signature. Verification
recomputes the HMAC over the same payload and compares in constant time.
"""
from __future__ import annotations

import base64
import datetime
import hashlib
import hmac
import json
import uuid
from dataclasses import dataclass, field

from macaroond.errors import InvalidTokenError


@dataclass(frozen=True)
class Operation:
    """An action on an entity, written ``action:entity``."""

    entity: str
    action: str

    def __str__(self) -> str:
        return f"{self.action}:{self.entity}"

    @classmethod
    def parse(cls, text: str) -> "Operation":
        """Parse ``action:entity``.

        Raises
        ------
        ValueError
            If either part is missing or empty.
        """
        action, sep, entity = text.partition(":")
        if not sep:
            raise ValueError(f"invalid operation {text!r} (must be in action:entity form)")
        if not entity:
            raise ValueError(f"operation {text!r} has empty entity")
        if not action:
            raise ValueError(f"operation {text!r} has empty action")
        return cls(entity=entity, action=action)


GLOBAL_ACCESS = Operation(entity="global", action="access")


@dataclass
class AccessToken:
    """A signed capability allowing its holder to perform *operations*.

    Parameters
    ----------
    token_id:
        Globally unique identifier for this token (UUID).
    location:
        ``"<network> <address>"`` of the daemon that minted the token.
    operations:
        Operation strings (``action:entity``) the token authorizes.
    issued_at:
        UTC datetime when the token was created.
    expires_at:
        UTC datetime after which the token is no longer valid.
    signature:
        Base64url-encoded HMAC-SHA256 signature over the token payload.
        Empty string until the token is signed.
    """

    token_id: str
    location: str
    operations: list[str]
    issued_at: datetime.datetime
    expires_at: datetime.datetime
    signature: str = field(default="", repr=False)

    @classmethod
    def create_token(
        cls,
        secret_key: bytes,
        operations: list[Operation],
        location: str,
        ttl_seconds: int,
        now: datetime.datetime | None = None,
    ) -> "AccessToken":
        """Create and sign a new AccessToken.

        Parameters
        ----------
        secret_key:
            Daemon secret used for HMAC signing.
        operations:
            Operations the token grants.
        location:
            Where the daemon that minted the token can be reached.
        ttl_seconds:
            Token lifetime in seconds from *now*.
        now:
            Issue time; defaults to the current UTC time.
        """
        if now is None:
            now = datetime.datetime.now(datetime.timezone.utc)
        token = cls(
            token_id=str(uuid.uuid4()),
            location=location,
            operations=sorted(str(op) for op in operations),
            issued_at=now,
            expires_at=now + datetime.timedelta(seconds=ttl_seconds),
        )
        token.signature = _sign_payload(token._payload_bytes(), secret_key)
        return token

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_token(self, secret_key: bytes, now: datetime.datetime | None = None) -> bool:
        """Return True if the signature is valid and the token has not expired."""
        if self.is_expired(now):
            return False
        expected = _sign_payload(self._payload_bytes(), secret_key)
        return hmac.compare_digest(self.signature.encode("utf-8"), expected.encode("ascii"))

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        """Return True if the token has passed its expiry time."""
        if now is None:
            now = datetime.datetime.now(datetime.timezone.utc)
        return now > self.expires_at

    def allows(self, operation: Operation) -> bool:
        """Return True if the token lists *operation*."""
        return str(operation) in self.operations

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        """Serialize token to a plain dictionary."""
        return {
            "token_id": self.token_id,
            "location": self.location,
            "operations": list(self.operations),
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "AccessToken":
        """Reconstruct an AccessToken from a plain dictionary.

        Raises
        ------
        InvalidTokenError
            If required fields are missing or malformed.
        """
        try:
            token = cls(
                token_id=str(data["token_id"]),
                location=str(data.get("location", "")),
                operations=[
                    str(Operation.parse(str(op))) for op in (data.get("operations") or [])  # type: ignore[union-attr]
                ],
                issued_at=datetime.datetime.fromisoformat(str(data["issued_at"])),
                expires_at=datetime.datetime.fromisoformat(str(data["expires_at"])),
                signature=str(data.get("signature", "")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidTokenError(f"malformed access token: {exc}") from exc
        if token.expires_at.tzinfo is None or token.issued_at.tzinfo is None:
            raise InvalidTokenError("access token timestamps must carry a timezone")
        return token

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _payload_bytes(self) -> bytes:
        """Produce a deterministic byte representation of the signable payload."""
        payload = {
            "token_id": self.token_id,
            "location": self.location,
            "operations": self.operations,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


# ------------------------------------------------------------------
# HMAC helpers
# ------------------------------------------------------------------


def _sign_payload(payload: bytes, secret_key: bytes) -> str:
    """Compute HMAC-SHA256 over *payload* and return base64url-encoded string."""
    mac = hmac.new(secret_key, payload, hashlib.sha256).digest()
    return base64.urlsafe_b64encode(mac).decode("ascii")


__all__ = ["AccessToken", "GLOBAL_ACCESS", "Operation"]
