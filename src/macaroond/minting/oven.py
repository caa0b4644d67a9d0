"""Oven — mints and checks macaroons with keys from a root key store.

A macaroon's identifier is compact JSON naming the root key id it was
signed with, the operations it grants and a random nonce::

    {"keyId": "0", "nonce": "…", "ops": ["read:doc"]}

Checking looks the key up by that id, so any :class:`RootKeyStore` holding
the key can verify the macaroon, whether local or remote.

Only first-party caveats are added here. ``time-before <RFC 3339 time>``
is understood by the checker; any other first-party condition is reported
back to the caller rather than rejected.
"""
from __future__ import annotations

import datetime
import json
import logging
import os
import struct
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from pymacaroons import Macaroon, Verifier
from pymacaroons.exceptions import MacaroonException
from pymacaroons.serializers import JsonSerializer

from macaroond.errors import InvalidMacaroonError, MacaroonCheckError
from macaroond.store.base import RootKeyStore
from macaroond.token.access_token import Operation

logger = logging.getLogger(__name__)

TIME_BEFORE = "time-before"
NONCE_SIZE = 12


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _text(value: str | bytes) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


# ------------------------------------------------------------------
# Identifier
# ------------------------------------------------------------------


@dataclass(frozen=True)
class MacaroonIdentifier:
    """Decoded form of a macaroon identifier.

    Parameters
    ----------
    key_id:
        Id of the root key the macaroon was signed with.
    operations:
        ``action:entity`` strings the macaroon grants.
    nonce:
        Hex nonce that keeps identifiers unique.
    """

    key_id: str
    operations: list[str] = field(default_factory=list)
    nonce: str = ""

    def encode(self) -> str:
        data = {"keyId": self.key_id, "nonce": self.nonce, "ops": self.operations}
        return json.dumps(data, sort_keys=True, separators=(",", ":"))

    @classmethod
    def decode(cls, text: str | bytes) -> "MacaroonIdentifier":
        """Parse an identifier produced by :meth:`encode`.

        Raises
        ------
        InvalidMacaroonError
            If *text* is not such an identifier.
        """
        try:
            data = json.loads(_text(text))
            key_id = data["keyId"]
            operations = [str(Operation.parse(str(op))) for op in data["ops"]]
        except (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError, ValueError) as exc:
            raise InvalidMacaroonError(f"unrecognized macaroon identifier: {exc}") from exc
        if not isinstance(key_id, str):
            raise InvalidMacaroonError("unrecognized macaroon identifier: keyId is not a string")
        return cls(key_id=key_id, operations=operations, nonce=str(data.get("nonce", "")))


# ------------------------------------------------------------------
# Encoding
# ------------------------------------------------------------------


def time_before_caveat(deadline: datetime.datetime) -> str:
    """Return the first-party condition that expires at *deadline*."""
    deadline = deadline.astimezone(datetime.timezone.utc)
    return f"{TIME_BEFORE} {deadline.isoformat(timespec='milliseconds').replace('+00:00', 'Z')}"


def parse_macaroon(text: str) -> Macaroon:
    """Deserialize a macaroon from its binary (base64) or JSON form.

    Raises
    ------
    InvalidMacaroonError
        If *text* holds no valid macaroon.
    """
    text = text.strip()
    if not text:
        raise InvalidMacaroonError("no macaroon found")
    try:
        if text.startswith("{"):
            macaroon = Macaroon.deserialize(text, serializer=JsonSerializer())
        else:
            macaroon = Macaroon.deserialize(text)
    except (MacaroonException, ValueError, TypeError, IndexError, KeyError, struct.error) as exc:
        raise InvalidMacaroonError(f"invalid macaroon: {exc}") from exc
    if not macaroon.identifier or not macaroon.signature:
        raise InvalidMacaroonError("invalid macaroon: missing identifier or signature")
    return macaroon


def serialize_macaroon(macaroon: Macaroon, fmt: str = "binary") -> str:
    """Serialize *macaroon* as ``binary`` (base64) or ``json``."""
    if fmt == "json":
        return macaroon.serialize(serializer=JsonSerializer())
    if fmt == "binary":
        return macaroon.serialize()
    raise ValueError(f"unknown macaroon format {fmt!r}")


# ------------------------------------------------------------------
# Oven
# ------------------------------------------------------------------


class Oven:
    """Mints macaroons signed with the current root key and checks them.

    Parameters
    ----------
    store:
        Where root keys come from.
    location:
        Location recorded in minted macaroons.
    clock:
        Returns the current UTC time; used for expiry caveats.
    random_bytes:
        Source of identifier nonces.
    """

    def __init__(
        self,
        store: RootKeyStore,
        location: str = "",
        clock: Callable[[], datetime.datetime] = _utcnow,
        random_bytes: Callable[[int], bytes] = os.urandom,
    ) -> None:
        self._store = store
        self._location = location
        self._clock = clock
        self._random_bytes = random_bytes

    def new_macaroon(
        self,
        operations: Sequence[Operation],
        expiry: datetime.timedelta | None = None,
    ) -> Macaroon:
        """Mint a macaroon granting *operations*.

        Parameters
        ----------
        operations:
            At least one operation the macaroon grants.
        expiry:
            Optional lifetime, added as a ``time-before`` caveat.

        Raises
        ------
        ValueError
            If *operations* is empty.
        """
        if not operations:
            raise ValueError("at least one operation (in action:entity form) must be specified")
        record = self._store.root_key()
        identifier = MacaroonIdentifier(
            key_id=record.id,
            operations=sorted({str(op) for op in operations}),
            nonce=self._random_bytes(NONCE_SIZE).hex(),
        )
        macaroon = Macaroon(location=self._location, identifier=identifier.encode(), key=record.key)
        if expiry is not None:
            macaroon.add_first_party_caveat(time_before_caveat(self._clock() + expiry))
        logger.debug("minted macaroon for %s", ", ".join(identifier.operations))
        return macaroon

    def check(
        self,
        macaroon: Macaroon,
        operations: Sequence[Operation],
        discharges: Sequence[Macaroon] = (),
    ) -> list[str]:
        """Verify that *macaroon* authorizes every one of *operations*.

        Returns
        -------
        list[str]
            First-party conditions the checker did not recognise. They
            are not enforced here; the caller decides what they mean.

        Raises
        ------
        InvalidMacaroonError
            If the identifier was not minted by an :class:`Oven`.
        NotFoundError
            If the store has no key for the identifier's key id.
        MacaroonCheckError
            If an operation is not granted, the signature is wrong, or a
            ``time-before`` caveat has passed.
        """
        identifier = MacaroonIdentifier.decode(macaroon.identifier)
        for op in operations:
            if str(op) not in identifier.operations:
                raise MacaroonCheckError(f"macaroon does not allow {op}")

        key = self._store.get(identifier.key_id)
        now = self._clock()
        unknown: list[str] = []

        def satisfy(condition: str | bytes) -> bool:
            condition = _text(condition)
            name, _, arg = condition.partition(" ")
            if name == TIME_BEFORE:
                return _before_deadline(now, arg)
            unknown.append(condition)
            return True

        verifier = Verifier()
        verifier.satisfy_general(satisfy)
        try:
            verifier.verify(macaroon, key, discharge_macaroons=list(discharges))
        except MacaroonException as exc:
            raise MacaroonCheckError(f"macaroon verification failed: {exc}") from exc
        return unknown


def _before_deadline(now: datetime.datetime, text: str) -> bool:
    try:
        deadline = datetime.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return False
    if deadline.tzinfo is None:
        return False
    return now < deadline


__all__ = [
    "MacaroonIdentifier",
    "Oven",
    "TIME_BEFORE",
    "parse_macaroon",
    "serialize_macaroon",
    "time_before_caveat",
]
