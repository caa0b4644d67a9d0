"""Tests for macaroond.minting.oven — minting and checking macaroons."""
from __future__ import annotations

import datetime
import json
from pathlib import Path

import pytest
from pymacaroons import Macaroon

from macaroond.errors import InvalidMacaroonError, MacaroonCheckError, NotFoundError
from macaroond.minting.oven import (
    MacaroonIdentifier,
    Oven,
    parse_macaroon,
    serialize_macaroon,
    time_before_caveat,
)
from macaroond.store.file_store import FileRootKeyStore
from macaroond.token.access_token import Operation

_NOW = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
_READ = Operation(entity="doc", action="read")
_WRITE = Operation(entity="doc", action="write")


class _Clock:
    def __init__(self) -> None:
        self.now = _NOW

    def __call__(self) -> datetime.datetime:
        return self.now


@pytest.fixture()
def clock() -> _Clock:
    return _Clock()


@pytest.fixture()
def store(tmp_path: Path) -> FileRootKeyStore:
    return FileRootKeyStore(tmp_path / "rootkey", random_bytes=lambda n: b"r" * n)


@pytest.fixture()
def oven(store: FileRootKeyStore, clock: _Clock) -> Oven:
    return Oven(store, location="here", clock=clock)


class TestMacaroonIdentifier:
    def test_encode_is_compact_sorted_json(self) -> None:
        ident = MacaroonIdentifier(key_id="0", operations=["read:doc"], nonce="ab")
        assert ident.encode() == '{"keyId":"0","nonce":"ab","ops":["read:doc"]}'

    def test_decode_accepts_bytes(self) -> None:
        ident = MacaroonIdentifier(key_id="0", operations=["read:doc"], nonce="ab")
        assert MacaroonIdentifier.decode(ident.encode().encode()) == ident

    @pytest.mark.parametrize(
        "text",
        ["not json", "[]", '{"ops": []}', '{"keyId": 1, "ops": []}', '{"keyId": "0", "ops": ["bad"]}'],
    )
    def test_decode_rejects_foreign_identifiers(self, text: str) -> None:
        with pytest.raises(InvalidMacaroonError):
            MacaroonIdentifier.decode(text)


class TestNewMacaroon:
    def test_identifier_names_root_key_and_operations(self, oven: Oven) -> None:
        macaroon = oven.new_macaroon([_WRITE, _READ, _READ])
        ident = MacaroonIdentifier.decode(macaroon.identifier)
        assert ident.key_id == "0"
        assert ident.operations == ["read:doc", "write:doc"]
        assert macaroon.location == "here"

    def test_nonces_differ(self, oven: Oven) -> None:
        first = MacaroonIdentifier.decode(oven.new_macaroon([_READ]).identifier)
        second = MacaroonIdentifier.decode(oven.new_macaroon([_READ]).identifier)
        assert first.nonce != second.nonce

    def test_requires_an_operation(self, oven: Oven) -> None:
        with pytest.raises(ValueError, match="at least one operation"):
            oven.new_macaroon([])

    def test_expiry_adds_time_before(self, oven: Oven) -> None:
        macaroon = oven.new_macaroon([_READ], expiry=datetime.timedelta(minutes=5))
        conditions = [caveat.caveat_id for caveat in macaroon.caveats]
        assert conditions == ["time-before 2024-01-01T00:05:00.000Z"]

    def test_no_expiry_no_caveats(self, oven: Oven) -> None:
        assert oven.new_macaroon([_READ]).caveats == []


class TestCheck:
    def test_valid_macaroon(self, oven: Oven) -> None:
        macaroon = oven.new_macaroon([_READ, _WRITE])
        assert oven.check(macaroon, [_READ]) == []
        assert oven.check(macaroon, [_READ, _WRITE]) == []

    def test_survives_serialization(self, oven: Oven) -> None:
        macaroon = oven.new_macaroon([_READ])
        for fmt in ("binary", "json"):
            restored = parse_macaroon(serialize_macaroon(macaroon, fmt))
            assert oven.check(restored, [_READ]) == []

    def test_ungranted_operation(self, oven: Oven) -> None:
        macaroon = oven.new_macaroon([_READ])
        with pytest.raises(MacaroonCheckError, match="does not allow write:doc"):
            oven.check(macaroon, [_WRITE])

    def test_expired(self, oven: Oven, clock: _Clock) -> None:
        macaroon = oven.new_macaroon([_READ], expiry=datetime.timedelta(minutes=5))
        clock.now = _NOW + datetime.timedelta(minutes=6)
        with pytest.raises(MacaroonCheckError):
            oven.check(macaroon, [_READ])

    def test_not_yet_expired(self, oven: Oven, clock: _Clock) -> None:
        macaroon = oven.new_macaroon([_READ], expiry=datetime.timedelta(minutes=5))
        clock.now = _NOW + datetime.timedelta(minutes=4)
        assert oven.check(macaroon, [_READ]) == []

    @pytest.mark.parametrize("deadline", ["tomorrow", "2030-01-01T00:00:00"])
    def test_unreadable_deadline_fails(self, oven: Oven, deadline: str) -> None:
        macaroon = oven.new_macaroon([_READ])
        macaroon.add_first_party_caveat(f"time-before {deadline}")
        with pytest.raises(MacaroonCheckError):
            oven.check(macaroon, [_READ])

    def test_unknown_conditions_are_returned(self, oven: Oven) -> None:
        macaroon = oven.new_macaroon([_READ])
        macaroon.add_first_party_caveat("ip-addr 10.0.0.1")
        macaroon.add_first_party_caveat(time_before_caveat(_NOW + datetime.timedelta(hours=1)))
        assert oven.check(macaroon, [_READ]) == ["ip-addr 10.0.0.1"]

    def test_wrong_key(self, oven: Oven) -> None:
        oven.new_macaroon([_READ])
        ident = MacaroonIdentifier(key_id="0", operations=["read:doc"], nonce="00")
        forged = Macaroon(location="", identifier=ident.encode(), key=b"x" * 24)
        with pytest.raises(MacaroonCheckError):
            oven.check(forged, [_READ])

    def test_unknown_key_id(self, oven: Oven) -> None:
        oven.new_macaroon([_READ])
        ident = MacaroonIdentifier(key_id="7", operations=["read:doc"], nonce="00")
        macaroon = Macaroon(location="", identifier=ident.encode(), key=b"r" * 24)
        with pytest.raises(NotFoundError):
            oven.check(macaroon, [_READ])

    def test_foreign_identifier(self, oven: Oven) -> None:
        macaroon = Macaroon(location="", identifier="user-42", key=b"r" * 24)
        with pytest.raises(InvalidMacaroonError):
            oven.check(macaroon, [_READ])

    def test_another_store_with_same_key_verifies(
        self, oven: Oven, store: FileRootKeyStore
    ) -> None:
        macaroon = oven.new_macaroon([_READ])
        other = Oven(FileRootKeyStore(store.path))
        assert other.check(macaroon, [_READ]) == []


class TestEncoding:
    def test_time_before_normalizes_to_utc(self) -> None:
        tz = datetime.timezone(datetime.timedelta(hours=2))
        deadline = datetime.datetime(2024, 1, 1, 2, 0, tzinfo=tz)
        assert time_before_caveat(deadline) == "time-before 2024-01-01T00:00:00.000Z"

    def test_json_form(self, oven: Oven) -> None:
        data = json.loads(serialize_macaroon(oven.new_macaroon([_READ]), "json"))
        assert "read:doc" in json.dumps(data)

    def test_unknown_format(self, oven: Oven) -> None:
        with pytest.raises(ValueError):
            serialize_macaroon(oven.new_macaroon([_READ]), "xml")

    @pytest.mark.parametrize("text", ["", "   ", "not-a-macaroon!!", "{broken"])
    def test_parse_rejects_garbage(self, text: str) -> None:
        with pytest.raises(InvalidMacaroonError):
            parse_macaroon(text)
