"""Tests for macaroond.config and macaroond.errors."""
from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from macaroond.config import DEFAULT_ADDRESS, Settings
from macaroond.errors import (
    CustodianLockedError,
    InitialPasswordNeededError,
    InvalidTokenError,
    MacaroondError,
    UnauthorizedError,
    error_from_code,
)


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MACAROOND_ADDRESS", raising=False)
        monkeypatch.delenv("MACAROOND_NETWORK", raising=False)
        settings = Settings()
        assert settings.network == "tcp"
        assert settings.address == DEFAULT_ADDRESS
        assert settings.token_ttl_seconds == 86400

    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MACAROOND_NETWORK", "unix")
        monkeypatch.setenv("MACAROOND_ADDRESS", "/tmp/macaroond.socket")
        monkeypatch.setenv("MACAROOND_DIRECTORY", "/var/lib/macaroond")
        settings = Settings()
        assert settings.network == "unix"
        assert settings.address == "/tmp/macaroond.socket"
        assert settings.directory == Path("/var/lib/macaroond")

    def test_rejects_unknown_network(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MACAROOND_NETWORK", "udp")
        with pytest.raises(ValidationError):
            Settings()


class TestErrors:
    def test_status_codes(self) -> None:
        assert InitialPasswordNeededError().status == 412
        assert UnauthorizedError("x").status == 401
        assert InvalidTokenError("x").status == 400
        assert MacaroondError("x").status == 500

    def test_locked_is_unauthorized(self) -> None:
        assert isinstance(CustodianLockedError(), UnauthorizedError)
        assert CustodianLockedError().code == "unauthorized"

    @pytest.mark.parametrize(
        ("code", "cls"),
        [
            ("initial password needed", InitialPasswordNeededError),
            ("unauthorized", UnauthorizedError),
            ("bad request", InvalidTokenError),
        ],
    )
    def test_error_from_known_code(self, code: str, cls: type) -> None:
        exc = error_from_code(code, "message")
        assert type(exc) is cls
        assert str(exc) == "message"

    def test_error_from_unknown_code(self) -> None:
        exc = error_from_code("internal error", "boom")
        assert type(exc) is MacaroondError
