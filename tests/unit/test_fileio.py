"""Tests for macaroond.fileio — key file reading and publishing."""
from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from macaroond.errors import InvalidStoredKeyError
from macaroond.fileio import (
    b64decode_any,
    b64encode_raw,
    publish_exclusive,
    read_key_file,
    replace_atomic,
)


class TestBase64:
    def test_encode_has_no_padding(self) -> None:
        assert b64encode_raw(b"a") == "YQ"

    def test_decode_unpadded_standard(self) -> None:
        assert b64decode_any("YQ") == b"a"

    def test_decode_padded_standard(self) -> None:
        assert b64decode_any("YQ==") == b"a"

    def test_decode_url_alphabet(self) -> None:
        assert b64decode_any("-_8") == b"\xfb\xff"

    def test_decode_strips_whitespace(self) -> None:
        assert b64decode_any(" YQ\n") == b"a"

    def test_decode_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            b64decode_any("not base64!")

    def test_decode_rejects_garbage_with_url_characters(self) -> None:
        with pytest.raises(ValueError):
            b64decode_any("this-is not*base64!!")

    def test_decode_rejects_mixed_garbage(self) -> None:
        with pytest.raises(ValueError):
            b64decode_any("ab_c*d")


class TestReadKeyFile:
    def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        assert read_key_file(tmp_path / "absent") is None

    def test_reads_unpadded_base64(self, tmp_path: Path) -> None:
        path = tmp_path / "key"
        path.write_text(b64encode_raw(b"\x01\x02\x03\x04"))
        assert read_key_file(path) == b"\x01\x02\x03\x04"

    def test_corrupt_contents_raise(self, tmp_path: Path) -> None:
        path = tmp_path / "key"
        path.write_text("%%% not base64 %%%")
        with pytest.raises(InvalidStoredKeyError):
            read_key_file(path)

    def test_corrupt_contents_with_url_characters_raise(self, tmp_path: Path) -> None:
        path = tmp_path / "key"
        path.write_text("this-is not*base64!!")
        with pytest.raises(InvalidStoredKeyError):
            read_key_file(path)


class TestPublishExclusive:
    def test_creates_file(self, tmp_path: Path) -> None:
        path = tmp_path / "key"
        assert publish_exclusive(path, b"first") is True
        assert read_key_file(path) == b"first"

    def test_second_publish_loses(self, tmp_path: Path) -> None:
        path = tmp_path / "key"
        publish_exclusive(path, b"first")
        assert publish_exclusive(path, b"second") is False
        assert read_key_file(path) == b"first"

    def test_leaves_no_temporary_files(self, tmp_path: Path) -> None:
        path = tmp_path / "key"
        publish_exclusive(path, b"first")
        publish_exclusive(path, b"second")
        assert sorted(os.listdir(tmp_path)) == ["key"]

    def test_file_is_private(self, tmp_path: Path) -> None:
        path = tmp_path / "key"
        publish_exclusive(path, b"first")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600


class TestReplaceAtomic:
    def test_replaces_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "key"
        publish_exclusive(path, b"first")
        replace_atomic(path, b"second")
        assert read_key_file(path) == b"second"
        assert sorted(os.listdir(tmp_path)) == ["key"]

    def test_creates_missing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "key"
        replace_atomic(path, b"only")
        assert read_key_file(path) == b"only"
