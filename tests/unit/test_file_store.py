"""Tests for macaroond.store.file_store — FileRootKeyStore."""
from __future__ import annotations

import threading
from pathlib import Path

import pytest

import macaroond.store.file_store as file_store_module
from macaroond.errors import InvalidStoredKeyError, NotFoundError
from macaroond.fileio import publish_exclusive, read_key_file
from macaroond.store.base import ROOT_KEY_ID, ROOT_KEY_SIZE
from macaroond.store.file_store import FileRootKeyStore


@pytest.fixture()
def key_path(tmp_path: Path) -> Path:
    return tmp_path / "rootkey"


class TestRootKey:
    def test_creates_key_on_first_use(self, key_path: Path) -> None:
        record = FileRootKeyStore(key_path).root_key()
        assert record.id == ROOT_KEY_ID
        assert len(record.key) == ROOT_KEY_SIZE
        assert read_key_file(key_path) == record.key

    def test_returns_cached_key(self, key_path: Path) -> None:
        store = FileRootKeyStore(key_path)
        assert store.root_key() == store.root_key()

    def test_loads_existing_key(self, key_path: Path) -> None:
        first = FileRootKeyStore(key_path).root_key()
        second = FileRootKeyStore(key_path).root_key()
        assert first == second

    def test_uses_injected_random_source(self, key_path: Path) -> None:
        store = FileRootKeyStore(key_path, random_bytes=lambda n: b"k" * n)
        assert store.root_key().key == b"k" * ROOT_KEY_SIZE

    def test_corrupt_file_is_not_treated_as_absent(self, key_path: Path) -> None:
        key_path.write_text("*** corrupt ***")
        with pytest.raises(InvalidStoredKeyError):
            FileRootKeyStore(key_path).root_key()
        assert key_path.read_text() == "*** corrupt ***"

    def test_concurrent_stores_converge_on_one_key(
        self, key_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        count = 8
        barrier = threading.Barrier(count)
        results: list[bytes] = []
        published: list[bool] = []
        lock = threading.Lock()

        def counting_publish(path: Path, data: bytes) -> bool:
            won = publish_exclusive(path, data)
            with lock:
                published.append(won)
            return won

        monkeypatch.setattr(file_store_module, "publish_exclusive", counting_publish)

        def worker() -> None:
            store = FileRootKeyStore(key_path)
            barrier.wait()
            key = store.root_key().key
            with lock:
                results.append(key)

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == count
        assert len(set(results)) == 1
        assert published.count(True) == 1
        assert read_key_file(key_path) == results[0]

    def test_loser_of_create_race_adopts_winner(
        self, key_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        loser = FileRootKeyStore(key_path, random_bytes=lambda n: b"l" * n)
        calls = {"n": 0}

        def racing_read(path: Path) -> bytes | None:
            # The winner publishes right after the loser sees no file.
            calls["n"] += 1
            if calls["n"] == 1:
                publish_exclusive(path, b"w" * ROOT_KEY_SIZE)
                return None
            return read_key_file(path)

        monkeypatch.setattr(file_store_module, "read_key_file", racing_read)

        assert loser.root_key().key == b"w" * ROOT_KEY_SIZE
        assert read_key_file(key_path) == b"w" * ROOT_KEY_SIZE


class TestGet:
    def test_missing_file_is_not_found(self, key_path: Path) -> None:
        with pytest.raises(NotFoundError):
            FileRootKeyStore(key_path).get(ROOT_KEY_ID)

    def test_get_does_not_create(self, key_path: Path) -> None:
        with pytest.raises(NotFoundError):
            FileRootKeyStore(key_path).get(ROOT_KEY_ID)
        assert not key_path.exists()

    def test_get_returns_root_key(self, key_path: Path) -> None:
        record = FileRootKeyStore(key_path).root_key()
        assert FileRootKeyStore(key_path).get(ROOT_KEY_ID) == record.key

    def test_unknown_id_is_not_found(self, key_path: Path) -> None:
        store = FileRootKeyStore(key_path)
        store.root_key()
        with pytest.raises(NotFoundError) as exc_info:
            store.get("1")
        assert exc_info.value.key_id == "1"

    def test_corrupt_file_raises_invalid(self, key_path: Path) -> None:
        key_path.write_text("*** corrupt ***")
        with pytest.raises(InvalidStoredKeyError):
            FileRootKeyStore(key_path).get(ROOT_KEY_ID)

    def test_corrupt_urlsafe_looking_file_raises_invalid(self, key_path: Path) -> None:
        key_path.write_text("this-is not*base64!!")
        with pytest.raises(InvalidStoredKeyError):
            FileRootKeyStore(key_path).get(ROOT_KEY_ID)
