from __future__ import annotations

import pytest

from dp_browser.services.storage import LocalFileSystemStorage, StorageBackend


def test_write_read_and_exists(tmp_path):
    storage = LocalFileSystemStorage(tmp_path / "data")

    storage.write_bytes("uploads/b.json", b"{}")
    storage.write_bytes("uploads/a.json", b"[]")

    assert storage.read_bytes("uploads/a.json") == b"[]"
    assert storage.exists("uploads/b.json")
    assert not storage.exists("uploads/c.json")


def test_backend_needs_only_read_write_and_exists():
    class MemoryStorage(StorageBackend):
        def __init__(self):
            self.blobs = {}

        def write_bytes(self, path, data):
            self.blobs[path] = data

        def read_bytes(self, path):
            return self.blobs[path]

        def exists(self, path):
            return path in self.blobs

    storage = MemoryStorage()
    storage.write_bytes("a.json", b"1")

    assert storage.exists("a.json")
    assert storage.read_bytes("a.json") == b"1"


def test_paths_outside_root_are_rejected(tmp_path):
    storage = LocalFileSystemStorage(tmp_path / "data")

    with pytest.raises(ValueError):
        storage.write_bytes("../escape.json", b"{}")
    with pytest.raises(ValueError):
        storage.read_bytes("/etc/passwd")
