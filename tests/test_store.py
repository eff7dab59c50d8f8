"""
Tests for the in-memory and file-backed key-value stores.
"""
import os
import stat

import orjson
import pytest

from secretgate.store import KeyValueStore, MemoryStore, FileStore


class TestMemoryStore:
    """Tests for MemoryStore."""

    def test_satisfies_protocol(self):
        assert isinstance(MemoryStore(), KeyValueStore)

    def test_get_missing(self):
        assert MemoryStore().get("missing") is None

    def test_set_get_remove(self):
        store = MemoryStore()
        store.set("k", "v")
        assert store.get("k") == "v"
        store.remove("k")
        assert store.get("k") is None

    def test_remove_is_idempotent(self):
        store = MemoryStore()
        store.remove("k")
        store.remove("k")
        assert len(store) == 0

    def test_mapping_interface(self):
        store = MemoryStore({"a": "1"})
        store["b"] = "2"
        assert dict(store) == {"a": "1", "b": "2"}
        assert "a" in store
        del store["a"]
        assert list(store) == ["b"]

    def test_delitem_missing(self):
        with pytest.raises(KeyError):
            del MemoryStore()["missing"]


class TestFileStore:
    """Tests for FileStore persistence."""

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "store.json"
        FileStore(path).set("k", "v")
        assert FileStore(path).get("k") == "v"

    def test_remove_persists(self, tmp_path):
        path = tmp_path / "store.json"
        store = FileStore(path)
        store.set("k", "v")
        store.remove("k")
        assert FileStore(path).get("k") is None
        assert orjson.loads(path.read_bytes()) == {}

    def test_missing_file_is_empty(self, tmp_path):
        store = FileStore(tmp_path / "nested" / "store.json")
        assert len(store) == 0
        assert not store.path.exists()

    def test_creates_parent_and_owner_only_file(self, tmp_path):
        path = tmp_path / "nested" / "store.json"
        FileStore(path).set("k", "v")
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json")
        with pytest.raises(RuntimeError):
            FileStore(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_bytes(orjson.dumps({"k": 1}))
        with pytest.raises(RuntimeError):
            FileStore(path)

    def test_existing_readable_file_becomes_owner_only(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_bytes(orjson.dumps({"k": "old"}))
        os.chmod(path, 0o644)
        FileStore(path).set("k", "new")
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert FileStore(path).get("k") == "new"

    def test_save_leaves_no_temporary_files(self, tmp_path):
        path = tmp_path / "store.json"
        store = FileStore(path)
        store.set("a", "1")
        store.set("b", "2")
        store.remove("a")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["store.json"]

    def test_failed_write_keeps_previous_file(self, tmp_path, monkeypatch):
        path = tmp_path / "store.json"
        store = FileStore(path)
        store.set("k", "v")

        def broken_dumps(data):
            raise TypeError("cannot serialize")

        monkeypatch.setattr("secretgate.store.orjson.dumps", broken_dumps)
        with pytest.raises(TypeError):
            store.set("k", "w")
        monkeypatch.undo()
        assert FileStore(path).get("k") == "v"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["store.json"]
