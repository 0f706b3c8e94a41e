"""Tests for the key-value stores."""

import json

from scripts.lib.errors import StorageError
from scripts.lib.kv_store import InMemoryStore, JsonFileStore, UnavailableStore


class TestInMemoryStore:
    def test_missing_key_is_ok_none(self):
        result = InMemoryStore().get("nope")
        assert result.ok is True
        assert result.value is None

    def test_set_then_get(self):
        store = InMemoryStore()
        assert store.set("k", {"a": [1, 2]}).ok
        assert store.get("k").value == {"a": [1, 2]}

    def test_values_are_copied(self):
        payload = {"a": 1}
        store = InMemoryStore({"k": payload})
        payload["a"] = 2
        assert store.get("k").value == {"a": 1}


class TestJsonFileStore:
    def test_round_trip_and_shared_document(self, tmp_path):
        path = tmp_path / "state" / "store.json"
        store = JsonFileStore(path)
        assert store.get("k").value is None
        store.set("a", 1)
        store.set("b", {"x": "y"})
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": 1, "b": {"x": "y"}}
        assert JsonFileStore(path).get("b").value == {"x": "y"}

    def test_corrupt_file_fails_read_without_raising(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        result = JsonFileStore(path).get("k")
        assert result.ok is False
        assert isinstance(result.error, StorageError)
        assert result.error.details["key"] == "k"

    def test_corrupt_file_is_rewritten_on_set(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2]", encoding="utf-8")
        store = JsonFileStore(path)
        assert store.set("k", 5).ok
        assert store.get("k").value == 5

    def test_unwritable_location_fails_set(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        result = JsonFileStore(blocker / "store.json").set("k", 1)
        assert result.ok is False


class TestUnavailableStore:
    def test_every_operation_fails(self):
        store = UnavailableStore("disabled")
        assert store.get("k").ok is False
        result = store.set("k", 1)
        assert result.ok is False
        assert "disabled" in str(result.error)
