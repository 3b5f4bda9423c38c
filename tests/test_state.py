"""Tests for digest stores."""

from pathlib import Path

from state import MemoryDigestStore, SqliteDigestStore


class TestMemoryDigestStore:
    def test_empty_by_default(self):
        assert MemoryDigestStore().get() is None

    def test_set_get_clear(self):
        store = MemoryDigestStore(initial="abc")
        assert store.get() == "abc"
        store.set("def")
        assert store.get() == "def"
        store.clear()
        assert store.get() is None


class TestSqliteDigestStore:
    def test_empty_database(self, tmp_path: Path):
        with SqliteDigestStore(tmp_path / "state.db") as store:
            assert store.get() is None
            assert store.info() is None

    def test_overwrite_keeps_single_value(self, tmp_path: Path):
        with SqliteDigestStore(tmp_path / "state.db") as store:
            store.set("first")
            store.set("second")
            assert store.get() == "second"
            info = store.info()
            assert info["digest"] == "second"
            assert info["updated_at"] > 0

    def test_persists_across_connections(self, tmp_path: Path):
        path = tmp_path / "nested" / "state.db"
        with SqliteDigestStore(path) as store:
            store.set("persisted")
        with SqliteDigestStore(path) as store:
            assert store.get() == "persisted"

    def test_clear(self, tmp_path: Path):
        with SqliteDigestStore(tmp_path / "state.db") as store:
            store.set("value")
            store.clear()
            assert store.get() is None

    def test_keys_are_independent(self, tmp_path: Path):
        path = tmp_path / "state.db"
        with SqliteDigestStore(path, key="ru") as ru, SqliteDigestStore(path, key="en") as en:
            ru.set("ru-digest")
            assert en.get() is None
            assert ru.get() == "ru-digest"
