import pytest

from flowgraph.config import load_config
from flowgraph.persistence import (
    InMemoryHistoryStorage,
    SQLiteHistoryStorage,
    StorageError,
    StorageQuotaExceeded,
    get_storage,
)


def test_inmemory_storage_crud():
    storage = InMemoryHistoryStorage()
    assert storage.load("k") is None
    storage.save("k", "v1")
    storage.save("k", "v2")
    assert storage.load("k") == "v2"
    storage.delete("k")
    storage.delete("k")
    assert storage.load("k") is None


def test_inmemory_storage_quota():
    storage = InMemoryHistoryStorage(max_bytes=4)
    storage.save("k", "abcd")
    with pytest.raises(StorageQuotaExceeded):
        storage.save("k", "abcde")
    assert storage.load("k") == "abcd"


def test_sqlite_storage_crud(tmp_path):
    db_path = tmp_path / "history.db"
    storage = SQLiteHistoryStorage(db_path)
    storage.save("k", "v1")
    storage.save("k", "v2")
    storage.close()

    reopened = SQLiteHistoryStorage(db_path)
    assert reopened.load("k") == "v2"
    reopened.delete("k")
    assert reopened.load("k") is None
    reopened.close()


def test_sqlite_storage_quota_is_storage_error(tmp_path):
    storage = SQLiteHistoryStorage(tmp_path / "history.db", max_bytes=2)
    with pytest.raises(StorageError):
        storage.save("k", "too long")


def test_sqlite_errors_are_wrapped(tmp_path):
    storage = SQLiteHistoryStorage(tmp_path / "history.db")
    storage.close()
    with pytest.raises(StorageError):
        storage.load("k")


def test_get_storage_from_url(tmp_path):
    assert isinstance(get_storage("memory://"), InMemoryHistoryStorage)
    sqlite_storage = get_storage(f"sqlite://{tmp_path / 'h.db'}")
    assert isinstance(sqlite_storage, SQLiteHistoryStorage)
    sqlite_storage.close()
    with pytest.raises(ValueError):
        get_storage("redis://localhost")


def test_get_storage_defaults_to_memory():
    assert isinstance(get_storage(config=load_config()), InMemoryHistoryStorage)


def test_get_storage_uses_env(tmp_path, monkeypatch):
    monkeypatch.setenv("FLOWGRAPH_HISTORY_URL", f"sqlite://{tmp_path / 'env.db'}")
    storage = get_storage()
    assert isinstance(storage, SQLiteHistoryStorage)
    assert storage.db_path.endswith("env.db")
    storage.close()
