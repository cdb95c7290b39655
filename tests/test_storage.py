# tests/test_storage.py

from __future__ import annotations

from pathlib import Path

import pytest

from study_dashboard.storage.kv_store import (
    CURRENT_USER_KEY,
    TASKS_KEY,
    InMemoryStorage,
    JsonFileStorage,
    StorageError,
)


def test_file_storage_round_trip(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path / "kv")
    storage.set(TASKS_KEY, [{"id": "task_1", "name": "Algèbre"}])

    assert (tmp_path / "kv" / "tasks.json").exists()
    assert storage.get(TASKS_KEY) == [{"id": "task_1", "name": "Algèbre"}]

    # A second instance over the same directory sees the same data.
    assert JsonFileStorage(tmp_path / "kv").get(TASKS_KEY) == [{"id": "task_1", "name": "Algèbre"}]


def test_file_storage_missing_key_returns_default(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path)
    assert storage.get(CURRENT_USER_KEY) is None
    assert storage.get(CURRENT_USER_KEY, {}) == {}


def test_file_storage_remove(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path)
    storage.set(CURRENT_USER_KEY, {"id": "user1"})
    storage.remove(CURRENT_USER_KEY)
    storage.remove(CURRENT_USER_KEY)
    assert storage.get(CURRENT_USER_KEY) is None


def test_file_storage_corrupt_file_raises(tmp_path: Path) -> None:
    (tmp_path / "tasks.json").write_text("[{broken", "utf-8")
    with pytest.raises(StorageError):
        JsonFileStorage(tmp_path).get(TASKS_KEY)


def test_file_storage_leaves_no_temp_files(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path)
    storage.set(TASKS_KEY, [])
    storage.set(TASKS_KEY, [1, 2, 3])
    assert sorted(p.name for p in tmp_path.iterdir()) == ["tasks.json"]


@pytest.mark.parametrize("key", ["", "../etc", ".hidden", "a/b"])
def test_invalid_keys_are_rejected(tmp_path: Path, key: str) -> None:
    with pytest.raises(ValueError):
        JsonFileStorage(tmp_path).set(key, 1)
    with pytest.raises(ValueError):
        InMemoryStorage().get(key)


def test_unserializable_value_raises_storage_error(tmp_path: Path) -> None:
    with pytest.raises(StorageError):
        JsonFileStorage(tmp_path).set(TASKS_KEY, {"when": object()})
    with pytest.raises(StorageError):
        InMemoryStorage().set(TASKS_KEY, {1, 2})


def test_memory_storage_returns_fresh_copies() -> None:
    storage = InMemoryStorage({TASKS_KEY: [{"id": "a"}]})
    got = storage.get(TASKS_KEY)
    got.append({"id": "b"})
    assert storage.get(TASKS_KEY) == [{"id": "a"}]
    assert storage.raw(TASKS_KEY) == '[{"id": "a"}]'
