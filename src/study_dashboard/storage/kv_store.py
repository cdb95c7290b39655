# src/study_dashboard/storage/kv_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
CURRENT_USER_KEY = "currentUser"

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageError(RuntimeError):
    """Backend could not read or write a value (I/O error, bad JSON, unserializable value)."""


def _check_key(key: str) -> str:
    if not key or not _KEY_RE.match(key) or key.startswith("."):
        raise ValueError(f"invalid storage key: {key!r}")
    return key


def _encode(key: str, value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise StorageError(f"value for key {key!r} is not JSON-serializable: {e}") from e


def _decode(key: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as e:
        raise StorageError(f"stored value for key {key!r} is not valid JSON: {e}") from e


class JsonFileStorage:
    """
    Directory-backed key-value store.

    Layout: one `<key>.json` file per key under `root`.
    Writes go to a temp file first and are moved into place with os.replace,
    so a crash never leaves a half-written value behind.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        logger.info("JsonFileStorage ready root=%s", self._root)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        return self._root / f"{_check_key(key)}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            raw = path.read_text("utf-8")
        except OSError as e:
            raise StorageError(f"failed to read {path}: {e}") from e
        return _decode(key, raw)

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        data = _encode(key, value)
        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(data, "utf-8")
            os.replace(tmp, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise StorageError(f"failed to write {path}: {e}") from e
        logger.debug("Stored key=%s bytes=%d", key, len(data))

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"failed to remove {path}: {e}") from e
        logger.debug("Removed key=%s", key)


class InMemoryStorage:
    """
    Process-local key-value store.

    Values are kept as JSON strings, so they go through the same
    serialization as the file backend (and come back as fresh copies).
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(_check_key(key))
        if raw is None:
            return default
        return _decode(key, raw)

    def set(self, key: str, value: Any) -> None:
        self._data[_check_key(key)] = _encode(key, value)

    def remove(self, key: str) -> None:
        self._data.pop(_check_key(key), None)

    def raw(self, key: str) -> str | None:
        """Serialized value as stored (tests use it to plant corrupted data)."""
        return self._data.get(key)

    def put_raw(self, key: str, raw: str) -> None:
        self._data[_check_key(key)] = raw
