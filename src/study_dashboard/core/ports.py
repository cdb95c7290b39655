# src/study_dashboard/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage backends swappable and makes testing easier.
"""

from collections.abc import Callable
from typing import Any, Protocol

WarningSink = Callable[[str], None]
# Non-fatal problems (storage failures, corrupted state) reported to the front end.


class KeyValueStorage(Protocol):
    """
    Persistent key -> JSON-serializable value map.

    Implementations raise storage.kv_store.StorageError when the backend
    cannot read or write a value.
    """

    def get(self, key: str, default: Any = None) -> Any: ...
    def set(self, key: str, value: Any) -> None: ...
    def remove(self, key: str) -> None: ...


class TaskRepo(Protocol):
    # Read API (query engine / timer)
    def get_task(self, task_id: str) -> Any | None: ...
    def get_user_tasks(self, user_id: str) -> list[Any]: ...

    # Mutation API
    def update_task(self, task_id: str, **changes: Any) -> Any | None: ...
    def delete_task(self, task_id: str) -> bool: ...
