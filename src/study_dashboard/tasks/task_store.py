# src/study_dashboard/tasks/task_store.py

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, date, datetime
from typing import Any

from ..core.ports import KeyValueStorage, WarningSink
from ..storage.kv_store import TASKS_KEY, StorageError
from .completion_policy import CompletedAtPolicy, StampOnce
from .task_models import (
    FIELD_KEYS,
    IMMUTABLE_FIELDS,
    DateRange,
    Task,
    TaskPriority,
    TaskStats,
    TaskStatus,
    canonical_date,
)
from .task_query import get_task_stats, get_user_tasks

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ATTRS = frozenset(FIELD_KEYS.values())


def utc_now() -> datetime:
    return datetime.now(UTC)


def iso_timestamp(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a 'Z' suffix."""
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _coerce(attr: str, value: Any) -> Any:
    if attr == "status":
        return TaskStatus(value)
    if attr == "priority":
        return TaskPriority(value)
    if attr in ("estimated_time", "actual_time"):
        return max(0, int(value))
    if attr == "date":
        return canonical_date(value)
    if attr == "completed_at":
        return None if value is None else str(value)
    return str(value)


class TaskStore:
    """
    In-memory task collection backed by a key-value storage.

    - the list in memory is the source of truth during a session
    - every mutation builds a new list, swaps the reference, then writes the
      whole collection under the "tasks" key
    - storage failures never lose in-memory state: they are logged, reported
      through `on_warning`, and the store stays `dirty` until a write succeeds
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        completion_policy: CompletedAtPolicy | None = None,
        clock: Clock | None = None,
        on_warning: WarningSink | None = None,
    ) -> None:
        self._storage = storage
        self._policy: CompletedAtPolicy = completion_policy or StampOnce()
        self._clock: Clock = clock or utc_now
        self.on_warning = on_warning
        self._tasks: list[Task] = []
        self._dirty = False
        self.last_warning: str | None = None
        self.load()
        logger.info("TaskStore ready total=%s policy=%s", len(self._tasks), self._policy.name)

    # ---- low-level helpers ----

    def _warn(self, message: str) -> None:
        self.last_warning = message
        logger.warning("%s", message)
        if self.on_warning is not None:
            try:
                self.on_warning(message)
            except Exception:
                logger.exception("Warning sink failed")

    def _persist(self) -> bool:
        payload = [t.to_dict() for t in self._tasks]
        try:
            self._storage.set(TASKS_KEY, payload)
        except StorageError as e:
            self._dirty = True
            logger.debug("Persist failed", exc_info=True)
            self._warn(f"Could not save tasks ({e}). Changes are kept for this session only.")
            return False
        self._dirty = False
        return True

    def _commit(self, tasks: list[Task]) -> None:
        self._tasks = tasks
        self._persist()

    def _new_id(self, now: datetime) -> str:
        taken = {t.id for t in self._tasks}
        millis = int(now.timestamp() * 1000)
        while True:
            suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
            task_id = f"task_{millis}_{suffix}"
            if task_id not in taken:
                return task_id

    # ---- persistence ----

    def load(self) -> None:
        """
        Replace the in-memory collection with the persisted one.

        Fails closed: unreadable or malformed state yields an empty collection
        (plus a warning); individual bad records are skipped.
        """
        try:
            raw = self._storage.get(TASKS_KEY, [])
        except StorageError as e:
            logger.debug("Load failed", exc_info=True)
            self._tasks = []
            self._warn(f"Stored tasks could not be read ({e}); starting with an empty list.")
            return

        if not isinstance(raw, list):
            self._tasks = []
            self._warn("Stored tasks are malformed (expected a list); starting with an empty list.")
            return

        tasks: list[Task] = []
        seen: set[str] = set()
        skipped = 0
        for item in raw:
            if not isinstance(item, dict):
                skipped += 1
                continue
            try:
                task = Task.from_dict(item)
            except ValueError:
                skipped += 1
                continue
            if task.id in seen:
                skipped += 1
                continue
            seen.add(task.id)
            tasks.append(task)

        self._tasks = tasks
        if skipped:
            self._warn(f"Skipped {skipped} malformed stored task record(s).")

    def flush(self) -> bool:
        """Write the current snapshot again (e.g. after a failed save)."""
        return self._persist()

    @property
    def dirty(self) -> bool:
        return self._dirty

    # ---- public API ----

    @property
    def tasks(self) -> list[Task]:
        """Snapshot of all tasks in insertion order."""
        return list(self._tasks)

    def count_tasks(self) -> int:
        return len(self._tasks)

    def get_task(self, task_id: str) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def add_task(
        self,
        *,
        user_id: str,
        name: str,
        category: str,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        status: TaskStatus | str = TaskStatus.PENDING,
        date: str,
        start_time: str = "",
        end_time: str = "",
        estimated_time: int = 0,
        actual_time: int = 0,
        completed_at: str | None = None,
    ) -> Task:
        if not user_id or not user_id.strip():
            raise ValueError("user_id is required")

        now = self._clock()
        task = Task(
            id=self._new_id(now),
            user_id=user_id,
            name=name,
            category=category,
            priority=TaskPriority(priority),
            status=TaskStatus(status),
            date=canonical_date(date),
            start_time=start_time,
            end_time=end_time,
            estimated_time=max(0, int(estimated_time)),
            actual_time=max(0, int(actual_time)),
            created_at=iso_timestamp(now),
            completed_at=completed_at,
        )
        self._commit([*self._tasks, task])
        logger.debug(
            "Task added id=%s user=%s status=%s date=%s",
            task.id,
            task.user_id,
            task.status.value,
            task.date,
        )
        return task

    def create_task(
        self,
        *,
        user_id: str,
        name: str,
        category: str,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        estimated_time: int = 30,
        date: str | None = None,
        start_time: str = "09:00",
        end_time: str = "10:00",
    ) -> Task:
        """
        Form-submission path: status is always pending and actual time 0,
        whatever the caller had in mind.
        """
        if date is None:
            date = self._clock().astimezone().date().isoformat()
        return self.add_task(
            user_id=user_id,
            name=name,
            category=category,
            priority=priority,
            status=TaskStatus.PENDING,
            date=date,
            start_time=start_time,
            end_time=end_time,
            estimated_time=estimated_time,
            actual_time=0,
        )

    def update_task(self, task_id: str, **changes: Any) -> Task | None:
        """
        Merge `changes` (attribute names) into the task with `task_id`.

        Returns the updated task, or None when the id is unknown (no-op).
        Entering `completed` stamps completed_at according to the policy.
        """
        unknown = set(changes) - _ATTRS
        if unknown:
            raise ValueError(f"unknown task field(s): {', '.join(sorted(unknown))}")
        frozen = set(changes) & IMMUTABLE_FIELDS
        if frozen:
            raise ValueError(f"immutable task field(s): {', '.join(sorted(frozen))}")

        coerced = {attr: _coerce(attr, value) for attr, value in changes.items()}

        for idx, previous in enumerate(self._tasks):
            if previous.id != task_id:
                continue
            merged = replace(previous, **coerced)
            updated = self._policy.apply(previous, merged, iso_timestamp(self._clock()))
            tasks = list(self._tasks)
            tasks[idx] = updated
            self._commit(tasks)
            logger.debug("Task updated id=%s fields=%s", task_id, sorted(coerced))
            return updated

        logger.debug("update_task: no task id=%s", task_id)
        return None

    def delete_task(self, task_id: str) -> bool:
        remaining = [t for t in self._tasks if t.id != task_id]
        if len(remaining) == len(self._tasks):
            logger.debug("delete_task: no task id=%s", task_id)
            return False
        self._commit(remaining)
        logger.debug("Task deleted id=%s", task_id)
        return True

    def get_user_tasks(self, user_id: str) -> list[Task]:
        return get_user_tasks(self._tasks, user_id)

    def get_task_stats(self, user_id: str, date_range: DateRange | None = None) -> TaskStats:
        return get_task_stats(self._tasks, user_id, date_range)

    def today(self) -> date:
        """Local calendar date according to the store clock."""
        return self._clock().astimezone().date()
