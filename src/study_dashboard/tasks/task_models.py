# src/study_dashboard/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    pending -> in-progress -> completed is the expected flow, but nothing
    enforces it: any status may be set at any time.
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


# Persisted (camelCase) name -> attribute name.
FIELD_KEYS: dict[str, str] = {
    "id": "id",
    "userId": "user_id",
    "name": "name",
    "category": "category",
    "priority": "priority",
    "status": "status",
    "date": "date",
    "startTime": "start_time",
    "endTime": "end_time",
    "estimatedTime": "estimated_time",
    "actualTime": "actual_time",
    "createdAt": "created_at",
    "completedAt": "completed_at",
}

IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def _minutes(raw: Any) -> int:
    try:
        return max(0, int(raw))
    except (TypeError, ValueError):
        return 0


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    user_id: str
    name: str
    category: str
    priority: TaskPriority
    status: TaskStatus
    date: str  # yyyy-MM-dd
    start_time: str  # HH:mm, advisory
    end_time: str
    estimated_time: int  # minutes
    actual_time: int  # minutes
    created_at: str  # ISO timestamp
    completed_at: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, attr in FIELD_KEYS.items():
            value = getattr(self, attr)
            if attr == "completed_at" and value is None:
                continue
            out[key] = str(value) if isinstance(value, StrEnum) else value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """
        Build a Task from a persisted record.

        Lenient for everything except the id: unknown enum values fall back to
        defaults and bad minute values to 0.
        """
        task_id = data.get("id")
        if not task_id:
            raise ValueError("task record has no id")

        completed_at = data.get("completedAt")
        return cls(
            id=str(task_id),
            user_id=str(data.get("userId") or ""),
            name=str(data.get("name") or ""),
            category=str(data.get("category") or ""),
            priority=TaskPriority.from_db(data.get("priority")),
            status=TaskStatus.from_db(data.get("status")),
            date=str(data.get("date") or ""),
            start_time=str(data.get("startTime") or ""),
            end_time=str(data.get("endTime") or ""),
            estimated_time=_minutes(data.get("estimatedTime")),
            actual_time=_minutes(data.get("actualTime")),
            created_at=str(data.get("createdAt") or ""),
            completed_at=str(completed_at) if completed_at else None,
        )


@dataclass(slots=True, frozen=True)
class TaskStats:
    total_tasks: int
    completed_tasks: int
    completion_rate: float  # %
    total_estimated_time: int  # minutes
    total_actual_time: int  # minutes
    average_accuracy: float  # %

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "completionRate": self.completion_rate,
            "totalEstimatedTime": self.total_estimated_time,
            "totalActualTime": self.total_actual_time,
            "averageAccuracy": self.average_accuracy,
        }


def parse_iso_date(raw: str | date) -> date:
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw).strip())


def canonical_date(raw: str | date) -> str:
    """Any form `parse_iso_date` accepts -> `YYYY-MM-DD`. ValueError otherwise."""
    return parse_iso_date(raw).isoformat()


@dataclass(slots=True, frozen=True)
class DateRange:
    """Closed interval of calendar dates: both `start` and `end` are included."""

    start: date
    end: date

    @classmethod
    def of(cls, start: str | date, end: str | date) -> DateRange:
        try:
            return cls(start=parse_iso_date(start), end=parse_iso_date(end))
        except ValueError as e:
            raise ValueError(f"invalid date range {start!r}..{end!r}: {e}") from e

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end
