# src/study_dashboard/tasks/completion_policy.py

from __future__ import annotations

"""
completedAt stamping rules.

The store calls `policy.apply(previous, updated, now_iso)` after merging an
update and persists whatever comes back.

- StampOnce: stamp on the transition into `completed`, never clear. A task that
  goes completed -> pending keeps its old completedAt.
- StampAndClear: same stamping, but any transition away from `completed`
  clears completedAt.
"""

from dataclasses import replace
from typing import Protocol

from .task_models import Task, TaskStatus


class CompletedAtPolicy(Protocol):
    name: str

    def apply(self, previous: Task, updated: Task, now_iso: str) -> Task: ...


def _entered_completed(previous: Task, updated: Task) -> bool:
    return previous.status != TaskStatus.COMPLETED and updated.status == TaskStatus.COMPLETED


class StampOnce:
    name = "keep"

    def apply(self, previous: Task, updated: Task, now_iso: str) -> Task:
        if _entered_completed(previous, updated):
            return replace(updated, completed_at=now_iso)
        return updated


class StampAndClear:
    name = "clear"

    def apply(self, previous: Task, updated: Task, now_iso: str) -> Task:
        if _entered_completed(previous, updated):
            return replace(updated, completed_at=now_iso)
        if updated.status != TaskStatus.COMPLETED and updated.completed_at is not None:
            return replace(updated, completed_at=None)
        return updated


_POLICIES: dict[str, type[StampOnce] | type[StampAndClear]] = {
    StampOnce.name: StampOnce,
    StampAndClear.name: StampAndClear,
}


def policy_from_name(name: str | None) -> CompletedAtPolicy:
    """Map a settings value ("keep" / "clear") to a policy; unknown names -> keep."""
    cls = _POLICIES.get((name or "").strip().lower(), StampOnce)
    return cls()
