# src/study_dashboard/tasks/task_query.py

from __future__ import annotations

"""
Task query engine.

Pure functions over a task snapshot: per-user subsets, date-range subsets,
statistics and the multi-criteria list filter. Nothing here touches storage
or mutates its inputs, so results can be cached on (snapshot, arguments).
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from .task_models import DateRange, Task, TaskStats, parse_iso_date

logger = logging.getLogger(__name__)

FILTER_ALL = "all"
DATE_FILTERS = (FILTER_ALL, "today", "this-week", "this-month")


def task_day(task: Task) -> date | None:
    """Scheduled date of `task`, or None when the stored value does not parse."""
    try:
        return parse_iso_date(task.date)
    except ValueError:
        logger.debug("Task %s has unparsable date %r", task.id, task.date)
        return None


def get_user_tasks(tasks: Iterable[Task], user_id: str) -> list[Task]:
    return [t for t in tasks if t.user_id == user_id]


def filter_by_date_range(tasks: Iterable[Task], date_range: DateRange) -> list[Task]:
    """Keep tasks scheduled inside the closed interval [start, end]."""
    out: list[Task] = []
    for t in tasks:
        day = task_day(t)
        if day is not None and date_range.contains(day):
            out.append(t)
    return out


def task_accuracy(task: Task) -> float | None:
    """
    Symmetric estimate accuracy in percent: min(est/act, act/est) * 100.

    Only defined for completed tasks with both times > 0; None otherwise.
    """
    if not task.is_completed:
        return None
    est, act = task.estimated_time, task.actual_time
    if est <= 0 or act <= 0:
        return None
    return min(est / act, act / est) * 100


def compute_task_stats(tasks: Sequence[Task]) -> TaskStats:
    total = len(tasks)
    completed = sum(1 for t in tasks if t.is_completed)
    completion_rate = (completed / total) * 100 if total > 0 else 0.0

    accuracies = [a for a in (task_accuracy(t) for t in tasks) if a is not None]
    average_accuracy = sum(accuracies) / len(accuracies) if accuracies else 0.0

    return TaskStats(
        total_tasks=total,
        completed_tasks=completed,
        completion_rate=completion_rate,
        total_estimated_time=sum(t.estimated_time for t in tasks),
        total_actual_time=sum(t.actual_time for t in tasks),
        average_accuracy=average_accuracy,
    )


def get_task_stats(
    tasks: Iterable[Task],
    user_id: str,
    date_range: DateRange | None = None,
) -> TaskStats:
    """Statistics for one user, optionally scoped to a date range."""
    scoped = get_user_tasks(tasks, user_id)
    if date_range is not None:
        scoped = filter_by_date_range(scoped, date_range)
    return compute_task_stats(scoped)


def week_start(today: date) -> date:
    """Most recent Sunday on or before `today`."""
    # date.weekday(): Monday=0 .. Sunday=6
    return today - timedelta(days=(today.weekday() + 1) % 7)


def categories(tasks: Iterable[Task]) -> list[str]:
    """Distinct categories in first-seen order."""
    return list(dict.fromkeys(t.category for t in tasks))


@dataclass(slots=True, frozen=True)
class TaskFilter:
    """Task-list view criteria; "all" disables a criterion."""

    search_term: str = ""
    status: str = FILTER_ALL
    priority: str = FILTER_ALL
    category: str = FILTER_ALL
    date_filter: str = FILTER_ALL


def _matches_date(day: date | None, date_filter: str, today: date, sunday: date) -> bool:
    if date_filter == FILTER_ALL:
        return True
    if day is None:
        return False
    if date_filter == "today":
        return day == today
    if date_filter == "this-week":
        return day >= sunday
    # this-month
    return day.year == today.year and day.month == today.month


def filter_tasks(
    tasks: Iterable[Task],
    criteria: TaskFilter,
    today: date | None = None,
) -> list[Task]:
    """
    Apply all criteria (ANDed) and keep the input order.

    - search_term: case-insensitive substring of name OR category
    - status / priority / category: "all" or exact match
    - date_filter: all | today | this-week (on/after last Sunday) | this-month
    """
    if criteria.date_filter not in DATE_FILTERS:
        raise ValueError(f"unknown date filter: {criteria.date_filter!r}")

    if today is None:
        today = date.today()
    sunday = week_start(today)
    needle = criteria.search_term.lower()

    out: list[Task] = []
    for t in tasks:
        if needle and needle not in t.name.lower() and needle not in t.category.lower():
            continue
        if criteria.status != FILTER_ALL and t.status != criteria.status:
            continue
        if criteria.priority != FILTER_ALL and t.priority != criteria.priority:
            continue
        if criteria.category != FILTER_ALL and t.category != criteria.category:
            continue
        if criteria.date_filter != FILTER_ALL and not _matches_date(
            task_day(t), criteria.date_filter, today, sunday
        ):
            continue
        out.append(t)
    return out
