# src/study_dashboard/tasks/task_reports.py

from __future__ import annotations

"""
Dashboard data series.

Everything here is derived from task_query outputs; a renderer (charts,
console tables) only formats what these functions return.
"""

import calendar
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from ..auth.users import User, UserRole
from .task_models import DateRange, Task, TaskPriority
from .task_query import get_task_stats, get_user_tasks, task_day, week_start


@dataclass(slots=True, frozen=True)
class WeekRange:
    label: str  # "Mon DD" of the week start
    dates: DateRange


@dataclass(slots=True, frozen=True)
class TimeComparison:
    name: str
    estimated_time: int
    actual_time: int


@dataclass(slots=True, frozen=True)
class UserSummary:
    user_id: str
    user_name: str
    completion_rate: float
    study_hours: float
    total_tasks: int


@dataclass(slots=True, frozen=True)
class AdminOverview:
    total_users: int
    total_tasks: int
    total_completed_tasks: int
    total_study_hours: float
    average_completion_rate: float


# ---- date ranges ----


def last_days_range(today: date, days: int) -> DateRange:
    return DateRange(start=today - timedelta(days=max(0, int(days))), end=today)


def this_month_range(today: date) -> DateRange:
    last_day = calendar.monthrange(today.year, today.month)[1]
    return DateRange(start=today.replace(day=1), end=today.replace(day=last_day))


def week_ranges(today: date, weeks: int = 8) -> list[WeekRange]:
    """Sunday..Saturday weeks, oldest first; the last one contains `today`."""
    current = week_start(today)
    out: list[WeekRange] = []
    for back in range(weeks - 1, -1, -1):
        start = current - timedelta(weeks=back)
        out.append(
            WeekRange(
                label=start.strftime("%b %d"),
                dates=DateRange(start=start, end=start + timedelta(days=6)),
            )
        )
    return out


# ---- per-user series ----


def weekly_completion_trend(
    tasks: Sequence[Task],
    user_id: str,
    today: date,
    weeks: int = 8,
) -> list[tuple[str, float]]:
    return [
        (w.label, get_task_stats(tasks, user_id, w.dates).completion_rate)
        for w in week_ranges(today, weeks)
    ]


def priority_distribution(tasks: Iterable[Task]) -> dict[str, int]:
    counts = {p.value: 0 for p in TaskPriority}
    for t in tasks:
        counts[t.priority.value] += 1
    return counts


def activity_heatmap(tasks: Iterable[Task]) -> dict[str, int]:
    """Scheduled date (YYYY-MM-DD) -> number of tasks on that date."""
    out: dict[str, int] = {}
    for t in tasks:
        day = task_day(t)
        key = day.isoformat() if day is not None else t.date
        out[key] = out.get(key, 0) + 1
    return out


def time_comparison(tasks: Sequence[Task], limit: int = 10) -> list[TimeComparison]:
    """Estimated vs actual minutes for the last `limit` completed, timed tasks."""
    done = [t for t in tasks if t.is_completed and t.actual_time > 0]
    if limit <= 0:
        return []
    return [
        TimeComparison(name=t.name, estimated_time=t.estimated_time, actual_time=t.actual_time)
        for t in done[-limit:]
    ]


def todays_tasks(tasks: Iterable[Task], today: date) -> list[Task]:
    return [t for t in tasks if task_day(t) == today]


def todays_summary(tasks: Iterable[Task], today: date) -> str:
    items = todays_tasks(tasks, today)
    done = sum(1 for t in items if t.is_completed)
    return f"{done} of {len(items)} completed"


# ---- admin ----


def regular_users(users: Iterable[User]) -> list[User]:
    return [u for u in users if u.role == UserRole.USER]


def user_comparison(
    tasks: Sequence[Task],
    users: Iterable[User],
    date_range: DateRange | None,
) -> list[UserSummary]:
    out: list[UserSummary] = []
    for user in regular_users(users):
        stats = get_task_stats(tasks, user.id, date_range)
        out.append(
            UserSummary(
                user_id=user.id,
                user_name=user.name,
                completion_rate=stats.completion_rate,
                study_hours=stats.total_actual_time / 60,
                total_tasks=stats.total_tasks,
            )
        )
    return out


def admin_overview(
    tasks: Sequence[Task],
    users: Iterable[User],
    date_range: DateRange | None,
) -> AdminOverview:
    members = regular_users(users)
    all_stats = [get_task_stats(tasks, u.id, date_range) for u in members]
    n = len(members)
    return AdminOverview(
        total_users=n,
        total_tasks=sum(s.total_tasks for s in all_stats),
        total_completed_tasks=sum(s.completed_tasks for s in all_stats),
        total_study_hours=sum(s.total_actual_time for s in all_stats) / 60,
        average_completion_rate=(sum(s.completion_rate for s in all_stats) / n) if n else 0.0,
    )


def team_weekly_trend(
    tasks: Sequence[Task],
    users: Iterable[User],
    today: date,
    weeks: int = 8,
) -> dict[str, list[float]]:
    """User name -> weekly completion rates (same week order as week_ranges)."""
    ranges = week_ranges(today, weeks)
    out: dict[str, list[float]] = {}
    for user in regular_users(users):
        own = get_user_tasks(tasks, user.id)
        out[user.name] = [get_task_stats(own, user.id, w.dates).completion_rate for w in ranges]
    return out
