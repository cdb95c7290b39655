# src/study_dashboard/tasks/task_export.py

from __future__ import annotations

import csv
import logging
import os
from collections.abc import Iterable
from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import TextIO

from .task_models import Task

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Task Name",
    "Category",
    "Priority",
    "Status",
    "Date",
    "Start Time",
    "End Time",
    "Estimated Time (mins)",
    "Actual Time (mins)",
    "Created At",
    "Completed At",
]


def format_timestamp(raw: str | None, tz: tzinfo | None = None) -> str:
    """ISO timestamp -> 'YYYY-MM-DD HH:MM:SS' in `tz` (local time when None)."""
    if not raw:
        return ""
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return raw
    return dt.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S")


def task_to_row(task: Task, tz: tzinfo | None = None) -> list[str | int]:
    return [
        task.name,
        task.category,
        task.priority.value,
        task.status.value,
        task.date,
        task.start_time,
        task.end_time,
        task.estimated_time,
        task.actual_time,
        format_timestamp(task.created_at, tz),
        format_timestamp(task.completed_at, tz),
    ]


def write_tasks_csv(tasks: Iterable[Task], fp: TextIO, tz: tzinfo | None = None) -> int:
    """Write header + one row per task. Returns the number of task rows."""
    writer = csv.writer(fp, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    n = 0
    for t in tasks:
        writer.writerow(task_to_row(t, tz))
        n += 1
    return n


def export_filename(prefix: str, today: date) -> str:
    return f"{prefix or 'tasks'}_{today.isoformat()}.csv"


def export_tasks_csv(
    tasks: Iterable[Task],
    directory: str | Path,
    *,
    prefix: str = "tasks",
    today: date | None = None,
    tz: tzinfo | None = None,
) -> Path:
    """Write `<prefix>_<YYYY-MM-DD>.csv` into `directory` and return its path."""
    if today is None:
        today = date.today()
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(prefix, today)

    tmp = path.with_suffix(".tmp")
    with tmp.open("w", encoding="utf-8", newline="") as fp:
        n = write_tasks_csv(tasks, fp, tz)
    os.replace(tmp, path)
    logger.info("Exported %d task(s) to %s", n, path)
    return path
