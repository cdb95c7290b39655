# tests/test_export.py

from __future__ import annotations

import csv
import io
from dataclasses import replace
from datetime import UTC, date
from pathlib import Path

from study_dashboard.tasks.task_export import (
    CSV_HEADERS,
    export_filename,
    export_tasks_csv,
    format_timestamp,
    write_tasks_csv,
)
from study_dashboard.tasks.task_models import TaskPriority, TaskStatus

from .fakes import make_task


def test_format_timestamp() -> None:
    assert format_timestamp("2024-01-01T08:00:00.000Z", UTC) == "2024-01-01 08:00:00"
    assert format_timestamp(None, UTC) == ""
    assert format_timestamp("yesterday", UTC) == "yesterday"


def test_write_tasks_csv_rows() -> None:
    done = replace(
        make_task(
            "a",
            name="Essay, draft",
            category="Literature",
            priority=TaskPriority.HIGH,
            status=TaskStatus.COMPLETED,
            estimated=45,
            actual=50,
        ),
        completed_at="2024-01-01T09:30:15.000Z",
    )
    open_task = make_task("b", name="Reading")

    buf = io.StringIO()
    assert write_tasks_csv([done, open_task], buf, UTC) == 2

    rows = list(csv.reader(io.StringIO(buf.getvalue())))
    assert rows[0] == CSV_HEADERS
    assert rows[1] == [
        "Essay, draft",
        "Literature",
        "high",
        "completed",
        "2024-01-01",
        "09:00",
        "10:00",
        "45",
        "50",
        "2024-01-01 08:00:00",
        "2024-01-01 09:30:15",
    ]
    assert rows[2][0] == "Reading"
    assert rows[2][-1] == ""


def test_empty_export_has_header_only() -> None:
    buf = io.StringIO()
    assert write_tasks_csv([], buf) == 0
    assert buf.getvalue() == ",".join(CSV_HEADERS) + "\n"


def test_export_filename() -> None:
    assert export_filename("tasks", date(2024, 1, 10)) == "tasks_2024-01-10.csv"
    assert export_filename("", date(2024, 1, 10)) == "tasks_2024-01-10.csv"


def test_export_tasks_csv_writes_file(tmp_path: Path) -> None:
    out = export_tasks_csv(
        [make_task("a"), make_task("b")],
        tmp_path / "exports",
        prefix="tasks_alice",
        today=date(2024, 1, 10),
        tz=UTC,
    )
    assert out == tmp_path / "exports" / "tasks_alice_2024-01-10.csv"
    lines = out.read_text("utf-8").splitlines()
    assert len(lines) == 3
    assert lines[0].startswith("Task Name,Category,Priority")
    assert not list((tmp_path / "exports").glob("*.tmp"))
