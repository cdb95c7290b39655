# tests/test_task_query.py

from __future__ import annotations

from datetime import date

import pytest

from study_dashboard.tasks.task_models import DateRange, TaskStatus
from study_dashboard.tasks.task_query import (
    categories,
    compute_task_stats,
    filter_by_date_range,
    get_task_stats,
    task_accuracy,
)

from .fakes import make_task


def test_range_scenario_single_completed_day() -> None:
    tasks = [
        make_task("t1", day="2024-01-01", status=TaskStatus.COMPLETED, estimated=60, actual=60),
        make_task("t2", day="2024-01-02", status=TaskStatus.PENDING, estimated=30, actual=0),
    ]
    stats = get_task_stats(tasks, "u1", DateRange.of("2024-01-01", "2024-01-01"))

    assert stats.total_tasks == 1
    assert stats.completed_tasks == 1
    assert stats.completion_rate == 100
    assert stats.average_accuracy == 100
    assert stats.total_estimated_time == 60
    assert stats.total_actual_time == 60


def test_accuracy_is_symmetric() -> None:
    over = make_task("a", status=TaskStatus.COMPLETED, estimated=100, actual=50)
    under = make_task("b", status=TaskStatus.COMPLETED, estimated=50, actual=100)
    assert task_accuracy(over) == pytest.approx(50.0)
    assert task_accuracy(under) == pytest.approx(50.0)


def test_accuracy_undefined_without_completion_or_times() -> None:
    assert task_accuracy(make_task("a", status=TaskStatus.PENDING, estimated=10, actual=10)) is None
    assert task_accuracy(make_task("b", status=TaskStatus.COMPLETED, estimated=0, actual=10)) is None
    assert task_accuracy(make_task("c", status=TaskStatus.COMPLETED, estimated=10, actual=0)) is None


def test_average_accuracy_only_over_completed_timed_tasks() -> None:
    tasks = [
        make_task("a", status=TaskStatus.COMPLETED, estimated=100, actual=50),  # 50
        make_task("b", status=TaskStatus.COMPLETED, estimated=40, actual=40),  # 100
        make_task("c", status=TaskStatus.COMPLETED, estimated=40, actual=0),  # excluded
        make_task("d", status=TaskStatus.IN_PROGRESS, estimated=40, actual=80),  # excluded
    ]
    stats = compute_task_stats(tasks)
    assert stats.average_accuracy == pytest.approx(75.0)
    assert stats.completed_tasks == 3
    assert stats.completion_rate == pytest.approx(75.0)


def test_empty_collection_gives_defined_zeros() -> None:
    stats = get_task_stats([], "u1")
    assert stats.total_tasks == 0
    assert stats.completion_rate == 0
    assert stats.average_accuracy == 0
    assert stats.total_estimated_time == 0


def test_stats_only_count_the_requested_user() -> None:
    tasks = [
        make_task("a", user_id="u1", status=TaskStatus.COMPLETED),
        make_task("b", user_id="u2", status=TaskStatus.PENDING),
        make_task("c", user_id="u2", status=TaskStatus.PENDING),
    ]
    assert get_task_stats(tasks, "u1").completion_rate == 100
    assert get_task_stats(tasks, "u2").completion_rate == 0
    assert get_task_stats(tasks, "u2").total_tasks == 2


def test_range_boundaries_are_inclusive() -> None:
    tasks = [
        make_task("before", day="2024-02-29"),
        make_task("start", day="2024-03-01"),
        make_task("mid", day="2024-03-05"),
        make_task("end", day="2024-03-10"),
        make_task("after", day="2024-03-11"),
    ]
    kept = filter_by_date_range(tasks, DateRange.of("2024-03-01", "2024-03-10"))
    assert [t.id for t in kept] == ["start", "mid", "end"]


def test_range_skips_unparsable_dates() -> None:
    tasks = [make_task("bad", day="someday"), make_task("ok", day="2024-03-02")]
    kept = filter_by_date_range(tasks, DateRange(date(2024, 3, 1), date(2024, 3, 3)))
    assert [t.id for t in kept] == ["ok"]


def test_invalid_range_strings_raise() -> None:
    with pytest.raises(ValueError):
        DateRange.of("2024-13-01", "2024-12-31")


def test_stats_are_repeatable() -> None:
    tasks = [
        make_task("a", status=TaskStatus.COMPLETED, estimated=45, actual=30),
        make_task("b", day="2024-01-02"),
    ]
    rng = DateRange.of("2024-01-01", "2024-01-31")
    assert get_task_stats(tasks, "u1", rng) == get_task_stats(tasks, "u1", rng)


def test_completion_rate_and_accuracy_stay_in_bounds() -> None:
    tasks = [
        make_task(
            str(i),
            status=TaskStatus.COMPLETED if i % 3 else TaskStatus.PENDING,
            estimated=i + 1,
            actual=(i * 7) % 13 + 1,
        )
        for i in range(30)
    ]
    stats = compute_task_stats(tasks)
    assert 0 <= stats.completion_rate <= 100
    for t in tasks:
        acc = task_accuracy(t)
        if acc is not None:
            assert 0 < acc <= 100


def test_stats_to_dict_uses_camel_case() -> None:
    stats = compute_task_stats([make_task("a", status=TaskStatus.COMPLETED, estimated=10, actual=10)])
    assert stats.to_dict() == {
        "totalTasks": 1,
        "completedTasks": 1,
        "completionRate": 100.0,
        "totalEstimatedTime": 10,
        "totalActualTime": 10,
        "averageAccuracy": 100.0,
    }


def test_categories_in_first_seen_order() -> None:
    tasks = [
        make_task("a", category="Science"),
        make_task("b", category="Mathematics"),
        make_task("c", category="Science"),
    ]
    assert categories(tasks) == ["Science", "Mathematics"]
