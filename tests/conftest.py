# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from study_dashboard.cli.bootstrap import create_initial_state
from study_dashboard.core.state import AppState
from study_dashboard.tasks.task_store import TaskStore

from .fakes import FlakyStorage, ManualClock

# Wednesday. Naive -> astimezone() makes it "12:00 local" whatever the host TZ is,
# so the store's calendar day is always 2024-01-03.
FIXED_NOW = datetime(2024, 1, 3, 12, 0, 0).astimezone()


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="study-dashboard-test",
        data_dir=tmp_path,
        storage_dir=tmp_path / "storage",
        log_dir=tmp_path,
        export_dir=tmp_path / "exports",
        users_path=None,
        completed_at_policy="keep",
        timer_tick_seconds=0.01,
        default_range_days=7,
        trend_weeks=8,
        console_enabled=False,
    )


@pytest.fixture()
def storage() -> FlakyStorage:
    return FlakyStorage()


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(FIXED_NOW)


@pytest.fixture()
def store(storage: FlakyStorage, clock: ManualClock) -> TaskStore:
    return TaskStore(storage, clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, storage: FlakyStorage, clock: ManualClock) -> AppState:
    """
    AppState wired through the real composition root, on in-memory storage
    and a fixed clock.
    """
    return create_initial_state(settings=settings, storage=storage, clock=clock)
