# src/study_dashboard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage/tasks/auth/timers).
"""

from __future__ import annotations

import logging

from ..auth.session import AuthService
from ..auth.users import load_users
from ..config import get_settings
from ..core.ports import KeyValueStorage, WarningSink
from ..core.state import AppState
from ..storage.kv_store import JsonFileStorage
from ..tasks.completion_policy import policy_from_name
from ..tasks.task_store import Clock, TaskStore
from ..tasks.task_timer import TimerRegistry

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.storage_dir.mkdir(parents=True, exist_ok=True)
    settings.log_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    storage: KeyValueStorage | None = None,
    on_warning: WarningSink | None = None,
    clock: Clock | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and storage) injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to
    get_settings(); if storage is None, a JsonFileStorage under
    settings.storage_dir is used.
    """
    if settings is None:
        settings = get_settings()

    if storage is None:
        _ensure_local_dirs(settings)
        storage = JsonFileStorage(settings.storage_dir)

    task_store = TaskStore(
        storage,
        completion_policy=policy_from_name(getattr(settings, "completed_at_policy", "keep")),
        on_warning=on_warning,
        clock=clock,
    )
    auth = AuthService(
        storage,
        load_users(getattr(settings, "users_path", None)),
        on_warning=on_warning,
    )
    timers = TimerRegistry(task_store, tick_seconds=float(getattr(settings, "timer_tick_seconds", 1.0)))

    return AppState(
        settings=settings,
        storage=storage,
        task_store=task_store,
        auth=auth,
        timers=timers,
    )


def set_warning_sink(state: AppState, sink: WarningSink | None) -> None:
    """Route non-fatal service warnings to a front end (console, UI)."""
    state.task_store.on_warning = sink
    state.auth.on_warning = sink
