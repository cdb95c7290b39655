# src/study_dashboard/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from ..auth.session import AuthService
from ..tasks.task_query import TaskFilter
from ..tasks.task_store import TaskStore
from ..tasks.task_timer import TimerRegistry
from .ports import KeyValueStorage


@dataclass
class AppState:
    """
    Services shared by connectors and commands.

    Built once by cli.bootstrap.create_initial_state and passed explicitly;
    nothing looks these objects up globally.
    """

    settings: object

    storage: KeyValueStorage
    task_store: TaskStore
    auth: AuthService
    timers: TimerRegistry

    # Last /list criteria, reused by /export.
    task_filter: TaskFilter = field(default_factory=TaskFilter)

    def today(self) -> date:
        return self.task_store.today()
