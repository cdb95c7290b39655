# src/study_dashboard/tasks/task_timer.py

from __future__ import annotations

"""
Task timer.

A per-task stopwatch that:
- ticks on the running asyncio loop while started (recomputes elapsed time),
- commits whole minutes back into the task store on pause/stop,
- cancels its ticker on pause, stop and close.

Elapsed time is always derived from the clock, never accumulated tick by tick,
so a late or skipped tick does not drift the committed value.
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable

from ..core.ports import TaskRepo
from .task_models import TaskStatus

logger = logging.getLogger(__name__)

TickCallback = Callable[["TaskTimer"], None]


def format_elapsed(seconds: int) -> str:
    """m:ss below one hour, h:mm:ss above."""
    seconds = max(0, int(seconds))
    hrs, rem = divmod(seconds, 3600)
    mins, secs = divmod(rem, 60)
    if hrs > 0:
        return f"{hrs}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


class TaskTimer:
    def __init__(
        self,
        store: TaskRepo,
        task_id: str,
        *,
        tick_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        on_tick: TickCallback | None = None,
    ) -> None:
        self._store = store
        self.task_id = task_id
        self._tick_s = max(0.01, float(tick_seconds))
        self._clock = clock
        self.on_tick = on_tick

        task = store.get_task(task_id)
        self._base_minutes = task.actual_time if task is not None else 0
        self._started_at: float | None = None
        self._elapsed = self._base_minutes * 60
        self._ticker: asyncio.Task[None] | None = None
        self._cancelled: asyncio.Task[None] | None = None

    # ---- state ----

    @property
    def is_running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed

    def _session_seconds(self) -> int:
        if self._started_at is None:
            return 0
        return max(0, int(self._clock() - self._started_at))

    def _refresh(self) -> None:
        self._elapsed = self._base_minutes * 60 + self._session_seconds()

    def progress_percentage(self) -> float:
        task = self._store.get_task(self.task_id)
        if task is None or task.estimated_time <= 0:
            return 0.0
        return min(self._elapsed / (task.estimated_time * 60) * 100, 100.0)

    def format_elapsed(self) -> str:
        return format_elapsed(self._elapsed)

    # ---- ticker ----

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._tick_s)
            self._refresh()
            if self.on_tick is not None:
                try:
                    self.on_tick(self)
                except Exception:
                    logger.exception("Timer tick callback failed task_id=%s", self.task_id)

    @property
    def ticking(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def _cancel_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None and not ticker.done():
            ticker.cancel()
            self._cancelled = ticker

    # ---- controls ----

    def start(self) -> bool:
        """
        Start a session. Must be called from inside a running event loop.

        Returns False (and does nothing) for missing or completed tasks, or
        when the timer is already running.
        """
        if self.is_running:
            return False
        task = self._store.get_task(self.task_id)
        if task is None:
            logger.info("Timer start refused: no task id=%s", self.task_id)
            return False
        if task.status == TaskStatus.COMPLETED:
            logger.info("Timer start refused: task %s already completed", self.task_id)
            return False

        loop = asyncio.get_running_loop()
        self._base_minutes = task.actual_time
        self._started_at = self._clock()
        self._refresh()

        if task.status == TaskStatus.PENDING:
            self._store.update_task(self.task_id, status=TaskStatus.IN_PROGRESS)

        self._ticker = loop.create_task(self._run(), name=f"task-timer:{self.task_id}")
        logger.debug("Timer started task_id=%s base=%smin", self.task_id, self._base_minutes)
        return True

    def _commit_minutes(self) -> int:
        self._refresh()
        minutes = self._elapsed // 60
        self._started_at = None
        self._base_minutes = minutes
        self._elapsed = minutes * 60
        return minutes

    def pause(self) -> int | None:
        """Commit whole minutes and stop ticking. Returns the committed value."""
        if not self.is_running:
            self._cancel_ticker()
            return None
        minutes = self._commit_minutes()
        self._cancel_ticker()
        self._store.update_task(self.task_id, actual_time=minutes)
        logger.debug("Timer paused task_id=%s actual=%smin", self.task_id, minutes)
        return minutes

    def stop(self) -> int | None:
        """Commit whole minutes (when running) and mark the task completed."""
        minutes: int | None = None
        if self.is_running:
            minutes = self._commit_minutes()
        self._cancel_ticker()

        if minutes is None:
            updated = self._store.update_task(self.task_id, status=TaskStatus.COMPLETED)
        else:
            updated = self._store.update_task(
                self.task_id, actual_time=minutes, status=TaskStatus.COMPLETED
            )
        if updated is None:
            logger.info("Timer stop: task %s no longer exists", self.task_id)
        else:
            logger.debug("Timer stopped task_id=%s actual=%smin", self.task_id, updated.actual_time)
        return minutes

    def close(self) -> None:
        """Tear down without committing (the owning view went away)."""
        self._started_at = None
        self._cancel_ticker()

    async def wait_closed(self) -> None:
        """Wait until the last cancelled ticker has finished unwinding."""
        ticker, self._cancelled = self._cancelled, None
        if ticker is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await ticker


class TimerRegistry:
    """One timer per task id; closes them all on logout/shutdown."""

    def __init__(self, store: TaskRepo, *, tick_seconds: float = 1.0) -> None:
        self._store = store
        self._tick_s = tick_seconds
        self._timers: dict[str, TaskTimer] = {}

    def get(self, task_id: str) -> TaskTimer | None:
        return self._timers.get(task_id)

    def get_or_create(self, task_id: str, *, on_tick: TickCallback | None = None) -> TaskTimer:
        timer = self._timers.get(task_id)
        if timer is None:
            timer = TaskTimer(self._store, task_id, tick_seconds=self._tick_s, on_tick=on_tick)
            self._timers[task_id] = timer
        elif on_tick is not None:
            timer.on_tick = on_tick
        return timer

    def running(self) -> list[TaskTimer]:
        return [t for t in self._timers.values() if t.is_running]

    def discard(self, task_id: str) -> None:
        timer = self._timers.pop(task_id, None)
        if timer is not None:
            timer.close()

    def close_all(self, *, commit: bool = False) -> None:
        """
        Cancel every ticker. With commit=True running sessions are paused
        (their minutes saved) instead of dropped.
        """
        for task_id, timer in list(self._timers.items()):
            if commit and timer.is_running:
                try:
                    timer.pause()
                except Exception:
                    logger.exception("Failed to commit timer task_id=%s", task_id)
            timer.close()
            self._timers.pop(task_id, None)
