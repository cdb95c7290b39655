# src/study_dashboard/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from pathlib import Path
from typing import cast

from ..auth.users import User
from ..core.state import AppState
from ..tasks.task_export import export_tasks_csv
from ..tasks.task_models import DateRange, Task, TaskPriority, TaskStatus, canonical_date
from ..tasks.task_query import (
    DATE_FILTERS,
    FILTER_ALL,
    TaskFilter,
    categories,
    filter_by_date_range,
    filter_tasks,
    task_accuracy,
)
from ..tasks.task_reports import (
    activity_heatmap,
    admin_overview,
    last_days_range,
    priority_distribution,
    regular_users,
    team_weekly_trend,
    this_month_range,
    time_comparison,
    todays_summary,
    todays_tasks,
    user_comparison,
    week_ranges,
    weekly_completion_trend,
)

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, /stats, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()

NOT_LOGGED_IN = "Not logged in. Use /login <username> <password>."


# ---- helpers ----


def _short_id(task: Task) -> str:
    return task.id.rsplit("_", 1)[-1]


def _format_task(task: Task) -> str:
    return (
        f"{_short_id(task)}  [{task.status.value}] {task.name} ({task.category}) "
        f"{task.priority.value} {task.date} {task.start_time}-{task.end_time} "
        f"est={task.estimated_time}m act={task.actual_time}m"
    )


def _resolve_task(state: AppState, user: User, ref: str) -> Task | str:
    """Full id or unique id suffix among the user's tasks; error text otherwise."""
    own = state.task_store.get_user_tasks(user.id)
    for t in own:
        if t.id == ref:
            return t
    matches = [t for t in own if t.id.endswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        return f"No task matching '{ref}'."
    return f"'{ref}' is ambiguous ({len(matches)} tasks). Use a longer id."


def _parse_range(state: AppState, arg: str | None) -> DateRange | None | str:
    """
    None/"" -> last N days from settings; "all" -> no range; "month" -> this
    month; an integer -> last N days. Error text for anything else.
    """
    today = state.today()
    if not arg:
        return last_days_range(today, int(getattr(state.settings, "default_range_days", 7)))
    arg = arg.lower()
    if arg == "all":
        return None
    if arg == "month":
        return this_month_range(today)
    try:
        days = int(arg)
    except ValueError:
        return "Range must be a number of days, 'month' or 'all'."
    if days < 0:
        return "Range must not be negative."
    return last_days_range(today, days)


def _describe_range(date_range: DateRange | None) -> str:
    if date_range is None:
        return "all time"
    return f"{date_range.start.isoformat()} .. {date_range.end.isoformat()}"


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_info(state: AppState, args: list[str]) -> str:
    user = state.auth.current_user
    policy = getattr(state.settings, "completed_at_policy", "keep")
    dirty = "yes (last save failed)" if state.task_store.dirty else "no"
    return (
        "Status:\n"
        f"  User: {user.username if user else '-'}\n"
        f"  Tasks stored: {state.task_store.count_tasks()}\n"
        f"  Unsaved changes: {dirty}\n"
        f"  completedAt policy: {policy}\n"
        f"  Running timers: {len(state.timers.running())}"
    )


def cmd_login(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /login <username> <password>"
    if state.auth.is_authenticated:
        state.timers.close_all(commit=True)
    user = state.auth.login(args[0], args[1])
    if user is None:
        return "Invalid username or password."
    return f"Welcome, {user.name} ({user.role.value})."


def cmd_logout(state: AppState, args: list[str]) -> str:
    if not state.auth.is_authenticated:
        return "Not logged in."
    state.timers.close_all(commit=True)
    state.auth.logout()
    state.task_filter = TaskFilter()
    return "Logged out."


def cmd_whoami(state: AppState, args: list[str]) -> str:
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    return f"{user.name} (username={user.username}, id={user.id}, role={user.role.value})"


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add name | category | priority | estimate [| YYYY-MM-DD [| HH:MM-HH:MM]]
    """
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN

    usage = "Usage: /add name | category | high|medium|low | minutes [| YYYY-MM-DD [| HH:MM-HH:MM]]"
    fields = [f.strip() for f in " ".join(args).split("|")]
    if len(fields) < 4 or not fields[0]:
        return usage

    name, category, priority_raw, estimate_raw = fields[:4]
    try:
        priority = TaskPriority(priority_raw.lower())
        estimate = int(estimate_raw)
    except ValueError:
        return usage
    if estimate < 0:
        return "Estimate must not be negative."

    day = fields[4] if len(fields) > 4 and fields[4] else None
    if day is not None:
        try:
            day = canonical_date(day)
        except ValueError:
            return f"Invalid date: {day}"

    start_time, end_time = "09:00", "10:00"
    if len(fields) > 5 and fields[5]:
        span = fields[5].split("-")
        if len(span) != 2:
            return usage
        start_time, end_time = span[0].strip(), span[1].strip()

    task = state.task_store.create_task(
        user_id=user.id,
        name=name,
        category=category or "Other",
        priority=priority,
        estimated_time=estimate,
        date=day,
        start_time=start_time,
        end_time=end_time,
    )
    return f"Added: {_format_task(task)}"


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list [q=text] [status=..] [priority=..] [category=..] [date=all|today|this-week|this-month]
    Without arguments the filter is reset.
    """
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN

    values = {"q": "", "status": FILTER_ALL, "priority": FILTER_ALL, "category": FILTER_ALL, "date": FILTER_ALL}
    for arg in args:
        key, sep, value = arg.partition("=")
        key = {"search": "q"}.get(key.lower(), key.lower())
        if not sep or key not in values:
            return f"Unknown filter '{arg}'. Use q=, status=, priority=, category=, date=."
        values[key] = value

    if values["status"] != FILTER_ALL and values["status"] not in {s.value for s in TaskStatus}:
        return f"Unknown status: {values['status']}"
    if values["priority"] != FILTER_ALL and values["priority"] not in {p.value for p in TaskPriority}:
        return f"Unknown priority: {values['priority']}"
    if values["date"] not in DATE_FILTERS:
        return f"Unknown date filter: {values['date']} (use {', '.join(DATE_FILTERS)})"

    state.task_filter = TaskFilter(
        search_term=values["q"],
        status=values["status"],
        priority=values["priority"],
        category=values["category"],
        date_filter=values["date"],
    )

    own = state.task_store.get_user_tasks(user.id)
    shown = filter_tasks(own, state.task_filter, today=state.today())
    if not shown:
        return f"No tasks match (of {len(own)})."

    lines = [f"Tasks ({len(shown)} of {len(own)}):"]
    lines.extend(f"  {_format_task(t)}" for t in shown)
    cats = categories(own)
    if cats:
        lines.append(f"Categories: {', '.join(cats)}")
    return "\n".join(lines)


def cmd_show(state: AppState, args: list[str]) -> str:
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    if len(args) != 1:
        return "Usage: /show <task-id>"
    found = _resolve_task(state, user, args[0])
    if isinstance(found, str):
        return found

    accuracy = task_accuracy(found)
    lines = [
        _format_task(found),
        f"  id: {found.id}",
        f"  created: {found.created_at}",
        f"  completed: {found.completed_at or '-'}",
        f"  accuracy: {f'{accuracy:.1f}%' if accuracy is not None else '-'}",
    ]
    timer = state.timers.get(found.id)
    if timer is not None:
        state_s = "running" if timer.is_running else "paused"
        lines.append(f"  timer: {timer.format_elapsed()} ({state_s}, {timer.progress_percentage():.0f}%)")
    return "\n".join(lines)


def cmd_status(state: AppState, args: list[str]) -> str:
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    if len(args) != 2:
        return "Usage: /status <task-id> pending|in-progress|completed"
    found = _resolve_task(state, user, args[0])
    if isinstance(found, str):
        return found
    try:
        status = TaskStatus(args[1].lower())
    except ValueError:
        return f"Unknown status: {args[1]}"
    updated = state.task_store.update_task(found.id, status=status)
    if updated is None:
        return f"No task matching '{args[0]}'."
    return f"Updated: {_format_task(updated)}"


def cmd_time(state: AppState, args: list[str]) -> str:
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    if len(args) != 2:
        return "Usage: /time <task-id> <minutes>"
    found = _resolve_task(state, user, args[0])
    if isinstance(found, str):
        return found
    try:
        minutes = int(args[1])
    except ValueError:
        return "Minutes must be a whole number."
    if minutes < 0:
        return "Minutes must not be negative."
    timer = state.timers.get(found.id)
    if timer is not None and timer.is_running:
        return "Pause the running timer first."
    updated = state.task_store.update_task(found.id, actual_time=minutes)
    if updated is None:
        return f"No task matching '{args[0]}'."
    state.timers.discard(found.id)
    return f"Updated: {_format_task(updated)}"


def cmd_delete(state: AppState, args: list[str]) -> str:
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    if len(args) != 1:
        return "Usage: /delete <task-id>"
    found = _resolve_task(state, user, args[0])
    if isinstance(found, str):
        return found
    state.timers.discard(found.id)
    state.task_store.delete_task(found.id)
    return f"Deleted: {found.name}"


def cmd_stats(state: AppState, args: list[str]) -> str:
    """
    /stats         -> last N days (settings.default_range_days)
    /stats 30      -> last 30 days
    /stats month   -> this month
    /stats all     -> everything
    """
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    date_range = _parse_range(state, args[0] if args else None)
    if isinstance(date_range, str):
        return date_range

    stats = state.task_store.get_task_stats(user.id, date_range)
    own = state.task_store.get_user_tasks(user.id)
    dist = priority_distribution(own)
    lines = [
        f"Stats for {user.name} ({_describe_range(date_range)}):",
        f"  Tasks: {stats.completed_tasks}/{stats.total_tasks} completed ({stats.completion_rate:.1f}%)",
        f"  Estimated: {stats.total_estimated_time} min, actual: {stats.total_actual_time} min",
        f"  Average accuracy: {stats.average_accuracy:.1f}%",
        f"  Priorities: high={dist['high']} medium={dist['medium']} low={dist['low']}",
        f"  Active days: {len(activity_heatmap(own))}",
    ]
    recent = time_comparison(own)
    if recent:
        lines.append("  Recent completed (estimated vs actual):")
        lines.extend(f"    {c.name[:15]}: {c.estimated_time} vs {c.actual_time} min" for c in recent)
    return "\n".join(lines)


def cmd_trend(state: AppState, args: list[str]) -> str:
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    weeks = int(getattr(state.settings, "trend_weeks", 8))
    series = weekly_completion_trend(state.task_store.tasks, user.id, state.today(), weeks)
    lines = ["Weekly completion rate:"]
    lines.extend(f"  {label}: {rate:5.1f}%" for label, rate in series)
    return "\n".join(lines)


def cmd_today(state: AppState, args: list[str]) -> str:
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    today = state.today()
    own = state.task_store.get_user_tasks(user.id)
    items = todays_tasks(own, today)
    if not items:
        return "No tasks scheduled for today."
    lines = [f"Today's tasks ({todays_summary(own, today)}):"]
    lines.extend(f"  {_format_task(t)}" for t in items)
    return "\n".join(lines)


def _admin_overview(state: AppState, range_arg: str | None) -> str:
    date_range = _parse_range(state, range_arg or "30")
    if isinstance(date_range, str):
        return date_range

    tasks = state.task_store.tasks
    overview = admin_overview(tasks, state.auth.users, date_range)
    lines = [
        f"Overview ({_describe_range(date_range)}):",
        f"  Users: {overview.total_users}",
        f"  Tasks: {overview.total_completed_tasks}/{overview.total_tasks} completed",
        f"  Study hours: {overview.total_study_hours:.1f}",
        f"  Average completion rate: {overview.average_completion_rate:.1f}%",
        "Per user:",
    ]
    for row in user_comparison(tasks, state.auth.users, date_range):
        lines.append(
            f"  {row.user_name}: {row.completion_rate:.1f}% of {row.total_tasks} tasks, "
            f"{row.study_hours:.1f} h"
        )
    return "\n".join(lines)


def _admin_trend(state: AppState) -> str:
    weeks = int(getattr(state.settings, "trend_weeks", 8))
    today = state.today()
    series = team_weekly_trend(state.task_store.tasks, state.auth.users, today, weeks)
    if not series:
        return "No users to compare."
    lines = [
        "Team weekly completion rate:",
        f"  Weeks: {', '.join(w.label for w in week_ranges(today, weeks))}",
    ]
    lines.extend(f"  {name}: {', '.join(f'{rate:.0f}%' for rate in rates)}" for name, rates in series.items())
    return "\n".join(lines)


def _admin_user(state: AppState, args: list[str]) -> str:
    if not args or len(args) > 2:
        return "Usage: /admin user <id|username> [days|month|all]"
    ref = args[0]
    member = next((u for u in regular_users(state.auth.users) if ref in (u.id, u.username)), None)
    if member is None:
        return f"No user matching '{ref}'."
    date_range = _parse_range(state, args[1] if len(args) > 1 else "30")
    if isinstance(date_range, str):
        return date_range

    stats = state.task_store.get_task_stats(member.id, date_range)
    own = state.task_store.get_user_tasks(member.id)
    in_range = own if date_range is None else filter_by_date_range(own, date_range)
    lines = [
        f"Details for {member.name} ({_describe_range(date_range)}):",
        f"  Tasks: {stats.completed_tasks}/{stats.total_tasks} completed ({stats.completion_rate:.1f}%)",
        f"  Estimated: {stats.total_estimated_time} min, actual: {stats.total_actual_time} min",
        f"  Study hours: {stats.total_actual_time / 60:.1f}",
        f"  Average accuracy: {stats.average_accuracy:.1f}%",
    ]
    if in_range:
        lines.append("Tasks:")
        lines.extend(f"  {_format_task(t)}" for t in in_range)
    else:
        lines.append("No tasks in range.")
    return "\n".join(lines)


def cmd_admin(state: AppState, args: list[str]) -> str:
    """
    /admin [days|month|all]                     -> overview + per-user comparison
    /admin trend                                -> weekly completion rate per user
    /admin user <id|username> [days|month|all]  -> one user's stats and tasks
    Admins only.
    """
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    if not user.is_admin:
        return "Admin only."

    sub = args[0].lower() if args else ""
    if sub == "trend":
        return _admin_trend(state)
    if sub == "user":
        return _admin_user(state, args[1:])
    return _admin_overview(state, args[0] if args else None)


def cmd_export(state: AppState, args: list[str]) -> str:
    """
    /export [directory] -> CSV of the tasks matching the current /list filter
    """
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    if args:
        directory = Path(args[0]).expanduser()
    else:
        directory = Path(getattr(state.settings, "export_dir", "."))

    own = state.task_store.get_user_tasks(user.id)
    rows = filter_tasks(own, state.task_filter, today=state.today())
    try:
        path = export_tasks_csv(rows, directory, prefix=f"tasks_{user.username}", today=state.today())
    except OSError as e:
        logger.exception("CSV export failed dir=%s", directory)
        return f"Export failed: {e}"
    return f"Exported {len(rows)} task(s) to {path}"


def cmd_timer(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /timer <task-id> start|pause|stop|show
    """
    user = state.auth.current_user
    if user is None:
        return NOT_LOGGED_IN
    usage = "Usage: /timer <task-id> start|pause|stop|show"
    if len(args) != 2:
        return usage
    found = _resolve_task(state, user, args[0])
    if isinstance(found, str):
        return found

    action = args[1].lower()
    # Only "start" registers a timer; the other actions look up an existing one.
    timer = state.timers.get(found.id)

    if action == "start":
        if timer is not None and timer.is_running:
            return f"Timer already running: {timer.format_elapsed()}"
        if found.is_completed:
            return "Cannot start a timer for a completed task."
        timer = state.timers.get_or_create(found.id)
        if emit is not None:
            notified = False

            def _on_tick(t) -> None:
                nonlocal notified
                if not notified and t.progress_percentage() >= 100:
                    notified = True
                    emit(f"[TIMER] Estimate reached for '{found.name}' ({t.format_elapsed()}).")

            timer.on_tick = _on_tick
        if not timer.start():
            state.timers.discard(found.id)
            return "Cannot start a timer for a completed task."
        return f"Timer started for '{found.name}' at {timer.format_elapsed()}."

    if action == "pause":
        minutes = timer.pause() if timer is not None else None
        if minutes is None:
            return "Timer is not running."
        return f"Timer paused. Actual time: {minutes} min."

    if action == "stop":
        if timer is None:
            if state.task_store.update_task(found.id, status=TaskStatus.COMPLETED) is None:
                return f"No task matching '{args[0]}'."
            return f"'{found.name}' marked completed."
        minutes = timer.stop()
        state.timers.discard(found.id)
        if minutes is None:
            return f"'{found.name}' marked completed."
        return f"'{found.name}' completed. Actual time: {minutes} min."

    if action == "show":
        if timer is None:
            return (
                f"No timer session for '{found.name}'. Actual: {found.actual_time} min of "
                f"{found.estimated_time} min estimate."
            )
        state_s = "running" if timer.is_running else "stopped"
        return (
            f"{timer.format_elapsed()} ({state_s}), {timer.progress_percentage():.0f}% of "
            f"{found.estimated_time} min estimate | actual: {timer.elapsed_seconds // 60} min"
        )

    return usage


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("info", cmd_info, help_text="Show session and storage status.")
registry.register("login", cmd_login, help_text="Log in: /login <username> <password>.")
registry.register("logout", cmd_logout, help_text="Log out (running timers are paused).")
registry.register("whoami", cmd_whoami, help_text="Show the current user.")
registry.register(
    "add", cmd_add, help_text="Add a task: /add name | category | priority | minutes [| date [| HH:MM-HH:MM]]."
)
registry.register(
    "list",
    cmd_list,
    help_text="List tasks: /list [q=..] [status=..] [priority=..] [category=..] [date=..].",
    aliases=["ls"],
)
registry.register("show", cmd_show, help_text="Show one task: /show <task-id>.")
registry.register("status", cmd_status, help_text="Set status: /status <task-id> pending|in-progress|completed.")
registry.register("time", cmd_time, help_text="Set actual minutes: /time <task-id> <minutes>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <task-id>.", aliases=["rm"])
registry.register("stats", cmd_stats, help_text="Statistics: /stats [days|month|all].")
registry.register("trend", cmd_trend, help_text="Weekly completion-rate trend.")
registry.register("today", cmd_today, help_text="Tasks scheduled for today.")
registry.register(
    "admin",
    cmd_admin,
    help_text="Admin: /admin [days|month|all], /admin trend, /admin user <id|username> [range].",
)
registry.register("export", cmd_export, help_text="Export the listed tasks to CSV: /export [directory].")
registry.register("timer", cmd_timer, help_text="Task timer: /timer <task-id> start|pause|stop|show.")
