# src/study_dashboard/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL on an
asyncio loop (timers tick on the same loop).
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _shutdown(state: AppState) -> None:
    """Best-effort shutdown: save running timers, retry a failed save."""
    running = state.timers.running()
    state.timers.close_all(commit=True)
    for timer in running:
        await timer.wait_closed()

    if state.task_store.dirty and not state.task_store.flush():
        logger.error("Tasks could not be saved on shutdown; last changes are lost.")


async def _run(state: AppState) -> None:
    try:
        if getattr(state.settings, "console_enabled", True):
            await run_console_loop(state)
        else:
            logger.info("Console disabled; nothing to run.")
    finally:
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.log_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
