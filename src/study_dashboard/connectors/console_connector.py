# src/study_dashboard/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.bootstrap import set_warning_sink
from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

PROMPT = ">>> "


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def run_console_loop(state: AppState) -> None:
    """
    Interactive REPL.

    input() runs on a worker thread so timer tickers keep running on the event
    loop while the user is typing. All commands execute on the loop itself.
    """
    logger.info("Console connector started.")
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "study-dashboard"))

    def emit(text: str) -> None:
        _print_ts(text)

    set_warning_sink(state, lambda msg: emit(f"[WARN] {msg}"))

    _print_ts(f"[{app_name}] Use /help for commands, /exit to quit.")
    user = state.auth.current_user
    if user is not None:
        _print_ts(f"Logged in as {user.name}.")
    else:
        _print_ts("Log in with /login <username> <password>.")

    try:
        while True:
            try:
                line = (await asyncio.to_thread(input, PROMPT)).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not line:
                continue

            if line.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                reply = command_registry.handle(state, line, emit=emit)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is None:
                reply = "Commands start with '/'. Use /help to list them."
            _print_ts(reply)
    finally:
        set_warning_sink(state, None)
        logger.info("Console connector finished.")
