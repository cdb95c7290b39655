# src/study_dashboard/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from pathlib import Path

PACKAGE_LOGGER = "study_dashboard"

# Chatty at INFO/DEBUG (one line per save, per timer tick); console shows WARNING+ only.
QUIET_LOGGERS: tuple[str, ...] = (
    "study_dashboard.storage",
    "study_dashboard.tasks.task_timer",
)

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _under(name: str, prefix: str) -> bool:
    return name == prefix or name.startswith(prefix + ".")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the REPL readable while the user types:
    - study_dashboard records pass, except the quiet modules below WARNING
    - everything else (asyncio, py.warnings, ...) only at ERROR+
    """

    def __init__(self, quiet: Iterable[str] = QUIET_LOGGERS) -> None:
        super().__init__()
        self._quiet = tuple(quiet)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not _under(name, PACKAGE_LOGGER):
            return record.levelno >= logging.ERROR
        if any(_under(name, q) for q in self._quiet):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/study_dashboard",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    file_name: str = "study_dashboard.log",
) -> Path:
    """
    Console handler (filtered) + full debug log file under `log_dir`.

    Call once, before the first record is emitted. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / file_name

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
