# src/study_dashboard/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Services get the settings injected; nothing else reads the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "STUDY"

COMPLETED_AT_POLICIES = ("keep", "clear")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# A local .env fills in variables that are not already set.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_optional_path(name: str) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    storage_dir: Path
    log_dir: Path
    export_dir: Path
    users_path: Path | None

    # ---- Task behaviour ----
    completed_at_policy: str
    timer_tick_seconds: float

    # ---- Dashboard defaults ----
    default_range_days: int
    trend_weeks: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "study-dashboard").strip() or "study-dashboard"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/study_dashboard"))
        storage_dir = _env_path(_k("STORAGE_DIR"), data_dir / "storage")
        log_dir = _env_path(_k("LOG_DIR"), data_dir)
        export_dir = _env_path(_k("EXPORT_DIR"), data_dir / "exports")
        users_path = _env_optional_path(_k("USERS_PATH"))

        completed_at_policy = _env(_k("COMPLETED_AT_POLICY"), "keep").strip().lower()
        if completed_at_policy not in COMPLETED_AT_POLICIES:
            completed_at_policy = "keep"

        timer_tick_seconds = max(0.05, _env_float(_k("TIMER_TICK_SECONDS"), 1.0))

        default_range_days = max(0, _env_int(_k("DEFAULT_RANGE_DAYS"), 7))
        trend_weeks = max(1, _env_int(_k("TREND_WEEKS"), 8))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            storage_dir=storage_dir,
            log_dir=log_dir,
            export_dir=export_dir,
            users_path=users_path,
            completed_at_policy=completed_at_policy,
            timer_tick_seconds=timer_tick_seconds,
            default_range_days=default_range_days,
            trend_weeks=trend_weeks,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
