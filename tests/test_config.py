# tests/test_config.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from study_dashboard.config import Settings
from study_dashboard.logging_setup import _ConsoleNoiseFilter

_VARS = (
    "STUDY_DATA_DIR",
    "STUDY_STORAGE_DIR",
    "STUDY_EXPORT_DIR",
    "STUDY_USERS_PATH",
    "STUDY_COMPLETED_AT_POLICY",
    "STUDY_TIMER_TICK_SECONDS",
    "STUDY_DEFAULT_RANGE_DAYS",
    "STUDY_TREND_WEEKS",
    "STUDY_CONSOLE_ENABLED",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env: pytest.MonkeyPatch) -> None:
    s = Settings.from_env()
    assert s.completed_at_policy == "keep"
    assert s.default_range_days == 7
    assert s.trend_weeks == 8
    assert s.console_enabled is True
    assert s.users_path is None
    assert s.storage_dir == s.data_dir / "storage"


def test_env_overrides(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("STUDY_DATA_DIR", str(tmp_path))
    clean_env.setenv("STUDY_COMPLETED_AT_POLICY", "CLEAR")
    clean_env.setenv("STUDY_DEFAULT_RANGE_DAYS", "30")
    clean_env.setenv("STUDY_USERS_PATH", str(tmp_path / "users.json"))
    clean_env.setenv("STUDY_CONSOLE_ENABLED", "off")

    s = Settings.from_env()
    assert s.data_dir == tmp_path
    assert s.export_dir == tmp_path / "exports"
    assert s.completed_at_policy == "clear"
    assert s.default_range_days == 30
    assert s.users_path == tmp_path / "users.json"
    assert s.console_enabled is False


def test_bad_values_fall_back(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("STUDY_COMPLETED_AT_POLICY", "forget")
    clean_env.setenv("STUDY_TIMER_TICK_SECONDS", "0")
    clean_env.setenv("STUDY_TREND_WEEKS", "many")

    s = Settings.from_env()
    assert s.completed_at_policy == "keep"
    assert s.timer_tick_seconds == 0.05
    assert s.trend_weeks == 8


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_quiets_storage_and_timer_debug() -> None:
    f = _ConsoleNoiseFilter()
    assert f.filter(_record("study_dashboard.tasks.task_store", logging.INFO))
    assert not f.filter(_record("study_dashboard.storage.kv_store", logging.DEBUG))
    assert f.filter(_record("study_dashboard.storage.kv_store", logging.WARNING))
    assert not f.filter(_record("study_dashboard.tasks.task_timer", logging.INFO))
    assert not f.filter(_record("asyncio", logging.WARNING))
    assert f.filter(_record("asyncio", logging.ERROR))
