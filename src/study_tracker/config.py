# src/study_tracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Paths default to a gitignored local data directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "STUDY"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Identity (trusted; real auth lives elsewhere) ----
    user_id: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    timers_path: Path

    # ---- Timer tuning ----
    timer_retention_seconds: int
    poll_interval_ms: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "study-tracker").strip() or "study-tracker"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        user_id = _env(_k("USER_ID"), "local").strip() or "local"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/study"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        timers_path = _env_path(_k("TIMERS_PATH"), data_dir / "timers.json")

        # Negative values make no sense for either knob; fall back to defaults.
        timer_retention_seconds = _env_int(_k("TIMER_RETENTION_SECONDS"), 3600)
        if timer_retention_seconds <= 0:
            timer_retention_seconds = 3600
        poll_interval_ms = _env_int(_k("POLL_INTERVAL_MS"), 100)
        if poll_interval_ms <= 0:
            poll_interval_ms = 100

        return Settings(
            app_name=app_name,
            log_level=log_level,
            user_id=user_id,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            timers_path=timers_path,
            timer_retention_seconds=timer_retention_seconds,
            poll_interval_ms=poll_interval_ms,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
