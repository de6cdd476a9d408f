# src/study_tracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (task store, snapshot storage, timers).
"""

from __future__ import annotations

import logging
import time

from ..config import get_settings
from ..core.ports import Clock
from ..core.state import AppState
from ..tasks.task_store import TaskStore
from ..timers.timer_coordinator import TimerCoordinator
from ..timers.timer_storage import JsonFileStorage

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.timers_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, clock: Clock = time.time) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().

    Timers are not restored here; call state.timers.restore() once the app is ready.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    timers = TimerCoordinator(
        JsonFileStorage(settings.timers_path),
        clock=clock,
        retention_seconds=getattr(settings, "timer_retention_seconds", 3600),
    )

    return AppState(
        settings=settings,
        user_id=settings.user_id,
        task_store=TaskStore(settings.tasks_db_path),
        timers=timers,
    )
