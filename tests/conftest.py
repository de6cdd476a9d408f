# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from study_tracker.core.state import AppState
from study_tracker.tasks.task_store import TaskStore
from study_tracker.timers.timer_coordinator import TimerCoordinator

from .fakes import FakeClock, MemoryStorage


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="study-tracker-test",
        log_level="DEBUG",
        user_id="u1",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        timers_path=tmp_path / "timers.json",
        timer_retention_seconds=3600,
        poll_interval_ms=10,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def coordinator(storage: MemoryStorage, clock: FakeClock) -> TimerCoordinator:
    return TimerCoordinator(storage, clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, coordinator: TimerCoordinator) -> AppState:
    """
    AppState wired with a fake clock and in-memory snapshot storage.

    NOTE: We keep a real SQLite TaskStore here because its correctness is
    part of what we want to test.
    """
    return AppState(
        settings=settings,
        user_id=settings.user_id,
        task_store=TaskStore(settings.tasks_db_path),
        timers=coordinator,
    )
