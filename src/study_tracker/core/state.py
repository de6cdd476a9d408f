# src/study_tracker/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_store import TaskStore
from ..timers.timer_coordinator import TimerCoordinator


@dataclass
class AppState:
    """
    Everything a connector or command needs, built once in cli.bootstrap.

    The timer coordinator lives here (not in a module global) so tests and
    alternative front ends can create as many independent instances as they like.
    """

    settings: Any
    user_id: str
    task_store: TaskStore
    timers: TimerCoordinator

    # Task ids in the order of the last /tasks listing (1-based lookups).
    last_listing: list[str] = field(default_factory=list)
