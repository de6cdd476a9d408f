# src/study_tracker/timers/timer_models.py

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from ..core.ports import CompletionCallback

STORAGE_KEY_PREFIX = "task-timer-"
LAST_ACTIVE_KEY = "last-active-timer"
RETENTION_SECONDS = 3600
# Snapshots stamped further ahead than this are not from our clock (or are in ms).
MAX_FUTURE_SKEW_SECONDS = 60


def snapshot_key(task_id: str) -> str:
    return f"{STORAGE_KEY_PREFIX}{task_id}"


@dataclass(slots=True)
class TimerRecord:
    """
    Internal per-task timer owned by the coordinator.

    started_at is set iff the timer is running. accumulated_seconds only holds
    time from finished intervals; the live part is always derived from the clock.
    """

    task_id: str
    task_title: str
    accumulated_seconds: int
    started_at: float | None
    last_updated: float
    initial_seconds: int = 0
    on_complete: CompletionCallback | None = None

    @property
    def is_running(self) -> bool:
        return self.started_at is not None

    def elapsed(self, now: float) -> int:
        if self.started_at is None:
            return self.accumulated_seconds
        # A clock stepping backwards must not eat stored time.
        live = max(0, math.floor(now - self.started_at))
        return self.accumulated_seconds + live

    def fold(self, now: float) -> int:
        """Move live elapsed time into the accumulated total and pause."""
        self.accumulated_seconds = self.elapsed(now)
        self.started_at = None
        self.last_updated = now
        return self.accumulated_seconds


@dataclass(slots=True, frozen=True)
class TimerState:
    """Read-only view handed to presentation code."""

    task_id: str
    task_title: str
    elapsed_seconds: int
    is_running: bool
    last_updated: float


@dataclass(slots=True, frozen=True)
class TimerSnapshot:
    """Durable form of a timer: what survives a restart."""

    elapsed_seconds: int
    task_title: str
    timestamp: float

    def is_stale(self, now: float, retention_seconds: float = RETENTION_SECONDS) -> bool:
        if self.timestamp > now + MAX_FUTURE_SKEW_SECONDS:
            return True
        return now - self.timestamp >= retention_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "elapsed_seconds": self.elapsed_seconds,
            "task_title": self.task_title,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> TimerSnapshot:
        """
        Parse a stored snapshot.

        Raises ValueError on anything that is not a well-formed snapshot so the
        caller can drop the entry.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"snapshot must be an object, got {type(raw).__name__}")
        try:
            elapsed_raw = float(raw["elapsed_seconds"])
            timestamp = float(raw["timestamp"])
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise ValueError(f"malformed snapshot: {raw!r}") from e
        # json.loads accepts NaN/Infinity; neither is a usable time.
        if not math.isfinite(elapsed_raw) or not math.isfinite(timestamp):
            raise ValueError(f"non-finite value in snapshot: {raw!r}")
        elapsed = int(elapsed_raw)
        if elapsed < 0:
            raise ValueError(f"negative elapsed_seconds in snapshot: {elapsed}")
        title = raw.get("task_title")
        return cls(
            elapsed_seconds=elapsed,
            task_title=str(title) if title else "Task",
            timestamp=timestamp,
        )
