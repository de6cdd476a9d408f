# src/study_tracker/timers/timer_coordinator.py

from __future__ import annotations

"""
Timer coordinator.

Owns every task timer in the process and enforces a single rule: at most one
timer runs at a time. Starting a timer pauses whatever else is running first,
folding its live time into its accumulated total.

Elapsed time is never counted in ticks. A running timer only remembers when it
started; readers derive elapsed seconds from the wall clock, so polling as often
(or as rarely) as you like never changes the result.

Snapshots go to a KeyValueStorage so time survives a restart:
- "task-timer-<task_id>" -> {"elapsed_seconds", "task_title", "timestamp"}
- "last-active-timer"    -> task_id of the timer most recently started/stopped
Storage is best-effort: failures are logged, memory stays authoritative.
"""

import logging
import time

from ..core.ports import Clock, CompletionCallback, KeyValueStorage
from .timer_models import (
    LAST_ACTIVE_KEY,
    RETENTION_SECONDS,
    STORAGE_KEY_PREFIX,
    TimerRecord,
    TimerSnapshot,
    TimerState,
    snapshot_key,
)

logger = logging.getLogger(__name__)


class TimerHandle:
    """
    Control handle bound to one task id.

    Reads go through the coordinator every time, so two handles for the same
    task (a task row and the global timer bar, say) always agree.
    """

    __slots__ = ("_coordinator", "_initial_seconds", "task_id")

    def __init__(self, coordinator: TimerCoordinator, task_id: str, initial_seconds: int) -> None:
        self._coordinator = coordinator
        self._initial_seconds = initial_seconds
        self.task_id = task_id

    @property
    def is_running(self) -> bool:
        state = self._coordinator.get_timer_state(self.task_id)
        return state.is_running if state else False

    @property
    def elapsed_seconds(self) -> int:
        state = self._coordinator.get_timer_state(self.task_id)
        return state.elapsed_seconds if state else 0

    def state(self) -> TimerState | None:
        return self._coordinator.get_timer_state(self.task_id)

    def start(self) -> None:
        self._coordinator.start(self.task_id)

    def pause(self) -> None:
        self._coordinator.pause(self.task_id)

    def reset(self) -> None:
        self._coordinator.reset(self.task_id, initial_seconds=self._initial_seconds)

    def complete(self) -> int | None:
        return self._coordinator.complete(self.task_id)

    def update_elapsed(self, seconds: int) -> None:
        self._coordinator.update_elapsed(self.task_id, seconds)

    def __repr__(self) -> str:
        return f"TimerHandle(task_id={self.task_id!r})"


class TimerCoordinator:
    """
    Process-wide registry of task timers.

    Create one at application start, hand it to whoever needs it, call
    restore() once and checkpoint() on shutdown. Operations on task ids that
    were never registered are silent no-ops.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        clock: Clock = time.time,
        retention_seconds: float = RETENTION_SECONDS,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._retention_seconds = float(retention_seconds)
        self._timers: dict[str, TimerRecord] = {}
        self._active_timer_id: str | None = None

    # ---- storage helpers (best-effort) ----

    def _read_snapshot(self, task_id: str, now: float) -> TimerSnapshot | None:
        """Return a fresh snapshot for task_id; stale or broken entries are deleted."""
        key = snapshot_key(task_id)
        try:
            raw = self._storage.get(key)
        except Exception:
            logger.exception("Failed to read timer snapshot key=%s", key)
            return None
        if raw is None:
            return None

        try:
            snap = TimerSnapshot.from_dict(raw)
        except ValueError:
            logger.warning("Dropping unreadable timer snapshot key=%s", key)
            self._remove_key(key)
            return None

        if snap.is_stale(now, self._retention_seconds):
            logger.debug("Dropping stale timer snapshot key=%s age=%.0fs", key, now - snap.timestamp)
            self._remove_key(key)
            return None
        return snap

    def _save_snapshot(self, record: TimerRecord, now: float, *, mark_last_active: bool) -> None:
        snap = TimerSnapshot(
            elapsed_seconds=record.elapsed(now),
            task_title=record.task_title,
            timestamp=now,
        )
        try:
            self._storage.set(snapshot_key(record.task_id), snap.to_dict())
            if mark_last_active:
                self._storage.set(LAST_ACTIVE_KEY, record.task_id)
        except Exception:
            logger.exception("Failed to persist timer snapshot task_id=%s", record.task_id)

    def _clear_snapshot(self, task_id: str) -> None:
        self._remove_key(snapshot_key(task_id))
        try:
            if self._storage.get(LAST_ACTIVE_KEY) == task_id:
                self._storage.remove(LAST_ACTIVE_KEY)
        except Exception:
            logger.exception("Failed to clear last-active pointer task_id=%s", task_id)

    def _remove_key(self, key: str) -> None:
        try:
            self._storage.remove(key)
        except Exception:
            logger.exception("Failed to remove storage key=%s", key)

    # ---- internal transitions ----

    def _stop(self, record: TimerRecord, now: float, *, mark_last_active: bool) -> None:
        record.fold(now)
        self._save_snapshot(record, now, mark_last_active=mark_last_active)

    def _pause_others(self, except_task_id: str, now: float) -> None:
        for task_id, record in self._timers.items():
            if task_id != except_task_id and record.is_running:
                self._stop(record, now, mark_last_active=False)
                logger.info("Timer paused (another timer started) task_id=%s elapsed=%s",
                            task_id, record.accumulated_seconds)

    # ---- lifecycle ----

    def restore(self) -> int:
        """
        Load persisted timers after a restart.

        Every restored timer comes back paused, even if it was running when
        written. The last-active pointer, if it names a restored timer, makes
        that timer active again so the global control can resume it.
        Returns the number of timers loaded.
        """
        now = self._clock()
        try:
            keys = self._storage.keys()
        except Exception:
            logger.exception("Failed to list timer storage keys")
            return 0

        loaded = 0
        for key in keys:
            if not key.startswith(STORAGE_KEY_PREFIX):
                continue
            task_id = key[len(STORAGE_KEY_PREFIX):]
            if not task_id or task_id in self._timers:
                continue

            snap = self._read_snapshot(task_id, now)
            if snap is None:
                continue

            self._timers[task_id] = TimerRecord(
                task_id=task_id,
                task_title=snap.task_title,
                accumulated_seconds=snap.elapsed_seconds,
                started_at=None,
                last_updated=now,
            )
            loaded += 1

        try:
            last_active = self._storage.get(LAST_ACTIVE_KEY)
        except Exception:
            logger.exception("Failed to read last-active timer pointer")
            last_active = None

        if isinstance(last_active, str) and last_active in self._timers:
            self._active_timer_id = last_active

        logger.info("Timers restored count=%d active=%s", loaded, self._active_timer_id)
        return loaded

    def checkpoint(self) -> int:
        """
        Persist live elapsed time of running timers without pausing them.

        Meant for shutdown: nothing in memory changes. Returns how many
        snapshots were written.
        """
        now = self._clock()
        written = 0
        for record in self._timers.values():
            if record.is_running:
                self._save_snapshot(record, now, mark_last_active=True)
                written += 1
        if written:
            logger.info("Timer checkpoint written count=%d", written)
        return written

    # ---- per-task operations ----

    def register(
        self,
        task_id: str,
        task_title: str,
        initial_seconds: int = 0,
        on_complete: CompletionCallback | None = None,
    ) -> TimerHandle:
        """
        Register a task timer and return its handle.

        Idempotent: calling it again for a known task only replaces on_complete;
        elapsed time and running state are untouched. For a new task, a fresh
        stored snapshot (younger than the retention window) wins over
        initial_seconds. Nothing is written to storage here.
        """
        if not task_id:
            raise ValueError("task_id is required")
        initial_seconds = int(initial_seconds)
        if initial_seconds < 0:
            raise ValueError("initial_seconds must be >= 0")

        record = self._timers.get(task_id)
        if record is not None:
            record.on_complete = on_complete
            return TimerHandle(self, task_id, initial_seconds)

        now = self._clock()
        start_seconds = initial_seconds
        snap = self._read_snapshot(task_id, now)
        if snap is not None:
            start_seconds = snap.elapsed_seconds

        self._timers[task_id] = TimerRecord(
            task_id=task_id,
            task_title=task_title,
            accumulated_seconds=start_seconds,
            started_at=None,
            last_updated=now,
            initial_seconds=initial_seconds,
            on_complete=on_complete,
        )
        logger.debug("Timer registered task_id=%s elapsed=%s", task_id, start_seconds)
        return TimerHandle(self, task_id, initial_seconds)

    def start(self, task_id: str) -> None:
        record = self._timers.get(task_id)
        if record is None:
            return

        now = self._clock()
        self._pause_others(task_id, now)

        if record.is_running:
            return

        record.started_at = now
        record.last_updated = now
        self._active_timer_id = task_id
        self._save_snapshot(record, now, mark_last_active=True)
        logger.info("Timer started task_id=%s from=%s", task_id, record.accumulated_seconds)

    def pause(self, task_id: str) -> None:
        record = self._timers.get(task_id)
        if record is None or not record.is_running:
            return

        self._stop(record, self._clock(), mark_last_active=True)
        if self._active_timer_id == task_id:
            self._active_timer_id = None
        logger.info("Timer paused task_id=%s elapsed=%s", task_id, record.accumulated_seconds)

    def reset(self, task_id: str, *, initial_seconds: int | None = None) -> None:
        """
        Put the timer back to its initial seconds and forget its snapshot.

        initial_seconds overrides the value recorded when the timer was first
        registered (handles pass the value they were registered with).
        """
        record = self._timers.get(task_id)
        if record is None:
            return

        target = record.initial_seconds if initial_seconds is None else int(initial_seconds)
        record.accumulated_seconds = max(0, target)
        record.started_at = None
        record.last_updated = self._clock()
        self._clear_snapshot(task_id)

        if self._active_timer_id == task_id:
            self._active_timer_id = None
        logger.info("Timer reset task_id=%s to=%s", task_id, record.accumulated_seconds)

    def complete(self, task_id: str) -> int | None:
        """
        Stop the timer for good and report its final elapsed seconds.

        The record and its snapshot are gone before on_complete runs, so a
        failing callback cannot bring the timer back. Callback errors are
        logged, never raised: completing a timer does not fail.
        """
        record = self._timers.get(task_id)
        if record is None:
            return None

        elapsed = record.fold(self._clock())
        del self._timers[task_id]
        self._clear_snapshot(task_id)
        if self._active_timer_id == task_id:
            self._active_timer_id = None
        logger.info("Timer completed task_id=%s elapsed=%s", task_id, elapsed)

        if record.on_complete is not None:
            try:
                record.on_complete(task_id, elapsed)
            except Exception:
                logger.exception("Timer completion callback failed task_id=%s", task_id)
        return elapsed

    def discard(self, task_id: str) -> bool:
        """
        Forget a timer whose task is gone. on_complete is not called.

        Also clears a persisted snapshot left without an in-memory record.
        Returns True if a live timer was dropped.
        """
        record = self._timers.pop(task_id, None)
        self._clear_snapshot(task_id)
        if self._active_timer_id == task_id:
            self._active_timer_id = None
        if record is not None:
            logger.info("Timer discarded task_id=%s elapsed=%s", task_id, record.elapsed(self._clock()))
        return record is not None

    def update_elapsed(self, task_id: str, seconds: int) -> None:
        """Overwrite the accumulated total (pausing the timer). Not persisted."""
        seconds = int(seconds)
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        record = self._timers.get(task_id)
        if record is None:
            return
        record.accumulated_seconds = seconds
        record.started_at = None
        record.last_updated = self._clock()

    # ---- queries ----

    def has_timer(self, task_id: str) -> bool:
        return task_id in self._timers

    def get_timer_state(self, task_id: str) -> TimerState | None:
        record = self._timers.get(task_id)
        if record is None:
            return None
        return TimerState(
            task_id=task_id,
            task_title=record.task_title,
            elapsed_seconds=record.elapsed(self._clock()),
            is_running=record.is_running,
            last_updated=record.last_updated,
        )

    @property
    def active_timer_id(self) -> str | None:
        return self._active_timer_id

    @property
    def has_active_timer(self) -> bool:
        return self._active_timer_id is not None

    def get_active_timer_state(self) -> TimerState | None:
        if self._active_timer_id is None:
            return None
        return self.get_timer_state(self._active_timer_id)

    # ---- active timer controls (global timer bar) ----

    def toggle_active_timer(self) -> None:
        """
        Pause the active timer if it runs, start it otherwise.

        Pausing from here keeps the timer flagged active, so the same control
        can resume it.
        """
        task_id = self._active_timer_id
        if task_id is None:
            return
        record = self._timers.get(task_id)
        if record is None:
            return

        if record.is_running:
            self._stop(record, self._clock(), mark_last_active=True)
            logger.info("Active timer paused task_id=%s elapsed=%s", task_id, record.accumulated_seconds)
        else:
            self.start(task_id)

    def reset_active_timer(self) -> None:
        if self._active_timer_id is not None:
            self.reset(self._active_timer_id)

    def complete_active_timer(self) -> int | None:
        if self._active_timer_id is None:
            return None
        return self.complete(self._active_timer_id)
