# src/study_tracker/tasks/task_api.py

from __future__ import annotations

import logging

from ..core.ports import CompletionCallback, Notifier
from ..core.state import AppState
from ..timers.timer_coordinator import TimerHandle
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


def _notify(notify: Notifier | None, text: str) -> None:
    if notify is None:
        return
    try:
        notify(text)
    except Exception:
        logger.debug("Notifier failed.", exc_info=True)


def make_completion_forwarder(
    state: AppState,
    *,
    correct_items: int | None = None,
    notify: Notifier | None = None,
) -> CompletionCallback:
    """
    Build the on_complete callback that saves a finished timer into the TaskStore.

    By the time it runs the timer is already gone; if the store rejects the
    write the user is told and the elapsed time is logged, nothing is retried.
    """

    def _forward(task_id: str, elapsed_seconds: int) -> None:
        try:
            state.task_store.complete_task(
                state.user_id,
                task_id,
                duration_seconds=elapsed_seconds,
                correct_items=correct_items,
            )
        except Exception:
            logger.exception(
                "complete_task failed task_id=%s elapsed=%s correct=%s",
                task_id,
                elapsed_seconds,
                correct_items,
            )
            _notify(notify, "Error completing task.")
            return
        _notify(notify, "Task completed!")

    return _forward


def register_task_timer(
    state: AppState,
    task: Task,
    *,
    correct_items: int | None = None,
    notify: Notifier | None = None,
) -> TimerHandle:
    """Register (or refresh) the timer of a stored task, starting from its saved duration."""
    return state.timers.register(
        task.id,
        task.title,
        task.duration_seconds,
        make_completion_forwarder(state, correct_items=correct_items, notify=notify),
    )


def start_task_timer(state: AppState, task: Task, *, notify: Notifier | None = None) -> TimerHandle:
    """
    Start the task's timer (pausing any other) and move the task to in_progress.

    A failing status update is reported but does not stop the timer.
    """
    handle = register_task_timer(state, task, notify=notify)
    handle.start()

    if task.status != TaskStatus.IN_PROGRESS:
        try:
            state.task_store.update_task_status(state.user_id, task.id, TaskStatus.IN_PROGRESS)
            task.status = TaskStatus.IN_PROGRESS
        except Exception:
            logger.exception("update_task_status(in_progress) failed task_id=%s", task.id)
            _notify(notify, "Error updating task status.")
    return handle


def complete_task_timer(
    state: AppState,
    task: Task,
    *,
    correct_items: int | None = None,
    notify: Notifier | None = None,
) -> int | None:
    """Finish the task's timer and forward the elapsed time. Returns elapsed seconds."""
    handle = register_task_timer(state, task, correct_items=correct_items, notify=notify)
    return handle.complete()
