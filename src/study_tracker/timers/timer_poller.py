# src/study_tracker/timers/timer_poller.py

from __future__ import annotations

"""
Timer poller.

A small polling loop that re-reads the active timer and hands the snapshot to a
display callback. It is purely a reader: the coordinator derives elapsed time
from the wall clock, so the poll interval only affects how fresh the display
is, never the recorded time.
"""

import asyncio
import logging
from collections.abc import Callable

from .timer_coordinator import TimerCoordinator
from .timer_models import TimerState

logger = logging.getLogger(__name__)

TimerListener = Callable[[TimerState | None], None]


def format_elapsed(seconds: int) -> str:
    """Render seconds as [h:]mm:ss."""
    seconds = max(0, int(seconds))
    h, rest = divmod(seconds, 3600)
    m, s = divmod(rest, 60)
    prefix = f"{h}:" if h > 0 else ""
    return f"{prefix}{m:02d}:{s:02d}"


async def run_timer_poller(
        coordinator: TimerCoordinator,
        listener: TimerListener,
        *,
        interval_seconds: float = 0.1,
        max_polls: int | None = None,
) -> int:
    """
    Every interval_seconds:
    - read coordinator.get_active_timer_state()
    - pass it (or None) to listener

    Runs until cancelled, or until max_polls reads were made.
    Listener errors are logged and do not stop the loop.
    Returns the number of polls performed.
    """
    sleep_s = max(0.01, float(interval_seconds))
    polls = 0

    while max_polls is None or polls < max_polls:
        state = coordinator.get_active_timer_state()
        polls += 1
        try:
            listener(state)
        except Exception:
            logger.exception("Timer listener failed")

        if max_polls is not None and polls >= max_polls:
            break
        await asyncio.sleep(sleep_s)

    return polls
