# tests/test_timer_poller.py

from __future__ import annotations

import asyncio

import pytest

from study_tracker.timers.timer_models import TimerState
from study_tracker.timers.timer_poller import format_elapsed, run_timer_poller


@pytest.mark.asyncio
async def test_poller_reads_without_mutating(coordinator, clock, storage) -> None:
    timer = coordinator.register("t1", "Study", 0)
    timer.start()
    writes_before = storage.writes
    seen: list[TimerState | None] = []

    def listener(state: TimerState | None) -> None:
        seen.append(state)
        clock.advance(0.25)

    polls = await run_timer_poller(coordinator, listener, interval_seconds=0.001, max_polls=8)

    assert polls == 8
    assert [s.elapsed_seconds for s in seen if s] == [0, 0, 0, 0, 1, 1, 1, 1]
    assert storage.writes == writes_before
    assert timer.is_running is True
    assert timer.elapsed_seconds == 2


@pytest.mark.asyncio
async def test_poller_survives_listener_errors_and_cancel(coordinator) -> None:
    calls = {"n": 0}

    def listener(state: TimerState | None) -> None:
        calls["n"] += 1
        raise RuntimeError("render failed")

    runner = asyncio.create_task(run_timer_poller(coordinator, listener, interval_seconds=0.01))
    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert calls["n"] >= 2


def test_format_elapsed() -> None:
    assert format_elapsed(0) == "00:00"
    assert format_elapsed(65) == "01:05"
    assert format_elapsed(3600) == "1:00:00"
    assert format_elapsed(3725) == "1:02:05"
    assert format_elapsed(-3) == "00:00"
