# tests/test_commands.py

from __future__ import annotations

from study_tracker.cli.commands import CommandRegistry, registry
from study_tracker.tasks.task_models import TaskStatus


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/b y", emit=lambda _: None) == "h3"
    assert called["h2"] == 1
    assert called["h3"] == 1


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_add_list_start_switch_and_done(state, clock) -> None:
    notes: list[str] = []

    assert "Task created" in (registry.handle(state, "/add Read chapter 2 #bio") or "")
    assert "Question set created" in (registry.handle(state, "/addq 10 Mock exam #bio #exam") or "")

    listing = registry.handle(state, "/tasks") or ""
    assert "1. [todo] Mock exam 10 items 00:00" in listing
    assert "2. [todo] Read chapter 2 00:00" in listing
    assert "#bio #exam" in listing

    assert "Timer started: Read chapter 2" in (registry.handle(state, "/start 2", emit=notes.append) or "")
    clock.advance(65)
    registry.handle(state, "/start 1", emit=notes.append)
    clock.advance(30)

    listing = registry.handle(state, "/tasks") or ""
    assert "[in_progress] Mock exam 10 items 00:30 >" in listing
    assert "[in_progress] Read chapter 2 01:05" in listing

    reply = registry.handle(state, "/done 1 8", emit=notes.append) or ""
    assert reply == "Finished Mock exam in 00:30"
    assert notes == ["Task completed!"]

    listing = registry.handle(state, "/tasks") or ""
    assert "[done] Mock exam 8/10 (80%) 00:30" in listing


def test_pause_reset_and_timer_subcommands(state, clock) -> None:
    registry.handle(state, "/add Flashcards")
    registry.handle(state, "/tasks")

    assert "not running" in (registry.handle(state, "/pause 1") or "")

    registry.handle(state, "/start 1")
    clock.advance(12)
    assert registry.handle(state, "/timer") == "Flashcards  00:12  (running)"

    assert registry.handle(state, "/timer toggle") == "Flashcards  00:12  (paused)"
    clock.advance(50)
    assert registry.handle(state, "/timer toggle") == "Flashcards  00:12  (running)"
    clock.advance(3)

    assert "Timer paused: Flashcards  00:15" in (registry.handle(state, "/pause 1") or "")
    assert "No active timer" in (registry.handle(state, "/timer") or "")

    assert registry.handle(state, "/reset 1") == "Timer reset: Flashcards 00:00"


def test_timer_done_completes_active_task(state, clock) -> None:
    notes: list[str] = []
    registry.handle(state, "/addq 4 Vocabulary")
    registry.handle(state, "/tasks")
    registry.handle(state, "/start 1")
    clock.advance(40)

    reply = registry.handle(state, "/timer done 3", emit=notes.append) or ""
    assert reply == "Finished Vocabulary in 00:40"
    assert notes == ["Task completed!"]

    task_id = state.last_listing[0]
    task = state.task_store.get_task(state.user_id, task_id)
    assert task is not None
    assert task.status == TaskStatus.DONE
    assert task.duration_seconds == 40
    assert task.correct_items == 3
    assert "No active timer" in (registry.handle(state, "/timer done") or "")


def test_invalid_input_is_reported(state) -> None:
    assert "Invalid input" in (registry.handle(state, "/add x") or "")
    assert "Usage" in (registry.handle(state, "/addq many Quiz") or "")
    assert "No task matches" in (registry.handle(state, "/start 9") or "")

    registry.handle(state, "/addq 3 Quiz")
    registry.handle(state, "/tasks")
    assert "Invalid input" in (registry.handle(state, "/done 1 lots") or "")


def test_delete_drops_task_and_timer(state, clock) -> None:
    registry.handle(state, "/add Essay outline")
    registry.handle(state, "/tasks")
    registry.handle(state, "/start 1")
    task_id = state.last_listing[0]

    assert registry.handle(state, "/delete 1") == "Task deleted: Essay outline"
    assert state.timers.has_timer(task_id) is False
    assert state.timers.has_active_timer is False
    assert "No tasks yet" in (registry.handle(state, "/tasks") or "")


def test_task_ref_by_id_prefix(state) -> None:
    registry.handle(state, "/add Grammar drills")
    task = state.task_store.list_tasks(state.user_id)[0]

    assert "Timer started: Grammar drills" in (registry.handle(state, f"/start {task.id[:8]}") or "")


def test_watch_prints_active_timer(state, clock) -> None:
    lines: list[str] = []
    registry.handle(state, "/add Reading")
    registry.handle(state, "/tasks")
    registry.handle(state, "/start 1")
    clock.advance(61)

    final = registry.handle(state, "/watch 0.03", emit=lines.append)

    assert final == "Reading  01:01  (running)"
    assert lines == ["Reading  01:01  (running)"]


def test_status_and_help(state) -> None:
    assert "User: u1" in (registry.handle(state, "/status") or "")
    help_text = registry.handle(state, "/help") or ""
    assert "/start" in help_text
    assert "/timer" in help_text
