# src/study_tracker/cli/commands.py

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections.abc import Callable
from typing import cast

from ..core.state import AppState
from ..tasks.task_api import complete_task_timer, register_task_timer, start_task_timer
from ..tasks.task_models import Tag, Task, TaskStatus, TaskType, UnauthorizedError
from ..timers.timer_models import TimerState
from ..timers.timer_poller import format_elapsed, run_timer_poller

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, /start, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except UnauthorizedError:
            logger.warning("Unauthorized command /%s user=%s", name, state.user_id)
            return "Not allowed: task not found for this user."
        except ValueError as e:
            return f"Invalid input: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _resolve_task(state: AppState, ref: str) -> Task | None:
    """
    Find a task by its number in the last /tasks listing or by id prefix.
    """
    ref = ref.strip()
    if not ref:
        return None

    if ref.isdigit():
        if not state.last_listing:
            state.last_listing = [t.id for t in state.task_store.list_tasks(state.user_id)]
        idx = int(ref)
        if 1 <= idx <= len(state.last_listing):
            return state.task_store.get_task(state.user_id, state.last_listing[idx - 1])

    matches = [t for t in state.task_store.list_tasks(state.user_id) if t.id.startswith(ref.lower())]
    if len(matches) == 1:
        return matches[0]
    return None


def _split_title_and_tags(args: list[str]) -> tuple[str, list[str]]:
    words: list[str] = []
    tags: list[str] = []
    for a in args:
        if a.startswith("#") and len(a) > 1:
            tags.append(a[1:])
        else:
            words.append(a)
    return " ".join(words), tags


def _resolve_tag_ids(state: AppState, names: list[str]) -> list[str]:
    """Map tag names to ids, creating tags that do not exist yet."""
    if not names:
        return []
    existing = {t.name.lower(): t for t in state.task_store.list_tags(state.user_id)}
    ids: list[str] = []
    for name in names:
        tag = existing.get(name.lower())
        if tag is None:
            tag = state.task_store.create_tag(state.user_id, name)
            existing[name.lower()] = tag
        ids.append(tag.id)
    return ids


def _format_tags(tags: list[Tag]) -> str:
    return " ".join(f"#{t.name}" for t in tags)


def _format_task_line(state: AppState, idx: int, task: Task) -> str:
    timer = state.timers.get_timer_state(task.id)
    seconds = timer.elapsed_seconds if timer else task.duration_seconds
    running = " >" if timer and timer.is_running else ""

    extra = ""
    if task.task_type == TaskType.QUESTION_SET:
        if task.accuracy is not None:
            extra = f" {task.correct_items}/{task.total_items} ({task.accuracy:.0%})"
        else:
            extra = f" {task.total_items} items"

    tags = _format_tags(task.tags)
    tag_str = f" {tags}" if tags else ""
    return (
        f"{idx}. [{task.status.value}] {task.title}{extra} "
        f"{format_elapsed(seconds)}{running}{tag_str}  ({task.id[:8]})"
    )


def _format_timer(state: TimerState | None) -> str:
    if state is None:
        return "No active timer. Use /start <task> to begin."
    mark = "running" if state.is_running else "paused"
    return f"{state.task_title}  {format_elapsed(state.elapsed_seconds)}  ({mark})"


def _parse_correct(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"correct answers must be a number, got {raw!r}") from e


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    total = len(state.task_store.list_tasks(state.user_id))
    return (
        "Status:\n"
        f"  User: {state.user_id}\n"
        f"  Tasks: {total}\n"
        f"  Tasks DB: {getattr(settings, 'tasks_db_path', '?')}\n"
        f"  Timers file: {getattr(settings, 'timers_path', '?')}\n"
        f"  Active timer: {_format_timer(state.timers.get_active_timer_state())}"
    )


def cmd_tasks(state: AppState, args: list[str]) -> str:
    tasks = state.task_store.list_tasks(state.user_id)
    state.last_listing = [t.id for t in tasks]
    if not tasks:
        return "No tasks yet. Use /add <title> to create one."
    lines = ["Tasks:"]
    for i, task in enumerate(tasks, start=1):
        lines.append(_format_task_line(state, i, task))
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title> [#tag ...]
    """
    title, tag_names = _split_title_and_tags(args)
    if not title:
        return "Usage: /add <title> [#tag ...]"
    task_id = state.task_store.create_task(
        state.user_id,
        title=title,
        task_type=TaskType.SIMPLE,
        tag_ids=_resolve_tag_ids(state, tag_names),
    )
    state.last_listing = []
    return f"Task created: {title} ({task_id[:8]})"


def cmd_addq(state: AppState, args: list[str]) -> str:
    """
    /addq <total> <title> [#tag ...]
    """
    if len(args) < 2 or not args[0].isdigit():
        return "Usage: /addq <total questions> <title> [#tag ...]"
    total = int(args[0])
    title, tag_names = _split_title_and_tags(args[1:])
    task_id = state.task_store.create_task(
        state.user_id,
        title=title,
        task_type=TaskType.QUESTION_SET,
        total_items=total,
        tag_ids=_resolve_tag_ids(state, tag_names),
    )
    state.last_listing = []
    return f"Question set created: {title}, {total} questions ({task_id[:8]})"


def cmd_tags(state: AppState, args: list[str]) -> str:
    tags = state.task_store.list_tags(state.user_id)
    if not tags:
        return "No tags yet. Use /tag <name> [color]."
    return "Tags: " + ", ".join(f"{t.name} ({t.color})" for t in tags)


def cmd_tag(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /tag <name> [color]"
    color = args[1] if len(args) > 1 else "#000000"
    tag = state.task_store.create_tag(state.user_id, args[0].lstrip("#"), color)
    return f"Tag created: #{tag.name}"


def cmd_start(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /start <task>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}. Use /tasks."
    if task.status == TaskStatus.DONE:
        return f"Task is already done: {task.title}"
    handle = start_task_timer(state, task, notify=emit)
    return f"Timer started: {task.title} {format_elapsed(handle.elapsed_seconds)}"


def cmd_pause(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /pause <task>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}. Use /tasks."
    timer = state.timers.get_timer_state(task.id)
    if timer is None or not timer.is_running:
        return f"Timer is not running: {task.title}"
    state.timers.pause(task.id)
    return f"Timer paused: {_format_timer(state.timers.get_timer_state(task.id))}"


def cmd_reset(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /reset <task>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}. Use /tasks."
    handle = register_task_timer(state, task, notify=emit)
    handle.reset()
    return f"Timer reset: {task.title} {format_elapsed(handle.elapsed_seconds)}"


def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /done <task> [correct]
    """
    if not args:
        return "Usage: /done <task> [correct answers]"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}. Use /tasks."
    if task.status == TaskStatus.DONE:
        return f"Task is already done: {task.title}"
    correct = _parse_correct(args[1] if len(args) > 1 else None)
    elapsed = complete_task_timer(state, task, correct_items=correct, notify=emit)
    return f"Finished {task.title} in {format_elapsed(elapsed or 0)}"


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <task>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}. Use /tasks."
    state.task_store.delete_task(state.user_id, task.id)
    state.timers.discard(task.id)
    state.last_listing = []
    return f"Task deleted: {task.title}"


def cmd_timer(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /timer                 -> show the active timer
    /timer toggle          -> pause/resume the active timer
    /timer reset           -> reset the active timer
    /timer done [correct]  -> complete the active timer's task
    """
    timers = state.timers
    if not args:
        return _format_timer(timers.get_active_timer_state())

    sub = args[0].lower()
    if not timers.has_active_timer:
        return "No active timer. Use /start <task> to begin."

    if sub in ("toggle", "t"):
        timers.toggle_active_timer()
        return _format_timer(timers.get_active_timer_state())

    if sub == "reset":
        active_id = timers.active_timer_id
        timers.reset_active_timer()
        return f"Timer reset: {_format_timer(timers.get_timer_state(active_id) if active_id else None)}"

    if sub in ("done", "complete"):
        active = timers.get_active_timer_state()
        correct = _parse_correct(args[1] if len(args) > 1 else None)
        task = state.task_store.get_task(state.user_id, active.task_id) if active else None
        if task is not None:
            # Refresh the callback so this completion carries the accuracy numerator.
            register_task_timer(state, task, correct_items=correct, notify=emit)
        elapsed = timers.complete_active_timer()
        title = active.task_title if active else "task"
        return f"Finished {title} in {format_elapsed(elapsed or 0)}"

    return "Usage: /timer [toggle|reset|done [correct]]"


def cmd_watch(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /watch [seconds] -> follow the active timer for a while (default 5s)
    """
    try:
        seconds = float(args[0]) if args else 5.0
    except ValueError:
        return "Usage: /watch [seconds]"
    seconds = max(0.0, min(seconds, 3600.0))

    interval = max(1, int(getattr(state.settings, "poll_interval_ms", 100))) / 1000.0
    polls = max(1, math.ceil(seconds / interval))
    last_line: list[str] = []

    def _show(snapshot: TimerState | None) -> None:
        line = _format_timer(snapshot)
        # Polls are frequent; only print when the rendered text changes.
        if last_line and last_line[-1] == line:
            return
        last_line.append(line)
        if emit is not None:
            emit(line)

    asyncio.run(run_timer_poller(state.timers, _show, interval_seconds=interval, max_polls=polls))
    return last_line[-1] if last_line else _format_timer(None)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show user, storage paths and active timer.")
registry.register("tasks", cmd_tasks, help_text="List tasks (numbers can be used as task refs).", aliases=["ls"])
registry.register("add", cmd_add, help_text="Create a task: /add <title> [#tag ...].")
registry.register("addq", cmd_addq, help_text="Create a question set: /addq <total> <title> [#tag ...].")
registry.register("tags", cmd_tags, help_text="List tags.")
registry.register("tag", cmd_tag, help_text="Create a tag: /tag <name> [color].")
registry.register("start", cmd_start, help_text="Start a task's timer (pauses any other).")
registry.register("pause", cmd_pause, help_text="Pause a task's timer.")
registry.register("reset", cmd_reset, help_text="Reset a task's timer to its saved duration.")
registry.register("done", cmd_done, help_text="Complete a task: /done <task> [correct answers].")
registry.register("delete", cmd_delete, help_text="Delete a task.", aliases=["rm"])
registry.register(
    "timer", cmd_timer, help_text="Active timer: /timer | /timer toggle | /timer reset | /timer done [correct]."
)
registry.register("watch", cmd_watch, help_text="Follow the active timer: /watch [seconds].")
