# src/study_tracker/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (user=%s).", state.user_id)
    _print_ts("[CONSOLE] Use /help for commands, /tasks to list tasks, /exit to quit.\n")

    active = state.timers.get_active_timer_state()
    if active is not None:
        _print_ts(f"[TIMER] Restored {active.task_title} (paused). Use /timer toggle to resume.")

    def emit(text: str) -> None:
        # Transient notifications (task completed, failures, /watch updates).
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            cmd_response = command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is None:
            _print_ts("Commands start with '/'. Use /help to list them.")
            continue

        _print_ts(cmd_response)

    logger.info("Console connector finished.")
