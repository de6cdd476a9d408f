# src/study_tracker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, restores persisted timers, then runs the
console REPL. On the way out, running timers are checkpointed so their time
survives the restart.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.timers.checkpoint()
    except Exception:
        logger.exception("Failed to checkpoint running timers.")

    # TaskStore uses short-lived sqlite connections per call; no explicit close required.


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/study")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "study-tracker"))

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)
    state.timers.restore()

    try:
        run_console_loop(state)
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
