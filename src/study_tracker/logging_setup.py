# src/study_tracker/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

LOG_FILE_NAME = "study.log"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

APP_LOGGER_PREFIX = "study_tracker."
# Timer transitions log at INFO on every start/pause; the REPL already echoes them.
QUIET_APP_PREFIXES: tuple[str, ...] = ("study_tracker.timers.",)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Decide what reaches the terminal while the REPL is in use.

    Our own loggers pass, except the timer package, which is held to WARNING.
    Everything else (captured warnings, sqlite or dotenv chatter) needs ERROR.
    The file handler sees all of it regardless.
    """

    def __init__(self, quiet_prefixes: tuple[str, ...] = QUIET_APP_PREFIXES) -> None:
        super().__init__()
        self._quiet_prefixes = quiet_prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.name.startswith(APP_LOGGER_PREFIX):
            return record.levelno >= logging.ERROR
        if record.name.startswith(self._quiet_prefixes):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/study",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    stream: TextIO | None = None,
) -> Path:
    """
    Install the tracker's two root handlers and return the log file path.

    The terminal gets a filtered view at console_level; study.log under
    log_dir keeps everything down to file_level, timer transitions included.
    Calling it again replaces the handlers rather than stacking them.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # warnings.warn(...) shows up as the 'py.warnings' logger.
    logging.captureWarnings(True)
    return log_file
