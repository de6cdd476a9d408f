# src/study_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and clocks swappable and makes testing easier.
"""

from typing import Any, Callable, Protocol

Clock = Callable[[], float]
# Wall clock in epoch seconds (time.time-compatible).

CompletionCallback = Callable[[str, int], None]
# Invoked with (task_id, elapsed_seconds) when a timer is completed.

Notifier = Callable[[str], None]
# User-facing transient notification (console line, toast, ...).


class KeyValueStorage(Protocol):
    """
    Durable client-local storage (think browser localStorage).

    Implementations may raise OSError on write; callers treat writes as best-effort.
    """

    def get(self, key: str) -> Any | None: ...
    def set(self, key: str, value: Any) -> None: ...
    def remove(self, key: str) -> None: ...
    def keys(self) -> list[str]: ...
