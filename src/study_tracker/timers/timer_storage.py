# src/study_tracker/timers/timer_storage.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonFileStorage:
    """
    Durable key/value storage backed by a single JSON file.

    Plays the role localStorage plays in a browser: small, local, per-user.
    The whole map is kept in memory and rewritten atomically on every change
    (tmp file + os.replace). Write errors propagate as OSError; the timer
    coordinator decides whether they matter.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, Any] = self._load()
        logger.info("JsonFileStorage ready path=%s keys=%d", self._path, len(self._data))

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to read storage file %s; starting empty.", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Storage file %s is not a JSON object; starting empty.", self._path)
            return {}
        return {str(k): v for k, v in data.items()}

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)

    # ---- public API ----

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key not in self._data:
            return
        del self._data[key]
        self._flush()

    def keys(self) -> list[str]:
        return list(self._data.keys())
