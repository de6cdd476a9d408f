# src/study_tracker/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from collections.abc import Iterable
from pathlib import Path

from .task_models import Tag, Task, TaskStatus, TaskType, UnauthorizedError

logger = logging.getLogger(__name__)


def _require_user(user_id: str | None) -> str:
    if not user_id or not str(user_id).strip():
        raise UnauthorizedError("Unauthorized")
    return str(user_id)


class TaskStore:
    """
    SQLite store for study tasks and tags.

    Every read and write is scoped to the owning user: a missing user id, or a
    task that belongs to someone else, raises UnauthorizedError.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys=ON")
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'todo',
                    type TEXT NOT NULL DEFAULT 'simple',
                    total_items INTEGER,
                    correct_items INTEGER,
                    duration_seconds INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    completed_at REAL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tags (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    color TEXT NOT NULL DEFAULT '#000000',
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_tags (
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    tag_id TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
                    PRIMARY KEY (task_id, tag_id)
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("total_items", "INTEGER")
            add_col("correct_items", "INTEGER")
            add_col("duration_seconds", "INTEGER NOT NULL DEFAULT 0")
            add_col("completed_at", "REAL")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user_created ON tasks(user_id, created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tags_user ON tags(user_id)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            status=TaskStatus.from_db(row["status"]),
            task_type=TaskType.from_db(row["type"]),
            total_items=int(row["total_items"]) if row["total_items"] is not None else None,
            correct_items=int(row["correct_items"]) if row["correct_items"] is not None else None,
            duration_seconds=int(row["duration_seconds"] or 0),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
        )

    @staticmethod
    def _row_to_tag(row: sqlite3.Row) -> Tag:
        return Tag(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            name=str(row["name"]),
            color=str(row["color"] or "#000000"),
            created_at=float(row["created_at"] or 0.0),
        )

    # ---- tasks ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def create_task(
        self,
        user_id: str | None,
        *,
        title: str,
        description: str = "",
        task_type: TaskType | str = TaskType.SIMPLE,
        total_items: int | None = None,
        tag_ids: Iterable[str] = (),
    ) -> str:
        owner = _require_user(user_id)

        title = (title or "").strip()
        if len(title) < 2:
            raise ValueError("title must have at least 2 characters")
        kind = TaskType(task_type)
        if total_items is not None and int(total_items) < 0:
            raise ValueError("total_items must be >= 0")
        if kind == TaskType.QUESTION_SET and not total_items:
            raise ValueError("question_set tasks need total_items >= 1")
        tag_list = list(dict.fromkeys(tag_ids))

        task_id = uuid.uuid4().hex
        now = time.time()

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if tag_list:
                placeholders = ",".join("?" for _ in tag_list)
                cur.execute(
                    f"SELECT COUNT(*) FROM tags WHERE user_id = ? AND id IN ({placeholders})",
                    (owner, *tag_list),
                )
                (owned,) = cur.fetchone()
                if int(owned) != len(tag_list):
                    raise UnauthorizedError("Unknown or foreign tag")

            cur.execute(
                """
                INSERT INTO tasks(
                    id, user_id, title, description, status, type,
                    total_items, duration_seconds, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    task_id,
                    owner,
                    title,
                    (description or "").strip(),
                    TaskStatus.TODO.value,
                    kind.value,
                    int(total_items) if total_items is not None else None,
                    now,
                    now,
                ),
            )
            cur.executemany(
                "INSERT INTO task_tags(task_id, tag_id) VALUES (?, ?)",
                [(task_id, tag_id) for tag_id in tag_list],
            )
            conn.commit()
            logger.debug("Task added id=%s type=%s tags=%d", task_id, kind.value, len(tag_list))
            return task_id
        finally:
            conn.close()

    def list_tasks(self, user_id: str | None) -> list[Task]:
        """All tasks of the user, newest first, with their tags attached."""
        owner = _require_user(user_id)

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM tasks WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (owner,),
            )
            tasks = [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

        tags_by_task = self.get_task_tags([t.id for t in tasks])
        for task in tasks:
            task.tags = tags_by_task.get(task.id, [])
        return tasks

    def get_task(self, user_id: str | None, task_id: str) -> Task | None:
        owner = _require_user(user_id)

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE id = ? AND user_id = ?", (task_id, owner))
            row = cur.fetchone()
        finally:
            conn.close()

        if row is None:
            return None
        task = self._row_to_task(row)
        task.tags = self.get_task_tags([task.id]).get(task.id, [])
        return task

    def update_task_status(self, user_id: str | None, task_id: str, status: TaskStatus | str) -> None:
        owner = _require_user(user_id)
        new_status = TaskStatus(status)

        conn = self._get_conn()
        try:
            cur = conn.execute(
                "UPDATE tasks SET status = ?, updated_at = ? WHERE id = ? AND user_id = ?",
                (new_status.value, time.time(), task_id, owner),
            )
            conn.commit()
            if cur.rowcount != 1:
                raise UnauthorizedError("Unauthorized")
        finally:
            conn.close()

    def complete_task(
        self,
        user_id: str | None,
        task_id: str,
        *,
        duration_seconds: int,
        correct_items: int | None = None,
    ) -> None:
        """
        Mark a task done with its final duration and optional accuracy numerator.

        completed_at is stamped here, by the store, not by the caller.
        """
        owner = _require_user(user_id)
        duration_seconds = int(duration_seconds)
        if duration_seconds < 0:
            raise ValueError("duration_seconds must be >= 0")

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT total_items FROM tasks WHERE id = ? AND user_id = ?", (task_id, owner))
            row = cur.fetchone()
            if row is None:
                raise UnauthorizedError("Unauthorized")

            if correct_items is not None:
                correct_items = int(correct_items)
                total = row["total_items"]
                if correct_items < 0 or (total is not None and correct_items > int(total)):
                    raise ValueError(f"correct_items must be between 0 and {total}")

            now = time.time()
            cur.execute(
                """
                UPDATE tasks
                SET status = 'done',
                    completed_at = ?,
                    duration_seconds = ?,
                    correct_items = ?,
                    updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (now, duration_seconds, correct_items, now, task_id, owner),
            )
            conn.commit()
            logger.info("Task completed id=%s duration=%ss correct=%s", task_id, duration_seconds, correct_items)
        finally:
            conn.close()

    def delete_task(self, user_id: str | None, task_id: str) -> None:
        owner = _require_user(user_id)

        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ? AND user_id = ?", (task_id, owner))
            conn.commit()
            if cur.rowcount != 1:
                raise UnauthorizedError("Unauthorized")
            logger.debug("Task deleted id=%s", task_id)
        finally:
            conn.close()

    # ---- tags ----

    def create_tag(self, user_id: str | None, name: str, color: str = "#000000") -> Tag:
        owner = _require_user(user_id)
        name = (name or "").strip()
        if not name:
            raise ValueError("tag name is required")

        tag = Tag(
            id=uuid.uuid4().hex,
            user_id=owner,
            name=name,
            color=(color or "#000000").strip(),
            created_at=time.time(),
        )
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO tags(id, user_id, name, color, created_at) VALUES (?, ?, ?, ?, ?)",
                (tag.id, tag.user_id, tag.name, tag.color, tag.created_at),
            )
            conn.commit()
            return tag
        finally:
            conn.close()

    def list_tags(self, user_id: str | None) -> list[Tag]:
        owner = _require_user(user_id)

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tags WHERE user_id = ? ORDER BY name COLLATE NOCASE", (owner,))
            return [self._row_to_tag(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def get_task_tags(self, task_ids: Iterable[str]) -> dict[str, list[Tag]]:
        ids = list(task_ids)
        if not ids:
            return {}

        conn = self._get_conn()
        try:
            placeholders = ",".join("?" for _ in ids)
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT task_tags.task_id AS task_id, tags.*
                FROM task_tags
                JOIN tags ON tags.id = task_tags.tag_id
                WHERE task_tags.task_id IN ({placeholders})
                ORDER BY tags.name COLLATE NOCASE
                """,
                ids,
            )
            out: dict[str, list[Tag]] = {}
            for row in cur.fetchall():
                out.setdefault(str(row["task_id"]), []).append(self._row_to_tag(row))
            return out
        finally:
            conn.close()
