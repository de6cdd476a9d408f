# src/study_tracker/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO


class TaskType(StrEnum):
    """
    What kind of study task this is.

    question_set tasks carry total_items and, once done, correct_items.
    """

    SIMPLE = "simple"
    QUESTION_SET = "question_set"
    OTHER = "other"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskType:
        if not raw:
            return cls.SIMPLE
        try:
            return cls(raw)
        except ValueError:
            return cls.SIMPLE


class UnauthorizedError(PermissionError):
    """No caller identity, or the task does not belong to the caller."""


@dataclass(slots=True)
class Tag:
    id: str
    user_id: str
    name: str
    color: str
    created_at: float


@dataclass(slots=True)
class Task:
    id: str
    user_id: str
    title: str
    description: str
    status: TaskStatus
    task_type: TaskType

    total_items: int | None
    correct_items: int | None
    duration_seconds: int

    created_at: float
    updated_at: float
    completed_at: float | None = None

    tags: list[Tag] = field(default_factory=list)

    @property
    def accuracy(self) -> float | None:
        if not self.total_items or self.correct_items is None:
            return None
        return self.correct_items / self.total_items
