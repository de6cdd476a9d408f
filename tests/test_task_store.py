# tests/test_task_store.py

from __future__ import annotations

from pathlib import Path

import pytest

from study_tracker.tasks.task_models import TaskStatus, TaskType, UnauthorizedError
from study_tracker.tasks.task_store import TaskStore


def test_create_list_and_tags(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    bio = store.create_tag("u1", "biology", "#00ff00")
    exam = store.create_tag("u1", "exam")

    first = store.create_task("u1", title="Read chapter 3", description="  pages 40-60 ")
    second = store.create_task(
        "u1",
        title="Practice quiz",
        task_type=TaskType.QUESTION_SET,
        total_items=20,
        tag_ids=[exam.id, bio.id, exam.id],
    )

    tasks = store.list_tasks("u1")
    assert [t.id for t in tasks] == [second, first]

    quiz = tasks[0]
    assert quiz.task_type == TaskType.QUESTION_SET
    assert quiz.total_items == 20
    assert quiz.status == TaskStatus.TODO
    assert quiz.duration_seconds == 0
    assert [t.name for t in quiz.tags] == ["biology", "exam"]

    reading = store.get_task("u1", first)
    assert reading is not None
    assert reading.description == "pages 40-60"
    assert reading.tags == []
    assert [t.name for t in store.list_tags("u1")] == ["biology", "exam"]


def test_validation(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")

    with pytest.raises(ValueError):
        store.create_task("u1", title="x")
    with pytest.raises(ValueError):
        store.create_task("u1", title="Quiz", task_type="question_set")
    with pytest.raises(ValueError):
        store.create_task("u1", title="Quiz", task_type="essay")
    with pytest.raises(ValueError):
        store.create_tag("u1", "  ")


def test_every_operation_requires_a_user(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    task_id = store.create_task("u1", title="Read")

    with pytest.raises(UnauthorizedError):
        store.create_task(None, title="Read")
    with pytest.raises(UnauthorizedError):
        store.list_tasks("")
    with pytest.raises(UnauthorizedError):
        store.update_task_status(None, task_id, TaskStatus.DONE)
    with pytest.raises(UnauthorizedError):
        store.complete_task(None, task_id, duration_seconds=5)
    with pytest.raises(UnauthorizedError):
        store.delete_task(None, task_id)


def test_tasks_are_private_to_their_owner(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    task_id = store.create_task("u1", title="Read")
    foreign_tag = store.create_tag("u2", "mine")

    assert store.get_task("u2", task_id) is None
    assert store.list_tasks("u2") == []
    with pytest.raises(UnauthorizedError):
        store.update_task_status("u2", task_id, TaskStatus.IN_PROGRESS)
    with pytest.raises(UnauthorizedError):
        store.complete_task("u2", task_id, duration_seconds=10)
    with pytest.raises(UnauthorizedError):
        store.delete_task("u2", task_id)
    with pytest.raises(UnauthorizedError):
        store.create_task("u1", title="Steal tag", tag_ids=[foreign_tag.id])

    task = store.get_task("u1", task_id)
    assert task is not None
    assert task.status == TaskStatus.TODO


def test_status_complete_and_accuracy(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    task_id = store.create_task("u1", title="Quiz", task_type=TaskType.QUESTION_SET, total_items=10)

    store.update_task_status("u1", task_id, "in_progress")
    task = store.get_task("u1", task_id)
    assert task is not None and task.status == TaskStatus.IN_PROGRESS
    assert task.completed_at is None

    with pytest.raises(ValueError):
        store.complete_task("u1", task_id, duration_seconds=60, correct_items=11)
    with pytest.raises(ValueError):
        store.complete_task("u1", task_id, duration_seconds=-1)

    store.complete_task("u1", task_id, duration_seconds=600, correct_items=7)
    done = store.get_task("u1", task_id)
    assert done is not None
    assert done.status == TaskStatus.DONE
    assert done.duration_seconds == 600
    assert done.correct_items == 7
    assert done.completed_at is not None
    assert done.accuracy == pytest.approx(0.7)


def test_delete_cascades_tags(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    tag = store.create_tag("u1", "exam")
    task_id = store.create_task("u1", title="Read", tag_ids=[tag.id])

    store.delete_task("u1", task_id)

    assert store.get_task("u1", task_id) is None
    assert store.get_task_tags([task_id]) == {}
    assert [t.name for t in store.list_tags("u1")] == ["exam"]


def test_reopen_keeps_data(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    task_id = TaskStore(db).create_task("u1", title="Read")
    assert TaskStore(db).count_tasks() == 1
    assert TaskStore(db).get_task("u1", task_id) is not None
