# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from todocan.tasks.task_store import TaskStore


def test_add_list_update_delete(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")

    a = store.add_task(user_id="u1", title="  Water plants ")
    b = store.add_task(user_id="u1", title="Pay rent", flagged=True)
    store.add_task(user_id="u2", title="Someone else's")

    assert a.id > 0
    assert a.title == "Water plants"
    assert [t.id for t in store.list_tasks_for_user("u1")] == [b.id, a.id]

    assert store.update_task_fields(a.id, completed=True, position=3) is True
    got = store.get_task(a.id)
    assert got is not None
    assert (got.completed, got.position, got.flagged) == (True, 3, False)

    assert store.delete_task(a.id) is True
    assert store.get_task(a.id) is None
    assert store.delete_task(a.id) is False
    assert store.count_tasks() == 2


def test_update_on_missing_id_does_not_create_a_row(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    assert store.update_task_fields(42, flagged=True) is False
    assert store.update_task_fields(42) is False
    assert store.count_tasks() == 0


def test_validation(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    with pytest.raises(ValueError):
        store.add_task(user_id="u1", title="   ")
    with pytest.raises(ValueError):
        store.add_task(user_id="", title="x")
    task = store.add_task(user_id="u1", title="x")
    with pytest.raises(ValueError):
        store.update_task_fields(task.id, title=" ")


def test_batch_insert_is_all_or_nothing(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")

    created = store.add_tasks_batch(user_id="u1", titles=["A", " ", "B"], flagged=True)
    assert [(t.title, t.flagged, t.completed) for t in created] == [("A", True, False), ("B", True, False)]

    conn = sqlite3.connect(str(tmp_path / "tasks.sqlite3"))
    conn.execute(
        """
        CREATE TRIGGER reject_boom BEFORE INSERT ON tasks
        WHEN NEW.title = 'boom'
        BEGIN SELECT RAISE(ABORT, 'boom rejected'); END
        """
    )
    conn.commit()
    conn.close()

    with pytest.raises(sqlite3.DatabaseError):
        store.add_tasks_batch(user_id="u1", titles=["C", "boom", "D"])

    assert sorted(t.title for t in store.list_tasks_for_user("u1")) == ["A", "B"]


def test_migration_adds_missing_columns(tmp_path: Path) -> None:
    db = tmp_path / "legacy.sqlite3"
    conn = sqlite3.connect(str(db))
    conn.execute(
        "CREATE TABLE tasks (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id TEXT NOT NULL, "
        "title TEXT NOT NULL, created_at REAL NOT NULL)"
    )
    conn.execute("INSERT INTO tasks(user_id, title, created_at) VALUES ('u1', 'old', 1.0)")
    conn.commit()
    conn.close()

    store = TaskStore(db)
    (task,) = store.list_tasks_for_user("u1")
    assert (task.title, task.flagged, task.position, task.completed) == ("old", False, 0, False)


def test_profiles_roles(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    assert store.get_role("u1") is None
    store.set_role("u1", "admin")
    store.set_role("u1", "user")
    assert store.get_role("u1") == "user"


def test_list_latest_tasks_spans_owners_newest_first(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    a = store.add_task(user_id="u1", title="Water plants")
    b = store.add_task(user_id="u2", title="Pay rent", flagged=True)
    c = store.add_task(user_id="u1", title="Call mom")

    assert [t.id for t in store.list_latest_tasks()] == [c.id, b.id, a.id]
    assert [t.id for t in store.list_latest_tasks(limit=2)] == [c.id, b.id]
    assert {t.user_id for t in store.list_latest_tasks()} == {"u1", "u2"}
