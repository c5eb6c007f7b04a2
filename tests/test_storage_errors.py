# tests/test_storage_errors.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from hora.core import sqlite as hora_sqlite
from hora.core.errors import LifecycleError, StorageError
from hora.core.lifecycle import LifecycleController
from hora.tasks.task_input import TaskInput
from hora.tasks.task_store import SQLiteTaskStore
from hora.worklogs.clock_store import SQLiteClockStore

from .fakes import REQUESTER, WORKER


def _controller(db: Path) -> LifecycleController:
    return LifecycleController(tasks=SQLiteTaskStore(db), clock=SQLiteClockStore(db))


def test_connect_failure_becomes_storage_error(tmp_path: Path, monkeypatch) -> None:
    ctrl = _controller(tmp_path / "hora.sqlite3")

    def refuse(*args, **kwargs):
        raise sqlite3.OperationalError("unable to open database file")

    monkeypatch.setattr(hora_sqlite.sqlite3, "connect", refuse)

    with pytest.raises(StorageError) as ei:
        ctrl.create(TaskInput(title="x"), REQUESTER)
    assert ei.value.kind == "storage_error"
    assert ei.value.to_dict()["kind"] == "storage_error"
    # Storage failures are not lifecycle rule violations.
    assert not isinstance(ei.value, LifecycleError)


def test_query_failure_becomes_storage_error(tmp_path: Path) -> None:
    db = tmp_path / "hora.sqlite3"
    ctrl = _controller(db)
    task = ctrl.create(TaskInput(title="x"), REQUESTER)

    with sqlite3.connect(db) as conn:
        conn.execute("DROP TABLE worklogs")

    with pytest.raises(StorageError):
        ctrl.worklogs(task.id, REQUESTER)
    # The task side is untouched and keeps working.
    assert ctrl.accept(task.id, WORKER).assigned_to == WORKER


def test_lifecycle_errors_inside_transaction_are_not_wrapped(tmp_path: Path) -> None:
    ctrl = _controller(tmp_path / "hora.sqlite3")
    task = ctrl.create(TaskInput(title="x"), REQUESTER)
    ctrl.accept(task.id, WORKER)

    with pytest.raises(LifecycleError) as ei:
        ctrl.accept(task.id, "dave@example.com")
    assert ei.value.kind == "not_available"


def test_task_with_foreign_status_cannot_be_reopened(tmp_path: Path) -> None:
    db = tmp_path / "hora.sqlite3"
    ctrl = _controller(db)
    task = ctrl.create(TaskInput(title="x"), REQUESTER)
    with sqlite3.connect(db) as conn:
        conn.execute("UPDATE tasks SET status = 'archived' WHERE id = ?", (task.id,))

    with pytest.raises(StorageError):
        ctrl.accept(task.id, WORKER)
    with pytest.raises(StorageError):
        ctrl.edit(task.id, REQUESTER, TaskInput(title="y"))

    with sqlite3.connect(db) as conn:
        row = conn.execute("SELECT status, assigned_to, title FROM tasks WHERE id = ?", (task.id,)).fetchone()
    assert row == ("archived", None, "x")
    assert ctrl.list_view("available", WORKER) == []
