# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path

import pytest

from hora.core.errors import InvalidStateError, NotAvailableError, NotFoundError, StorageError
from hora.tasks.task_models import TaskCategory, TaskFields, TaskStatus
from hora.tasks.task_store import SQLiteTaskStore

from .fakes import OTHER, REQUESTER, WORKER

FIELDS = TaskFields(
    title="Walk the dog",
    description="",
    category=TaskCategory.TASK,
    location_text="Park",
    estimated_minutes=30,
    prepay_amount_cents=0,
    is_immediate=False,
    scheduled_at=None,
)


def test_create_and_get(task_store) -> None:
    task = task_store.create(FIELDS, requester=REQUESTER, now_ts=100.0)

    assert task.id
    assert task.status == TaskStatus.OPEN
    assert task.assigned_to is None
    assert task.created_at == task.updated_at == 100.0
    assert task_store.get(task.id) == task


def test_get_missing_raises_not_found(task_store) -> None:
    with pytest.raises(NotFoundError):
        task_store.get("does-not-exist")
    with pytest.raises(NotFoundError):
        task_store.update("does-not-exist", lambda t: t)


def test_update_applies_mutator_and_bumps_updated_at(task_store) -> None:
    task = task_store.create(FIELDS, requester=REQUESTER, now_ts=100.0)

    updated = task_store.update(task.id, lambda t: replace(t, assigned_to=WORKER), now_ts=200.0)

    assert updated.assigned_to == WORKER
    assert updated.updated_at == 200.0
    assert task_store.get(task.id) == updated


def test_noop_update_keeps_row(task_store) -> None:
    task = task_store.create(FIELDS, requester=REQUESTER, now_ts=100.0)
    assert task_store.update(task.id, lambda t: t, now_ts=999.0) == task


def test_mutator_error_aborts_without_writing(task_store) -> None:
    task = task_store.create(FIELDS, requester=REQUESTER, now_ts=100.0)

    def refuse(t):
        raise NotAvailableError("nope")

    with pytest.raises(NotAvailableError):
        task_store.update(task.id, refuse)
    assert task_store.get(task.id) == task


@pytest.mark.parametrize(
    "change",
    [
        lambda t: replace(t, requester=OTHER),
        lambda t: replace(t, id="other-id"),
        lambda t: replace(t, assigned_to=REQUESTER),
    ],
    ids=["requester", "id", "self-assign"],
)
def test_store_rejects_invariant_violations(task_store, change) -> None:
    task = task_store.create(FIELDS, requester=REQUESTER)
    with pytest.raises(InvalidStateError):
        task_store.update(task.id, change)
    assert task_store.get(task.id) == task


def test_assignee_is_fixed_once_set(task_store) -> None:
    task = task_store.create(FIELDS, requester=REQUESTER)
    task_store.update(task.id, lambda t: replace(t, assigned_to=WORKER))

    with pytest.raises(InvalidStateError):
        task_store.update(task.id, lambda t: replace(t, assigned_to=OTHER))
    with pytest.raises(InvalidStateError):
        task_store.update(task.id, lambda t: replace(t, assigned_to=None))
    assert task_store.get(task.id).assigned_to == WORKER


@pytest.mark.parametrize("terminal", [TaskStatus.COMPLETED, TaskStatus.CANCELLED])
def test_no_transition_out_of_terminal_status(task_store, terminal: TaskStatus) -> None:
    task = task_store.create(FIELDS, requester=REQUESTER)
    task_store.update(task.id, lambda t: replace(t, status=terminal))

    for target in TaskStatus:
        if target == terminal:
            continue
        with pytest.raises(InvalidStateError):
            task_store.update(task.id, lambda t, s=target: replace(t, status=s))
    assert task_store.get(task.id).status == terminal


def test_list_by_predicate_newest_first(task_store) -> None:
    a = task_store.create(FIELDS, requester=REQUESTER, now_ts=100.0)
    b = task_store.create(replace(FIELDS, title="b"), requester=OTHER, now_ts=200.0)
    c = task_store.create(replace(FIELDS, title="c"), requester=REQUESTER, now_ts=300.0)

    assert [t.id for t in task_store.list_by_predicate(lambda t: True)] == [c.id, b.id, a.id]
    assert [t.id for t in task_store.list_by_predicate(lambda t: t.requester == REQUESTER)] == [c.id, a.id]


def test_concurrent_updates_are_serialized(task_store) -> None:
    """Read-modify-write inside update() never loses an increment."""
    task = task_store.create(replace(FIELDS, prepay_amount_cents=0), requester=REQUESTER)

    def bump(_: int) -> None:
        task_store.update(task.id, lambda t: replace(t, prepay_amount_cents=t.prepay_amount_cents + 1))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(bump, range(40)))

    assert task_store.get(task.id).prepay_amount_cents == 40


def test_sqlite_store_persists_across_instances(tmp_path: Path) -> None:
    db = tmp_path / "persist.sqlite3"
    first = SQLiteTaskStore(db)
    task = first.create(FIELDS, requester=REQUESTER, now_ts=100.0)
    first.update(task.id, lambda t: replace(t, assigned_to=WORKER), now_ts=150.0)

    second = SQLiteTaskStore(db)
    loaded = second.get(task.id)
    assert loaded.assigned_to == WORKER
    assert loaded.location_text == "Park"
    assert second.count_tasks() == 1


def test_unknown_stored_status_is_rejected_not_reopened(tmp_path: Path) -> None:
    db = tmp_path / "foreign.sqlite3"
    store = SQLiteTaskStore(db)
    task = store.create(FIELDS, requester=REQUESTER, now_ts=100.0)
    other = store.create(replace(FIELDS, title="other"), requester=REQUESTER, now_ts=200.0)

    # Another writer closed the task with a status this code does not know.
    with sqlite3.connect(db) as conn:
        conn.execute("UPDATE tasks SET status = 'closed' WHERE id = ?", (task.id,))

    with pytest.raises(StorageError):
        store.get(task.id)
    with pytest.raises(StorageError):
        store.update(task.id, lambda t: replace(t, assigned_to=WORKER))

    with sqlite3.connect(db) as conn:
        status, assigned = conn.execute(
            "SELECT status, assigned_to FROM tasks WHERE id = ?", (task.id,)
        ).fetchone()
    assert status == "closed"
    assert assigned is None
    # Listings skip the unreadable row instead of failing as a whole.
    assert [t.id for t in store.list_by_predicate(lambda t: True)] == [other.id]
