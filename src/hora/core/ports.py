# src/hora/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The lifecycle controller depends on Protocols instead of concrete stores.
This keeps the backing (in-memory, SQLite) swappable and makes testing easier.
"""

from typing import Callable, Protocol

from ..tasks.task_models import Task, TaskFields
from ..worklogs.worklog_models import WorkLog

Clock = Callable[[], float]
# Epoch seconds, e.g. time.time.

TaskMutator = Callable[[Task], Task]
TaskPredicate = Callable[[Task], bool]


class TaskRepo(Protocol):
    """
    Task Store contract.

    update() runs `mutator` inside the store's atomic region for that task: the
    mutator sees the current row, returns the replacement, or raises to abort
    with nothing written. Preconditions that must not race belong in there.
    """

    def create(self, fields: TaskFields, *, requester: str, now_ts: float | None = None) -> Task: ...
    def get(self, task_id: str) -> Task: ...
    def update(self, task_id: str, mutator: TaskMutator, *, now_ts: float | None = None) -> Task: ...
    def list_by_predicate(self, predicate: TaskPredicate) -> list[Task]: ...


class ClockRepo(Protocol):
    """Clock Store contract: work sessions per (task, user)."""

    def open(self, task_id: str, user_id: str, *, now_ts: float | None = None) -> WorkLog: ...
    def close(self, task_id: str, user_id: str, *, now_ts: float | None = None) -> WorkLog: ...
    def list_by_task(self, task_id: str) -> list[WorkLog]: ...
    def has_open_session(self, task_id: str, user_id: str) -> bool: ...
