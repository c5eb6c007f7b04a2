# src/hora/tasks/memory_store.py

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import replace

from ..core.errors import NotFoundError
from ..core.locks import KeyedLocks
from ..core.ports import TaskMutator, TaskPredicate
from .task_models import Task, TaskFields, TaskStatus, check_task_update

logger = logging.getLogger(__name__)


class InMemoryTaskStore:
    """
    Process-local task store.

    Each task has its own lock (KeyedLocks); update() holds it for exactly one
    read-mutate-write. The table lock only guards inserts and snapshots.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._table_lock = threading.Lock()
        self._locks = KeyedLocks()
        logger.info("InMemoryTaskStore ready")

    def close(self) -> None:
        return

    def count_tasks(self) -> int:
        with self._table_lock:
            return len(self._tasks)

    def create(self, fields: TaskFields, *, requester: str, now_ts: float | None = None) -> Task:
        if not requester:
            raise ValueError("requester is required")
        now = time.time() if now_ts is None else float(now_ts)

        task = Task(
            id=str(uuid.uuid4()),
            status=TaskStatus.OPEN,
            created_at=now,
            updated_at=now,
            title=fields.title,
            description=fields.description,
            category=fields.category,
            location_text=fields.location_text,
            estimated_minutes=fields.estimated_minutes,
            prepay_amount_cents=fields.prepay_amount_cents,
            is_immediate=fields.is_immediate,
            scheduled_at=fields.scheduled_at,
            requester=requester,
            assigned_to=None,
        )
        with self._table_lock:
            self._tasks[task.id] = task
        logger.debug("Task added id=%s requester=%s category=%s", task.id, requester, task.category.value)
        return task

    def get(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"task {task_id} not found")
        return task

    def update(self, task_id: str, mutator: TaskMutator, *, now_ts: float | None = None) -> Task:
        # Tasks are never removed, so an unknown id can be rejected before locking.
        self.get(task_id)
        with self._locks.hold(task_id):
            current = self.get(task_id)

            updated = mutator(current)
            check_task_update(current, updated)
            if updated == current:
                return current

            now = time.time() if now_ts is None else float(now_ts)
            updated = replace(updated, updated_at=now)
            with self._table_lock:
                self._tasks[task_id] = updated

        logger.debug(
            "Task updated id=%s status=%s assigned_to=%s",
            updated.id,
            updated.status.value,
            updated.assigned_to,
        )
        return updated

    def list_by_predicate(self, predicate: TaskPredicate) -> list[Task]:
        """All tasks matching `predicate`, newest first."""
        with self._table_lock:
            snapshot = list(self._tasks.values())
        snapshot.sort(key=lambda t: (-t.created_at, t.id))
        return [t for t in snapshot if predicate(t)]
