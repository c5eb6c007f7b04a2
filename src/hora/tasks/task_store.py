# src/hora/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from dataclasses import replace
from pathlib import Path

from ..config import DEFAULT_SQLITE_TIMEOUT_SECONDS
from ..core.errors import NotFoundError, StorageError
from ..core.ports import TaskMutator, TaskPredicate
from ..core.sqlite import connection, enable_wal, immediate_transaction
from .task_models import Task, TaskCategory, TaskFields, TaskStatus, check_task_update

logger = logging.getLogger(__name__)

_SELECT_TASK = "SELECT * FROM tasks WHERE id = ?"


class SQLiteTaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Atomicity:
    - update() reads, mutates and writes the row inside one BEGIN IMMEDIATE
      transaction, so the mutator acts as a compare-and-swap guard
    """

    def __init__(
        self,
        db_path: str | Path = "hora.sqlite3",
        *,
        timeout: float = DEFAULT_SQLITE_TIMEOUT_SECONDS,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._timeout = float(timeout)
        self._ensure_schema()
        logger.info("SQLiteTaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _conn(self, op: str):
        return connection(self._db_path, timeout=self._timeout, op=op)

    def _ensure_schema(self) -> None:
        with self._conn("ensure_schema") as conn:
            enable_wal(conn)
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    status TEXT NOT NULL DEFAULT 'open',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL DEFAULT 'task',
                    location_text TEXT NOT NULL DEFAULT '',
                    estimated_minutes INTEGER NOT NULL DEFAULT 30,
                    prepay_amount_cents INTEGER NOT NULL DEFAULT 0,
                    is_immediate INTEGER NOT NULL DEFAULT 0,
                    scheduled_at REAL,
                    requester TEXT NOT NULL,
                    assigned_to TEXT
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
                logger.info("SQLiteTaskStore migration: added column %s", name)

            add_col("updated_at", "REAL NOT NULL DEFAULT 0")
            add_col("location_text", "TEXT NOT NULL DEFAULT ''")
            add_col("is_immediate", "INTEGER NOT NULL DEFAULT 0")
            add_col("scheduled_at", "REAL")
            add_col("assigned_to", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status, created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_requester ON tasks(requester)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_assigned ON tasks(assigned_to)")

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        try:
            category = TaskCategory(row["category"])
        except ValueError:
            category = TaskCategory.TASK
        return Task(
            id=str(row["id"]),
            status=TaskStatus.from_db(row["status"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            category=category,
            location_text=str(row["location_text"] or ""),
            estimated_minutes=int(row["estimated_minutes"] or 0),
            prepay_amount_cents=int(row["prepay_amount_cents"] or 0),
            is_immediate=bool(row["is_immediate"]),
            scheduled_at=float(row["scheduled_at"]) if row["scheduled_at"] is not None else None,
            requester=str(row["requester"]),
            # Legacy rows used '' for "unassigned".
            assigned_to=row["assigned_to"] or None,
        )

    # ---- public API ----

    def count_tasks(self) -> int:
        with self._conn("count_tasks") as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

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

        with self._conn("create") as conn:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, status, created_at, updated_at,
                    title, description, category, location_text,
                    estimated_minutes, prepay_amount_cents, is_immediate, scheduled_at,
                    requester, assigned_to
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL)
                """,
                (
                    task.id,
                    task.status.value,
                    task.created_at,
                    task.updated_at,
                    task.title,
                    task.description,
                    task.category.value,
                    task.location_text,
                    task.estimated_minutes,
                    task.prepay_amount_cents,
                    int(task.is_immediate),
                    task.scheduled_at,
                    task.requester,
                ),
            )
        logger.debug("Task added id=%s requester=%s category=%s", task.id, requester, task.category.value)
        return task

    def get(self, task_id: str) -> Task:
        with self._conn("get") as conn:
            row = conn.execute(_SELECT_TASK, (str(task_id),)).fetchone()
        if row is None:
            raise NotFoundError(f"task {task_id} not found")
        return self._row_to_task(row)

    def update(self, task_id: str, mutator: TaskMutator, *, now_ts: float | None = None) -> Task:
        """
        Atomically apply `mutator` to the stored task.

        The mutator may raise (e.g. a LifecycleError after re-checking a
        precondition); the transaction is then rolled back and nothing is written.
        """
        with self._conn("update") as conn:
            with immediate_transaction(conn) as cur:
                row = cur.execute(_SELECT_TASK, (str(task_id),)).fetchone()
                if row is None:
                    raise NotFoundError(f"task {task_id} not found")
                current = self._row_to_task(row)

                updated = mutator(current)
                check_task_update(current, updated)
                if updated == current:
                    return current

                now = time.time() if now_ts is None else float(now_ts)
                updated = replace(updated, updated_at=now)
                cur.execute(
                    """
                    UPDATE tasks
                    SET status = ?, updated_at = ?,
                        title = ?, description = ?, category = ?, location_text = ?,
                        estimated_minutes = ?, prepay_amount_cents = ?,
                        is_immediate = ?, scheduled_at = ?, assigned_to = ?
                    WHERE id = ?
                    """,
                    (
                        updated.status.value,
                        updated.updated_at,
                        updated.title,
                        updated.description,
                        updated.category.value,
                        updated.location_text,
                        updated.estimated_minutes,
                        updated.prepay_amount_cents,
                        int(updated.is_immediate),
                        updated.scheduled_at,
                        updated.assigned_to,
                        current.id,
                    ),
                )
        logger.debug(
            "Task updated id=%s status=%s assigned_to=%s",
            updated.id,
            updated.status.value,
            updated.assigned_to,
        )
        return updated

    def list_by_predicate(self, predicate: TaskPredicate) -> list[Task]:
        """All tasks matching `predicate`, newest first."""
        with self._conn("list_by_predicate") as conn:
            rows = conn.execute("SELECT * FROM tasks ORDER BY created_at DESC, id ASC").fetchall()
        out: list[Task] = []
        for r in rows:
            try:
                task = self._row_to_task(r)
            except StorageError:
                logger.warning("Skipping unreadable task row id=%s status=%r", r["id"], r["status"])
                continue
            if predicate(task):
                out.append(task)
        return out
