# src/hora/worklogs/clock_store.py

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from pathlib import Path

from ..config import DEFAULT_SQLITE_TIMEOUT_SECONDS
from ..core.errors import AlreadyOpenError, NoOpenSessionError
from ..core.sqlite import connection, enable_wal, immediate_transaction
from .worklog_models import WorkLog

logger = logging.getLogger(__name__)


class SQLiteClockStore:
    """
    SQLite work-session store.

    Invariant "at most one open session per (task, user)" is enforced twice:
    - open() checks and inserts inside one BEGIN IMMEDIATE transaction
    - a partial unique index rejects a second open row even if that check is bypassed

    Thread-safety:
    - each method opens its own SQLite connection
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
        logger.info("SQLiteClockStore ready db=%s total=%s", self._db_path, self.count_sessions())

    # close() is the session clock-out, not a shutdown hook: connections are per call.

    # ---- low-level helpers ----

    def _conn(self, op: str):
        return connection(self._db_path, timeout=self._timeout, op=op)

    def _ensure_schema(self) -> None:
        with self._conn("ensure_schema") as conn:
            enable_wal(conn)
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS worklogs (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    start_at REAL NOT NULL,
                    end_at REAL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_worklogs_task ON worklogs(task_id, start_at)")
            cur.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS uq_worklogs_open "
                "ON worklogs(task_id, user_id) WHERE end_at IS NULL"
            )

    @staticmethod
    def _row_to_log(row: sqlite3.Row) -> WorkLog:
        return WorkLog(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            user_id=str(row["user_id"]),
            start_at=float(row["start_at"]),
            end_at=float(row["end_at"]) if row["end_at"] is not None else None,
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    # ---- public API ----

    def count_sessions(self) -> int:
        with self._conn("count_sessions") as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM worklogs").fetchone()
            return int(n)

    def open(self, task_id: str, user_id: str, *, now_ts: float | None = None) -> WorkLog:
        now = time.time() if now_ts is None else float(now_ts)
        log = WorkLog(
            id=str(uuid.uuid4()),
            task_id=str(task_id),
            user_id=str(user_id),
            start_at=now,
            end_at=None,
            created_at=now,
            updated_at=now,
        )

        with self._conn("open") as conn:
            try:
                with immediate_transaction(conn) as cur:
                    cur.execute(
                        "SELECT 1 FROM worklogs WHERE task_id = ? AND user_id = ? AND end_at IS NULL LIMIT 1",
                        (log.task_id, log.user_id),
                    )
                    if cur.fetchone() is not None:
                        raise AlreadyOpenError("already clocked in")
                    cur.execute(
                        """
                        INSERT INTO worklogs(id, task_id, user_id, start_at, end_at, created_at, updated_at)
                        VALUES (?, ?, ?, ?, NULL, ?, ?)
                        """,
                        (log.id, log.task_id, log.user_id, log.start_at, log.created_at, log.updated_at),
                    )
            except sqlite3.IntegrityError:
                raise AlreadyOpenError("already clocked in") from None

        logger.debug("Session opened id=%s task_id=%s user=%s", log.id, task_id, user_id)
        return log

    def close(self, task_id: str, user_id: str, *, now_ts: float | None = None) -> WorkLog:
        """Close the earliest-started open session of (task, user)."""
        now = time.time() if now_ts is None else float(now_ts)

        with self._conn("close") as conn:
            with immediate_transaction(conn) as cur:
                row = cur.execute(
                    """
                    SELECT *
                    FROM worklogs
                    WHERE task_id = ? AND user_id = ? AND end_at IS NULL
                    ORDER BY start_at ASC, created_at ASC
                        LIMIT 1
                    """,
                    (str(task_id), str(user_id)),
                ).fetchone()
                if row is None:
                    raise NoOpenSessionError("no active session")
                cur.execute(
                    "UPDATE worklogs SET end_at = ?, updated_at = ? WHERE id = ?",
                    (now, now, row["id"]),
                )
                opened = self._row_to_log(row)

        closed = WorkLog(
            id=opened.id,
            task_id=opened.task_id,
            user_id=opened.user_id,
            start_at=opened.start_at,
            end_at=now,
            created_at=opened.created_at,
            updated_at=now,
        )
        logger.debug("Session closed id=%s task_id=%s user=%s", closed.id, task_id, user_id)
        return closed

    def list_by_task(self, task_id: str) -> list[WorkLog]:
        with self._conn("list_by_task") as conn:
            rows = conn.execute(
                "SELECT * FROM worklogs WHERE task_id = ? ORDER BY start_at ASC, created_at ASC",
                (str(task_id),),
            ).fetchall()
        return [self._row_to_log(r) for r in rows]

    def has_open_session(self, task_id: str, user_id: str) -> bool:
        with self._conn("has_open_session") as conn:
            row = conn.execute(
                "SELECT 1 FROM worklogs WHERE task_id = ? AND user_id = ? AND end_at IS NULL LIMIT 1",
                (str(task_id), str(user_id)),
            ).fetchone()
        return row is not None
