# src/hora/worklogs/memory_store.py

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import replace

from ..core.errors import AlreadyOpenError, NoOpenSessionError
from ..core.locks import KeyedLocks
from .worklog_models import WorkLog

logger = logging.getLogger(__name__)


class InMemoryClockStore:
    """
    Process-local work-session store.

    open()/close() serialize on the (task_id, user_id) key, so check-then-create
    cannot race for the same pair while different pairs proceed in parallel.
    """

    def __init__(self) -> None:
        self._by_task: dict[str, list[WorkLog]] = {}
        self._table_lock = threading.Lock()
        self._locks = KeyedLocks()
        logger.info("InMemoryClockStore ready")

    def _sessions(self, task_id: str, user_id: str) -> list[WorkLog]:
        with self._table_lock:
            return [log for log in self._by_task.get(task_id, ()) if log.user_id == user_id]

    def _replace(self, task_id: str, log: WorkLog) -> None:
        with self._table_lock:
            logs = self._by_task.setdefault(task_id, [])
            for i, existing in enumerate(logs):
                if existing.id == log.id:
                    logs[i] = log
                    return
            logs.append(log)

    def count_sessions(self) -> int:
        with self._table_lock:
            return sum(len(v) for v in self._by_task.values())

    def open(self, task_id: str, user_id: str, *, now_ts: float | None = None) -> WorkLog:
        now = time.time() if now_ts is None else float(now_ts)
        with self._locks.hold((task_id, user_id)):
            if any(log.end_at is None for log in self._sessions(task_id, user_id)):
                raise AlreadyOpenError("already clocked in")
            log = WorkLog(
                id=str(uuid.uuid4()),
                task_id=task_id,
                user_id=user_id,
                start_at=now,
                end_at=None,
                created_at=now,
                updated_at=now,
            )
            self._replace(task_id, log)

        logger.debug("Session opened id=%s task_id=%s user=%s", log.id, task_id, user_id)
        return log

    def close(self, task_id: str, user_id: str, *, now_ts: float | None = None) -> WorkLog:
        """Close the earliest-started open session of (task, user)."""
        now = time.time() if now_ts is None else float(now_ts)
        with self._locks.hold((task_id, user_id)):
            open_logs = [log for log in self._sessions(task_id, user_id) if log.end_at is None]
            if not open_logs:
                raise NoOpenSessionError("no active session")
            earliest = min(open_logs, key=lambda log: (log.start_at, log.created_at))
            closed = replace(earliest, end_at=now, updated_at=now)
            self._replace(task_id, closed)

        logger.debug("Session closed id=%s task_id=%s user=%s", closed.id, task_id, user_id)
        return closed

    def list_by_task(self, task_id: str) -> list[WorkLog]:
        with self._table_lock:
            logs = list(self._by_task.get(task_id, ()))
        logs.sort(key=lambda log: (log.start_at, log.created_at))
        return logs

    def has_open_session(self, task_id: str, user_id: str) -> bool:
        return any(log.end_at is None for log in self._sessions(task_id, user_id))
