# src/hora/core/sqlite.py

"""
Shared SQLite plumbing for the task and clock stores.

Thread-safety:
- each store call opens its own short-lived connection (no shared cursors)
- writers take the database write lock up front with BEGIN IMMEDIATE, so a
  read-check-write sequence inside one transaction cannot interleave with
  another writer
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from .errors import StorageError

logger = logging.getLogger(__name__)


def open_connection(db_path: Path, *, timeout: float) -> sqlite3.Connection:
    try:
        # isolation_level=None: we issue BEGIN/COMMIT ourselves.
        conn = sqlite3.connect(str(db_path), timeout=timeout, isolation_level=None)
    except sqlite3.Error as e:
        logger.exception("SQLite connect failed db=%s", db_path)
        raise StorageError(f"cannot open database {db_path}: {e}") from e
    conn.row_factory = sqlite3.Row
    return conn


def enable_wal(conn: sqlite3.Connection) -> None:
    """Switch the database file to WAL (persistent, so once per store is enough)."""
    with contextlib.suppress(sqlite3.Error):
        conn.execute("PRAGMA journal_mode=WAL")


@contextlib.contextmanager
def connection(db_path: Path, *, timeout: float, op: str) -> Iterator[sqlite3.Connection]:
    """
    Yield a connection; any sqlite3.Error escaping the block becomes StorageError.

    Lifecycle errors raised inside the block propagate unchanged.
    """
    conn = open_connection(db_path, timeout=timeout)
    try:
        yield conn
    except sqlite3.Error as e:
        logger.exception("SQLite %s failed db=%s", op, db_path)
        raise StorageError(f"{op} failed: {e}") from e
    finally:
        conn.close()


@contextlib.contextmanager
def immediate_transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Cursor]:
    """BEGIN IMMEDIATE ... COMMIT, rolling back on any exception."""
    cur = conn.cursor()
    cur.execute("BEGIN IMMEDIATE")
    try:
        yield cur
    except BaseException:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
