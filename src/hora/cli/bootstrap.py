# src/hora/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the configured store backing (SQLite or in-memory) into a
  LifecycleController and AppState.
"""

from __future__ import annotations

import logging

from ..config import DEFAULT_SQLITE_TIMEOUT_SECONDS, STORAGE_MEMORY, get_settings
from ..core.lifecycle import LifecycleController
from ..core.ports import ClockRepo, TaskRepo
from ..core.state import AppState
from ..tasks.memory_store import InMemoryTaskStore
from ..tasks.task_store import SQLiteTaskStore
from ..worklogs.clock_store import SQLiteClockStore
from ..worklogs.memory_store import InMemoryClockStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def build_stores(settings) -> tuple[TaskRepo, ClockRepo]:
    """Concrete stores for settings.storage ("sqlite" default, or "memory")."""
    if getattr(settings, "storage", None) == STORAGE_MEMORY:
        return InMemoryTaskStore(), InMemoryClockStore()

    timeout = float(getattr(settings, "sqlite_timeout_seconds", DEFAULT_SQLITE_TIMEOUT_SECONDS))
    return (
        SQLiteTaskStore(settings.db_path, timeout=timeout),
        SQLiteClockStore(settings.db_path, timeout=timeout),
    )


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if getattr(settings, "storage", None) != STORAGE_MEMORY:
        _ensure_local_dirs(settings)

    tasks, clock = build_stores(settings)
    lifecycle = LifecycleController.from_settings(settings, tasks=tasks, clock=clock)
    logger.info(
        "Lifecycle ready storage=%s rate=%s cents/min completion=%s",
        getattr(settings, "storage", "sqlite"),
        lifecycle.rate_per_minute_cents,
        lifecycle.completion_rule,
    )

    return AppState(
        settings=settings,
        tasks=tasks,
        clock=clock,
        lifecycle=lifecycle,
        current_user=(getattr(settings, "console_user", "") or None),
    )
