# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from hora.cli.bootstrap import create_initial_state
from hora.core.lifecycle import LifecycleController
from hora.core.state import AppState
from hora.tasks.memory_store import InMemoryTaskStore
from hora.tasks.task_store import SQLiteTaskStore
from hora.worklogs.clock_store import SQLiteClockStore
from hora.worklogs.memory_store import InMemoryClockStore

from .fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="hora-test",
        log_level="DEBUG",
        storage="memory",
        data_dir=tmp_path / "data",
        db_path=tmp_path / "data" / "hora.sqlite3",
        sqlite_timeout_seconds=30.0,
        rate_per_minute_cents=50,
        default_estimated_minutes=30,
        completion_rule="strict",
        console_user="",
    )


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(params=["memory", "sqlite"])
def backend(request) -> str:
    return request.param


@pytest.fixture()
def task_store(backend: str, tmp_path: Path):
    if backend == "memory":
        return InMemoryTaskStore()
    return SQLiteTaskStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def clock_store(backend: str, tmp_path: Path):
    if backend == "memory":
        return InMemoryClockStore()
    # Same file as the task store, as in production.
    return SQLiteClockStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def ctrl(task_store, clock_store, fake_clock: FakeClock) -> LifecycleController:
    """
    Controller over both real backings (parametrized), driven by a fake clock.

    NOTE: We keep real stores here (not mocks) because their atomicity is part
    of what the lifecycle tests need to exercise.
    """
    return LifecycleController(tasks=task_store, clock=clock_store, now=fake_clock)


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """AppState wired by the real composition root (in-memory storage)."""
    return create_initial_state(settings=settings)
