# tests/test_clock_store.py

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from hora.core.errors import AlreadyOpenError, NoOpenSessionError

from .fakes import OTHER, WORKER


def test_open_then_close(clock_store) -> None:
    opened = clock_store.open("t1", WORKER, now_ts=100.0)
    assert opened.end_at is None
    assert clock_store.has_open_session("t1", WORKER) is True

    closed = clock_store.close("t1", WORKER, now_ts=190.0)
    assert closed.id == opened.id
    assert closed.start_at == 100.0
    assert closed.end_at == 190.0
    assert closed.updated_at == 190.0
    assert clock_store.has_open_session("t1", WORKER) is False
    assert clock_store.list_by_task("t1") == [closed]


def test_second_open_for_same_pair_fails(clock_store) -> None:
    clock_store.open("t1", WORKER, now_ts=100.0)
    with pytest.raises(AlreadyOpenError):
        clock_store.open("t1", WORKER, now_ts=110.0)

    # Different user or different task is independent.
    clock_store.open("t1", OTHER, now_ts=120.0)
    clock_store.open("t2", WORKER, now_ts=130.0)
    assert len(clock_store.list_by_task("t1")) == 2


def test_close_without_open_session_fails(clock_store) -> None:
    with pytest.raises(NoOpenSessionError):
        clock_store.close("t1", WORKER)

    clock_store.open("t1", WORKER, now_ts=100.0)
    clock_store.close("t1", WORKER, now_ts=200.0)
    # A closed session is never reopened or closed twice.
    with pytest.raises(NoOpenSessionError):
        clock_store.close("t1", WORKER, now_ts=300.0)
    assert clock_store.list_by_task("t1")[0].end_at == 200.0


def test_reopen_after_close_creates_new_session(clock_store) -> None:
    first = clock_store.open("t1", WORKER, now_ts=100.0)
    clock_store.close("t1", WORKER, now_ts=160.0)
    second = clock_store.open("t1", WORKER, now_ts=200.0)

    assert second.id != first.id
    logs = clock_store.list_by_task("t1")
    assert [x.id for x in logs] == [first.id, second.id]
    assert logs[0].end_at == 160.0 and logs[1].end_at is None


def test_list_by_task_is_ordered_by_start(clock_store) -> None:
    clock_store.open("t1", OTHER, now_ts=300.0)
    clock_store.open("t1", WORKER, now_ts=100.0)
    clock_store.close("t1", WORKER, now_ts=150.0)
    clock_store.open("t1", WORKER, now_ts=200.0)

    assert [x.start_at for x in clock_store.list_by_task("t1")] == [100.0, 200.0, 300.0]
    assert clock_store.list_by_task("unknown") == []


def test_close_before_start_is_recorded_not_rejected(clock_store) -> None:
    clock_store.open("t1", WORKER, now_ts=500.0)
    closed = clock_store.close("t1", WORKER, now_ts=400.0)
    assert closed.end_at == 400.0


def test_concurrent_open_has_exactly_one_winner(clock_store) -> None:
    n = 8
    barrier = threading.Barrier(n)

    def attempt(_: int) -> str:
        barrier.wait()
        try:
            clock_store.open("t1", WORKER)
            return "ok"
        except AlreadyOpenError:
            return "already_open"

    with ThreadPoolExecutor(max_workers=n) as pool:
        results = list(pool.map(attempt, range(n)))

    assert results.count("ok") == 1
    assert results.count("already_open") == n - 1
    assert len(clock_store.list_by_task("t1")) == 1
