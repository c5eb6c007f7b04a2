# tests/test_lifecycle_async.py

from __future__ import annotations

import asyncio

import pytest

from hora.core.errors import LifecycleError
from hora.tasks.task_input import TaskInput

from .fakes import REQUESTER, WORKER


async def _attempt(fn, *args) -> str:
    try:
        await asyncio.to_thread(fn, *args)
        return "ok"
    except LifecycleError as e:
        return e.kind


@pytest.mark.asyncio
async def test_accept_from_many_coroutines_has_one_winner(ctrl) -> None:
    """Connectors call the controller from an event loop via worker threads."""
    task = ctrl.create(TaskInput(title="Carry boxes"), REQUESTER)
    users = [f"helper{i}@example.com" for i in range(6)]

    results = await asyncio.gather(*(_attempt(ctrl.accept, task.id, u) for u in users))

    assert results.count("ok") == 1
    assert results.count("not_available") == len(users) - 1
    assert ctrl.get_task(task.id).assigned_to in users


@pytest.mark.asyncio
async def test_clock_in_and_complete_race(ctrl, fake_clock) -> None:
    task = ctrl.create(TaskInput(title="Carry boxes"), REQUESTER)
    ctrl.accept(task.id, WORKER)
    ctrl.clock_in(task.id, WORKER)
    fake_clock.advance(60)
    ctrl.clock_out(task.id, WORKER)

    clock_in, complete = await asyncio.gather(
        _attempt(ctrl.clock_in, task.id, WORKER),
        _attempt(ctrl.complete, task.id, REQUESTER),
    )

    # Whichever runs second observes the other; both succeeding is impossible.
    assert (clock_in, complete) in {("ok", "open_session"), ("invalid_state", "ok")}
    if complete == "ok":
        assert ctrl.clock.has_open_session(task.id, WORKER) is False
        assert ctrl.worklogs(task.id, REQUESTER).total_minutes == 1
