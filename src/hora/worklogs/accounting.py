# src/hora/worklogs/accounting.py

"""
Worklog accounting.

Pure functions over a task's sessions; nothing here reads settings or stores.
The per-minute rate is passed in by the caller (Settings.rate_per_minute_cents).
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from .worklog_models import WorkLog, WorklogSummary


def session_minutes(log: WorkLog) -> int:
    """
    Billable minutes of one session.

    Open sessions and non-positive durations count 0; any positive duration is
    rounded up to whole minutes, with a floor of 1.
    """
    if log.end_at is None:
        return 0
    seconds = log.end_at - log.start_at
    if seconds <= 0:
        return 0
    return max(1, math.ceil(seconds / 60.0))


def total_minutes(logs: Iterable[WorkLog]) -> int:
    # Every user's closed sessions count, not only the assignee's.
    return sum(session_minutes(log) for log in logs)


def has_open_session(logs: Iterable[WorkLog]) -> bool:
    return any(log.end_at is None for log in logs)


def cost_cents(minutes: int, rate_per_minute_cents: int) -> int:
    return int(minutes) * int(rate_per_minute_cents)


def summarize(task_id: str, logs: Sequence[WorkLog], *, rate_per_minute_cents: int) -> WorklogSummary:
    minutes = total_minutes(logs)
    return WorklogSummary(
        task_id=task_id,
        items=list(logs),
        total_minutes=minutes,
        total_cost_cents=cost_cents(minutes, rate_per_minute_cents),
        has_open_session=has_open_session(logs),
    )
