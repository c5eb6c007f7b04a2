# src/hora/worklogs/worklog_models.py

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class WorkLog:
    """One clock-in/clock-out session. end_at is None while the session is open."""

    id: str
    task_id: str
    user_id: str
    start_at: float
    end_at: float | None
    created_at: float
    updated_at: float

    @property
    def is_open(self) -> bool:
        return self.end_at is None


@dataclass(frozen=True, slots=True)
class WorklogSummary:
    task_id: str
    items: list[WorkLog] = field(default_factory=list)
    total_minutes: int = 0
    total_cost_cents: int = 0
    has_open_session: bool = False
