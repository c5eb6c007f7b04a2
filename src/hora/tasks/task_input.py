# src/hora/tasks/task_input.py

"""
Create/Edit input handling.

TaskInput is what a caller sends; normalize_task_input() turns it into
TaskFields or raises InvalidInputError / InvalidScheduleError. Create and Edit
share this path so both validate identically.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..config import DEFAULT_ESTIMATED_MINUTES
from ..core.errors import InvalidInputError, InvalidScheduleError
from .task_models import TaskCategory, TaskFields


@dataclass(slots=True)
class TaskInput:
    title: str = ""
    description: str = ""
    category: str = ""
    location_text: str = ""
    estimated_minutes: int = 0
    prepay_amount_cents: int = 0
    is_immediate: bool = False
    scheduled_at: str = ""


def parse_scheduled_at(raw: str) -> float:
    """
    Parse an RFC 3339 timestamp ("2025-01-02T15:04:05Z", "...+02:00") to epoch seconds.

    A timestamp without an explicit offset is rejected: it has no single
    meaning across callers in different zones.
    """
    text = raw.strip()
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidScheduleError(f"scheduled_at must be RFC3339, got {raw!r}") from None
    if dt.tzinfo is None or dt.utcoffset() is None:
        raise InvalidScheduleError(f"scheduled_at must include a UTC offset, got {raw!r}")
    return dt.timestamp()


def _as_int(value: object, name: str) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} must be an integer, got {value!r}") from None


def normalize_task_input(
    spec: TaskInput,
    *,
    now_ts: float,
    default_estimated_minutes: int = DEFAULT_ESTIMATED_MINUTES,
) -> TaskFields:
    title = (spec.title or "").strip()
    if not title:
        raise InvalidInputError("title required")

    category_raw = (spec.category or "").strip() or TaskCategory.TASK.value
    try:
        category = TaskCategory(category_raw)
    except ValueError:
        raise InvalidInputError(f"invalid category: {category_raw!r}") from None

    estimated = _as_int(spec.estimated_minutes, "estimated_minutes")
    if estimated <= 0:
        estimated = default_estimated_minutes

    prepay = max(0, _as_int(spec.prepay_amount_cents, "prepay_amount_cents"))

    scheduled_at: float | None = None
    if spec.is_immediate:
        scheduled_at = now_ts
    elif (spec.scheduled_at or "").strip():
        scheduled_at = parse_scheduled_at(spec.scheduled_at)

    return TaskFields(
        title=title,
        description=(spec.description or "").strip(),
        category=category,
        location_text=(spec.location_text or "").strip(),
        estimated_minutes=estimated,
        prepay_amount_cents=prepay,
        is_immediate=bool(spec.is_immediate),
        scheduled_at=scheduled_at,
    )
