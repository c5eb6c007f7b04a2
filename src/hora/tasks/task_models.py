# src/hora/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ..core.errors import InvalidStateError, StorageError


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - "open" covers both open-unassigned and open-assigned; the difference is
      carried by Task.assigned_to.
    - "cancelled" is only reached through collaborators outside the lifecycle
      controller, but stores still honour it as a terminal state.
    """

    OPEN = "open"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        # A value written by another collaborator must never reopen a task.
        try:
            return cls(raw)
        except ValueError:
            raise StorageError(f"unknown task status in storage: {raw!r}") from None


class TaskCategory(StrEnum):
    TASK = "task"
    COMPANION = "companion"


# Key: (from_status, to_status). Absent pair -> illegal transition.
LEGAL_TRANSITIONS: frozenset[tuple[TaskStatus, TaskStatus]] = frozenset(
    {
        (TaskStatus.OPEN, TaskStatus.OPEN),
        (TaskStatus.OPEN, TaskStatus.COMPLETED),
        (TaskStatus.OPEN, TaskStatus.CANCELLED),
    }
)

TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})


@dataclass(frozen=True, slots=True)
class TaskFields:
    """Normalized, caller-editable part of a task (see task_input.normalize_task_input)."""

    title: str
    description: str
    category: TaskCategory
    location_text: str
    estimated_minutes: int
    prepay_amount_cents: int
    is_immediate: bool
    scheduled_at: float | None


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    status: TaskStatus
    created_at: float
    updated_at: float

    title: str
    description: str
    category: TaskCategory
    location_text: str
    estimated_minutes: int
    prepay_amount_cents: int
    is_immediate: bool
    scheduled_at: float | None

    requester: str
    assigned_to: str | None = None

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to is not None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def involves(self, user_id: str) -> bool:
        return user_id in (self.requester, self.assigned_to)


def check_task_update(old: Task, new: Task) -> None:
    """
    Validate a replacement produced by a store mutator.

    Raises InvalidStateError if the update would break a task invariant:
    identity/owner/creation time are immutable, status only moves along
    LEGAL_TRANSITIONS, the assignee is fixed once set and never equals the
    requester.
    """
    if new.id != old.id or new.requester != old.requester or new.created_at != old.created_at:
        raise InvalidStateError(f"task {old.id}: id, requester and created_at are immutable")

    if (old.status, new.status) not in LEGAL_TRANSITIONS:
        raise InvalidStateError(
            f"task {old.id}: illegal transition {old.status.value} -> {new.status.value}"
        )

    if old.assigned_to is not None and new.assigned_to != old.assigned_to:
        raise InvalidStateError(f"task {old.id}: assignee is already fixed")

    if new.assigned_to is not None and new.assigned_to == new.requester:
        raise InvalidStateError(f"task {old.id}: requester cannot be the assignee")
