# src/hora/tasks/task_views.py

"""
Predicates for the standard task listings.

Each factory returns a TaskPredicate for TaskRepo.list_by_predicate(); the
controller exposes them by name (see LifecycleController.list_view).
"""

from __future__ import annotations

from ..core.ports import TaskPredicate
from .task_models import Task, TaskStatus


def posted_by(user_id: str) -> TaskPredicate:
    """Tasks I posted, any status."""

    def pred(t: Task) -> bool:
        return t.requester == user_id

    return pred


def available_to(user_id: str) -> TaskPredicate:
    """Open, unassigned tasks someone else posted."""

    def pred(t: Task) -> bool:
        return t.status == TaskStatus.OPEN and t.assigned_to is None and t.requester != user_id

    return pred


def assigned_to(user_id: str) -> TaskPredicate:
    """Tasks I accepted that are still open."""

    def pred(t: Task) -> bool:
        return t.status == TaskStatus.OPEN and t.assigned_to == user_id

    return pred


def done_for(user_id: str) -> TaskPredicate:
    """Completed tasks I posted or worked on."""

    def pred(t: Task) -> bool:
        return t.status == TaskStatus.COMPLETED and t.involves(user_id)

    return pred


def posted_closed(user_id: str) -> TaskPredicate:
    """Tasks I posted that are completed or cancelled."""

    def pred(t: Task) -> bool:
        return t.requester == user_id and t.is_terminal

    return pred


VIEWS = {
    "posted": posted_by,
    "available": available_to,
    "assigned": assigned_to,
    "done": done_for,
    "posted_closed": posted_closed,
}
