# src/hora/core/errors.py

"""
Caller-facing lifecycle errors.

Every rejected operation raises one LifecycleError subclass. The request layer
turns it into a structured result with to_dict(); `kind` is stable and safe to
match on. StorageError is outside that hierarchy: it means the
backing failed, not that the caller asked for something invalid.
"""

from __future__ import annotations

from typing import Any


class LifecycleError(Exception):
    """Base class for errors returned to the caller as (kind, message)."""

    kind = "lifecycle_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class NotFoundError(LifecycleError):
    kind = "not_found"


class ForbiddenError(LifecycleError):
    kind = "forbidden"


class InvalidStateError(LifecycleError):
    kind = "invalid_state"


class InvalidInputError(LifecycleError):
    kind = "invalid_input"


class InvalidScheduleError(InvalidInputError):
    """scheduled_at was supplied but is not an RFC 3339 timestamp."""

    kind = "invalid_schedule"


class SelfAssignmentError(LifecycleError):
    kind = "self_assignment"


class NotAvailableError(LifecycleError):
    kind = "not_available"


class AlreadyOpenError(LifecycleError):
    kind = "already_open"


class NoOpenSessionError(LifecycleError):
    kind = "no_open_session"


class AssignmentRequiredError(LifecycleError):
    kind = "assignment_required"


class OpenSessionError(LifecycleError):
    kind = "open_session"


class NoWorkRecordedError(LifecycleError):
    kind = "no_work_recorded"


class StorageError(Exception):
    """The backing store failed; the mutation in flight was rolled back."""

    kind = "storage_error"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": str(self)}
