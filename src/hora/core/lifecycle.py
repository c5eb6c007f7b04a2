# src/hora/core/lifecycle.py

"""
Task / worklog lifecycle controller.

States per task:
- open-unassigned (initial): status=open, assigned_to=None
- open-assigned:             status=open, assigned_to=<user>
- completed, cancelled:      terminal

The controller is stateless: all state lives in the two stores, so any
number of controllers (threads, processes) can serve the same data.

Concurrency:
- every precondition that could race with another writer of the same task is
  re-checked inside TaskRepo.update(), whose mutator runs in the store's atomic
  region (accept vs accept, edit vs accept, complete vs complete)
- clock-in uniqueness is enforced by ClockRepo.open() itself
- clock-in vs complete: clock_in() passes through a no-op TaskRepo.update()
  after opening its session and complete() re-reads sessions inside its own
  update, so whichever runs second observes the other
- no lock is held across the steps of one operation
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace

from ..config import (
    COMPLETION_LENIENT,
    COMPLETION_STRICT,
    DEFAULT_ESTIMATED_MINUTES,
    DEFAULT_RATE_PER_MINUTE_CENTS,
)
from ..tasks import task_views
from ..tasks.task_input import TaskInput, normalize_task_input
from ..tasks.task_models import Task, TaskStatus
from ..worklogs import accounting
from ..worklogs.worklog_models import WorkLog, WorklogSummary
from .errors import (
    AssignmentRequiredError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NoOpenSessionError,
    NoWorkRecordedError,
    NotAvailableError,
    OpenSessionError,
    SelfAssignmentError,
)
from .ports import Clock, ClockRepo, TaskPredicate, TaskRepo

logger = logging.getLogger(__name__)


def _require_caller(caller_id: str) -> str:
    caller = (caller_id or "").strip()
    if not caller:
        raise ForbiddenError("caller identity required")
    return caller


def _require_open(task: Task, message: str) -> None:
    if task.status != TaskStatus.OPEN:
        raise InvalidStateError(message)


def _still_open(task: Task) -> Task:
    _require_open(task, "task not open")
    return task


class LifecycleController:
    """
    Orchestrates create/edit/accept/clock-in/clock-out/complete and the read path.

    Usage:
        ctrl = LifecycleController(tasks=SQLiteTaskStore(db), clock=SQLiteClockStore(db))
        task = ctrl.create(TaskInput(title="Walk the dog"), "alice@example.com")
        ctrl.accept(task.id, "bob@example.com")
        ctrl.clock_in(task.id, "bob@example.com")
        ctrl.clock_out(task.id, "bob@example.com")
        ctrl.complete(task.id, "alice@example.com")
    """

    def __init__(
        self,
        *,
        tasks: TaskRepo,
        clock: ClockRepo,
        rate_per_minute_cents: int = DEFAULT_RATE_PER_MINUTE_CENTS,
        default_estimated_minutes: int = DEFAULT_ESTIMATED_MINUTES,
        completion_rule: str = COMPLETION_STRICT,
        now: Clock = time.time,
    ) -> None:
        if completion_rule not in (COMPLETION_STRICT, COMPLETION_LENIENT):
            raise ValueError(f"unknown completion rule: {completion_rule!r}")
        self.tasks = tasks
        self.clock = clock
        self.rate_per_minute_cents = int(rate_per_minute_cents)
        self.default_estimated_minutes = int(default_estimated_minutes)
        self.completion_rule = completion_rule
        self._now = now

    @classmethod
    def from_settings(cls, settings, *, tasks: TaskRepo, clock: ClockRepo) -> LifecycleController:
        return cls(
            tasks=tasks,
            clock=clock,
            rate_per_minute_cents=int(
                getattr(settings, "rate_per_minute_cents", DEFAULT_RATE_PER_MINUTE_CENTS)
            ),
            default_estimated_minutes=int(
                getattr(settings, "default_estimated_minutes", DEFAULT_ESTIMATED_MINUTES)
            ),
            completion_rule=str(getattr(settings, "completion_rule", COMPLETION_STRICT)),
        )

    # ---- write path ----

    def create(self, spec: TaskInput, requester_id: str) -> Task:
        requester = _require_caller(requester_id)
        now_ts = self._now()
        fields = normalize_task_input(
            spec, now_ts=now_ts, default_estimated_minutes=self.default_estimated_minutes
        )
        task = self.tasks.create(fields, requester=requester, now_ts=now_ts)
        logger.info("Task %s created by %s", task.id, requester)
        return task

    def edit(self, task_id: str, requester_id: str, spec: TaskInput) -> Task:
        caller = _require_caller(requester_id)

        def check(t: Task) -> None:
            # A closed task is not editable by anyone, so state is checked first.
            _require_open(t, "only open tasks can be edited")
            if t.requester != caller:
                raise ForbiddenError("not your task")

        # Fail fast on ownership/state before validating the payload.
        check(self.tasks.get(task_id))

        now_ts = self._now()
        fields = normalize_task_input(
            spec, now_ts=now_ts, default_estimated_minutes=self.default_estimated_minutes
        )

        def mutate(t: Task) -> Task:
            check(t)
            return replace(
                t,
                title=fields.title,
                description=fields.description,
                category=fields.category,
                location_text=fields.location_text,
                estimated_minutes=fields.estimated_minutes,
                prepay_amount_cents=fields.prepay_amount_cents,
                is_immediate=fields.is_immediate,
                scheduled_at=fields.scheduled_at,
            )

        task = self.tasks.update(task_id, mutate, now_ts=now_ts)
        logger.info("Task %s edited by %s", task_id, caller)
        return task

    def accept(self, task_id: str, caller_id: str) -> Task:
        caller = _require_caller(caller_id)

        def mutate(t: Task) -> Task:
            if t.requester == caller:
                raise SelfAssignmentError("cannot accept your own task")
            if t.status != TaskStatus.OPEN or t.is_assigned:
                raise NotAvailableError("not available")
            return replace(t, assigned_to=caller)

        try:
            task = self.tasks.update(task_id, mutate, now_ts=self._now())
        except (SelfAssignmentError, NotAvailableError) as e:
            logger.debug("accept rejected task_id=%s caller=%s: %s", task_id, caller, e.kind)
            raise
        logger.info("Task %s accepted by %s", task_id, caller)
        return task

    def clock_in(self, task_id: str, caller_id: str) -> WorkLog:
        caller = _require_caller(caller_id)
        task = self.tasks.get(task_id)
        if task.assigned_to != caller:
            raise ForbiddenError("only assignee can clock in")
        _require_open(task, "task not open")

        log = self.clock.open(task.id, caller, now_ts=self._now())

        # Serialize with complete(): its mutator either sees this session, or the
        # task is already closed here and the session is ended with zero length.
        try:
            self.tasks.update(task.id, _still_open)
        except InvalidStateError:
            self.clock.close(task.id, caller, now_ts=log.start_at)
            logger.info(
                "Clock-in task_id=%s user=%s lost to completion, session %s ended",
                task_id,
                caller,
                log.id,
            )
            raise

        logger.info("Clock-in task_id=%s user=%s session=%s", task_id, caller, log.id)
        return log

    def clock_out(self, task_id: str, caller_id: str) -> WorkLog:
        caller = _require_caller(caller_id)
        if not self.clock.has_open_session(task_id, caller):
            raise NoOpenSessionError("no active session")
        # Attribute the event to an existing task before mutating anything.
        task = self.tasks.get(task_id)

        log = self.clock.close(task.id, caller, now_ts=self._now())
        logger.info("Clock-out task_id=%s user=%s session=%s", task_id, caller, log.id)
        return log

    def complete(self, task_id: str, caller_id: str) -> Task:
        """
        Completion rules:
        1) Requester or assignee can complete.
        2) Task must be open and assigned.
        3) strict: no open session left on the task (any user);
           lenient: only the assignee's open session blocks.
        4) strict: the assignee has at least one closed session;
           lenient: no work check.

        Rules 3-4 are checked up front and again inside the atomic update, so a
        clock-in that lands in between is either seen or rejected by clock_in().
        """
        caller = _require_caller(caller_id)
        task = self.tasks.get(task_id)
        if caller not in (task.requester, task.assigned_to):
            raise ForbiddenError("not allowed")
        _require_open(task, "already closed")
        if task.assigned_to is None:
            raise AssignmentRequiredError("assignment required before completing")
        assignee = task.assigned_to
        self._check_sessions(task.id, assignee)

        def mutate(t: Task) -> Task:
            _require_open(t, "already closed")
            self._check_sessions(t.id, assignee)
            return replace(t, status=TaskStatus.COMPLETED)

        done = self.tasks.update(task_id, mutate, now_ts=self._now())
        logger.info("Task %s completed by %s (assignee=%s)", task_id, caller, assignee)
        return done

    def _check_sessions(self, task_id: str, assignee: str) -> None:
        if self.completion_rule == COMPLETION_LENIENT:
            if self.clock.has_open_session(task_id, assignee):
                raise OpenSessionError("clock-out required before completing")
            return

        logs = self.clock.list_by_task(task_id)
        if accounting.has_open_session(logs):
            raise OpenSessionError("clock-out required before completing")
        if not any(log.user_id == assignee and log.end_at is not None for log in logs):
            raise NoWorkRecordedError("at least one work session is required before completing")

    # ---- read path ----

    def get_task(self, task_id: str) -> Task:
        return self.tasks.get(task_id)

    def list_tasks(self, predicate: TaskPredicate) -> list[Task]:
        return self.tasks.list_by_predicate(predicate)

    def list_view(self, view: str, user_id: str) -> list[Task]:
        """Named listing: posted | available | assigned | done | posted_closed."""
        factory = task_views.VIEWS.get(view)
        if factory is None:
            raise InvalidInputError(f"unknown view: {view!r}")
        return self.tasks.list_by_predicate(factory(_require_caller(user_id)))

    def worklogs(self, task_id: str, caller_id: str) -> WorklogSummary:
        caller = _require_caller(caller_id)
        task = self.tasks.get(task_id)
        if not task.involves(caller):
            raise ForbiddenError("not allowed")
        logs = self.clock.list_by_task(task.id)
        return accounting.summarize(task.id, logs, rate_per_minute_cents=self.rate_per_minute_cents)
