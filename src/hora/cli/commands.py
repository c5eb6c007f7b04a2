# src/hora/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.errors import InvalidInputError, LifecycleError, NotFoundError
from ..core.state import AppState
from ..tasks.task_input import TaskInput
from ..tasks.task_models import Task
from ..tasks.task_views import VIEWS
from ..worklogs.worklog_models import WorkLog, WorklogSummary

CommandEmitter = Callable[[str], None]
CommandHandler3 = Callable[[AppState, list[str], str | None], str]
CommandHandler4 = Callable[[AppState, list[str], str | None, CommandEmitter | None], str]
CommandHandler = CommandHandler3 | CommandHandler4

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /accept, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        user_id: str | None = None,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Lifecycle errors are rendered as "[kind] message"; anything else propagates.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 4

        try:
            if nparams >= 4:
                h4 = cast(CommandHandler4, handler)
                return h4(state, args, user_id, emit)
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, user_id)
        except LifecycleError as e:
            logger.debug("/%s rejected: %s %s", name, e.kind, e.message)
            return format_error(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def _ts_local(ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_error(e: LifecycleError) -> str:
    return f"[{e.kind}] {e.message}"


def format_task(t: Task) -> str:
    assignee = t.assigned_to or "(unassigned)"
    lines = [
        f"Task {t.id}: {t.title}",
        f"  status: {t.status.value}  category: {t.category.value}",
        f"  requester: {t.requester}  assignee: {assignee}",
        f"  estimate: {t.estimated_minutes} min  prepay: {t.prepay_amount_cents} cents",
        f"  scheduled: {_ts_local(t.scheduled_at)}{' (immediate)' if t.is_immediate else ''}",
    ]
    if t.location_text:
        lines.append(f"  location: {t.location_text}")
    if t.description:
        lines.append(f"  {t.description}")
    return "\n".join(lines)


def format_worklog(log: WorkLog) -> str:
    end = "open" if log.end_at is None else _ts_local(log.end_at)
    return f"session {log.id} by {log.user_id}: {_ts_local(log.start_at)} -> {end}"


def format_summary(s: WorklogSummary) -> str:
    lines = [f"Worklogs for {s.task_id}:"]
    lines.extend(f"  {format_worklog(log)}" for log in s.items)
    if not s.items:
        lines.append("  (none)")
    lines.append(
        f"  total: {s.total_minutes} min, {s.total_cost_cents} cents"
        f"{', session open' if s.has_open_session else ''}"
    )
    return "\n".join(lines)


# ---- argument helpers ----

_INPUT_KEYS = {
    "title": "title",
    "desc": "description",
    "description": "description",
    "category": "category",
    "location": "location_text",
    "minutes": "estimated_minutes",
    "prepay": "prepay_amount_cents",
    "now": "is_immediate",
    "when": "scheduled_at",
}


def parse_task_input(args: list[str]) -> TaskInput:
    """key=value pairs -> TaskInput. Bare words are joined into the title."""
    spec = TaskInput()
    bare: list[str] = []
    for arg in args:
        if "=" not in arg:
            bare.append(arg)
            continue
        key, value = arg.split("=", 1)
        attr = _INPUT_KEYS.get(key.strip().lower())
        if attr is None:
            raise InvalidInputError(f"unknown field: {key}")
        if attr in ("estimated_minutes", "prepay_amount_cents"):
            try:
                setattr(spec, attr, int(value))
            except ValueError:
                raise InvalidInputError(f"{key} must be an integer") from None
        elif attr == "is_immediate":
            spec.is_immediate = value.strip().lower() in {"1", "true", "yes", "y", "on"}
        else:
            setattr(spec, attr, value)
    if bare and not spec.title:
        spec.title = " ".join(bare)
    return spec


def _caller(state: AppState, user_id: str | None) -> str:
    who = user_id or state.current_user
    if not who:
        raise InvalidInputError("no identity set; use /as <user> first")
    return who


def _resolve_task_id(state: AppState, args: list[str]) -> str:
    """Accept a full task id or a unique prefix of one."""
    if not args:
        raise InvalidInputError("task id required")
    raw = args[0].strip()
    try:
        return state.lifecycle.get_task(raw).id
    except NotFoundError:
        pass
    matches = state.lifecycle.list_tasks(lambda t: t.id.startswith(raw))
    if len(matches) == 1:
        return matches[0].id
    if len(matches) > 1:
        raise InvalidInputError(f"task id prefix {raw!r} is ambiguous")
    raise NotFoundError(f"task {raw} not found")


# ---- handlers ----


def cmd_help(state: AppState, args: list[str], user_id: str | None) -> str:
    return registry.build_help()


def cmd_as(state: AppState, args: list[str], user_id: str | None) -> str:
    if not args:
        return "Usage: /as <user>"
    state.current_user = args[0].strip()
    return f"Acting as {state.current_user}."


def cmd_whoami(state: AppState, args: list[str], user_id: str | None) -> str:
    who = user_id or state.current_user
    return f"Acting as {who}." if who else "No identity set. Use /as <user>."


def cmd_create(state: AppState, args: list[str], user_id: str | None) -> str:
    """
    /create title="Walk the dog" minutes=45 prepay=500 category=task
            location="Central Park" when=2025-06-01T10:00:00Z now=yes desc="..."
    """
    task = state.lifecycle.create(parse_task_input(args), _caller(state, user_id))
    return "Created.\n" + format_task(task)


def cmd_edit(state: AppState, args: list[str], user_id: str | None) -> str:
    """/edit <id> key=value ... (all fields are replaced, as on create)"""
    task_id = _resolve_task_id(state, args)
    task = state.lifecycle.edit(task_id, _caller(state, user_id), parse_task_input(args[1:]))
    return "Updated.\n" + format_task(task)


def cmd_accept(state: AppState, args: list[str], user_id: str | None) -> str:
    task = state.lifecycle.accept(_resolve_task_id(state, args), _caller(state, user_id))
    return "Accepted.\n" + format_task(task)


def cmd_clockin(state: AppState, args: list[str], user_id: str | None) -> str:
    log = state.lifecycle.clock_in(_resolve_task_id(state, args), _caller(state, user_id))
    return "Clocked in: " + format_worklog(log)


def cmd_clockout(state: AppState, args: list[str], user_id: str | None) -> str:
    log = state.lifecycle.clock_out(_resolve_task_id(state, args), _caller(state, user_id))
    return "Clocked out: " + format_worklog(log)


def cmd_complete(state: AppState, args: list[str], user_id: str | None) -> str:
    task = state.lifecycle.complete(_resolve_task_id(state, args), _caller(state, user_id))
    return "Completed.\n" + format_task(task)


def cmd_task(state: AppState, args: list[str], user_id: str | None) -> str:
    return format_task(state.lifecycle.get_task(_resolve_task_id(state, args)))


def cmd_tasks(state: AppState, args: list[str], user_id: str | None) -> str:
    """/tasks [posted|available|assigned|done|posted_closed]"""
    view = args[0].lower() if args else "available"
    tasks = state.lifecycle.list_view(view, _caller(state, user_id))
    if not tasks:
        return f"No tasks in view '{view}'."
    lines = [f"Tasks ({view}):"]
    for i, t in enumerate(tasks, start=1):
        lines.append(f"{i}. {t.id[:8]} [{t.status.value}] {t.title} (by {t.requester})")
    return "\n".join(lines)


def cmd_worklogs(
    state: AppState,
    args: list[str],
    user_id: str | None,
    emit: CommandEmitter | None = None,
) -> str:
    task_id = _resolve_task_id(state, args)
    summary = state.lifecycle.worklogs(task_id, _caller(state, user_id))
    if emit and summary.has_open_session:
        emit("Note: a session is still open; its time is not counted yet.")
    return format_summary(summary)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("as", cmd_as, help_text="Act as a user: /as <user>.")
registry.register("whoami", cmd_whoami, help_text="Show the identity commands run as.")
registry.register(
    "create", cmd_create, help_text="Post a task: /create title=... [minutes= prepay= category= when= now=]."
)
registry.register("edit", cmd_edit, help_text="Edit your open task: /edit <id> key=value ...")
registry.register("accept", cmd_accept, help_text="Accept a task: /accept <id>.")
registry.register("clockin", cmd_clockin, help_text="Start a work session: /clockin <id>.", aliases=["in"])
registry.register("clockout", cmd_clockout, help_text="End your work session: /clockout <id>.", aliases=["out"])
registry.register("complete", cmd_complete, help_text="Complete a task: /complete <id>.")
registry.register("task", cmd_task, help_text="Show a task: /task <id>.")
registry.register(
    "tasks", cmd_tasks, help_text=f"List tasks: /tasks [{'|'.join(VIEWS)}] (default: available)."
)
registry.register("worklogs", cmd_worklogs, help_text="Sessions, minutes and cost: /worklogs <id>.")
