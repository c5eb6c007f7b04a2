# src/hora/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from .lifecycle import LifecycleController
from .ports import ClockRepo, TaskRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    tasks: TaskRepo
    clock: ClockRepo
    lifecycle: LifecycleController

    # Identity the console acts as (set with /as); request layers pass their own.
    current_user: str | None = None
