"""
Hora: task marketplace lifecycle engine.

Subpackages:
- tasks: Task models, input normalization, task stores (SQLite / in-memory), listing views
- worklogs: WorkLog models, clock stores (SQLite / in-memory), accounting
- core: errors, ports, locks, SQLite plumbing, the lifecycle controller, AppState
- cli / connectors: composition root and the operator console
"""

__version__ = "0.1.0"
