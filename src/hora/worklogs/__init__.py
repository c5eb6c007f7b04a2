"""
Worklog subsystem.

Components:
- worklog_models.py: WorkLog (session) and WorklogSummary
- clock_store.py: SQLite-backed session storage
- memory_store.py: in-process session storage with per-(task, user) locks
- accounting.py: minutes / open flag / cost over a task's sessions
"""
