"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, TaskCategory) and update invariants
- task_input.py: Create/Edit input normalization
- task_store.py: SQLite-backed storage
- memory_store.py: in-process storage with per-task locks
- task_views.py: predicates for the standard listings
"""
