"""Lifecycle core: errors, ports, locking and SQLite helpers, the controller."""
