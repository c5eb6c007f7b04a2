# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file),
see src/hora/config.py. Invalid values fall back to the defaults listed here.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "HORA_APP_NAME": "App display name (default: hora).",
    "HORA_LOG_LEVEL": "Console logging level; the log file always gets DEBUG (default: INFO).",
    # Storage
    "HORA_STORAGE": "Backing store: sqlite or memory (default: sqlite).",
    "HORA_DATA_DIR": "Local data directory, also holds hora.log (default: .local/hora).",
    "HORA_DB_PATH": "SQLite path for tasks and worklogs (default: <data_dir>/hora.sqlite3).",
    "HORA_SQLITE_TIMEOUT_SECONDS": "How long a writer waits for the database lock (default: 30).",
    # Lifecycle / accounting
    "HORA_RATE_PER_MINUTE_CENTS": "Cost per worked minute, in cents (default: 50).",
    "HORA_DEFAULT_ESTIMATED_MINUTES": "Estimate used when a task gives none (default: 30).",
    "HORA_COMPLETION_RULE": (
        "strict: no open session on the task and at least one closed session by the assignee; "
        "lenient: only the assignee's own open session blocks completion (default: strict)."
    ),
    # Console
    "HORA_CONSOLE_USER": "Identity the console starts as (default: none, use /as <user>).",
}
