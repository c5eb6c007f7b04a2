# src/hora/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Accounting constants (rate, default estimate) live here, not in the engine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "HORA"

STORAGE_SQLITE = "sqlite"
STORAGE_MEMORY = "memory"

COMPLETION_STRICT = "strict"
COMPLETION_LENIENT = "lenient"

# Defaults shared by Settings.from_env() and code constructed without settings.
DEFAULT_RATE_PER_MINUTE_CENTS = 50
DEFAULT_ESTIMATED_MINUTES = 30
DEFAULT_SQLITE_TIMEOUT_SECONDS = 30.0


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Real environment variables win over .env entries.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = (os.getenv(name) or "").strip().lower()
    return raw if raw in choices else default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    storage: str
    data_dir: Path
    db_path: Path
    sqlite_timeout_seconds: float

    # ---- Lifecycle / accounting ----
    rate_per_minute_cents: int
    default_estimated_minutes: int
    completion_rule: str

    # ---- Console ----
    console_user: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "hora").strip() or "hora"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        storage = _env_choice(_k("STORAGE"), (STORAGE_SQLITE, STORAGE_MEMORY), STORAGE_SQLITE)
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/hora"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "hora.sqlite3")
        sqlite_timeout_seconds = max(
            0.1, _env_float(_k("SQLITE_TIMEOUT_SECONDS"), DEFAULT_SQLITE_TIMEOUT_SECONDS)
        )

        rate_per_minute_cents = max(
            0, _env_int(_k("RATE_PER_MINUTE_CENTS"), DEFAULT_RATE_PER_MINUTE_CENTS)
        )
        default_estimated_minutes = _env_int(
            _k("DEFAULT_ESTIMATED_MINUTES"), DEFAULT_ESTIMATED_MINUTES
        )
        if default_estimated_minutes <= 0:
            default_estimated_minutes = DEFAULT_ESTIMATED_MINUTES
        completion_rule = _env_choice(
            _k("COMPLETION_RULE"), (COMPLETION_STRICT, COMPLETION_LENIENT), COMPLETION_STRICT
        )

        console_user = _env(_k("CONSOLE_USER"), "").strip()

        return Settings(
            app_name=app_name,
            log_level=log_level,
            storage=storage,
            data_dir=data_dir,
            db_path=db_path,
            sqlite_timeout_seconds=sqlite_timeout_seconds,
            rate_per_minute_cents=rate_per_minute_cents,
            default_estimated_minutes=default_estimated_minutes,
            completion_rule=completion_rule,
            console_user=console_user,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS

