# src/hora/logging_setup.py

"""
Logging for the hora console app.

Logger layout (all module loggers, `logging.getLogger(__name__)`):
- hora.core.lifecycle       one INFO line per accepted transition, DEBUG for rejections
- hora.cli.*, hora.connectors.*  startup / shutdown and command failures
- hora.tasks.*_store, hora.worklogs.*_store, hora.core.sqlite
                            per-mutation DEBUG lines and storage failures

The console shows lifecycle and CLI activity; storage loggers reach it only at
WARNING+. The log file (<data_dir>/<app_name>.log) always gets everything.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

APP_LOGGER = "hora"

# Chatty on every mutation; the file has them, the console does not need them.
_STORAGE_LOGGERS = ("hora.tasks.", "hora.worklogs.", "hora.core.sqlite")

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class _ConsoleNoiseFilter(logging.Filter):
    """Console policy: hora logs pass, storage internals need WARNING+, the rest ERROR+."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == APP_LOGGER or name.startswith(APP_LOGGER + "."):
            if name.startswith(_STORAGE_LOGGERS):
                return record.levelno >= logging.WARNING
            return True
        # py.warnings and third-party loggers
        return record.levelno >= logging.ERROR


def _reset_root(level: int) -> logging.Logger:
    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    return root


def setup_logging(
    *,
    log_dir: str | Path = ".local/hora",
    app_name: str = APP_LOGGER,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install the console and file handlers on the root logger and return the log file path.

    Call once from main() before the first log line; calling again replaces the handlers.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{app_name or APP_LOGGER}.log"

    root = _reset_root(min(console_level, file_level))
    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
