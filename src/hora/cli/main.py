# src/hora/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState (stores + lifecycle controller), then runs
the console connector in the main thread until /exit, EOF or a signal.
"""

from __future__ import annotations

import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    # Both SQLite stores use short-lived connections per call; only the task store has a hook.
    try:
        tasks = getattr(state, "tasks", None)
        if tasks is not None and hasattr(tasks, "close"):
            tasks.close()
    except Exception:
        logger.debug("Task store close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    app_name = getattr(settings, "app_name", "hora")
    log_file = setup_logging(
        log_dir=getattr(settings, "data_dir", ".local/hora"),
        app_name=app_name,
        console_level=console_level,
    )

    logger.info("Starting %s (log file: %s)...", app_name, log_file)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        raise KeyboardInterrupt

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError, AttributeError):
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        run_console_loop(state)
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
