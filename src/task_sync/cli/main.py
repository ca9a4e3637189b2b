# src/task_sync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, dispatches one command and maps every
SyncError kind to a message and an exit status in one place.
"""

from __future__ import annotations

import logging
import sqlite3
import sys

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..core.errors import EXIT_USAGE, StoreFailure, SyncError
from ..logging_setup import setup_logging
from .commands import registry as command_registry

logger = logging.getLogger(__name__)


def _emit(text: str) -> None:
    print(text, flush=True)


def _confirm(question: str) -> bool:
    try:
        answer = input(f"{question} (yes/no) ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    settings = get_settings()

    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.WARNING)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s argv=%s", settings.app_name, argv)

    try:
        state = create_initial_state(settings=settings)
        status = command_registry.handle(state, argv, emit=_emit, confirm=_confirm)
    except SyncError as e:
        logger.info("Command failed kind=%s exit=%s: %s", e.kind, e.exit_code, e)
        print(str(e), file=sys.stderr)
        return e.exit_code
    except sqlite3.Error as e:
        logger.debug("Local task database error", exc_info=True)
        print(f"The local task database failed: {e}", file=sys.stderr)
        return StoreFailure.exit_code
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return EXIT_USAGE

    logger.info("Command finished exit=%s", status)
    return status


if __name__ == "__main__":
    sys.exit(main())
