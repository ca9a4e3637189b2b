# src/task_sync/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.errors import EXIT_OK, EXIT_USAGE
from ..core.state import AppState
from ..sync.engine import SyncService

CommandEmitter = Callable[[str], None]
Confirmer = Callable[[str], bool]
CommandHandler = Callable[[AppState, list[str], CommandEmitter, Confirmer], int]

logger = logging.getLogger(__name__)


def close_enough(reference: str, attempt: str, min_length: int) -> bool:
    """Case-insensitive match of `attempt` against `reference` or a long-enough prefix of it."""
    ref, att = reference.lower(), attempt.lower()
    if ref == att:
        return True
    return min_length <= len(att) < len(ref) and ref.startswith(att)


class CommandRegistry:
    """Simple command registry used by the CLI entrypoint (synchronize, add, help)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        argv: list[str],
        emit: CommandEmitter,
        confirm: Confirmer,
    ) -> int:
        """Dispatch ["command", *args]. Returns the process exit status."""
        if not argv:
            emit(self.build_help())
            return EXIT_USAGE

        name = argv[0].lower()
        handler = self._handlers.get(name)
        if not handler:
            emit(f"Unknown command: {name}. Use 'help' to list available commands.")
            return EXIT_USAGE

        return handler(state, argv[1:], emit, confirm)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  {name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter, confirm: Confirmer) -> int:
    emit(registry.build_help())
    return EXIT_OK


def cmd_synchronize(
    state: AppState,
    args: list[str],
    emit: CommandEmitter,
    confirm: Confirmer,
) -> int:
    """
    synchronize             -> upload the backlog, merge server changes
    synchronize initialize  -> one-time upload of every pending task instead of the backlog
    """
    first_time = False
    for word in args:
        if close_enough("initialize", word, 4):
            if state.settings.confirmation and not confirm(
                "Do you want to upload all pending tasks to the sync server?"
            ):
                emit("Initialization declined. Nothing was sent.")
                return EXIT_USAGE
            first_time = True
        else:
            logger.debug("synchronize: ignoring argument %r", word)

    service = SyncService(state.settings, state.task_store, state.transport, notice=emit)
    service.synchronize(first_time=first_time)
    state.settings = service.settings
    return EXIT_OK


def cmd_add(state: AppState, args: list[str], emit: CommandEmitter, confirm: Confirmer) -> int:
    description = " ".join(args).strip()
    if not description:
        emit("Usage: add <description>")
        return EXIT_USAGE
    task = state.task_store.add_task(description)
    emit(f"Created task {task.uuid}.")
    return EXIT_OK


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["-h", "--help"])
registry.register(
    "synchronize",
    cmd_synchronize,
    help_text="Sync with the server: synchronize [initialize].",
    aliases=["sync"],
)
registry.register("add", cmd_add, help_text="Create a pending task: add <description>.")
