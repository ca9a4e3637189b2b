# src/task_sync/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..config import Settings
from ..tasks.task_store import TaskStore
from .ports import Transport


@dataclass
class AppState:
    # Composition-root bag for the CLI; sync components get these handles explicitly.
    settings: Settings
    task_store: TaskStore
    transport: Transport
