# src/task_sync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the sync core.

The core depends on Protocols instead of concrete implementations.
This keeps the transport and the local store swappable and makes testing easier.
"""

from collections.abc import Callable
from contextlib import AbstractContextManager
import ssl
from typing import Any, Protocol

from ..tasks.task_models import Task

NoticeSink = Callable[[str], None]


class Transport(Protocol):
    """
    Secure point-to-point byte transport (TLS client).

    Implementations raise on any failure; the core turns every exception into
    ConnectFailure. Timeouts must raise, never return a partial response.
    """

    def connect(self, host: str, port: int, context: ssl.SSLContext) -> Any: ...
    def send(self, conn: Any, data: bytes) -> None: ...
    def receive(self, conn: Any) -> bytes: ...
    def close(self, conn: Any) -> None: ...


class MergeTarget(Protocol):
    """Local task accessor the merge step writes into (changes stay staged until commit)."""

    def exists(self, uuid: str) -> bool: ...
    def upsert(self, task: Task, is_new: bool) -> None: ...


class SyncSession(MergeTarget, Protocol):
    def commit(self, synch_key: str) -> None: ...
    def discard(self) -> None: ...


class TaskRepo(Protocol):
    def pending_tasks(self) -> list[Task]: ...
    def backlog_lines(self) -> list[str]: ...
    def unsynced_tasks(self) -> list[Task]: ...
    def current_synch_key(self) -> str: ...
    def sync_guard(self) -> AbstractContextManager[None]: ...
    def begin_sync(self) -> SyncSession: ...
