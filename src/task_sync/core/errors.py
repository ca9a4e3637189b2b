# src/task_sync/core/errors.py

"""
Typed sync failures.

Every failure kind carries the process exit code the CLI should return, so the
top-level handler in cli/main.py can map errors without inspecting messages.
"""

from __future__ import annotations

EXIT_OK = 0
EXIT_CONNECT = 1
EXIT_PROTOCOL = 2
EXIT_USAGE = 3


class SyncError(Exception):
    kind = "sync"
    exit_code = EXIT_PROTOCOL


class ConfigurationError(SyncError):
    """Missing or malformed server/credentials/certificate. Raised before any network I/O."""

    kind = "configuration"
    exit_code = EXIT_USAGE


class ConnectFailure(SyncError):
    """Transport-level failure: unreachable, refused, timeout, dropped mid-stream."""

    kind = "connect"
    exit_code = EXIT_CONNECT


class MalformedResponse(SyncError):
    kind = "malformed"
    exit_code = EXIT_CONNECT


class ProtocolError(SyncError):
    """Well-formed response carrying a non-success status code."""

    kind = "protocol"
    exit_code = EXIT_PROTOCOL

    def __init__(self, message: str, *, code: int, status: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.status = status


class AccountFailure(ProtocolError):
    kind = "account"


class AnomalousSuccess(SyncError):
    """200 response whose payload has no usable synch key; commit was withheld."""

    kind = "anomalous_success"
    exit_code = EXIT_PROTOCOL


class SyncInProgress(SyncError):
    kind = "in_progress"
    exit_code = EXIT_USAGE


class StoreFailure(SyncError):
    """The local task database refused a read or write (locked, read-only, corrupt)."""

    kind = "store"
    exit_code = EXIT_CONNECT
