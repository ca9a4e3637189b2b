# src/task_sync/sync/interpreter.py

from __future__ import annotations

import logging
from enum import StrEnum

from ..core.errors import AccountFailure, ProtocolError
from ..core.ports import NoticeSink
from .protocol import SyncResponse

logger = logging.getLogger(__name__)

CODE_OK = 200
CODE_NO_CHANGE = 201
CODE_REDIRECT = 301
CODE_ACCOUNT = 430


class Outcome(StrEnum):
    MERGE = "merge"
    NOOP = "noop"
    RELOCATE = "relocate"
    ACCOUNT_FAILURE = "account_failure"
    SERVER_ERROR = "server_error"

    @property
    def is_failure(self) -> bool:
        return self in (Outcome.ACCOUNT_FAILURE, Outcome.SERVER_ERROR)


def interpret(response: SyncResponse) -> Outcome:
    code = response.code
    if code == CODE_OK:
        return Outcome.MERGE
    if code == CODE_NO_CHANGE:
        return Outcome.NOOP
    if code == CODE_REDIRECT:
        return Outcome.RELOCATE
    if code == CODE_ACCOUNT:
        return Outcome.ACCOUNT_FAILURE
    return Outcome.SERVER_ERROR


def surface_messages(response: SyncResponse, *, verbose: bool, notice: NoticeSink) -> None:
    """
    Server diagnostics are always shown, whatever the status code:
    as a notice in verbose mode, otherwise only as a debug trace.
    """
    text = (response.messages or "").strip()
    if not text:
        return
    if verbose:
        notice(text)
    else:
        logger.debug("Server messages: %s", text)


def failure_for(outcome: Outcome, response: SyncResponse) -> ProtocolError:
    """Build the typed error for a failing outcome. Callers raise it."""
    if outcome == Outcome.ACCOUNT_FAILURE:
        return AccountFailure(
            "Sync failed. Either your credentials are incorrect, or your account "
            "doesn't exist on the sync server.",
            code=response.code,
            status=response.status,
        )
    return ProtocolError(
        f"Sync failed. The server returned error: {response.code} {response.status}".rstrip(),
        code=response.code,
        status=response.status,
    )
