# src/task_sync/sync/commit.py

from __future__ import annotations

import logging

from ..core.errors import AnomalousSuccess
from ..core.ports import SyncSession
from .merge import MergeResult

logger = logging.getLogger(__name__)


def summarize(upload_count: int, download_count: int) -> str:
    if upload_count == 0 and download_count == 0:
        # The server should have answered 201 instead.
        return "Sync successful, but nothing was exchanged."
    if download_count == 0:
        return f"Sync successful. Sent {upload_count} changes."
    if upload_count == 0:
        return f"Sync successful. Received {download_count} changes."
    return f"Sync successful. Sent {upload_count}, received {download_count} changes."


def commit_sync(session: SyncSession, result: MergeResult, *, upload_count: int) -> str:
    """
    Finalize a merged 200 response.

    The backlog is replaced by the single new synch key and all staged task
    changes land in the same transaction. Without exactly one synch key nothing
    is written and AnomalousSuccess is raised.
    """
    if not result.synch_key:
        logger.warning("200 response without a synch key; withholding commit.")
        session.discard()
        raise AnomalousSuccess(
            "The server reported success but sent no synch key. Local data was not changed."
        )
    if result.duplicate_synch_key:
        logger.warning(
            "200 response with %d synch keys; withholding commit.", result.synch_key_lines
        )
        session.discard()
        raise AnomalousSuccess(
            f"The server reported success but sent {result.synch_key_lines} synch keys. "
            "Local data was not changed."
        )

    session.commit(result.synch_key)
    summary = summarize(upload_count, result.download_count)
    logger.info("%s (key=%s)", summary, result.synch_key)
    return summary
