# src/task_sync/sync/merge.py

"""
Apply a 200 response payload to the local store.

Each non-blank line is either a task record (starts with "{") or the new synch
key. Records whose uuid already exists locally are updates; the rest are
additions. Writes go to a staged MergeTarget, so a failure here never reaches
disk.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..core.errors import MalformedResponse
from ..core.ports import MergeTarget, NoticeSink
from ..tasks.task_models import Task, is_record_line

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeResult:
    download_count: int = 0
    synch_key: str = ""
    synch_key_lines: int = 0
    added: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)

    @property
    def duplicate_synch_key(self) -> bool:
        return self.synch_key_lines > 1


def merge_payload(
    lines: Iterable[str],
    target: MergeTarget,
    *,
    notice: NoticeSink,
) -> MergeResult:
    result = MergeResult()

    for line in lines:
        line = line.rstrip("\r")
        if not line.strip():
            continue

        if not is_record_line(line):
            if result.synch_key:
                logger.warning(
                    "Response carries more than one synch key; %r replaces %r.",
                    line,
                    result.synch_key,
                )
            result.synch_key = line.strip()
            result.synch_key_lines += 1
            logger.debug("Synch key %s", result.synch_key)
            continue

        try:
            task = Task.from_json(line)
        except ValueError as e:
            raise MalformedResponse(f"Server sent an unreadable task record: {e}") from e

        result.download_count += 1
        if target.exists(task.uuid):
            notice(f"  modify {task.uuid} '{task.description}'")
            target.upsert(task, False)
            result.changed.append(task.uuid)
        else:
            notice(f"  add {task.uuid} '{task.description}'")
            target.upsert(task, True)
            result.added.append(task.uuid)

    logger.info(
        "Merged response: added=%d changed=%d key_lines=%d",
        len(result.added),
        len(result.changed),
        result.synch_key_lines,
    )
    return result
