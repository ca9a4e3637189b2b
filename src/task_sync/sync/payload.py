# src/task_sync/sync/payload.py

"""
Outgoing payload assembly.

First-time initialization uploads the whole pending set; every later sync
uploads the backlog verbatim (including the previous synch key, which tells the
server where this client left off).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..tasks.task_models import Task, is_record_line


@dataclass(slots=True, frozen=True)
class OutgoingPayload:
    text: str
    upload_count: int


def build_payload(
    *,
    first_time: bool,
    pending: Iterable[Task],
    backlog_lines: Iterable[str],
) -> OutgoingPayload:
    parts: list[str] = []
    upload_count = 0

    if first_time:
        for task in pending:
            parts.append(task.compose_json() + "\n")
            upload_count += 1
    else:
        for line in backlog_lines:
            if is_record_line(line):
                upload_count += 1
            parts.append(line + "\n")

    return OutgoingPayload(text="".join(parts), upload_count=upload_count)
