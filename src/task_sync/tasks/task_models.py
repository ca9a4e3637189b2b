# src/task_sync/tasks/task_models.py

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

# A backlog/payload line holding a ChangeRecord starts with this character;
# anything else non-blank is a synch key.
RECORD_DELIMITER = "{"


class TaskStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    DELETED = "deleted"
    WAITING = "waiting"
    RECURRING = "recurring"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


def is_record_line(line: str) -> bool:
    return line[:1] == RECORD_DELIMITER


@dataclass(slots=True)
class Task:
    """
    One task as exchanged with the sync server.

    Only uuid/description/status are interpreted locally; every other attribute
    rides along untouched in `data`, which is the full ChangeRecord.
    """

    uuid: str
    description: str
    status: TaskStatus
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Task:
        uuid = data.get("uuid")
        if not isinstance(uuid, str) or not uuid.strip():
            raise ValueError("task record has no uuid")
        record = dict(data)
        return cls(
            uuid=uuid.strip(),
            description=str(record.get("description") or ""),
            status=TaskStatus.from_db(record.get("status")),
            data=record,
        )

    @classmethod
    def from_json(cls, line: str) -> Task:
        try:
            val = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"task record is not valid JSON: {e}") from e
        if not isinstance(val, dict):
            raise ValueError("task record is not a JSON object")
        return cls.from_record(val)

    def compose_json(self) -> str:
        """Serialize to a single-line ChangeRecord (stable key order)."""
        record = dict(self.data)
        record["uuid"] = self.uuid
        record["description"] = self.description
        record["status"] = self.status.value
        return json.dumps(record, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
