# tests/test_payload.py

from __future__ import annotations

from task_sync.sync.payload import build_payload
from task_sync.tasks.task_models import Task, TaskStatus


def _task(uuid: str, description: str) -> Task:
    return Task(uuid=uuid, description=description, status=TaskStatus.PENDING, data={})


def test_incremental_sends_backlog_verbatim_and_counts_records_only() -> None:
    lines = [
        "previous-synch-key",
        '{"description":"one","uuid":"a"}',
        "",
        '{"description":"two","uuid":"b"}',
    ]
    out = build_payload(first_time=False, pending=[_task("x", "ignored")], backlog_lines=lines)

    assert out.upload_count == 2
    assert out.text == "".join(line + "\n" for line in lines)
    assert "ignored" not in out.text


def test_first_time_uses_pending_set_regardless_of_backlog() -> None:
    pending = [_task("a", "alpha"), _task("b", "beta")]
    out = build_payload(
        first_time=True,
        pending=pending,
        backlog_lines=['{"uuid":"stale"}', "old-key"],
    )

    assert out.upload_count == 2
    sent = out.text.splitlines()
    assert sent == [t.compose_json() for t in pending]
    assert "stale" not in out.text


def test_empty_backlog_yields_empty_payload() -> None:
    out = build_payload(first_time=False, pending=[], backlog_lines=[])
    assert out.text == ""
    assert out.upload_count == 0
