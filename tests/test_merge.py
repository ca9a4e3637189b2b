# tests/test_merge.py

from __future__ import annotations

import pytest

from task_sync.core.errors import MalformedResponse
from task_sync.sync.merge import merge_payload

from .fakes import FakeMergeTarget


def test_unknown_uuid_is_added_known_uuid_is_changed() -> None:
    target = FakeMergeTarget(existing=["B"])
    notices: list[str] = []
    lines = [
        '{"uuid":"A","description":"new one"}',
        '{"uuid":"B","description":"old one"}',
        "KEY-2",
        "",
    ]

    result = merge_payload(lines, target, notice=notices.append)

    assert result.download_count == 2
    assert result.added == ["A"]
    assert result.changed == ["B"]
    assert [(t.uuid, is_new) for t, is_new in target.upserts] == [("A", True), ("B", False)]
    assert notices == ["  add A 'new one'", "  modify B 'old one'"]
    assert result.synch_key == "KEY-2"


def test_record_then_cursor() -> None:
    result = merge_payload(
        '{"uuid":"A","description":"x"}\nCURSOR123\n'.split("\n"),
        FakeMergeTarget(),
        notice=lambda _: None,
    )
    assert result.download_count == 1
    assert result.synch_key == "CURSOR123"
    assert not result.duplicate_synch_key


def test_cursor_only() -> None:
    target = FakeMergeTarget()
    result = merge_payload(["CURSOR123", ""], target, notice=lambda _: None)
    assert result.download_count == 0
    assert result.synch_key == "CURSOR123"
    assert target.upserts == []


def test_duplicate_cursor_is_flagged_last_wins() -> None:
    result = merge_payload(["K1", "K2"], FakeMergeTarget(), notice=lambda _: None)
    assert result.synch_key == "K2"
    assert result.synch_key_lines == 2
    assert result.duplicate_synch_key


def test_same_uuid_twice_is_add_then_change() -> None:
    target = FakeMergeTarget()
    lines = ['{"uuid":"A","description":"v1"}', '{"uuid":"A","description":"v2"}', "K"]
    result = merge_payload(lines, target, notice=lambda _: None)
    assert result.added == ["A"]
    assert result.changed == ["A"]
    assert result.download_count == 2


@pytest.mark.parametrize("line", ["{not json", '{"description":"no uuid"}', "{}"])
def test_unreadable_record_is_malformed(line: str) -> None:
    with pytest.raises(MalformedResponse):
        merge_payload([line, "K"], FakeMergeTarget(), notice=lambda _: None)
