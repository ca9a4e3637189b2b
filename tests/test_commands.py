# tests/test_commands.py

from __future__ import annotations

import sqlite3

import pytest

from task_sync.cli import main as cli_main
from task_sync.cli.commands import CommandRegistry, close_enough, registry
from task_sync.core.errors import EXIT_CONNECT, EXIT_OK, EXIT_PROTOCOL, EXIT_USAGE
from task_sync.tasks.task_store import TaskStore

from .fakes import make_response


def test_close_enough() -> None:
    assert close_enough("initialize", "initialize", 4)
    assert close_enough("initialize", "INIT", 4)
    assert not close_enough("initialize", "ini", 4)
    assert not close_enough("initialize", "initx", 4)


def test_registry_unknown_and_empty(state) -> None:
    reg = CommandRegistry()
    out: list[str] = []
    assert reg.handle(state, [], out.append, lambda _: True) == EXIT_USAGE
    assert reg.handle(state, ["nope"], out.append, lambda _: True) == EXIT_USAGE
    assert "Unknown command" in out[-1]


def test_synchronize_initialize_requires_confirmation(state, transport) -> None:
    state.settings.confirmation = True
    state.task_store.add_task("alpha")
    out: list[str] = []

    status = registry.handle(state, ["synchronize", "init"], out.append, lambda _: False)

    assert status == EXIT_USAGE
    assert transport.sent == []


def test_sync_alias_runs_full_round_trip(state, transport) -> None:
    state.task_store.add_task("alpha")
    transport.responses.append(make_response(200, payload="K1\n"))
    out: list[str] = []

    status = registry.handle(state, ["sync"], out.append, lambda _: True)

    assert status == EXIT_OK
    assert state.task_store.backlog_lines() == ["K1"]
    assert out[-1] == "Sync successful. Sent 1 changes."


def test_add_command(state) -> None:
    out: list[str] = []
    assert registry.handle(state, ["add", "water", "plants"], out.append, lambda _: True) == EXIT_OK
    assert [t.description for t in state.task_store.all_tasks()] == ["water plants"]


@pytest.mark.parametrize(
    ("response", "fail_on", "expected"),
    [
        (make_response(201), None, EXIT_OK),
        (None, "connect", EXIT_CONNECT),
        (b"garbage", None, EXIT_CONNECT),
        (make_response(430, status="Denied"), None, EXIT_PROTOCOL),
        (make_response(503, status="Busy"), None, EXIT_PROTOCOL),
    ],
)
def test_main_maps_errors_to_exit_status(
    state, transport, monkeypatch: pytest.MonkeyPatch, capsys, response, fail_on, expected
) -> None:
    if response is not None:
        transport.responses.append(response)
    transport.fail_on = fail_on
    monkeypatch.setattr(cli_main, "get_settings", lambda: state.settings)
    monkeypatch.setattr(cli_main, "setup_logging", lambda **_: None)
    monkeypatch.setattr(cli_main, "create_initial_state", lambda **_: state)

    assert cli_main.main(["synchronize"]) == expected
    if expected != EXIT_OK:
        assert capsys.readouterr().err.strip()


def test_main_configuration_error(state, monkeypatch: pytest.MonkeyPatch) -> None:
    state.settings.credentials = "only/two"
    monkeypatch.setattr(cli_main, "get_settings", lambda: state.settings)
    monkeypatch.setattr(cli_main, "setup_logging", lambda **_: None)
    monkeypatch.setattr(cli_main, "create_initial_state", lambda **_: state)

    assert cli_main.main(["synchronize"]) == EXIT_USAGE


def _wire_main(state, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_main, "get_settings", lambda: state.settings)
    monkeypatch.setattr(cli_main, "setup_logging", lambda **_: None)
    monkeypatch.setattr(cli_main, "create_initial_state", lambda **_: state)


def test_main_relocation_with_unwritable_config(
    state, transport, tmp_path, monkeypatch: pytest.MonkeyPatch, capsys
) -> None:
    config_dir = tmp_path / "isdir.env"
    config_dir.mkdir()
    state.settings.config_path = config_dir
    transport.responses.append(make_response(301, status="Redirect", info="new.example.org:6544"))
    _wire_main(state, monkeypatch)

    assert cli_main.main(["synchronize"]) == EXIT_USAGE
    assert "could not be updated" in capsys.readouterr().err


def test_main_maps_locked_database_at_commit(
    state, transport, monkeypatch: pytest.MonkeyPatch, capsys
) -> None:
    transport.responses.append(make_response(200, payload="K1\n"))
    _wire_main(state, monkeypatch)

    def locked(self):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(TaskStore, "_transaction", locked)

    assert cli_main.main(["synchronize"]) == EXIT_CONNECT
    assert "database is locked" in capsys.readouterr().err
    assert state.task_store.backlog_lines() == []


def test_main_maps_store_errors_outside_sync(state, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    _wire_main(state, monkeypatch)

    def locked(self):
        raise sqlite3.OperationalError("attempt to write a readonly database")

    monkeypatch.setattr(TaskStore, "_transaction", locked)

    assert cli_main.main(["add", "water", "plants"]) == EXIT_CONNECT
    assert "readonly database" in capsys.readouterr().err
