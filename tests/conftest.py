# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from task_sync.core.state import AppState
from task_sync.tasks.task_store import TaskStore

from .fakes import FakeTransport


TEST_CA_PEM = """\
-----BEGIN CERTIFICATE-----
MIIBjjCCATWgAwIBAgIURsAjAbKbDijHbY7DVEZqC+th/wcwCgYIKoZIzj0EAwIw
HDEaMBgGA1UEAwwRdGFzay1zeW5jIHRlc3QgQ0EwIBcNMjYxMDE4MDkwMDU3WhgP
MjEyNjA5MjQwOTAwNTdaMBwxGjAYBgNVBAMMEXRhc2stc3luYyB0ZXN0IENBMFkw
EwYHKoZIzj0CAQYIKoZIzj0DAQcDQgAEGD9UJ6KDBr0J/hGdr4EiH+vbr7qq1iYi
eYwJvvG3B5ysMg+wAF+0bOLzRWALjij3sfhlcWJJXeg5M8Wa99AS9KNTMFEwHQYD
VR0OBBYEFCeZ8ovqqmpWiYxr2BVho3UqgAUOMB8GA1UdIwQYMBaAFCeZ8ovqqmpW
iYxr2BVho3UqgAUOMA8GA1UdEwEB/wQFMAMBAf8wCgYIKoZIzj0EAwIDRwAwRAIg
Aag9SU4YIBx7fyS4ZlMKnTNgLaADPL2NAr6u9Rv+tB0CIASXkt1Gyg6ckjkgn2rn
Bh9C7k53n3fe/dEqsBKULyde
-----END CERTIFICATE-----
"""


@pytest.fixture()
def certificate(tmp_path: Path) -> Path:
    # Self-signed CA; only loaded into an SSLContext, never used for a handshake.
    path = tmp_path / "ca.cert.pem"
    path.write_text(TEST_CA_PEM, "utf-8")
    return path


@pytest.fixture()
def settings(tmp_path: Path, certificate: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the sync core.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any local .env.
    """
    return SimpleNamespace(
        app_name="task-sync-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "tasks.sqlite3",
        config_path=tmp_path / "sync.env",
        server="sync.example.org:53589",
        credentials="Public/alice/1234-abcd",
        certificate=str(certificate),
        timeout_seconds=1.0,
        verbose=True,
        confirmation=False,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    # Real SQLite: the commit transaction is part of what we test.
    return TaskStore(settings.db_path)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, transport: FakeTransport) -> AppState:
    return AppState(settings=settings, task_store=store, transport=transport)  # type: ignore[arg-type]
