# src/task_sync/sync/engine.py

"""
One synchronization round trip.

    payload -> encode -> transport -> decode -> interpret -> merge -> commit

Local state is only written by the final commit. Every earlier failure raises a
typed SyncError and leaves the backlog and task store untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..config import Settings, load_trust_anchor, parse_credentials, parse_endpoint, persist_server
from ..core.errors import MalformedResponse
from ..core.ports import NoticeSink, TaskRepo, Transport
from .commit import commit_sync
from .interpreter import Outcome, failure_for, interpret, surface_messages
from .merge import merge_payload
from .payload import build_payload
from .protocol import decode_response, encode_sync_request
from .transport import round_trip

logger = logging.getLogger(__name__)

Relocator = Callable[[Settings, str], Settings]


@dataclass(slots=True)
class SyncReport:
    outcome: Outcome
    upload_count: int = 0
    download_count: int = 0
    synch_key: str = ""
    relocated_to: str | None = None
    summary: str = ""


class SyncService:
    """
    Sync runner. The store's sync_guard keeps it single-flight per task database.

    Dependencies are injected; nothing here reads global configuration.
    """

    def __init__(
        self,
        settings: Settings,
        store: TaskRepo,
        transport: Transport,
        *,
        notice: NoticeSink,
        relocate: Relocator = persist_server,
    ) -> None:
        self.settings = settings
        self._store = store
        self._transport = transport
        self._notice = notice
        self._relocate = relocate

    def synchronize(self, *, first_time: bool = False) -> SyncReport:
        with self._store.sync_guard():
            return self._run(first_time)

    def _run(self, first_time: bool) -> SyncReport:
        settings = self.settings

        endpoint = parse_endpoint(settings.server)
        credentials = parse_credentials(settings.credentials)
        context = load_trust_anchor(settings.certificate)

        payload = build_payload(
            first_time=first_time,
            pending=self._store.pending_tasks() if first_time else (),
            backlog_lines=() if first_time else self._store.backlog_lines(),
        )
        request = encode_sync_request(credentials, payload.text, client=settings.app_name)
        logger.info(
            "Sync start server=%s first_time=%s last_key=%s unsynced=%d upload_count=%d request_bytes=%d",
            endpoint,
            first_time,
            self._store.current_synch_key() or "-",
            len(self._store.unsynced_tasks()),
            payload.upload_count,
            len(request),
        )
        self._notice(f"Syncing with {endpoint}")

        raw = round_trip(self._transport, endpoint, context, request)
        response = decode_response(raw)
        outcome = interpret(response)

        # Shown on every branch, before any failure is raised.
        surface_messages(response, verbose=settings.verbose, notice=self._notice)

        if outcome.is_failure:
            raise failure_for(outcome, response)

        if outcome == Outcome.RELOCATE:
            new_server = response.info.strip()
            if not new_server:
                raise MalformedResponse("Server requested relocation but sent no new address.")
            self.settings = self._relocate(settings, new_server)
            logger.warning("The sync server has moved. Configuration now points at %s.", new_server)
            return SyncReport(
                outcome=outcome,
                upload_count=payload.upload_count,
                relocated_to=new_server,
            )

        if outcome == Outcome.NOOP:
            summary = "Sync successful. No changes."
            self._notice(summary)
            return SyncReport(outcome=outcome, upload_count=payload.upload_count, summary=summary)

        session = self._store.begin_sync()
        try:
            result = merge_payload(response.payload_lines(), session, notice=self._notice)
            summary = commit_sync(session, result, upload_count=payload.upload_count)
        except BaseException:
            session.discard()
            raise

        self._notice(summary)
        return SyncReport(
            outcome=outcome,
            upload_count=payload.upload_count,
            download_count=result.download_count,
            synch_key=result.synch_key,
            summary=summary,
        )
