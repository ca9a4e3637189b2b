# src/task_sync/sync/protocol.py

"""
Wire message codec.

A message is a flat header of "name: value" lines, a blank line, then the
payload (newline-joined records):

    code: 200
    status: Ok

    {"uuid":"...","description":"..."}
    2a1f...synch-key
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..config import Credentials
from ..core.errors import MalformedResponse

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "v1"
MSG_TYPE_SYNC = "sync"


@dataclass(slots=True)
class Message:
    header: dict[str, str] = field(default_factory=dict)
    payload: str = ""

    def get(self, name: str, default: str = "") -> str:
        return self.header.get(name, default)

    def set(self, name: str, value: object) -> None:
        text = str(value)
        if "\n" in name or "\n" in text or ":" in name:
            raise ValueError(f"invalid header field {name!r}: names cannot hold colons, values cannot span lines")
        self.header[name] = text

    def serialize(self) -> str:
        # Sorted header keeps the request byte-stable across retries.
        out = [f"{k}: {self.header[k]}\n" for k in sorted(self.header)]
        out.append("\n")
        out.append(self.payload)
        out.append("\n")
        return "".join(out)

    @classmethod
    def parse(cls, text: str) -> Message:
        sep = text.find("\n\n")
        if sep == -1:
            raise MalformedResponse("Malformed message: no header/payload separator.")

        header: dict[str, str] = {}
        for line in text[:sep].split("\n"):
            if not line.strip():
                continue
            colon = line.find(":")
            if colon == -1:
                raise MalformedResponse(f"Malformed message header {line!r}.")
            header[line[:colon].strip()] = line[colon + 1 :].strip()

        return cls(header=header, payload=text[sep + 2 :])


@dataclass(slots=True, frozen=True)
class SyncResponse:
    code: int
    status: str
    messages: str
    info: str
    payload: str

    def payload_lines(self) -> list[str]:
        return self.payload.split("\n")


def encode_sync_request(
    credentials: Credentials,
    payload: str,
    *,
    client: str | None = None,
    protocol: str = PROTOCOL_VERSION,
) -> bytes:
    msg = Message()
    msg.set("protocol", protocol)
    msg.set("type", MSG_TYPE_SYNC)
    msg.set("org", credentials.org)
    msg.set("user", credentials.user)
    msg.set("key", credentials.key)
    if client:
        msg.set("client", client)
    msg.payload = payload
    return (msg.serialize() + "\n").encode("utf-8")


def decode_response(raw: bytes) -> SyncResponse:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedResponse(f"Response is not valid UTF-8: {e}") from e

    msg = Message.parse(text)

    code_s = msg.get("code")
    if not code_s:
        raise MalformedResponse("Response has no status code.")
    try:
        code = int(code_s)
    except ValueError:
        raise MalformedResponse(f"Response status code {code_s!r} is not numeric.") from None

    logger.debug("Response code=%s status=%r payload_bytes=%d", code, msg.get("status"), len(msg.payload))
    return SyncResponse(
        code=code,
        status=msg.get("status"),
        messages=msg.get("messages"),
        info=msg.get("info"),
        payload=msg.payload,
    )
