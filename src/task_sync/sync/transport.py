# src/task_sync/sync/transport.py

"""
TLS client for the sync server.

Framing: every message is preceded by a 4-byte big-endian length that counts
the prefix itself. The whole response is buffered before it is returned.
"""

from __future__ import annotations

import contextlib
import logging
import socket
import ssl
import struct
from ..config import Endpoint
from ..core.errors import ConnectFailure
from ..core.ports import Transport

logger = logging.getLogger(__name__)

_PREFIX = struct.Struct(">I")
MAX_MESSAGE_BYTES = 64 * 1024 * 1024


class TLSTransport:
    def __init__(self, *, timeout: float = 30.0, max_message_bytes: int = MAX_MESSAGE_BYTES) -> None:
        self._timeout = timeout
        self._max_message_bytes = max_message_bytes

    def connect(self, host: str, port: int, context: ssl.SSLContext) -> ssl.SSLSocket:
        raw = socket.create_connection((host, port), timeout=self._timeout)
        try:
            conn = context.wrap_socket(raw, server_hostname=host)
        except BaseException:
            raw.close()
            raise
        logger.debug("TLS connected to %s:%s (%s)", host, port, conn.version())
        return conn

    def send(self, conn: ssl.SSLSocket, data: bytes) -> None:
        conn.sendall(_PREFIX.pack(len(data) + _PREFIX.size) + data)
        logger.debug("Sent %d bytes", len(data))

    def receive(self, conn: ssl.SSLSocket) -> bytes:
        (total,) = _PREFIX.unpack(self._recv_exact(conn, _PREFIX.size))
        if total < _PREFIX.size or total > self._max_message_bytes:
            raise ConnectionError(f"implausible response length {total}")
        data = self._recv_exact(conn, total - _PREFIX.size)
        logger.debug("Received %d bytes", len(data))
        return data

    def close(self, conn: ssl.SSLSocket) -> None:
        with contextlib.suppress(OSError, ValueError):
            conn.unwrap()
        conn.close()

    @staticmethod
    def _recv_exact(conn: ssl.SSLSocket, n: int) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            chunk = conn.recv(n - len(buf))
            if not chunk:
                raise ConnectionError(f"connection closed after {len(buf)} of {n} bytes")
            buf.extend(chunk)
        return bytes(buf)


def round_trip(
    transport: Transport, endpoint: Endpoint, context: ssl.SSLContext, request: bytes
) -> bytes:
    """
    Connect, send one request, read one response, close.

    Any failure along the way becomes ConnectFailure (cause chained).
    """
    try:
        conn = transport.connect(endpoint.host, endpoint.port, context)
    except Exception as e:
        logger.debug("Connect to %s failed: %r", endpoint, e)
        raise ConnectFailure(f"Could not connect to the sync server at {endpoint}.") from e

    try:
        transport.send(conn, request)
        return transport.receive(conn)
    except Exception as e:
        logger.debug("Round trip with %s failed: %r", endpoint, e)
        raise ConnectFailure(f"Connection to the sync server at {endpoint} failed.") from e
    finally:
        try:
            transport.close(conn)
        except Exception:
            logger.debug("Transport close failed.", exc_info=True)
