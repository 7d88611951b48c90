"""Per-call SCGI transport over TCP or a Unix domain socket.

Every round trip opens its own connection, writes the framed request once,
reads until the envelope is complete, and closes. Nothing is pooled or
retried here: repeating a mutating call (``d.erase``) is not safe.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from dataclasses import dataclass

from loguru import logger

from vibetorrent.utils.exceptions import TransportError, TransportTimeoutError, ValidationError

from .framing import ENVELOPE_END, response_complete, strip_response

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RESPONSE_BYTES = 32 * 1024 * 1024
READ_CHUNK_BYTES = 8192

_UNIX_SCHEMES = ("unix://",)
_TCP_SCHEMES = ("tcp://", "scgi://")


@dataclass(frozen=True, slots=True)
class Endpoint:
    """Where the daemon listens: a Unix socket path or a TCP host/port."""

    kind: str
    path: str = ""
    host: str = ""
    port: int = 0

    @property
    def is_unix(self) -> bool:
        return self.kind == "unix"

    def __str__(self) -> str:
        if self.is_unix:
            return f"unix://{self.path}"
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"tcp://{host}:{self.port}"


def parse_endpoint(text: str) -> Endpoint:
    """Parse a configured endpoint string.

    Accepted forms: ``unix:///run/rtorrent.sock``, ``/run/rtorrent.sock``,
    ``tcp://host:5000``, ``scgi://host:5000`` and ``host:5000``.

    Raises:
        ValidationError: empty string, missing path, or bad host/port.
    """
    raw = (text or "").strip()
    if not raw:
        raise ValidationError("rTorrent endpoint is empty", field="socket")
    for scheme in _UNIX_SCHEMES:
        if raw.startswith(scheme):
            path = raw[len(scheme):]
            if not path:
                raise ValidationError(f"Unix socket path missing in {raw!r}", field="socket")
            return Endpoint(kind="unix", path=path)
    if raw.startswith("/"):
        return Endpoint(kind="unix", path=raw)
    address = raw
    for scheme in _TCP_SCHEMES:
        if raw.startswith(scheme):
            address = raw[len(scheme):]
            break
    address = address.rstrip("/")
    host, sep, port_text = address.rpartition(":")
    if not sep or not host:
        raise ValidationError(f"expected host:port in {raw!r}", field="socket")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not port_text.isdigit() or not 0 < int(port_text) < 65536:
        raise ValidationError(f"invalid TCP port in {raw!r}", field="socket")
    return Endpoint(kind="tcp", host=host, port=int(port_text))


class ScgiTransport:
    """Opens a fresh connection for every call; all waits are bounded."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.max_response_bytes = max_response_bytes

    async def _open(self, endpoint: Endpoint) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        try:
            if endpoint.is_unix:
                opener = asyncio.open_unix_connection(endpoint.path)
            else:
                opener = asyncio.open_connection(endpoint.host, endpoint.port)
            return await asyncio.wait_for(opener, timeout=self.connect_timeout)
        except asyncio.TimeoutError as exc:
            raise TransportTimeoutError("connect", self.connect_timeout, endpoint=str(endpoint)) from exc
        except OSError as exc:
            raise TransportError(f"dial error: {exc}", endpoint=str(endpoint), stage="connect") from exc

    async def round_trip(self, request: bytes) -> bytes:
        """Send one framed request and return the response document bytes.

        Raises:
            TransportTimeoutError: connect or read exceeded its timeout.
            TransportError: dial/write/read failure, EOF before the envelope
                was complete, or the response exceeded ``max_response_bytes``.
        """
        endpoint = parse_endpoint(self.endpoint)
        deadline = time.monotonic() + self.timeout
        reader, writer = await self._open(endpoint)
        try:
            try:
                writer.write(request)
                await asyncio.wait_for(writer.drain(), timeout=_remaining(deadline))
            except asyncio.TimeoutError as exc:
                raise TransportTimeoutError("write", self.timeout, endpoint=str(endpoint)) from exc
            except OSError as exc:
                raise TransportError(f"write error: {exc}", endpoint=str(endpoint), stage="write") from exc
            buffer = await self._read_until_complete(reader, deadline, endpoint)
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()
        return strip_response(buffer)

    async def _read_until_complete(
        self,
        reader: asyncio.StreamReader,
        deadline: float,
        endpoint: Endpoint,
    ) -> bytearray:
        buffer = bytearray()
        overlap = len(ENVELOPE_END) - 1
        while True:
            try:
                chunk = await asyncio.wait_for(reader.read(READ_CHUNK_BYTES), timeout=_remaining(deadline))
            except asyncio.TimeoutError as exc:
                raise TransportTimeoutError("read", self.timeout, endpoint=str(endpoint)) from exc
            except OSError as exc:
                raise TransportError(f"read error: {exc}", endpoint=str(endpoint), stage="read") from exc
            if not chunk:
                if response_complete(buffer):
                    return buffer
                raise TransportError(
                    f"connection closed before the response was complete ({len(buffer)} bytes read)",
                    endpoint=str(endpoint),
                    stage="read",
                )
            scan_from = len(buffer) - overlap
            buffer.extend(chunk)
            if len(buffer) > self.max_response_bytes:
                raise TransportError(
                    f"response exceeded {self.max_response_bytes} bytes",
                    endpoint=str(endpoint),
                    stage="read",
                )
            if response_complete(buffer, scan_from):
                logger.debug("rTorrent response complete: {} bytes from {}", len(buffer), endpoint)
                return buffer


def _remaining(deadline: float) -> float:
    return max(0.0, deadline - time.monotonic())
