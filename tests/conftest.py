"""Pytest hooks and fixtures."""

import asyncio
import os
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import pytest

from vibetorrent.rtorrent.codec import decode_call, encode_response, fault_value
from vibetorrent.rtorrent.framing import parse_request
from vibetorrent.rtorrent.protocol import MethodCall
from vibetorrent.rtorrent.values import Value


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "requires_rtorrent: talks to a real rTorrent daemon (skipped in CI)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip requires_rtorrent tests unless RTORRENT_TEST_SOCKET points at a daemon."""
    if os.environ.get("RTORRENT_TEST_SOCKET") and os.environ.get("CI") != "true":
        return
    skip = pytest.mark.skip(reason="Set RTORRENT_TEST_SOCKET to run against a real rTorrent")
    for item in items:
        if "requires_rtorrent" in item.keywords:
            item.add_marker(skip)


def http_wrap(document: bytes) -> bytes:
    """Prefix a document with the CGI status block rTorrent sends."""
    head = (
        "Status: 200 OK\r\n"
        "Content-Type: text/xml\r\n"
        f"Content-Length: {len(document)}\r\n\r\n"
    ).encode("ascii")
    return head + document


Handler = Callable[[MethodCall], Any]


def rpc_responder(handlers: dict[str, Handler]) -> Callable[[bytes], bytes]:
    """Answer calls by method name.

    A handler returns a Value, a tuple of Values, or raises LookupError to
    produce a fault. Unknown methods fault like rTorrent does.
    """

    def respond(body: bytes) -> bytes:
        call = decode_call(body)
        handler = handlers.get(call.method)
        if handler is None:
            return http_wrap(encode_response(fault=fault_value(-506, f"Method '{call.method}' not defined")))
        try:
            result = handler(call)
        except LookupError as exc:
            return http_wrap(encode_response(fault=fault_value(-501, str(exc))))
        params = result if isinstance(result, tuple) else (result,)
        return http_wrap(encode_response(params))

    return respond


async def read_scgi_request(reader: asyncio.StreamReader) -> tuple[dict[str, str], bytes]:
    prefix = await reader.readuntil(b":")
    block = await reader.readexactly(int(prefix[:-1]) + 1)
    fields = block[:-1].split(b"\x00")
    body = await reader.readexactly(int(fields[1]))
    return parse_request(prefix + block + body)


@dataclass
class DaemonHandle:
    endpoint: str
    requests: list[tuple[dict[str, str], bytes]] = field(default_factory=list)

    @property
    def methods(self) -> list[str]:
        return [decode_call(body).method for _, body in self.requests]


@asynccontextmanager
async def _scgi_daemon(
    respond: Callable[[bytes], bytes | Awaitable[bytes]],
    *,
    chunk_size: int | None = None,
    unix_path: str | None = None,
):
    """Run a one-shot-per-connection SCGI server on localhost or a Unix socket."""
    handle = DaemonHandle(endpoint="")
    tasks: set[asyncio.Task] = set()

    async def serve(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        tasks.add(asyncio.current_task())
        try:
            headers, body = await read_scgi_request(reader)
            handle.requests.append((headers, body))
            payload = respond(body)
            if asyncio.iscoroutine(payload):
                payload = await payload
            step = chunk_size or len(payload) or 1
            for start in range(0, len(payload), step):
                writer.write(payload[start:start + step])
                await writer.drain()
                if chunk_size:
                    await asyncio.sleep(0)
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()

    if unix_path:
        server = await asyncio.start_unix_server(serve, path=unix_path)
        handle.endpoint = f"unix://{unix_path}"
    else:
        server = await asyncio.start_server(serve, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        handle.endpoint = f"tcp://127.0.0.1:{port}"
    try:
        yield handle
    finally:
        server.close()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await server.wait_closed()


@pytest.fixture
def scgi_daemon():
    """Factory: ``async with scgi_daemon(respond) as daemon: ...``."""
    return _scgi_daemon


@pytest.fixture
def responder():
    return rpc_responder


@pytest.fixture
def wrap_http():
    return http_wrap


@pytest.fixture
def short_unix_path():
    """Unix socket path short enough for AF_UNIX limits."""
    directory = tempfile.mkdtemp(prefix="vt")
    yield os.path.join(directory, "rt.sock")
    try:
        os.unlink(os.path.join(directory, "rt.sock"))
    except FileNotFoundError:
        pass
    os.rmdir(directory)


def torrent_row(
    hash_: str,
    name: str,
    *,
    size: int = 1000,
    completed: int = 0,
    down: int = 0,
    up: int = 0,
    active: int = 1,
    label: str = "",
    priority: int = 2,
) -> Value:
    """One d.multicall2 row in the daemon's field order."""
    return Value.array(
        [
            Value.string(hash_),
            Value.string(name),
            Value.i8(size),
            Value.i8(completed),
            Value.i8(down),
            Value.i8(up),
            Value.i8(active),
            Value.string(label),
            Value.i8(1_700_000_000),
            Value.i8(10),
            Value.i8(262_144),
            Value.string(f"/downloads/{name}"),
            Value.i8(priority),
        ]
    )


@pytest.fixture
def make_row():
    return torrent_row
