"""rTorrent XML-RPC client.

Each public coroutine is one fixed operation built from ``call``: encode the
call, frame it for SCGI, do one round trip, decode, raise on fault. Read paths
return fresh records; mutation paths return nothing and let every error
propagate unchanged.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from loguru import logger

from vibetorrent.utils.exceptions import (
    DecodeError,
    FaultError,
    NotFoundError,
    TransportError,
    ValidationError,
)

from .codec import decode_response, encode_call
from .contracts import TorrentClient
from .framing import frame_request
from .protocol import MethodCall
from .transport import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_RESPONSE_BYTES,
    DEFAULT_TIMEOUT,
    ScgiTransport,
)
from .types import SystemInfo, Torrent, TorrentFile, Tracker, derive_state
from .values import Value

TORRENT_FIELDS: tuple[str, ...] = (
    "d.hash",
    "d.name",
    "d.size_bytes",
    "d.completed_bytes",
    "d.down.rate",
    "d.up.rate",
    "d.state",
    "d.custom1",
    "d.creation_date",
    "d.size_chunks",
    "d.chunk_size",
    "d.directory",
    "d.priority",
)

FILE_FIELDS: tuple[str, ...] = ("f.path", "f.size_bytes", "f.completed_bytes", "f.priority")

TRACKER_FIELDS: tuple[str, ...] = (
    "t.url",
    "t.type",
    "t.is_enabled",
    "t.scrape_complete",
    "t.scrape_incomplete",
)

MUTATIONS: dict[str, str] = {
    "start": "d.start",
    "stop": "d.stop",
    "pause": "d.pause",
    "resume": "d.resume",
    "recheck": "d.check_hash",
    "delete": "d.erase",
    "set_priority": "d.priority.set",
    "set_label": "d.custom1.set",
}

PRIORITY_RANGE = range(0, 4)

_EMPTY = Value.string("")
_UNSAFE_PATH_CHARS = frozenset('"\\')


def _accessors(fields: Iterable[str]) -> list[str]:
    """Multicall accessor expressions take a trailing '='."""
    return [f"{field}=" for field in fields]


def _build_torrent(row: Sequence[Value]) -> Torrent:
    f = dict(zip(TORRENT_FIELDS, row))
    size = f["d.size_bytes"].as_long()
    completed = f["d.completed_bytes"].as_long()
    return Torrent(
        hash=f["d.hash"].as_string(),
        name=f["d.name"].as_string(),
        size=size,
        completed=completed,
        download_rate=f["d.down.rate"].as_long(),
        upload_rate=f["d.up.rate"].as_long(),
        state=derive_state(f["d.state"].as_long(), size, completed),
        label=f["d.custom1"].as_string(),
        date_added=f["d.creation_date"].as_long(),
        piece_count=f["d.size_chunks"].as_long(),
        piece_size=f["d.chunk_size"].as_long(),
        save_path=f["d.directory"].as_string(),
        priority=f["d.priority"].as_long(),
    )


def _rows(params: tuple[Value, ...], method: str, width: int) -> Iterable[tuple[Value, ...]]:
    """Yield complete multicall rows; short rows are dropped, never half-mapped."""
    if not params:
        raise DecodeError(f"empty {method} response")
    for row_value in params[0].as_array():
        row = row_value.as_array()
        if len(row) < width:
            logger.debug("Skipping short {} row ({} of {} fields)", method, len(row), width)
            continue
        yield row


def directory_override(download_path: str) -> str | None:
    """Build the ``d.directory_base.set`` command passed to ``load.*``.

    The path is embedded in double quotes without escaping, so paths that
    would break out of the quotes are rejected.
    """
    path = (download_path or "").strip()
    if not path:
        return None
    if any(ch in _UNSAFE_PATH_CHARS or ord(ch) < 32 for ch in path):
        raise ValidationError(
            "download path must not contain quotes, backslashes or control characters",
            field="download_path",
        )
    return f'd.directory_base.set="{path}"'


class RTorrentClient:
    """XML-RPC over SCGI client for a single rTorrent endpoint."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
        batch_details: bool = True,
        transport: ScgiTransport | None = None,
    ):
        self.endpoint = endpoint
        self.batch_details = batch_details
        self._transport = transport or ScgiTransport(
            endpoint,
            timeout=timeout,
            connect_timeout=connect_timeout,
            max_response_bytes=max_response_bytes,
        )

    async def call(self, method: str, *args: Any) -> tuple[Value, ...]:
        """Run one XML-RPC method and return its result params.

        Raises:
            TransportError: the daemon could not be reached or read.
            DecodeError: the daemon's answer is not a valid envelope.
            FaultError: the daemon rejected the call.
        """
        payload = encode_call(MethodCall.build(method, *args))
        logger.debug("rTorrent call {} ({} bytes) -> {}", method, len(payload), self.endpoint)
        raw = await self._transport.round_trip(frame_request(payload))
        response = decode_response(raw)
        if response.fault is not None:
            raise FaultError(method, response.fault)
        return response.params

    async def test_connection(self) -> str:
        """Ping the daemon; returns its client version."""
        params = await self.call("system.client_version")
        return params[0].as_string() if params else ""

    async def list_torrents(self, view: str = "main") -> list[Torrent]:
        params = await self.call("d.multicall2", "", view, *_accessors(TORRENT_FIELDS))
        return [_build_torrent(row) for row in _rows(params, "d.multicall2", len(TORRENT_FIELDS))]

    async def get_torrent(self, torrent_hash: str) -> Torrent:
        """Fetch one torrent, tolerating individual field failures.

        Raises:
            NotFoundError: the daemon does not know the hash.
        """
        await self._verify_hash(torrent_hash)
        fields = TORRENT_FIELDS[1:]
        values: list[Value] | None = None
        if self.batch_details:
            try:
                values = await self._fetch_fields_batched(torrent_hash, fields)
            except FaultError as exc:
                logger.warning("system.multicall unavailable ({}); fetching fields one by one", exc.fault_string)
        if values is None:
            values = await self._fetch_fields_individually(torrent_hash, fields)
        return _build_torrent((Value.string(torrent_hash), *values))

    async def _verify_hash(self, torrent_hash: str) -> None:
        try:
            params = await self.call("d.hash", torrent_hash)
        except FaultError as exc:
            raise NotFoundError("Torrent", torrent_hash) from exc
        if not params:
            raise NotFoundError("Torrent", torrent_hash)

    async def _fetch_fields_batched(self, torrent_hash: str, fields: Sequence[str]) -> list[Value]:
        calls = Value.array(
            Value.struct({"methodName": Value.string(field), "params": Value.array([Value.string(torrent_hash)])})
            for field in fields
        )
        params = await self.call("system.multicall", calls)
        results = params[0].as_array() if params else ()
        values: list[Value] = []
        for index, field in enumerate(fields):
            # Each entry is a one-element array on success or a fault struct.
            entry = results[index].as_array() if index < len(results) else ()
            if not entry:
                logger.warning("Field {} unavailable for {}; using empty value", field, torrent_hash)
                values.append(_EMPTY)
            else:
                values.append(entry[0])
        return values

    async def _fetch_fields_individually(self, torrent_hash: str, fields: Sequence[str]) -> list[Value]:
        values: list[Value] = []
        for field in fields:
            try:
                params = await self.call(field, torrent_hash)
            except (FaultError, DecodeError, TransportError) as exc:
                logger.warning("Field {} failed for {}: {}", field, torrent_hash, exc)
                params = ()
            values.append(params[0] if params else _EMPTY)
        return values

    async def get_files(self, torrent_hash: str) -> list[TorrentFile]:
        params = await self.call("f.multicall", torrent_hash, "", *_accessors(FILE_FIELDS))
        files: list[TorrentFile] = []
        for row in _rows(params, "f.multicall", len(FILE_FIELDS)):
            f = dict(zip(FILE_FIELDS, row))
            files.append(
                TorrentFile(
                    name=f["f.path"].as_string(),
                    size=f["f.size_bytes"].as_long(),
                    completed=f["f.completed_bytes"].as_long(),
                    priority=f["f.priority"].as_long(),
                )
            )
        return files

    async def get_trackers(self, torrent_hash: str) -> list[Tracker]:
        params = await self.call("t.multicall", torrent_hash, "", *_accessors(TRACKER_FIELDS))
        trackers: list[Tracker] = []
        for row in _rows(params, "t.multicall", len(TRACKER_FIELDS)):
            f = dict(zip(TRACKER_FIELDS, row))
            trackers.append(
                Tracker(
                    url=f["t.url"].as_string(),
                    type=f["t.type"].as_long(),
                    enabled=f["t.is_enabled"].as_bool(),
                    seeders=f["t.scrape_complete"].as_long(),
                    leechers=f["t.scrape_incomplete"].as_long(),
                )
            )
        return trackers

    async def get_system_info(self) -> SystemInfo:
        async def first(method: str) -> Value:
            params = await self.call(method)
            return params[0] if params else _EMPTY

        return SystemInfo(
            download_rate=(await first("throttle.global_down.rate")).as_long(),
            upload_rate=(await first("throttle.global_up.rate")).as_long(),
            client_version=(await first("system.client_version")).as_string(),
            library_version=(await first("system.library_version")).as_string(),
            hostname=(await first("system.hostname")).as_string(),
        )

    async def mutate(self, operation: str, torrent_hash: str, *args: Any) -> None:
        """Run one state-changing operation by name (see ``MUTATIONS``)."""
        method = MUTATIONS.get(operation)
        if method is None:
            raise ValidationError(f"unknown torrent operation: {operation}", field="operation")
        await self.call(method, torrent_hash, *args)
        logger.info("rTorrent {} {}", method, torrent_hash)

    async def start(self, torrent_hash: str) -> None:
        await self.mutate("start", torrent_hash)

    async def stop(self, torrent_hash: str) -> None:
        await self.mutate("stop", torrent_hash)

    async def pause(self, torrent_hash: str) -> None:
        await self.mutate("pause", torrent_hash)

    async def resume(self, torrent_hash: str) -> None:
        await self.mutate("resume", torrent_hash)

    async def recheck(self, torrent_hash: str) -> None:
        await self.mutate("recheck", torrent_hash)

    async def delete(self, torrent_hash: str) -> None:
        await self.mutate("delete", torrent_hash)

    async def set_priority(self, torrent_hash: str, priority: int) -> None:
        if priority not in PRIORITY_RANGE:
            raise ValidationError("priority must be between 0 and 3", field="priority")
        await self.mutate("set_priority", torrent_hash, Value.integer(priority))

    async def set_label(self, torrent_hash: str, label: str) -> None:
        await self.mutate("set_label", torrent_hash, Value.string(label))

    async def add_by_url(self, url: str, auto_start: bool = True, download_path: str = "") -> None:
        if not (url or "").strip():
            raise ValidationError("torrent URL is required", field="url")
        args: list[Any] = ["", url.strip()]
        override = directory_override(download_path)
        if override:
            args.append(override)
        await self.call("load.start" if auto_start else "load.normal", *args)
        logger.info("rTorrent added torrent from URL (auto_start={})", auto_start)

    async def add_by_data(self, data: bytes, auto_start: bool = True, download_path: str = "") -> None:
        if not data:
            raise ValidationError("torrent file is empty", field="data")
        args: list[Any] = ["", Value.base64(data)]
        override = directory_override(download_path)
        if override:
            args.append(override)
        await self.call("load.raw_start" if auto_start else "load.raw", *args)
        logger.info("rTorrent added torrent from {} bytes of metainfo (auto_start={})", len(data), auto_start)


def create_client(
    endpoint: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
    batch_details: bool = True,
) -> TorrentClient:
    """Return the mock client for ``"mock"``, otherwise a real XML-RPC client."""
    if endpoint.strip() == "mock":
        from .mock import MockClient

        logger.info("Initializing rTorrent client in MOCK mode")
        return MockClient()
    logger.info("Initializing rTorrent client at {}", endpoint)
    return RTorrentClient(
        endpoint,
        timeout=timeout,
        connect_timeout=connect_timeout,
        max_response_bytes=max_response_bytes,
        batch_details=batch_details,
    )
