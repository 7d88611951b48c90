"""In-memory stand-in for rTorrent, selected with the endpoint ``mock``.

Mutations change the demo state so the dashboard and CLI behave sensibly
offline. Unknown hashes fail the way the daemon fails them.
"""

from __future__ import annotations

import hashlib
from dataclasses import replace
from typing import Any

from loguru import logger

from vibetorrent.utils.exceptions import FaultError, NotFoundError, ValidationError

from .client import MUTATIONS, PRIORITY_RANGE, directory_override
from .types import STATE_DOWNLOADING, STATE_PAUSED, SystemInfo, Torrent, TorrentFile, Tracker, derive_state
from .values import Value

MOCK_VERSION = "0.9.8-mock"

_UNKNOWN_HASH_FAULT = Value.struct(
    {"faultCode": Value.i4(-501), "faultString": Value.string("Could not find info-hash.")}
)


def _demo_torrents() -> list[Torrent]:
    return [
        Torrent(
            hash="123",
            name="Demo Movie 2024",
            size=4_500_000_000,
            completed=2_250_000_000,
            download_rate=500_000,
            upload_rate=100_000,
            state="downloading",
            label="Movies",
            date_added=1_700_000_000,
            piece_count=1200,
            piece_size=4_194_304,
            save_path="/downloads/movies",
            priority=2,
        ),
        Torrent(
            hash="456",
            name="Linux ISO 23.10",
            size=2_100_000_000,
            completed=2_100_000_000,
            download_rate=0,
            upload_rate=250_000,
            state="seeding",
            label="OS",
            date_added=1_690_000_000,
            piece_count=600,
            piece_size=2_097_152,
            save_path="/downloads/isos",
            priority=2,
        ),
    ]


def _demo_files() -> list[TorrentFile]:
    return [
        TorrentFile(name="file1.mp4", size=500_000_000, completed=250_000_000, priority=1),
        TorrentFile(name="file2.jpg", size=1_000_000, completed=1_000_000, priority=1),
    ]


class MockClient:
    """Offline client holding a small mutable set of demo torrents."""

    def __init__(self, torrents: list[Torrent] | None = None):
        self.endpoint = "mock"
        seed = _demo_torrents() if torrents is None else torrents
        self._torrents: dict[str, Torrent] = {t.hash: replace(t) for t in seed}

    def _lookup(self, method: str, torrent_hash: str) -> Torrent:
        torrent = self._torrents.get(torrent_hash)
        if torrent is None:
            raise FaultError(method, _UNKNOWN_HASH_FAULT)
        return torrent

    async def test_connection(self) -> str:
        return MOCK_VERSION

    async def list_torrents(self, view: str = "main") -> list[Torrent]:
        return [replace(t) for t in self._torrents.values()]

    async def get_torrent(self, torrent_hash: str) -> Torrent:
        torrent = self._torrents.get(torrent_hash)
        if torrent is None:
            raise NotFoundError("Torrent", torrent_hash)
        return replace(torrent)

    async def get_files(self, torrent_hash: str) -> list[TorrentFile]:
        self._lookup("f.multicall", torrent_hash)
        return _demo_files()

    async def get_trackers(self, torrent_hash: str) -> list[Tracker]:
        self._lookup("t.multicall", torrent_hash)
        return [Tracker(url="udp://tracker.example.org:6969/announce", type=2, enabled=True, seeders=42, leechers=7)]

    async def get_system_info(self) -> SystemInfo:
        return SystemInfo(
            download_rate=sum(t.download_rate for t in self._torrents.values()),
            upload_rate=sum(t.upload_rate for t in self._torrents.values()),
            client_version=MOCK_VERSION,
            library_version=MOCK_VERSION,
            hostname="mock",
        )

    async def mutate(self, operation: str, torrent_hash: str, *args: Any) -> None:
        method = MUTATIONS.get(operation)
        if method is None:
            raise ValidationError(f"unknown torrent operation: {operation}", field="operation")
        torrent = self._lookup(method, torrent_hash)
        logger.info("Mock: {} {} {}", method, torrent_hash, list(args))
        if operation in ("start", "resume"):
            torrent.state = derive_state(True, torrent.size, torrent.completed)
        elif operation in ("stop", "pause"):
            torrent.state = STATE_PAUSED
            torrent.download_rate = 0
            torrent.upload_rate = 0
        elif operation == "delete":
            del self._torrents[torrent_hash]
        elif operation == "set_priority":
            priority = Value.from_python(args[0]).as_long() if args else 0
            if priority not in PRIORITY_RANGE:
                raise ValidationError("priority must be between 0 and 3", field="priority")
            torrent.priority = priority
        elif operation == "set_label":
            torrent.label = Value.from_python(args[0]).as_string() if args else ""

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
        await self.mutate("set_priority", torrent_hash, priority)

    async def set_label(self, torrent_hash: str, label: str) -> None:
        await self.mutate("set_label", torrent_hash, label)

    def _add(self, source: bytes, name: str, auto_start: bool, download_path: str) -> None:
        directory_override(download_path)
        torrent_hash = hashlib.sha1(source).hexdigest().upper()
        self._torrents[torrent_hash] = Torrent(
            hash=torrent_hash,
            name=name,
            size=0,
            state=STATE_DOWNLOADING if auto_start else STATE_PAUSED,
            save_path=download_path or "/downloads",
        )

    async def add_by_url(self, url: str, auto_start: bool = True, download_path: str = "") -> None:
        if not (url or "").strip():
            raise ValidationError("torrent URL is required", field="url")
        logger.info("Mock: adding torrent from URL {} (auto_start={}, path={!r})", url, auto_start, download_path)
        name = url.strip().rstrip("/").rsplit("/", 1)[-1] or url.strip()
        self._add(url.strip().encode("utf-8"), name, auto_start, download_path)

    async def add_by_data(self, data: bytes, auto_start: bool = True, download_path: str = "") -> None:
        if not data:
            raise ValidationError("torrent file is empty", field="data")
        logger.info("Mock: adding torrent from {} bytes (auto_start={}, path={!r})", len(data), auto_start, download_path)
        self._add(bytes(data), f"upload-{len(data)}-bytes", auto_start, download_path)
