"""Runtime contract shared by the real and mock torrent clients."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .types import SystemInfo, Torrent, TorrentFile, Tracker


@runtime_checkable
class TorrentClient(Protocol):
    endpoint: str

    async def test_connection(self) -> str: ...
    async def list_torrents(self, view: str = "main") -> list[Torrent]: ...
    async def get_torrent(self, torrent_hash: str) -> Torrent: ...
    async def get_files(self, torrent_hash: str) -> list[TorrentFile]: ...
    async def get_trackers(self, torrent_hash: str) -> list[Tracker]: ...
    async def get_system_info(self) -> SystemInfo: ...
    async def mutate(self, operation: str, torrent_hash: str, *args: Any) -> None: ...
    async def delete(self, torrent_hash: str) -> None: ...
    async def set_priority(self, torrent_hash: str, priority: int) -> None: ...
    async def set_label(self, torrent_hash: str, label: str) -> None: ...
    async def add_by_url(self, url: str, auto_start: bool = True, download_path: str = "") -> None: ...
    async def add_by_data(self, data: bytes, auto_start: bool = True, download_path: str = "") -> None: ...
