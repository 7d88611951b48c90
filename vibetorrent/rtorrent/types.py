"""Records returned by the torrent operations.

Every query builds fresh records; nothing here is cached or updated in place.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

STATE_DOWNLOADING = "downloading"
STATE_SEEDING = "seeding"
STATE_PAUSED = "paused"
TORRENT_STATES = (STATE_DOWNLOADING, STATE_SEEDING, STATE_PAUSED)


def derive_state(is_active: int | bool, size: int, completed: int) -> str:
    """Map the daemon's active flag and byte counts to a display state."""
    if not is_active:
        return STATE_PAUSED
    if completed < size:
        return STATE_DOWNLOADING
    return STATE_SEEDING


def compute_progress(size: int, completed: int) -> float:
    """Percent complete; 0 for empty torrents."""
    if size <= 0:
        return 0.0
    return completed / size * 100


@dataclass(slots=True)
class Torrent:
    """Snapshot of one torrent as reported by the daemon."""

    hash: str
    name: str = ""
    size: int = 0
    completed: int = 0
    download_rate: int = 0
    upload_rate: int = 0
    state: str = STATE_PAUSED
    label: str = ""
    date_added: int = 0
    piece_count: int = 0
    piece_size: int = 0
    save_path: str = ""
    priority: int = 0

    @property
    def progress(self) -> float:
        return compute_progress(self.size, self.completed)

    @property
    def eta(self) -> float | None:
        """Seconds until complete at the current rate, None when stalled."""
        if self.download_rate <= 0:
            return None
        return max(0, self.size - self.completed) / self.download_rate

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["progress"] = self.progress
        return data


@dataclass(slots=True)
class TorrentFile:
    """One file inside a torrent."""

    name: str
    size: int = 0
    completed: int = 0
    priority: int = 0

    @property
    def progress(self) -> float:
        return compute_progress(self.size, self.completed)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["progress"] = self.progress
        return data


@dataclass(slots=True)
class Tracker:
    """One tracker announce URL of a torrent."""

    url: str
    type: int = 0
    enabled: bool = False
    seeders: int = 0
    leechers: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class SystemInfo:
    """Global daemon status."""

    download_rate: int = 0
    upload_rate: int = 0
    client_version: str = ""
    library_version: str = ""
    hostname: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
