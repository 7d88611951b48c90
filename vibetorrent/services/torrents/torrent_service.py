"""Torrent list views and operations shared by the HTTP and CLI adapters."""

from __future__ import annotations

from typing import Any, Iterable

from loguru import logger

from vibetorrent.rtorrent.contracts import TorrentClient
from vibetorrent.rtorrent.types import TORRENT_STATES, Torrent
from vibetorrent.services.errors import ServiceError
from vibetorrent.utils.exceptions import VibeTorrentError

SORT_COOKIE = "torrent_sort"
SORT_KEYS = ("name", "size", "progress", "down", "up", "eta", "state")
SORT_ORDERS = ("asc", "desc")
FILTER_ALL = "all"
LABEL_FILTER_PREFIX = "label:"
TORRENT_ACTIONS = ("start", "stop", "pause", "resume", "recheck")

# Stalled torrents sort after any finite ETA.
_STALLED_ETA = 1e15


def parse_sort_cookie(value: str | None) -> tuple[str, str]:
    """Split a ``field:order`` cookie; anything malformed means no sort."""
    parts = (value or "").split(":")
    if len(parts) != 2:
        return "", ""
    return parts[0], parts[1]


def format_sort_cookie(sort_by: str, order: str) -> str:
    return f"{sort_by}:{order}"


def resolve_sort(sort_by: str | None, order: str | None, cookie: str | None) -> tuple[str, str, bool]:
    """Pick the sort for a list request.

    Returns ``(sort_by, order, persist)``: an explicit ``sort`` query wins and
    should be written back to the cookie; otherwise the cookie is used.
    """
    if sort_by:
        return sort_by, order or "", True
    cookie_sort, cookie_order = parse_sort_cookie(cookie)
    return cookie_sort, cookie_order, False


def _sort_key(sort_by: str):
    if sort_by == "name":
        return lambda t: t.name.lower()
    if sort_by == "size":
        return lambda t: t.size
    if sort_by == "progress":
        return lambda t: t.progress
    if sort_by == "down":
        return lambda t: t.download_rate
    if sort_by == "up":
        return lambda t: t.upload_rate
    if sort_by == "eta":
        return lambda t: _STALLED_ETA if t.eta is None else t.eta
    if sort_by == "state":
        return lambda t: t.state
    return None


def sort_torrents(torrents: Iterable[Torrent], sort_by: str, order: str = "asc") -> list[Torrent]:
    """Sort by one of ``SORT_KEYS``; unknown keys keep the daemon's order."""
    items = list(torrents)
    key = _sort_key(sort_by)
    if key is None:
        return items
    return sorted(items, key=key, reverse=order == "desc")


def _check_filter(filter_name: str) -> None:
    if filter_name == FILTER_ALL or filter_name in TORRENT_STATES or filter_name.startswith(LABEL_FILTER_PREFIX):
        return
    raise ServiceError(code="INVALID_REQUEST", message=f"unknown filter: {filter_name}")


def filter_torrents(torrents: Iterable[Torrent], filter_name: str = FILTER_ALL, search: str = "") -> list[Torrent]:
    """Apply a state or ``label:<name>`` filter plus a case-insensitive name search."""
    filter_name = filter_name or FILTER_ALL
    _check_filter(filter_name)
    needle = (search or "").strip().lower()
    result: list[Torrent] = []
    for t in torrents:
        if filter_name.startswith(LABEL_FILTER_PREFIX):
            if t.label != filter_name[len(LABEL_FILTER_PREFIX):]:
                continue
        elif filter_name != FILTER_ALL and t.state != filter_name:
            continue
        if needle and needle not in t.name.lower():
            continue
        result.append(t)
    return result


def count_torrents(torrents: Iterable[Torrent]) -> dict[str, Any]:
    """Badge counts per state plus per non-empty label."""
    items = list(torrents)
    counts = {FILTER_ALL: len(items), **{state: 0 for state in TORRENT_STATES}}
    label_counts: dict[str, int] = {}
    for t in items:
        if t.state in counts:
            counts[t.state] += 1
        if t.label:
            label_counts[t.label] = label_counts.get(t.label, 0) + 1
    return {"counts": counts, "label_counts": label_counts, "labels": list(label_counts)}


def torrent_stats(torrents: Iterable[Torrent]) -> dict[str, int]:
    """Aggregate rates; ``active`` counts torrents moving data either way."""
    stats = {"download_rate": 0, "upload_rate": 0, "active": 0, "total": 0}
    for t in torrents:
        stats["total"] += 1
        stats["download_rate"] += t.download_rate
        stats["upload_rate"] += t.upload_rate
        if t.download_rate > 0 or t.upload_rate > 0:
            stats["active"] += 1
    return stats


async def list_torrents_http(
    *,
    client: TorrentClient,
    filter_name: str = FILTER_ALL,
    search: str = "",
    sort_by: str = "",
    order: str = "",
) -> dict[str, Any]:
    filter_name = filter_name or FILTER_ALL
    _check_filter(filter_name)
    torrents = sort_torrents(await client.list_torrents(), sort_by, order)
    visible = filter_torrents(torrents, filter_name, search)
    return {
        "ok": True,
        "filter": filter_name,
        "sort": sort_by,
        "order": order,
        "total": len(visible),
        "torrents": [t.to_dict() for t in visible],
    }


async def counts_http(*, client: TorrentClient) -> dict[str, Any]:
    return {"ok": True, **count_torrents(await client.list_torrents())}


async def stats_http(*, client: TorrentClient) -> dict[str, Any]:
    return {"ok": True, **torrent_stats(await client.list_torrents())}


async def system_info_http(*, client: TorrentClient) -> dict[str, Any]:
    info = await client.get_system_info()
    return {"ok": True, **info.to_dict()}


async def torrent_detail_http(*, client: TorrentClient, torrent_hash: str) -> dict[str, Any]:
    """Detail record plus files; a failing file listing degrades to ``[]``."""
    torrent = await client.get_torrent(torrent_hash)
    try:
        files = [f.to_dict() for f in await client.get_files(torrent_hash)]
    except VibeTorrentError as exc:
        logger.warning("File list unavailable for {}: {}", torrent_hash, exc)
        files = []
    return {"ok": True, "torrent": torrent.to_dict(), "files": files}


async def torrent_files_http(*, client: TorrentClient, torrent_hash: str) -> dict[str, Any]:
    files = await client.get_files(torrent_hash)
    return {"ok": True, "hash": torrent_hash, "files": [f.to_dict() for f in files]}


async def torrent_trackers_http(*, client: TorrentClient, torrent_hash: str) -> dict[str, Any]:
    trackers = await client.get_trackers(torrent_hash)
    return {"ok": True, "hash": torrent_hash, "trackers": [t.to_dict() for t in trackers]}


async def run_action_http(*, client: TorrentClient, torrent_hash: str, action: str) -> dict[str, Any]:
    if action not in TORRENT_ACTIONS:
        raise ServiceError(code="INVALID_REQUEST", message=f"unknown action: {action}")
    await client.mutate(action, torrent_hash)
    return {"ok": True, "hash": torrent_hash, "action": action}


async def delete_torrent_http(*, client: TorrentClient, torrent_hash: str) -> dict[str, Any]:
    await client.delete(torrent_hash)
    return {"ok": True, "hash": torrent_hash, "removed": True}


async def set_priority_http(*, client: TorrentClient, torrent_hash: str, priority: Any) -> dict[str, Any]:
    try:
        value = int(priority)
    except (TypeError, ValueError) as exc:
        raise ServiceError(code="INVALID_REQUEST", message="priority must be an integer") from exc
    if not 0 <= value <= 3:
        raise ServiceError(code="INVALID_REQUEST", message="priority must be between 0 and 3")
    await client.set_priority(torrent_hash, value)
    return {"ok": True, "hash": torrent_hash, "priority": value}


async def set_label_http(*, client: TorrentClient, torrent_hash: str, label: Any) -> dict[str, Any]:
    text = "" if label is None else str(label).strip()
    await client.set_label(torrent_hash, text)
    return {"ok": True, "hash": torrent_hash, "label": text}


async def add_torrent_url_http(
    *,
    client: TorrentClient,
    url: str,
    auto_start: bool = True,
    download_path: str = "",
) -> dict[str, Any]:
    url = (url or "").strip()
    if not url:
        raise ServiceError(code="INVALID_REQUEST", message="url is required")
    await client.add_by_url(url, auto_start=auto_start, download_path=download_path)
    return {"ok": True, "source": "url", "auto_start": auto_start}


async def add_torrent_data_http(
    *,
    client: TorrentClient,
    data: bytes,
    filename: str = "",
    auto_start: bool = True,
    download_path: str = "",
) -> dict[str, Any]:
    if not data:
        raise ServiceError(code="INVALID_REQUEST", message="uploaded torrent file is empty")
    await client.add_by_data(data, auto_start=auto_start, download_path=download_path)
    return {"ok": True, "source": "file", "filename": filename, "bytes": len(data), "auto_start": auto_start}
