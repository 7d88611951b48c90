"""Helpers for torrent HTTP endpoint payloads."""

from __future__ import annotations

from typing import Any

from vibetorrent.api.http.error_helpers import raise_service_http_error
from vibetorrent.rtorrent.contracts import TorrentClient
from vibetorrent.services.errors import ServiceError
from vibetorrent.services.torrents.torrent_service import (
    add_torrent_data_http,
    add_torrent_url_http,
    counts_http,
    delete_torrent_http,
    list_torrents_http,
    run_action_http,
    set_label_http,
    set_priority_http,
    stats_http,
    system_info_http,
    torrent_detail_http,
    torrent_files_http,
    torrent_trackers_http,
)


async def list_torrents_response(
    *,
    client: TorrentClient,
    filter_name: str,
    search: str,
    sort_by: str,
    order: str,
) -> dict[str, Any]:
    """Build response payload for GET /api/torrents. Raises 400 for an unknown filter."""
    try:
        return await list_torrents_http(
            client=client, filter_name=filter_name, search=search, sort_by=sort_by, order=order
        )
    except ServiceError as exc:
        raise_service_http_error(exc)


async def counts_response(*, client: TorrentClient) -> dict[str, Any]:
    """Build response payload for GET /api/counts."""
    return await counts_http(client=client)


async def stats_response(*, client: TorrentClient) -> dict[str, Any]:
    """Build response payload for GET /api/stats."""
    return await stats_http(client=client)


async def system_info_response(*, client: TorrentClient) -> dict[str, Any]:
    return await system_info_http(client=client)


async def torrent_detail_response(*, client: TorrentClient, torrent_hash: str) -> dict[str, Any]:
    return await torrent_detail_http(client=client, torrent_hash=torrent_hash)


async def torrent_files_response(*, client: TorrentClient, torrent_hash: str) -> dict[str, Any]:
    return await torrent_files_http(client=client, torrent_hash=torrent_hash)


async def torrent_trackers_response(*, client: TorrentClient, torrent_hash: str) -> dict[str, Any]:
    return await torrent_trackers_http(client=client, torrent_hash=torrent_hash)


async def torrent_action_response(*, client: TorrentClient, torrent_hash: str, action: str) -> dict[str, Any]:
    """Build response payload for POST /api/torrents/{hash}/{action}. Raises 400 for unknown actions."""
    try:
        return await run_action_http(client=client, torrent_hash=torrent_hash, action=action)
    except ServiceError as exc:
        raise_service_http_error(exc)


async def delete_torrent_response(*, client: TorrentClient, torrent_hash: str) -> dict[str, Any]:
    return await delete_torrent_http(client=client, torrent_hash=torrent_hash)


async def set_priority_response(*, client: TorrentClient, torrent_hash: str, priority: Any) -> dict[str, Any]:
    try:
        return await set_priority_http(client=client, torrent_hash=torrent_hash, priority=priority)
    except ServiceError as exc:
        raise_service_http_error(exc)


async def set_label_response(*, client: TorrentClient, torrent_hash: str, label: Any) -> dict[str, Any]:
    return await set_label_http(client=client, torrent_hash=torrent_hash, label=label)


async def add_torrent_url_response(
    *,
    client: TorrentClient,
    url: str,
    auto_start: bool,
    download_path: str,
) -> dict[str, Any]:
    """Build response payload for POST /api/torrents."""
    try:
        return await add_torrent_url_http(
            client=client, url=url, auto_start=auto_start, download_path=download_path
        )
    except ServiceError as exc:
        raise_service_http_error(exc)


async def add_torrent_upload_response(
    *,
    client: TorrentClient,
    data: bytes,
    filename: str,
    auto_start: bool,
    download_path: str,
) -> dict[str, Any]:
    """Build response payload for POST /api/torrents/upload."""
    try:
        return await add_torrent_data_http(
            client=client, data=data, filename=filename, auto_start=auto_start, download_path=download_path
        )
    except ServiceError as exc:
        raise_service_http_error(exc)
