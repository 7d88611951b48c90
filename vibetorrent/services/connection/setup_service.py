"""Setup flow: build an endpoint from form fields, test it, persist it."""

from __future__ import annotations

from typing import Any, Callable

from vibetorrent.rtorrent.transport import parse_endpoint
from vibetorrent.services.connection.daemon_connection import DaemonConnection
from vibetorrent.services.errors import ServiceError
from vibetorrent.utils.exceptions import ValidationError, VibeTorrentError

SOCKET_TYPES = ("unix", "tcp", "mock")


def build_endpoint(
    *,
    socket_type: str,
    unix_socket: str = "",
    tcp_host: str = "",
    tcp_port: str | int = "",
) -> str:
    kind = (socket_type or "tcp").strip().lower()
    if kind not in SOCKET_TYPES:
        raise ServiceError(code="INVALID_REQUEST", message=f"unknown socket type: {socket_type}")
    if kind == "mock":
        return "mock"
    if kind == "unix":
        path = (unix_socket or "").strip()
        if not path:
            raise ServiceError(code="INVALID_REQUEST", message="Unix socket path is required")
        return _checked("unix://" + path)
    host = (tcp_host or "").strip()
    port = str(tcp_port or "").strip()
    if not host or not port:
        raise ServiceError(code="INVALID_REQUEST", message="Host and port are required for TCP connection")
    return _checked(f"tcp://{host}:{port}")


def _checked(endpoint: str) -> str:
    try:
        parse_endpoint(endpoint)
    except ValidationError as exc:
        raise ServiceError(code="INVALID_REQUEST", message=exc.message) from exc
    return endpoint


def setup_status_http(*, connection: DaemonConnection, config: Any) -> dict[str, Any]:
    return {
        "ok": True,
        **connection.status(),
        "downloads": {
            "default_path": config.downloads.default_path,
            "temp_path": config.downloads.temp_path,
        },
    }


async def apply_setup_http(
    *,
    connection: DaemonConnection,
    form: dict[str, Any],
    persist_setup: Callable[..., Any],
) -> dict[str, Any]:
    """Test the submitted endpoint, save it, and make it the active client."""
    endpoint = build_endpoint(
        socket_type=str(form.get("socket_type") or ""),
        unix_socket=str(form.get("unix_socket") or ""),
        tcp_host=str(form.get("tcp_host") or ""),
        tcp_port=form.get("tcp_port") or "",
    )
    try:
        client, version = await connection.probe(endpoint)
    except VibeTorrentError as exc:
        raise ServiceError(code="CONNECTION_FAILED", message=f"Cannot connect to rTorrent: {exc.message}") from exc
    try:
        persist_setup(
            endpoint,
            default_path=str(form.get("default_path") or "").strip(),
            temp_path=str(form.get("temp_path") or "").strip(),
        )
    except (OSError, ValueError) as exc:
        raise ServiceError(code="SAVE_FAILED", message=f"Failed to save config: {exc}") from exc
    connection.activate(endpoint, client, version)
    return {"ok": True, "endpoint": endpoint, "client_version": version, "state": connection.state.value}
