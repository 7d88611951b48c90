"""Helpers for the connection setup HTTP endpoints."""

from __future__ import annotations

from typing import Any, Callable

from vibetorrent.api.http.error_helpers import raise_service_http_error
from vibetorrent.services.connection.daemon_connection import DaemonConnection
from vibetorrent.services.connection.setup_service import apply_setup_http, setup_status_http
from vibetorrent.services.errors import ServiceError


def get_setup_response(*, connection: DaemonConnection, config: Any) -> dict[str, Any]:
    """Build response payload for GET /api/setup."""
    return setup_status_http(connection=connection, config=config)


async def post_setup_response(
    *,
    connection: DaemonConnection,
    form: dict[str, Any],
    persist_setup: Callable[..., Any],
) -> dict[str, Any]:
    """Apply POST /api/setup. Raises 400 for bad input, 502 when the daemon does not answer."""
    try:
        return await apply_setup_http(connection=connection, form=form, persist_setup=persist_setup)
    except ServiceError as exc:
        raise_service_http_error(exc)
