"""Connection lifecycle for the rTorrent daemon.

The web app starts Unconfigured when no endpoint is set (or the configured
one does not answer) and moves to Configured once a connection test
succeeds. Torrent operations are only reachable in the Configured state.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from loguru import logger

from vibetorrent.config.schema import RTorrentConfig
from vibetorrent.rtorrent.client import create_client
from vibetorrent.rtorrent.contracts import TorrentClient
from vibetorrent.utils.exceptions import NotConfiguredError, VibeTorrentError, sanitize_error_message

ClientFactory = Callable[..., TorrentClient]


class ConnectionState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"


class DaemonConnection:
    """Holds the active client and the state of the setup flow."""

    def __init__(
        self,
        settings: RTorrentConfig | None = None,
        *,
        client_factory: ClientFactory = create_client,
    ):
        self.settings = settings or RTorrentConfig()
        self._client_factory = client_factory
        self._client: TorrentClient | None = None
        self.state = ConnectionState.UNCONFIGURED
        self.endpoint = ""
        self.client_version = ""
        self.last_error: str | None = None

    @property
    def is_configured(self) -> bool:
        return self.state is ConnectionState.CONFIGURED

    def _build_client(self, endpoint: str) -> TorrentClient:
        return self._client_factory(
            endpoint,
            timeout=self.settings.timeout,
            connect_timeout=self.settings.connect_timeout,
            max_response_bytes=self.settings.max_response_bytes,
            batch_details=self.settings.batch_details,
        )

    async def probe(self, endpoint: str) -> tuple[TorrentClient, str]:
        """Build a client for ``endpoint`` and run a connection test.

        The active client and state are untouched; a failure is recorded in
        ``last_error`` and re-raised.
        """
        client = self._build_client(endpoint)
        try:
            version = await client.test_connection()
        except VibeTorrentError as exc:
            self.last_error = sanitize_error_message(exc.message)
            logger.warning("rTorrent connection test failed for {}: {}", endpoint, self.last_error)
            raise
        return client, version

    def activate(self, endpoint: str, client: TorrentClient, version: str) -> None:
        """Make a tested client the active one (Unconfigured -> Configured)."""
        self._client = client
        self.endpoint = endpoint
        self.client_version = version
        self.last_error = None
        if self.state is not ConnectionState.CONFIGURED:
            logger.info("rTorrent connection configured: {} (version {})", endpoint, version or "unknown")
        else:
            logger.info("rTorrent connection switched to {} (version {})", endpoint, version or "unknown")
        self.state = ConnectionState.CONFIGURED

    async def configure(self, endpoint: str) -> str:
        """Test ``endpoint`` and switch to it on success; returns the daemon version."""
        client, version = await self.probe(endpoint)
        self.activate(endpoint, client, version)
        return version

    async def startup(self) -> bool:
        """Try the endpoint from settings; stay Unconfigured when it fails."""
        endpoint = self.settings.socket.strip()
        if not endpoint:
            logger.info("rTorrent socket not configured; waiting for setup")
            return False
        try:
            await self.configure(endpoint)
        except VibeTorrentError:
            return False
        return True

    def require_client(self) -> TorrentClient:
        """The active client; raises NotConfiguredError while Unconfigured."""
        if self._client is None or not self.is_configured:
            raise NotConfiguredError(self.last_error)
        return self._client

    def status(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "configured": self.is_configured,
            "endpoint": self.endpoint or self.settings.socket,
            "client_version": self.client_version,
            "last_error": self.last_error,
        }
