"""rTorrent XML-RPC over SCGI: value model, codec, framing, transport and client."""

from vibetorrent.rtorrent.client import RTorrentClient, create_client
from vibetorrent.rtorrent.contracts import TorrentClient
from vibetorrent.rtorrent.mock import MockClient
from vibetorrent.rtorrent.protocol import MethodCall, MethodResponse
from vibetorrent.rtorrent.types import SystemInfo, Torrent, TorrentFile, Tracker
from vibetorrent.rtorrent.values import Value, ValueKind

__all__ = [
    "RTorrentClient",
    "create_client",
    "TorrentClient",
    "MockClient",
    "MethodCall",
    "MethodResponse",
    "SystemInfo",
    "Torrent",
    "TorrentFile",
    "Tracker",
    "Value",
    "ValueKind",
]
