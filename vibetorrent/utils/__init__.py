"""Utility functions for vibetorrent."""

from vibetorrent.utils.exceptions import (
    VibeTorrentError,
    TransportError,
    TransportTimeoutError,
    DecodeError,
    FaultError,
    NotFoundError,
    ValidationError,
    NotConfiguredError,
    ErrorCategory,
    classify_exception,
    classify_http_status,
    sanitize_error_message,
)

__all__ = [
    "VibeTorrentError",
    "TransportError",
    "TransportTimeoutError",
    "DecodeError",
    "FaultError",
    "NotFoundError",
    "ValidationError",
    "NotConfiguredError",
    "ErrorCategory",
    "classify_exception",
    "classify_http_status",
    "sanitize_error_message",
]
