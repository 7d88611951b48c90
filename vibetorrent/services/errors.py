"""Shared service-layer error types."""

from __future__ import annotations


class ServiceError(Exception):
    """Request-level error raised by the service helpers.

    ``code`` is one of ``INVALID_REQUEST``, ``NOT_FOUND``,
    ``CONNECTION_FAILED`` or ``SAVE_FAILED``; the HTTP helpers map it to a
    status code.
    """

    def __init__(self, *, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"
