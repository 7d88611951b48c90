"""
Exception hierarchy and error handling utilities for vibetorrent.

Provides:
- Custom exception classes with error codes
- Error categorization (transport, protocol, fault, validation, ...)
- Safe error message formatting (no sensitive data leak)
"""

from __future__ import annotations

import asyncio
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"
    FAULT = "fault"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    FATAL = "fatal"


class VibeTorrentError(Exception):
    """Base exception for all vibetorrent errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class TransportError(VibeTorrentError):
    """The daemon could not be reached, written to, or read from."""

    def __init__(self, message: str, *, endpoint: str | None = None, stage: str | None = None):
        details: dict[str, Any] = {}
        if endpoint:
            details["endpoint"] = endpoint
        if stage:
            details["stage"] = stage
        super().__init__(message, code="TRANSPORT_ERROR", category=ErrorCategory.TRANSPORT, details=details)


class TransportTimeoutError(TransportError):
    """Connecting to or reading from the daemon took longer than allowed."""

    def __init__(self, operation: str, timeout_seconds: float, *, endpoint: str | None = None):
        super().__init__(
            f"Operation '{operation}' timed out after {timeout_seconds}s",
            endpoint=endpoint,
            stage=operation,
        )
        self.code = "TIMEOUT"
        self.category = ErrorCategory.TIMEOUT
        self.details["timeout_seconds"] = timeout_seconds


class DecodeError(VibeTorrentError):
    """The daemon answered, but the bytes are not a readable XML-RPC envelope."""

    def __init__(self, message: str, *, snippet: str | None = None):
        details = {"snippet": snippet} if snippet else {}
        super().__init__(message, code="DECODE_ERROR", category=ErrorCategory.PROTOCOL, details=details)


class FaultError(VibeTorrentError):
    """The daemon rejected a call with an XML-RPC fault."""

    def __init__(self, method: str, fault: Any):
        self.method = method
        self.fault = fault
        self.fault_code, self.fault_string = _fault_fields(fault)
        message = self.fault_string or "daemon returned a fault"
        super().__init__(
            f"{method}: {message}",
            code="RPC_FAULT",
            category=ErrorCategory.FAULT,
            details={"method": method, "fault_code": self.fault_code, "fault_string": self.fault_string},
        )


class NotFoundError(VibeTorrentError):
    """Resource not found error."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            code="NOT_FOUND",
            category=ErrorCategory.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ValidationError(VibeTorrentError):
    """Input validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", category=ErrorCategory.VALIDATION, details=details)


class NotConfiguredError(VibeTorrentError):
    """No working daemon connection has been configured yet."""

    def __init__(self, last_error: str | None = None):
        details = {"last_error": last_error} if last_error else {}
        super().__init__(
            "rTorrent connection is not configured",
            code="NOT_CONFIGURED",
            category=ErrorCategory.UNAVAILABLE,
            details=details,
        )


def _fault_fields(fault: Any) -> tuple[int, str]:
    """Pull faultCode/faultString out of a fault Value, tolerating odd payloads."""
    as_struct = getattr(fault, "as_struct", None)
    if as_struct is None:
        return 0, str(fault or "")
    members = as_struct()
    if members:
        code = members.get("faultCode")
        text = members.get("faultString")
        return (
            code.as_long() if code is not None else 0,
            text.as_string() if text is not None else "",
        )
    return 0, fault.as_string()


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: Exception) -> tuple[str, ErrorCategory]:
    """
    Classify an exception and return (error_code, category).

    vibetorrent errors carry their own classification; a few builtin
    exceptions that leak out of handlers are mapped by type.
    """
    if isinstance(exc, VibeTorrentError):
        return exc.code, exc.category

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "TIMEOUT", ErrorCategory.TIMEOUT

    if isinstance(exc, ConnectionError):
        return "CONNECTION_ERROR", ErrorCategory.TRANSPORT

    if isinstance(exc, FileNotFoundError):
        return "FILE_NOT_FOUND", ErrorCategory.NOT_FOUND

    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION

    return "INTERNAL_ERROR", ErrorCategory.FATAL


_CATEGORY_TO_STATUS = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.TIMEOUT: 504,
    ErrorCategory.TRANSPORT: 502,
    ErrorCategory.PROTOCOL: 502,
    ErrorCategory.FAULT: 502,
    ErrorCategory.UNAVAILABLE: 503,
    ErrorCategory.FATAL: 500,
}


def classify_http_status(exc: Exception) -> int:
    """Map exception to appropriate HTTP status code."""
    _, category = classify_exception(exc)
    return _CATEGORY_TO_STATUS.get(category, 500)
