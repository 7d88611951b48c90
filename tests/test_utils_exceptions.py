"""Tests for vibetorrent.utils.exceptions module."""

from __future__ import annotations

import asyncio

import pytest

from vibetorrent.rtorrent.codec import fault_value
from vibetorrent.utils.exceptions import (
    DecodeError,
    ErrorCategory,
    FaultError,
    NotConfiguredError,
    NotFoundError,
    TransportError,
    TransportTimeoutError,
    ValidationError,
    VibeTorrentError,
    classify_exception,
    classify_http_status,
    sanitize_error_message,
)


class TestExceptionClasses:
    """Test custom exception classes."""

    def test_vibetorrent_error_to_dict(self) -> None:
        exc = VibeTorrentError("test message", code="TEST_CODE")
        assert exc.to_dict() == {
            "error": "TEST_CODE",
            "message": "test message",
            "category": ErrorCategory.FATAL.value,
            "details": {},
        }
        assert str(exc) == "[TEST_CODE] test message"

    def test_transport_error_details(self) -> None:
        exc = TransportError("dial error", endpoint="unix:///run/rt.sock", stage="connect")
        assert exc.category is ErrorCategory.TRANSPORT
        assert exc.details == {"endpoint": "unix:///run/rt.sock", "stage": "connect"}

    def test_timeout_is_a_transport_error(self) -> None:
        exc = TransportTimeoutError("read", 2.5, endpoint="tcp://h:1")
        assert isinstance(exc, TransportError)
        assert exc.code == "TIMEOUT"
        assert exc.category is ErrorCategory.TIMEOUT
        assert exc.details["timeout_seconds"] == 2.5
        assert "timed out after 2.5s" in exc.message

    def test_fault_error_reads_struct(self) -> None:
        exc = FaultError("d.start", fault_value(-501, "Could not find info-hash."))
        assert exc.fault_code == -501
        assert exc.fault_string == "Could not find info-hash."
        assert exc.message == "d.start: Could not find info-hash."

    def test_fault_error_tolerates_odd_payloads(self) -> None:
        assert FaultError("m", None).fault_code == 0
        assert FaultError("m", "plain text").fault_string == "plain text"

    def test_decode_error_snippet(self) -> None:
        assert DecodeError("bad", snippet="<xml").details == {"snippet": "<xml"}
        assert DecodeError("bad").details == {}

    def test_not_found_and_validation(self) -> None:
        assert NotFoundError("Torrent", "abc").message == "Torrent not found: abc"
        assert ValidationError("bad path", field="download_path").details == {"field": "download_path"}

    def test_not_configured_carries_last_error(self) -> None:
        assert NotConfiguredError("refused").details == {"last_error": "refused"}
        assert NotConfiguredError().category is ErrorCategory.UNAVAILABLE


class TestSanitize:
    def test_redacts_tokens(self) -> None:
        result = sanitize_error_message("failed with token=abc123 and password: hunter2")
        assert "abc123" not in result
        assert "hunter2" not in result
        assert result.count("[REDACTED]") == 2

    def test_redacts_bearer(self) -> None:
        assert "xyz" not in sanitize_error_message("Authorization: Bearer xyz.abc")

    def test_leaves_plain_messages(self) -> None:
        assert sanitize_error_message("connection refused") == "connection refused"


class TestClassification:
    @pytest.mark.parametrize(
        "exc,expected",
        [
            (NotFoundError("Torrent", "x"), ("NOT_FOUND", ErrorCategory.NOT_FOUND)),
            (asyncio.TimeoutError(), ("TIMEOUT", ErrorCategory.TIMEOUT)),
            (ConnectionRefusedError(), ("CONNECTION_ERROR", ErrorCategory.TRANSPORT)),
            (FileNotFoundError(), ("FILE_NOT_FOUND", ErrorCategory.NOT_FOUND)),
            (KeyError("k"), ("INVALID_VALUE", ErrorCategory.VALIDATION)),
            (RuntimeError("x"), ("INTERNAL_ERROR", ErrorCategory.FATAL)),
        ],
    )
    def test_classify_exception(self, exc, expected) -> None:
        assert classify_exception(exc) == expected

    @pytest.mark.parametrize(
        "exc,status",
        [
            (ValidationError("x"), 400),
            (NotFoundError("Torrent", "x"), 404),
            (TransportTimeoutError("read", 1.0), 504),
            (TransportError("refused"), 502),
            (DecodeError("garbage"), 502),
            (FaultError("d.start", None), 502),
            (NotConfiguredError(), 503),
            (RuntimeError("boom"), 500),
        ],
    )
    def test_classify_http_status(self, exc, status) -> None:
        assert classify_http_status(exc) == status
