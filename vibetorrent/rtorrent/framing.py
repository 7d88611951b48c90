"""SCGI framing for XML-RPC payloads.

Request layout (netstring header block, then the raw body)::

    b"<header-length>:" + b"CONTENT_LENGTH\\0<n>\\0SCGI\\01\\0" + b"," + body

The response side carries no length field: rTorrent writes a CGI-style
status block followed by the XML document and closes. Completion is detected
by the closing ``</methodResponse>`` tag.
"""

from __future__ import annotations

from vibetorrent.utils.exceptions import TransportError

ENVELOPE_START = b"<?xml"
ENVELOPE_ROOT = b"<methodResponse"
ENVELOPE_END = b"</methodResponse>"


def build_headers(content_length: int, extra: dict[str, str] | None = None) -> bytes:
    """Render the null-separated SCGI header block.

    CONTENT_LENGTH must come first and SCGI=1 must be present.
    """
    pairs: list[tuple[str, str]] = [("CONTENT_LENGTH", str(content_length)), ("SCGI", "1")]
    for key, value in (extra or {}).items():
        if key in ("CONTENT_LENGTH", "SCGI"):
            continue
        pairs.append((key, value))
    return b"".join(k.encode("ascii") + b"\x00" + v.encode("utf-8") + b"\x00" for k, v in pairs)


def frame_request(payload: bytes, extra_headers: dict[str, str] | None = None) -> bytes:
    """Wrap an encoded call in an SCGI request."""
    headers = build_headers(len(payload), extra_headers)
    return str(len(headers)).encode("ascii") + b":" + headers + b"," + payload


def parse_request(frame: bytes) -> tuple[dict[str, str], bytes]:
    """Split an SCGI request into its headers and body.

    Raises:
        ValueError: the frame is not a well-formed SCGI request.
    """
    length_text, sep, rest = frame.partition(b":")
    if not sep or not length_text.isdigit():
        raise ValueError("missing SCGI header length prefix")
    header_length = int(length_text)
    if len(rest) < header_length + 1 or rest[header_length:header_length + 1] != b",":
        raise ValueError("SCGI header block is truncated or not terminated by ','")
    block = rest[:header_length]
    fields = block.split(b"\x00")
    if fields[-1] != b"" or len(fields) % 2 != 1:
        raise ValueError("SCGI header block is not a sequence of key/value pairs")
    headers = {
        fields[i].decode("ascii"): fields[i + 1].decode("utf-8")
        for i in range(0, len(fields) - 1, 2)
    }
    if "CONTENT_LENGTH" not in headers or not headers["CONTENT_LENGTH"].isdigit():
        raise ValueError("SCGI CONTENT_LENGTH header missing or invalid")
    content_length = int(headers["CONTENT_LENGTH"])
    body = rest[header_length + 1:header_length + 1 + content_length]
    if len(body) != content_length:
        raise ValueError(f"SCGI body truncated: expected {content_length} bytes, got {len(body)}")
    return headers, body


def response_complete(buffer: bytes | bytearray, search_from: int = 0) -> bool:
    """True once the closing envelope tag has been received.

    ``search_from`` lets a read loop rescan only the new tail; callers pass
    an offset that overlaps the previous chunk by ``len(ENVELOPE_END) - 1``.
    """
    return buffer.find(ENVELOPE_END, max(0, search_from)) != -1


def strip_response(buffer: bytes | bytearray) -> bytes:
    """Drop any status/header bytes that precede the XML document.

    Raises:
        TransportError: the response holds no envelope start at all.
    """
    start = buffer.find(ENVELOPE_START)
    if start == -1:
        start = buffer.find(ENVELOPE_ROOT)
    if start == -1:
        preview = bytes(buffer[:120]).decode("utf-8", errors="replace")
        raise TransportError(f"no XML-RPC envelope in daemon response: {preview!r}", stage="read")
    return bytes(buffer[start:])
