"""XML-RPC envelope encoding and decoding.

Requests are rendered with exactly one type tag per value. Responses are
located inside whatever bytes the transport hands over (leading SCGI/HTTP
status lines are skipped), then parsed with ElementTree. A ``<fault>`` always
wins over ``<params>``.
"""

from __future__ import annotations

import base64
import binascii
import math
import re
import xml.etree.ElementTree as ET

from vibetorrent.utils.exceptions import DecodeError, ValidationError

from .protocol import MethodCall, MethodResponse
from .values import Value, ValueKind

XML_DECLARATION = b'<?xml version="1.0"?>\n'
_SNIPPET_BYTES = 200

# Code points XML 1.0 cannot carry, escaped or not.
_XML_ILLEGAL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def encode_call(call: MethodCall) -> bytes:
    """Render a call as a complete ``methodCall`` document."""
    root = ET.Element("methodCall")
    ET.SubElement(root, "methodName").text = _xml_text(call.method, "method")
    params = ET.SubElement(root, "params")
    for value in call.params:
        ET.SubElement(params, "param").append(_value_element(value))
    return _serialize(root)


def encode_response(params: tuple[Value, ...] | list[Value] = (), fault: Value | None = None) -> bytes:
    """Render a ``methodResponse`` document (the daemon side of the exchange)."""
    root = ET.Element("methodResponse")
    if fault is not None:
        ET.SubElement(root, "fault").append(_value_element(fault))
    else:
        container = ET.SubElement(root, "params")
        for value in params:
            ET.SubElement(container, "param").append(_value_element(value))
    return _serialize(root)


def fault_value(code: int, message: str) -> Value:
    """Standard fault payload: a struct with faultCode and faultString."""
    return Value.struct({"faultCode": Value.i4(code), "faultString": Value.string(message)})


def decode_response(raw: bytes | str) -> MethodResponse:
    """Parse a ``methodResponse`` envelope.

    Raises:
        DecodeError: no envelope in the input, malformed XML, or an
            unsupported/malformed value.
    """
    root = _parse_envelope(raw, "methodResponse")
    fault = root.find("fault")
    if fault is not None:
        value_el = fault.find("value")
        if value_el is None:
            raise DecodeError("fault element without a value")
        return MethodResponse(fault=_decode_value(value_el))
    params_el = root.find("params")
    if params_el is None:
        return MethodResponse()
    return MethodResponse(params=_decode_params(params_el))


def decode_call(raw: bytes | str) -> MethodCall:
    """Parse a ``methodCall`` envelope."""
    root = _parse_envelope(raw, "methodCall")
    method = (root.findtext("methodName") or "").strip()
    if not method:
        raise DecodeError("methodCall without a methodName")
    params_el = root.find("params")
    params = _decode_params(params_el) if params_el is not None else ()
    return MethodCall(method=method, params=params)


def _serialize(root: ET.Element) -> bytes:
    body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
    return XML_DECLARATION + body.encode("utf-8")


def _value_element(value: Value) -> ET.Element:
    wrapper = ET.Element("value")
    kind = value.kind
    if kind is ValueKind.ARRAY:
        data = ET.SubElement(ET.SubElement(wrapper, "array"), "data")
        for item in value.data:
            data.append(_value_element(item))
    elif kind is ValueKind.STRUCT:
        struct = ET.SubElement(wrapper, "struct")
        for name, member_value in value.data:
            member = ET.SubElement(struct, "member")
            ET.SubElement(member, "name").text = _xml_text(name, "member name")
            member.append(_value_element(member_value))
    else:
        ET.SubElement(wrapper, kind.value).text = _scalar_text(value)
    return wrapper


def _scalar_text(value: Value) -> str:
    if value.kind is ValueKind.BOOLEAN:
        return "1" if value.data else "0"
    if value.kind is ValueKind.BASE64:
        return base64.b64encode(value.data).decode("ascii")
    if value.kind is ValueKind.DOUBLE:
        if not math.isfinite(value.data):
            raise ValidationError(f"XML-RPC cannot encode double {value.data!r}", field="double")
        return repr(value.data)
    if value.kind is ValueKind.STRING:
        return _xml_text(value.data, "string")
    return str(value.data)


def _xml_text(text: str, what: str) -> str:
    """Refuse text that would make the document not well-formed."""
    bad = _XML_ILLEGAL.search(text)
    if bad:
        raise ValidationError(
            f"{what} contains U+{ord(bad.group()):04X}, which XML-RPC cannot carry",
            field=what,
        )
    return text


def _snippet(data: bytes) -> str:
    return data[:_SNIPPET_BYTES].decode("utf-8", errors="replace")


def _parse_envelope(raw: bytes | str, root_tag: str) -> ET.Element:
    data = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
    start = data.find(b"<?xml")
    if start == -1:
        start = data.find(f"<{root_tag}".encode("ascii"))
    if start == -1:
        raise DecodeError(f"no {root_tag} envelope in response", snippet=_snippet(data))
    closing = f"</{root_tag}>".encode("ascii")
    end = data.rfind(closing)
    document = data[start:end + len(closing)] if end > start else data[start:]
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise DecodeError(f"malformed {root_tag} envelope: {exc}", snippet=_snippet(document)) from exc
    if root.tag != root_tag:
        raise DecodeError(f"expected <{root_tag}>, got <{root.tag}>", snippet=_snippet(document))
    return root


def _decode_params(params_el: ET.Element) -> tuple[Value, ...]:
    values: list[Value] = []
    for param in params_el.findall("param"):
        value_el = param.find("value")
        if value_el is None:
            raise DecodeError("param element without a value")
        values.append(_decode_value(value_el))
    return tuple(values)


def _decode_value(value_el: ET.Element) -> Value:
    children = list(value_el)
    if not children:
        # XML-RPC: a bare <value>text</value> is a string.
        return Value.string(value_el.text or "")
    typed = children[0]
    tag = typed.tag
    text = typed.text or ""
    if tag == "string":
        return Value.string(text)
    if tag in ("int", "i4", "i8"):
        try:
            number = int(text.strip())
        except ValueError as exc:
            raise DecodeError(f"invalid <{tag}> value: {text!r}") from exc
        return Value(ValueKind(tag), number)
    if tag == "double":
        try:
            return Value.double(float(text.strip()))
        except ValueError as exc:
            raise DecodeError(f"invalid <double> value: {text!r}") from exc
    if tag == "boolean":
        flag = text.strip().lower()
        if flag not in ("0", "1", "true", "false"):
            raise DecodeError(f"invalid <boolean> value: {text!r}")
        return Value.boolean(flag in ("1", "true"))
    if tag == "base64":
        try:
            return Value.base64(base64.b64decode("".join(text.split())))
        except (binascii.Error, ValueError) as exc:
            raise DecodeError("invalid <base64> value") from exc
    if tag == "array":
        data = typed.find("data")
        if data is None:
            return Value.array(())
        return Value.array(_decode_value(item) for item in data.findall("value"))
    if tag == "struct":
        members: dict[str, Value] = {}
        for member in typed.findall("member"):
            name = member.findtext("name") or ""
            member_value = member.find("value")
            if member_value is None:
                raise DecodeError(f"struct member {name!r} without a value")
            members[name] = _decode_value(member_value)
        return Value.struct(members)
    if tag == "nil":
        return Value.string("")
    raise DecodeError(f"unsupported value type <{tag}>")
