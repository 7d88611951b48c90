"""Typed XML-RPC values.

XML-RPC is loosely typed: rTorrent answers with ``i4``, ``i8`` or ``int`` for
the same logical integer and does not promise uniform arrays. ``Value`` keeps
the exact wire kind (so encoding is lossless) while the ``as_*`` projections
degrade to a zero default instead of raising, which keeps partial or odd
daemon responses from crashing callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping


class ValueKind(str, Enum):
    """Wire type tag of a value."""

    STRING = "string"
    INT = "int"
    I4 = "i4"
    I8 = "i8"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    BASE64 = "base64"
    ARRAY = "array"
    STRUCT = "struct"


INTEGER_KINDS = frozenset({ValueKind.INT, ValueKind.I4, ValueKind.I8})


@dataclass(frozen=True, slots=True)
class Value:
    """One XML-RPC value: a wire kind plus its payload."""

    kind: ValueKind
    data: Any

    @classmethod
    def string(cls, text: str) -> "Value":
        return cls(ValueKind.STRING, str(text))

    @classmethod
    def integer(cls, number: int) -> "Value":
        return cls(ValueKind.INT, int(number))

    @classmethod
    def i4(cls, number: int) -> "Value":
        return cls(ValueKind.I4, int(number))

    @classmethod
    def i8(cls, number: int) -> "Value":
        return cls(ValueKind.I8, int(number))

    @classmethod
    def double(cls, number: float) -> "Value":
        return cls(ValueKind.DOUBLE, float(number))

    @classmethod
    def boolean(cls, flag: bool) -> "Value":
        return cls(ValueKind.BOOLEAN, bool(flag))

    @classmethod
    def base64(cls, blob: bytes) -> "Value":
        return cls(ValueKind.BASE64, bytes(blob))

    @classmethod
    def array(cls, items: Iterable["Value"]) -> "Value":
        return cls(ValueKind.ARRAY, tuple(items))

    @classmethod
    def struct(cls, members: Mapping[str, "Value"]) -> "Value":
        # Stored as pairs so the value stays hashable and keeps member order.
        return cls(ValueKind.STRUCT, tuple((str(k), v) for k, v in members.items()))

    @classmethod
    def from_python(cls, obj: Any) -> "Value":
        """Wrap a plain Python object, picking the natural wire kind."""
        if isinstance(obj, Value):
            return obj
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, int):
            return cls.i4(obj) if -(2**31) <= obj < 2**31 else cls.i8(obj)
        if isinstance(obj, float):
            return cls.double(obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls.base64(bytes(obj))
        if isinstance(obj, Mapping):
            return cls.struct({str(k): cls.from_python(v) for k, v in obj.items()})
        if isinstance(obj, (list, tuple)):
            return cls.array(cls.from_python(item) for item in obj)
        if obj is None:
            return cls.string("")
        return cls.string(str(obj))

    @property
    def is_integer(self) -> bool:
        return self.kind in INTEGER_KINDS

    def as_long(self) -> int:
        if self.kind in INTEGER_KINDS:
            return self.data
        if self.kind is ValueKind.BOOLEAN:
            return int(self.data)
        return 0

    def as_string(self) -> str:
        return self.data if self.kind is ValueKind.STRING else ""

    def as_float(self) -> float:
        if self.kind is ValueKind.DOUBLE:
            return self.data
        if self.kind in INTEGER_KINDS:
            return float(self.data)
        return 0.0

    def as_bool(self) -> bool:
        if self.kind is ValueKind.BOOLEAN:
            return self.data
        if self.kind in INTEGER_KINDS:
            return self.data != 0
        return False

    def as_bytes(self) -> bytes:
        return self.data if self.kind is ValueKind.BASE64 else b""

    def as_array(self) -> tuple["Value", ...]:
        return self.data if self.kind is ValueKind.ARRAY else ()

    def as_struct(self) -> dict[str, "Value"]:
        return dict(self.data) if self.kind is ValueKind.STRUCT else {}

    def to_python(self) -> Any:
        """Recursively unwrap into plain Python objects."""
        if self.kind is ValueKind.ARRAY:
            return [item.to_python() for item in self.data]
        if self.kind is ValueKind.STRUCT:
            return {name: member.to_python() for name, member in self.data}
        return self.data

    def __repr__(self) -> str:
        return f"Value({self.kind.value}, {self.data!r})"
