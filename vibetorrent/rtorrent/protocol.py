"""XML-RPC call and response frames exchanged with rTorrent."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .values import Value


@dataclass(frozen=True, slots=True)
class MethodCall:
    """A method name plus its ordered arguments."""

    method: str
    params: tuple[Value, ...] = ()

    @classmethod
    def build(cls, method: str, *args: Any) -> "MethodCall":
        """Build a call, wrapping plain Python arguments into Values."""
        return cls(method=method, params=tuple(Value.from_python(arg) for arg in args))


@dataclass(frozen=True, slots=True)
class MethodResponse:
    """Decoded response: either result params or a fault, never both."""

    params: tuple[Value, ...] = ()
    fault: Value | None = None

    def __post_init__(self) -> None:
        if self.fault is not None and self.params:
            raise ValueError("a response carries either params or a fault")

    @property
    def is_fault(self) -> bool:
        return self.fault is not None

    def first(self) -> Value | None:
        """First result param, or None for an empty success."""
        return self.params[0] if self.params else None
