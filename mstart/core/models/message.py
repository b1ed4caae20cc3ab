from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Awaitable, Callable

from mstart.core.errors import BadDataType

INT32_MIN, INT32_MAX = -(1 << 31), (1 << 31) - 1
INT64_MIN, INT64_MAX = -(1 << 63), (1 << 63) - 1


class ArgType(StrEnum):
    """
    OSC type tags understood by the link.

    The first five are the types the typed senders produce; the others can
    only show up in decoded messages or in explicitly built arguments.
    An impulse carries no data, its decoded value is None.
    """
    int32 = "i"
    int64 = "h"
    float = "f"
    double = "d"
    string = "s"
    blob = "b"
    true = "T"
    false = "F"
    nil = "N"
    timetag = "t"
    midi = "m"
    rgba = "r"
    impulse = "I"
    array = "["


@dataclass(frozen=True)
class Argument:
    """A single OSC argument: its type tag and its Python value."""
    tag: ArgType
    value: Any

    @classmethod
    def int32(cls, value: int) -> "Argument":
        if not INT32_MIN <= value <= INT32_MAX:
            raise ValueError(f"{value} does not fit in a 32 bits integer")
        return cls(ArgType.int32, int(value))

    @classmethod
    def int64(cls, value: int) -> "Argument":
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValueError(f"{value} does not fit in a 64 bits integer")
        return cls(ArgType.int64, int(value))

    @classmethod
    def double(cls, value: float) -> "Argument":
        return cls(ArgType.double, float(value))

    @classmethod
    def string(cls, value: str) -> "Argument":
        return cls(ArgType.string, str(value))

    @classmethod
    def infer(cls, value: Any) -> "Argument":
        """
        Pick a type tag for a plain Python value.

        Integers become int32 when they fit and int64 otherwise, floats are
        sent as 32 bits floats, which is what OSC peers expect by default.
        """
        if isinstance(value, Argument):
            return value
        if isinstance(value, bool):
            return cls(ArgType.true if value else ArgType.false, value)
        if isinstance(value, int):
            if INT32_MIN <= value <= INT32_MAX:
                return cls.int32(value)
            return cls.int64(value)
        if isinstance(value, float):
            return cls(ArgType.float, value)
        if isinstance(value, str):
            return cls.string(value)
        if isinstance(value, (bytes, bytearray)):
            return cls(ArgType.blob, bytes(value))
        if value is None:
            return cls(ArgType.nil, None)
        raise ValueError(f"Unsupported OSC argument: {value!r}")

    # Declared last so the builtin stays in scope for the annotations above.
    @classmethod
    def float(cls, value: float) -> "Argument":
        return cls(ArgType.float, float(value))


@dataclass(frozen=True)
class Message:
    """
    A decoded OSC message.

    The link itself only looks at the address (for diagnostics); the typed
    accessors are meant for the observer, and raise BadDataType when the
    argument at `index` was not sent with the requested type.
    """
    address: str
    """OSC address pattern, e.g. "/client-send/temperature"."""

    arguments: tuple[Argument, ...] = field(default_factory=tuple)
    """Ordered arguments, as found in the type tag string."""

    @property
    def values(self) -> list[Any]:
        return [arg.value for arg in self.arguments]

    def argument(self, index: int) -> Argument:
        if not 0 <= index < len(self.arguments):
            raise BadDataType(
                f"{self.address} has no argument at index {index} "
                f"({len(self.arguments)} argument(s))"
            )
        return self.arguments[index]

    def int32(self, index: int = 0) -> int:
        return self._typed(index, ArgType.int32)

    def int64(self, index: int = 0) -> int:
        return self._typed(index, ArgType.int64)

    def double(self, index: int = 0):
        return self._typed(index, ArgType.double)

    def string(self, index: int = 0) -> str:
        return self._typed(index, ArgType.string)

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "arguments": [
                {"tag": arg.tag.value, "value": arg.value}
                for arg in self.arguments
            ],
        }

    def _typed(self, index: int, tag: ArgType) -> Any:
        arg = self.argument(index)
        if arg.tag is not tag:
            raise BadDataType(
                f"Argument {index} of {self.address} is {arg.tag.name}, "
                f"not {tag.name}"
            )
        return arg.value

    # Declared last so the builtin stays in scope for the annotations above.
    def float(self, index: int = 0):
        return self._typed(index, ArgType.float)


MessageSink = Callable[[Message], Awaitable[None]]
"""
Coroutine receiving every message decoded by the read loop.
"""
