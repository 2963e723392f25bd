"""Tagged JSON value model and its wire codec.

``JSONValue`` is a closed union over the JSON variants. Integral and
floating numbers are kept as separate kinds so a decoded ``1`` stays an
integer and ``1.0`` stays a float when written back out.
"""

from __future__ import annotations

import enum
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import InvalidResponseFormat


class ValueKind(enum.Enum):
    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class JSONValue:
    """A single JSON value.

    ``value`` holds the payload for the variant named by ``kind``:
    ``None``, ``bool``, ``int``, ``float``, ``str``, a tuple of
    ``JSONValue`` or a ``dict[str, JSONValue]``. Build instances through
    the named constructors or ``from_python`` rather than directly.

    Instances are immutable but not hashable, since object payloads are
    dicts.
    """

    kind: ValueKind
    value: Any = None

    __hash__ = None  # type: ignore[assignment]

    # -- construction --

    @classmethod
    def null(cls) -> JSONValue:
        return _NULL

    @classmethod
    def boolean(cls, value: bool) -> JSONValue:
        return cls(ValueKind.BOOL, bool(value))

    @classmethod
    def number(cls, value: int | float) -> JSONValue:
        if isinstance(value, bool):
            raise TypeError("bool is not a JSON number")
        if isinstance(value, int):
            return cls(ValueKind.INT, int(value))
        if isinstance(value, float):
            return cls(ValueKind.FLOAT, value)
        raise TypeError(f"{type(value).__name__} is not a JSON number")

    @classmethod
    def string(cls, value: str) -> JSONValue:
        if not isinstance(value, str):
            raise TypeError(f"{type(value).__name__} is not a JSON string")
        return cls(ValueKind.STRING, value)

    @classmethod
    def array(cls, items: Any) -> JSONValue:
        return cls(ValueKind.ARRAY, tuple(cls.from_python(item) for item in items))

    @classmethod
    def object(cls, members: Mapping[str, Any]) -> JSONValue:
        converted: dict[str, JSONValue] = {}
        for key, member in members.items():
            if not isinstance(key, str):
                raise TypeError(f"JSON object keys must be str, not {type(key).__name__}")
            converted[key] = cls.from_python(member)
        return cls(ValueKind.OBJECT, converted)

    @classmethod
    def from_python(cls, obj: Any) -> JSONValue:
        """Convert a literal Python structure into a JSONValue, recursively.

        Existing JSONValue instances are returned unchanged, so mappings may
        mix plain literals and already-built values.
        """
        if isinstance(obj, JSONValue):
            return obj
        if obj is None:
            return _NULL
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, (int, float)):
            return cls.number(obj)
        if isinstance(obj, str):
            return cls.string(obj)
        if isinstance(obj, Mapping):
            return cls.object(obj)
        if isinstance(obj, (list, tuple)):
            return cls.array(obj)
        raise TypeError(f"Cannot convert {type(obj).__name__} to a JSON value")

    # -- accessors --

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def as_bool(self) -> bool | None:
        return self.value if self.kind is ValueKind.BOOL else None

    def as_string(self) -> str | None:
        return self.value if self.kind is ValueKind.STRING else None

    def as_int(self) -> int | None:
        return self.value if self.kind is ValueKind.INT else None

    def as_float(self) -> float | None:
        """Return the number as a float; integers widen, other kinds give None.

        An integer too large for a float also gives None.
        """
        if self.kind is ValueKind.FLOAT:
            return self.value
        if self.kind is ValueKind.INT:
            try:
                return float(self.value)
            except OverflowError:
                return None
        return None

    def as_array(self) -> tuple[JSONValue, ...] | None:
        return self.value if self.kind is ValueKind.ARRAY else None

    def as_object(self) -> dict[str, JSONValue] | None:
        return self.value if self.kind is ValueKind.OBJECT else None

    def to_python(self) -> Any:
        """Convert back to plain Python containers and scalars."""
        if self.kind is ValueKind.ARRAY:
            return [item.to_python() for item in self.value]
        if self.kind is ValueKind.OBJECT:
            return {key: member.to_python() for key, member in self.value.items()}
        return self.value


_NULL = JSONValue(ValueKind.NULL)

JSONObject = dict[str, JSONValue]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def dumps(obj: Any) -> bytes:
    """Serialize a JSONValue (or literal structure) to compact UTF-8 JSON bytes.

    Raises TypeError for values outside the model and ValueError for NaN or
    infinite numbers.
    """
    value = JSONValue.from_python(obj)
    return json.dumps(
        value.to_python(),
        allow_nan=False,
        ensure_ascii=False,
        separators=(",", ":"),
    ).encode("utf-8")


def loads(raw: bytes | str) -> JSONValue:
    """Parse JSON text into a JSONValue.

    Raises ``json.JSONDecodeError`` on malformed input and
    ``UnicodeDecodeError`` on bytes that are not valid UTF-8. Both are
    ``ValueError`` subclasses.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8")
    return JSONValue.from_python(json.loads(raw, parse_constant=_reject_constant))


def loads_object(raw: bytes | str) -> JSONObject:
    """Parse JSON text that must be an object at the top level."""
    members = loads(raw).as_object()
    if members is None:
        raise InvalidResponseFormat()
    return members
