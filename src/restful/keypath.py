"""Dotted key-path lookup over decoded JSON objects.

``resolve(response, "data.results.0.id")`` walks object keys and array
indices. Any miss along the way yields ``None``; a path that lands on a
JSON null yields the null value itself.
"""

from __future__ import annotations

import re

from .json_value import JSONObject, JSONValue

# Signed on purpose: "-1" must take the index branch and be rejected there.
_INDEX_SEGMENT = re.compile(r"[+-]?[0-9]+")


def split_path(path: str) -> list[str]:
    """Split a key path on dots, dropping empty segments."""
    return [segment for segment in path.split(".") if segment]


def resolve(root: JSONObject | JSONValue, path: str) -> JSONValue | None:
    """Return the value at ``path`` inside ``root``, or None if it does not resolve."""
    if isinstance(root, JSONValue):
        members = root.as_object()
        if members is None:
            return None
        root = members

    segments = split_path(path)
    if not segments:
        return None

    current = root.get(segments[0])
    for segment in segments[1:]:
        if current is None:
            return None

        if _INDEX_SEGMENT.fullmatch(segment):
            items = current.as_array()
            index = int(segment)
            if items is None or not 0 <= index < len(items):
                return None
            current = items[index]
        else:
            members = current.as_object()
            if members is None:
                return None
            current = members.get(segment)

    return current
