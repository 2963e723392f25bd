"""Low-level SSE line protocol parser.

Reassembles Server-Sent Events from raw byte chunks. Lines are framed on
a configurable terminator (``"\\n"`` by default, ``"\\r\\n"`` for servers
that use it) and decoded as UTF-8 one complete line at a time, so
multi-byte characters split across chunks survive.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_RETRY_VALUE = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class SSEEvent:
    """A single Server-Sent Event."""

    data: str
    event: str | None = None
    id: str | None = None
    retry: int | None = None

    def to_bytes(self, line_terminator: str = "\n") -> bytes:
        """Serialize back to SSE wire format."""
        lines: list[str] = []
        if self.event is not None:
            lines.append(f"event: {self.event}")
        for data_line in self.data.split("\n"):
            lines.append(f"data: {data_line}")
        if self.id is not None:
            lines.append(f"id: {self.id}")
        if self.retry is not None:
            lines.append(f"retry: {self.retry}")
        lines.append("")  # blank line terminates event
        return (line_terminator.join(lines) + line_terminator).encode()


@dataclass
class SSEParser:
    """Incremental SSE parser that turns byte chunks into events.

    ``feed`` returns the events completed by each chunk; ``flush`` must be
    called once the byte source is exhausted to process a trailing line
    and emit any event the server did not terminate with a blank line.
    """

    line_terminator: str = "\n"
    _buffer: bytearray = field(default_factory=bytearray, init=False, repr=False)
    _data: str = field(default="", init=False, repr=False)
    _event: str | None = field(default=None, init=False, repr=False)
    _id: str | None = field(default=None, init=False, repr=False)
    _retry: int | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.line_terminator:
            raise ValueError("line_terminator must not be empty")
        self._terminator = self.line_terminator.encode()

    def feed(self, chunk: bytes | str) -> list[SSEEvent]:
        """Feed a chunk of the stream, return any complete events."""
        if isinstance(chunk, str):
            chunk = chunk.encode()

        # A terminator can straddle the previous chunk boundary.
        search_from = max(0, len(self._buffer) - len(self._terminator) + 1)
        self._buffer += chunk
        events: list[SSEEvent] = []

        while True:
            end = self._buffer.find(self._terminator, search_from)
            if end < 0:
                break
            line = bytes(self._buffer[:end])
            del self._buffer[: end + len(self._terminator)]
            search_from = 0

            event = self._process_line(line)
            if event is not None:
                events.append(event)

        return events

    def flush(self) -> SSEEvent | None:
        """Finish the stream, returning the last unterminated event if any."""
        if self._buffer:
            line = bytes(self._buffer)
            self._buffer.clear()
            event = self._process_line(line)
            if event is not None:
                return event
        return self._dispatch()

    def _process_line(self, raw: bytes) -> SSEEvent | None:
        line = raw.rstrip(b"\r\n").decode("utf-8", errors="replace")

        if not line:
            # Blank line = event dispatch
            return self._dispatch()

        if line.startswith(":"):
            # Comment, ignore
            return None

        if ":" not in line:
            return None

        field_name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field_name == "data":
            if self._data:
                self._data += "\n" + value
            else:
                self._data = value
        elif field_name == "event":
            self._event = value
        elif field_name == "id":
            self._id = value
        elif field_name == "retry":
            if _RETRY_VALUE.fullmatch(value):
                self._retry = int(value)
        return None

    def _dispatch(self) -> SSEEvent | None:
        if not self._data:
            return None
        event = SSEEvent(data=self._data, event=self._event, id=self._id, retry=self._retry)
        self._data = ""
        self._event = None
        self._id = None
        self._retry = None
        return event
