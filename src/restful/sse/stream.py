"""Lazy, one-pass async sequence of Server-Sent Events over an HTTP response.

Nothing is sent until the first event is requested. The response is
owned by the iteration: it is closed when the stream is exhausted, when
an error ends it, or when the consumer calls ``aclose()`` (or leaves the
``async with`` block) before reaching the end.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import httpx
import structlog

from .parser import SSEEvent, SSEParser

log = structlog.get_logger()


class EventStream:
    """Async iterator of SSEEvents read from a single streaming response.

    ``open_response`` is awaited on first use and must return a response
    opened with ``stream=True`` whose status has already been checked.
    """

    def __init__(
        self,
        open_response: Callable[[], Awaitable[httpx.Response]],
        parser: SSEParser,
    ) -> None:
        self._open_response = open_response
        self._parser = parser
        self._events = self._iter_events()
        self.response: httpx.Response | None = None
        self.events_received = 0

    async def _iter_events(self) -> AsyncIterator[SSEEvent]:
        response = await self._open_response()
        self.response = response
        try:
            async for chunk in response.aiter_bytes():
                for event in self._parser.feed(chunk):
                    self.events_received += 1
                    yield event

            final = self._parser.flush()
            if final is not None:
                self.events_received += 1
                yield final
        finally:
            await response.aclose()
            log.debug(
                "stream_closed",
                url=str(response.request.url),
                events_received=self.events_received,
            )

    def __aiter__(self) -> EventStream:
        return self

    async def __anext__(self) -> SSEEvent:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        """Stop the stream and release its connection."""
        await self._events.aclose()

    async def __aenter__(self) -> EventStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
