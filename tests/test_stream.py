"""Tests for RestfulSession.stream over a mock transport."""

import json

import httpx
import pytest

from restful.client.session import RestfulSession
from restful.errors import HTTPError, InvalidBody, InvalidResponse, InvalidURL
from restful.sse.parser import SSEEvent

URL = "https://api.example.com/events"


class TrackingStream(httpx.AsyncByteStream):
    """Response body that records how far it was read and whether it was closed."""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.chunks_sent = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.chunks_sent += 1
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.closed = True


class Upstream:
    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status = 200
        self.body = TrackingStream([])
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(
            self.status,
            headers={"content-type": "text/event-stream"},
            stream=self.body,
        )


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
async def session(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as http_client:
        yield RestfulSession(http_client=http_client)


async def _collect(events):
    return [event async for event in events]


class TestStreamEvents:
    @pytest.mark.asyncio
    async def test_single_event(self, session, upstream):
        upstream.body = TrackingStream([b"data: hello\n\n"])
        events = await _collect(session.stream(URL))
        assert events == [SSEEvent(data="hello")]
        assert events[0].event is None
        assert upstream.body.closed

    @pytest.mark.asyncio
    async def test_events_split_across_chunks(self, session, upstream):
        upstream.body = TrackingStream([b"event: up", b"date\nid: 1\nda", b"ta: {\"v\": 1}\n", b"\ndata: two\n\n"])
        events = await _collect(session.stream(URL))
        assert events == [
            SSEEvent(data='{"v": 1}', event="update", id="1"),
            SSEEvent(data="two"),
        ]

    @pytest.mark.asyncio
    async def test_trailing_event_at_end_of_stream(self, session, upstream):
        upstream.body = TrackingStream([b"data: first\n\n", b"data: tail"])
        events = await _collect(session.stream(URL))
        assert [e.data for e in events] == ["first", "tail"]

    @pytest.mark.asyncio
    async def test_crlf_line_terminator(self, session, upstream):
        upstream.body = TrackingStream([b"data: line1\r\ndata: line2\r\n\r\n"])
        events = await _collect(session.stream(URL, line_terminator="\r\n"))
        assert events == [SSEEvent(data="line1\nline2")]

    @pytest.mark.asyncio
    async def test_keep_alive_comments_invisible(self, session, upstream):
        upstream.body = TrackingStream([b": ping\n\n", b": ping\n\n", b"data: x\n\n"])
        events = await _collect(session.stream(URL))
        assert events == [SSEEvent(data="x")]

    @pytest.mark.asyncio
    async def test_empty_line_terminator_rejected(self, session):
        with pytest.raises(ValueError):
            session.stream(URL, line_terminator="")


class TestStreamRequest:
    @pytest.mark.asyncio
    async def test_default_headers_injected(self, session, upstream):
        await _collect(session.stream(URL))
        sent = upstream.requests[0]
        assert sent.method == "GET"
        assert sent.headers["accept"] == "text/event-stream"
        assert sent.headers["cache-control"] == "no-cache"

    @pytest.mark.asyncio
    async def test_caller_headers_win(self, session, upstream):
        await _collect(session.stream(URL, headers={"accept": "application/x-ndjson", "X-Api-Key": "k"}))
        sent = upstream.requests[0]
        assert sent.headers.get_list("accept") == ["application/x-ndjson"]
        assert sent.headers["cache-control"] == "no-cache"
        assert sent.headers["x-api-key"] == "k"

    @pytest.mark.asyncio
    async def test_post_with_body(self, session, upstream):
        await _collect(session.stream(URL, "POST", body={"model": "m", "stream": True}))
        sent = upstream.requests[0]
        assert sent.method == "POST"
        assert sent.headers["content-type"] == "application/json"
        assert json.loads(sent.content) == {"model": "m", "stream": True}

    @pytest.mark.asyncio
    async def test_nothing_sent_until_iterated(self, session, upstream):
        upstream.body = TrackingStream([b"data: x\n\n"])
        events = session.stream(URL)
        assert upstream.requests == []
        assert await events.__anext__() == SSEEvent(data="x")
        assert len(upstream.requests) == 1
        await events.aclose()


class TestStreamErrors:
    @pytest.mark.asyncio
    async def test_invalid_url_surfaces_on_iteration(self, session, upstream):
        events = session.stream("http://example.com/path with spaces")
        with pytest.raises(InvalidURL):
            await events.__anext__()
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_invalid_body_surfaces_on_iteration(self, session):
        events = session.stream(URL, "POST", body={"x": float("inf")})
        with pytest.raises(InvalidBody):
            await _collect(events)

    @pytest.mark.asyncio
    async def test_non_2xx_status(self, session, upstream):
        upstream.status = 503
        upstream.body = TrackingStream([b'{"message": "overloaded"}'])
        with pytest.raises(HTTPError) as exc_info:
            await _collect(session.stream(URL))
        assert exc_info.value.status_code == 503
        assert exc_info.value.data == b""
        assert upstream.body.chunks_sent == 0
        assert upstream.body.closed

    @pytest.mark.asyncio
    async def test_malformed_envelope(self, session, upstream):
        upstream.error = httpx.RemoteProtocolError("illegal status line")
        with pytest.raises(InvalidResponse):
            await _collect(session.stream(URL))

    @pytest.mark.asyncio
    async def test_read_failure_mid_stream(self, session, upstream):
        upstream.body = TrackingStream(
            [b"data: delivered\n\n", b"data: partial\n"],
            error=httpx.ReadError("connection reset"),
        )
        received = []
        with pytest.raises(httpx.ReadError):
            async for event in session.stream(URL):
                received.append(event)
        assert received == [SSEEvent(data="delivered")]
        assert upstream.body.closed


class TestStreamLifecycle:
    @pytest.mark.asyncio
    async def test_abandoning_releases_connection(self, session, upstream):
        upstream.body = TrackingStream([b"data: 1\n\n", b"data: 2\n\n", b"data: 3\n\n"])
        async with session.stream(URL) as events:
            async for event in events:
                assert event.data == "1"
                break
        assert upstream.body.closed
        assert upstream.body.chunks_sent == 1

    @pytest.mark.asyncio
    async def test_explicit_aclose(self, session, upstream):
        upstream.body = TrackingStream([b"data: 1\n\n", b"data: 2\n\n"])
        events = session.stream(URL)
        assert (await events.__anext__()).data == "1"
        await events.aclose()
        assert upstream.body.closed
        with pytest.raises(StopAsyncIteration):
            await events.__anext__()

    @pytest.mark.asyncio
    async def test_aclose_before_start_sends_nothing(self, session, upstream):
        events = session.stream(URL)
        await events.aclose()
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_single_pass(self, session, upstream):
        upstream.body = TrackingStream([b"data: only\n\n"])
        events = session.stream(URL)
        assert len(await _collect(events)) == 1
        assert await _collect(events) == []
        assert events.events_received == 1
        assert len(upstream.requests) == 1

    @pytest.mark.asyncio
    async def test_concurrent_streams_are_independent(self, session, upstream):
        upstream.body = TrackingStream([b"data: a\n\n"])
        first = session.stream(URL)
        assert (await first.__anext__()).data == "a"

        upstream.body = TrackingStream([b"data: b\n\n"])
        second = await _collect(session.stream(URL))
        assert second == [SSEEvent(data="b")]

        assert await _collect(first) == []
        await first.aclose()
