"""RestfulSession: JSON requests and SSE streams over an injected httpx client.

The session holds no per-request state, so one instance can serve any
number of concurrent calls. Pass an ``httpx.AsyncClient`` to share a
connection pool; otherwise the session builds and owns one from
``RestfulConfig``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from restful.config import RestfulConfig
from restful.errors import (
    DecodingError,
    HTTPError,
    HTTPErrorJSON,
    InvalidResponse,
    InvalidResponseFormat,
)
from restful.json_value import JSONObject, loads_object
from restful.sse.parser import SSEParser
from restful.sse.stream import EventStream

from .request_builder import SSE_DEFAULT_HEADERS, RequestDescriptor, build_request

log = structlog.get_logger()


def classify_response(status_code: int, content: bytes) -> JSONObject:
    """Map a status code and body to the decoded object or a typed error.

    Non-2xx: HTTPErrorJSON if the body is a JSON object, else HTTPError
    with the raw bytes. 2xx: the decoded object, DecodingError if the body
    is not JSON at all, InvalidResponseFormat if it is JSON of another shape.
    """
    if not 200 <= status_code <= 299:
        try:
            error_body = loads_object(content)
        except (ValueError, RecursionError, InvalidResponseFormat):
            raise HTTPError(status_code, content) from None
        raise HTTPErrorJSON(status_code, error_body)

    try:
        return loads_object(content)
    except (ValueError, RecursionError) as exc:
        raise DecodingError(exc) from exc


class RestfulSession:
    """Makes REST requests that return JSON objects, and opens SSE streams."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        config: RestfulConfig | None = None,
    ) -> None:
        self.config = config if config is not None else RestfulConfig()
        self._owns_client = http_client is None
        self.http_client = http_client if http_client is not None else self.config.build_client()

    async def request(
        self,
        url: str,
        method: str,
        body: JSONObject | Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> JSONObject:
        """Send a request and return the decoded JSON object response.

        Raises InvalidURL, InvalidBody, InvalidResponse, HTTPError,
        HTTPErrorJSON, DecodingError or InvalidResponseFormat. Connection
        failures and timeouts surface as the underlying httpx exceptions.
        """
        descriptor = RequestDescriptor(url=url, method=method, headers=dict(headers or {}), body=body)
        request = build_request(self.http_client, descriptor)

        log.debug("request_dispatched", method=request.method, url=str(request.url))
        try:
            response = await self.http_client.send(request)
        except httpx.RemoteProtocolError as exc:
            log.error("invalid_response", method=request.method, url=str(request.url), error=str(exc))
            raise InvalidResponse() from exc

        if not response.is_success:
            log.warning(
                "request_failed",
                method=request.method,
                url=str(request.url),
                status=response.status_code,
            )
        return classify_response(response.status_code, response.content)

    def stream(
        self,
        url: str,
        method: str = "GET",
        body: JSONObject | Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        line_terminator: str = "\n",
    ) -> EventStream:
        """Open a lazy stream of Server-Sent Events.

        The request is built and sent when the first event is requested, so
        every error (including InvalidURL) surfaces while iterating. Use it
        as ``async with session.stream(...) as events`` to guarantee the
        connection is released when iteration stops early.
        """
        descriptor = RequestDescriptor(url=url, method=method, headers=dict(headers or {}), body=body)
        parser = SSEParser(line_terminator=line_terminator)

        async def open_response() -> httpx.Response:
            return await self._open_stream(descriptor)

        return EventStream(open_response, parser)

    async def _open_stream(self, descriptor: RequestDescriptor) -> httpx.Response:
        request = build_request(self.http_client, descriptor, default_headers=SSE_DEFAULT_HEADERS)

        log.debug("stream_dispatched", method=request.method, url=str(request.url))
        try:
            response = await self.http_client.send(request, stream=True)
        except httpx.RemoteProtocolError as exc:
            log.error("invalid_response", method=request.method, url=str(request.url), error=str(exc))
            raise InvalidResponse() from exc

        if not response.is_success:
            await response.aclose()
            log.warning(
                "stream_failed",
                method=request.method,
                url=str(request.url),
                status=response.status_code,
            )
            raise HTTPError(response.status_code, b"")

        log.info("stream_opened", method=request.method, url=str(request.url))
        return response

    async def aclose(self) -> None:
        """Close the http client if this session created it."""
        if self._owns_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> RestfulSession:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
