"""Assemble outgoing httpx requests from a method, URL, headers and JSON body.

Validation happens in a fixed order: the URL first, then the body, so a
caller always sees the earliest problem with its input.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx
import structlog

from restful import json_value
from restful.errors import InvalidBody, InvalidURL
from restful.json_value import JSONObject

log = structlog.get_logger()

CONTENT_TYPE_JSON = "application/json"

# Injected on streaming requests unless the caller supplied them.
SSE_DEFAULT_HEADERS = {
    "Accept": "text/event-stream",
    "Cache-Control": "no-cache",
}

_UNSAFE_URL_CHARS = re.compile(r"[\s\x00-\x1f\x7f]")


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything needed to build one request. Built per call, never reused."""

    url: str
    method: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: JSONObject | None = None


def validate_url(url: str) -> httpx.URL:
    """Parse an absolute URL, raising InvalidURL if it is not well-formed."""
    if not url or _UNSAFE_URL_CHARS.search(url):
        raise InvalidURL(url)
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, ValueError) as exc:
        raise InvalidURL(url) from exc
    if not parsed.scheme or not parsed.host:
        raise InvalidURL(url)
    return parsed


def encode_body(body: JSONObject) -> bytes:
    """Serialize a request body to JSON bytes, raising InvalidBody on failure."""
    try:
        return json_value.dumps(body)
    except (TypeError, ValueError, RecursionError) as exc:
        log.debug("request_body_rejected", error=str(exc))
        raise InvalidBody(exc) from exc


def merge_headers(
    supplied: Mapping[str, str] | None,
    defaults: Mapping[str, str] | None = None,
) -> httpx.Headers:
    """Layer supplied headers over defaults. Later keys win, case-insensitively."""
    headers = httpx.Headers()
    for source in (defaults, supplied):
        for key, value in (source or {}).items():
            headers[key] = value
    return headers


def build_request(
    client: httpx.AsyncClient,
    descriptor: RequestDescriptor,
    default_headers: Mapping[str, str] | None = None,
) -> httpx.Request:
    """Build an httpx request for ``descriptor`` on ``client``.

    A body gets ``Content-Type: application/json`` unless one was supplied.
    ``default_headers`` apply only where the caller did not set the header.
    """
    url = validate_url(descriptor.url)

    content: bytes | None = None
    if descriptor.body is not None:
        content = encode_body(descriptor.body)

    headers = merge_headers(descriptor.headers, default_headers)
    if content is not None and "content-type" not in headers:
        headers["Content-Type"] = CONTENT_TYPE_JSON

    return client.build_request(descriptor.method, url, headers=headers, content=content)
