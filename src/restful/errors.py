"""Errors raised by RestfulSession requests and streams.

Every failure a caller can branch on is its own subclass of
``RestfulError`` carrying the relevant payload as attributes. Transport
failures that are not about the response itself (connection refused,
timeouts) are left to surface as the underlying ``httpx`` exceptions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from restful.json_value import JSONObject


class RestfulError(Exception):
    """Base class for every error raised by this package."""


class InvalidURL(RestfulError):
    """Raised when a URL string is not a well-formed absolute URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Invalid URL: {url}")


class InvalidBody(RestfulError):
    """Raised when a request body cannot be serialized to JSON."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Invalid request body: {cause}")


class InvalidResponse(RestfulError):
    """Raised when the transport did not produce a well-formed HTTP response."""

    def __init__(self) -> None:
        super().__init__("Invalid HTTP response")


class InvalidResponseFormat(RestfulError):
    """Raised when a response body is valid JSON but not a JSON object."""

    def __init__(self) -> None:
        super().__init__("Response is not a valid JSON object")


class ResponseStatusError(RestfulError):
    """Base for responses whose status code is outside 200-299."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP error with status code: {status_code}")


class HTTPError(ResponseStatusError):
    """Non-2xx response whose body is not a JSON object. ``data`` is the raw body."""

    def __init__(self, status_code: int, data: bytes) -> None:
        self.data = data
        super().__init__(status_code)


class HTTPErrorJSON(ResponseStatusError):
    """Non-2xx response whose body decoded to a JSON object."""

    def __init__(self, status_code: int, data: JSONObject) -> None:
        self.data = data
        super().__init__(status_code)


class DecodingError(RestfulError):
    """Raised when a successful response body is not valid JSON."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Failed to decode response: {cause}")
