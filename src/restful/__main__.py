"""Entry point: uv run -m restful GET https://api.example.com/users"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys

import httpx

from .client.session import RestfulSession
from .config import RestfulConfig
from .errors import HTTPError, HTTPErrorJSON, RestfulError
from .json_value import JSONObject, JSONValue, loads
from .keypath import resolve
from .logging_config import setup_logging

_LINE_TERMINATORS = {"lf": "\n", "crlf": "\r\n"}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="restful", description="JSON REST requests and SSE streams")
    parser.add_argument("method", help="HTTP method (GET, POST, PUT, DELETE, PATCH, ...)")
    parser.add_argument("url", help="Absolute request URL")
    parser.add_argument(
        "-H", "--header", action="append", default=[],
        help='Request header as "Name: value" (repeatable, last wins)',
    )
    parser.add_argument("-d", "--data", default=None, help="JSON object request body")
    parser.add_argument("--stream", action="store_true", help="Read the response as Server-Sent Events")
    parser.add_argument(
        "--line-terminator", choices=sorted(_LINE_TERMINATORS), default="lf",
        help="SSE line terminator (default: lf)",
    )
    parser.add_argument("--path", default=None, help="Print only the value at this key path")
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    args = parser.parse_args(argv)

    config = RestfulConfig()
    if args.log_level:
        config.log_level = args.log_level
    setup_logging(config.log_level, config.log_json)

    headers: dict[str, str] = {}
    for raw in args.header:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            parser.error(f"malformed header: {raw!r}")
        headers[name.strip()] = value.strip()

    body: JSONObject | None = None
    if args.data is not None:
        try:
            body = loads(args.data).as_object()
        except ValueError as exc:
            parser.error(f"--data is not valid JSON: {exc}")
        if body is None:
            parser.error("--data must be a JSON object")

    try:
        return asyncio.run(_run(args, config, headers, body))
    except RestfulError as exc:
        print(f"error: {exc}", file=sys.stderr)
        if isinstance(exc, HTTPErrorJSON):
            print(json.dumps(JSONValue.object(exc.data).to_python(), ensure_ascii=False), file=sys.stderr)
        elif isinstance(exc, HTTPError) and exc.data:
            print(exc.data.decode("utf-8", errors="replace"), file=sys.stderr)
        return 1
    except httpx.HTTPError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


async def _run(
    args: argparse.Namespace,
    config: RestfulConfig,
    headers: dict[str, str],
    body: JSONObject | None,
) -> int:
    async with RestfulSession(config=config) as session:
        if args.stream:
            events = session.stream(
                args.url,
                args.method,
                body=body,
                headers=headers,
                line_terminator=_LINE_TERMINATORS[args.line_terminator],
            )
            async with events:
                async for event in events:
                    print(json.dumps(dataclasses.asdict(event), ensure_ascii=False), flush=True)
            return 0

        response = await session.request(args.url, args.method, body=body, headers=headers)

    if args.path:
        selected = resolve(response, args.path)
        if selected is None:
            print(f"error: path not found: {args.path}", file=sys.stderr)
            return 1
    else:
        selected = JSONValue.object(response)

    print(json.dumps(selected.to_python(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
