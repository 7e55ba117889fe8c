"""Reading HTTP-style (also RTSP) message headers and bodies from a byte stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

__all__ = [
    "HEADER_FIELD_CONTENT_LENGTH",
    "HEADER_FIELD_CONTENT_TYPE",
    "HttpError",
    "HttpHeaderError",
    "FirstLineError",
    "ParamMissingError",
    "Headers",
    "HttpMsgCtx",
    "HttpReqMsgCtx",
    "HttpRespMsgCtx",
    "read_http_header",
    "parse_http_request_line",
    "parse_http_status_line",
    "read_http_message",
    "read_http_request_message",
    "read_http_response_message",
]

HEADER_FIELD_CONTENT_LENGTH = "Content-Length"
HEADER_FIELD_CONTENT_TYPE = "application/json"


class HttpError(Exception):
    """Base class for errors raised by the HTTP helpers."""


class HttpHeaderError(HttpError):
    """Raised when an HTTP header cannot be read."""


class FirstLineError(HttpError):
    """Raised when a request line or status line cannot be parsed."""


class ParamMissingError(HttpError):
    """Raised when a required JSON field is absent."""


_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789"
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)


def _canonical_key(key: str) -> str:
    """Canonical MIME form, e.g. ``rtp-info`` -> ``Rtp-Info``; invalid keys stay as they are."""
    if not key or any(c not in _TOKEN_CHARS for c in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


class Headers:
    """A case-insensitive multi-valued mapping of header fields."""

    def __init__(self) -> None:
        self._data: dict[str, list[str]] = {}

    def add(self, key: str, value: str) -> None:
        """Append `value` to the values of `key`."""
        self._data.setdefault(_canonical_key(key), []).append(value)

    def get(self, key: str, default: str = "") -> str:
        """The first value of `key`, or `default` when there is none."""
        values = self._data.get(_canonical_key(key))
        return values[0] if values else default

    def values(self, key: str) -> list[str]:
        """All values of `key`, in the order they were added."""
        return list(self._data.get(_canonical_key(key), ()))

    def items(self) -> Iterator[tuple[str, list[str]]]:
        return ((k, list(v)) for k, v in self._data.items())

    def _append_to_last(self, key: str, text: str) -> None:
        values = self._data.get(_canonical_key(key))
        if values:
            values[-1] += text

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and _canonical_key(key) in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Headers) and self._data == other._data

    def __repr__(self) -> str:
        return f"Headers({self._data!r})"


@dataclass
class HttpMsgCtx:
    req_method_or_resp_version: str = ""
    req_uri_or_resp_status_code: str = ""
    req_version_or_resp_reason: str = ""
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""


@dataclass
class HttpReqMsgCtx:
    method: str = ""
    uri: str = ""
    version: str = ""
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""


@dataclass
class HttpRespMsgCtx:
    version: str = ""
    status_code: str = ""
    reason: str = ""
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""


def _read_line(reader) -> str:
    raw = reader.readline()
    if not raw:
        raise EOFError("unexpected end of stream while reading http header")
    text = raw if isinstance(raw, str) else raw.decode("utf-8", "surrogateescape")
    if text.endswith("\n"):
        text = text[:-1]
        if text.endswith("\r"):
            text = text[:-1]
    return text


def read_http_header(reader) -> tuple[str, Headers]:
    """Read the first line and the header fields from a binary stream with readline().

    Returns the request line or status line and the header fields. A line
    without a colon is appended to the previous field's value.
    """
    first_line = _read_line(reader)
    if not first_line:
        raise HttpHeaderError("read http header failed: empty first line")

    headers = Headers()
    last_key = ""
    while True:
        line = _read_line(reader)
        if not line:
            break
        key, sep, value = line.partition(":")
        if not sep:
            # A malformed line break inside the previous value.
            if last_key:
                headers._append_to_last(last_key, line)
            continue
        last_key = key.strip(" ")
        headers.add(last_key, value.strip(" "))
    return first_line, headers


def _parse_first_line(line: str) -> tuple[str, str, str]:
    first = line.find(" ")
    if first == -1:
        raise FirstLineError(f"parse first line failed: {line!r}")
    second = line.find(" ", first + 1)
    if second == -1:
        return line[:first], line[first + 1:], ""
    if second + 1 == len(line):
        return line[:first], line[first + 1:second], ""
    return line[:first], line[first + 1:second], line[second + 1:]


def parse_http_request_line(line: str) -> tuple[str, str, str]:
    """Split ``Method SP URI SP Version`` into its three parts."""
    return _parse_first_line(line)


def parse_http_status_line(line: str) -> tuple[str, str, str]:
    """Split ``Version SP Status-Code SP Reason`` into its three parts."""
    return _parse_first_line(line)


def _read_exact(reader, n: int) -> bytes:
    chunks = []
    remaining = n
    while remaining > 0:
        chunk = reader.read(remaining)
        if not chunk:
            raise EOFError(f"unexpected end of stream: body wants {n} bytes, got {n - remaining}")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def read_http_message(reader) -> HttpMsgCtx:
    """Read a header and, when Content-Length is present, a body of that size."""
    first_line, headers = read_http_header(reader)
    item1, item2, item3 = parse_http_request_line(first_line)
    ctx = HttpMsgCtx(item1, item2, item3, headers)

    content_length = headers.get(HEADER_FIELD_CONTENT_LENGTH)
    if not content_length:
        return ctx
    try:
        length = int(content_length)
    except ValueError as exc:
        raise HttpHeaderError(f"invalid Content-Length: {content_length!r}") from exc
    if length < 0:
        raise HttpHeaderError(f"invalid Content-Length: {content_length!r}")
    ctx.body = _read_exact(reader, length)
    return ctx


def read_http_request_message(reader) -> HttpReqMsgCtx:
    msg = read_http_message(reader)
    return HttpReqMsgCtx(
        method=msg.req_method_or_resp_version,
        uri=msg.req_uri_or_resp_status_code,
        version=msg.req_version_or_resp_reason,
        headers=msg.headers,
        body=msg.body,
    )


def read_http_response_message(reader) -> HttpRespMsgCtx:
    msg = read_http_message(reader)
    return HttpRespMsgCtx(
        version=msg.req_method_or_resp_version,
        status_code=msg.req_uri_or_resp_status_code,
        reason=msg.req_version_or_resp_reason,
        headers=msg.headers,
        body=msg.body,
    )