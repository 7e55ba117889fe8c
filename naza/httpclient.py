"""Small HTTP client helpers: fetch, download, post JSON, validate JSON bodies."""

from __future__ import annotations

import dataclasses
import json
import urllib.error
import urllib.request
from contextlib import contextmanager

from naza.httpheader import HEADER_FIELD_CONTENT_TYPE, ParamMissingError
from naza.jsonutil import Json

__all__ = [
    "get_http_file",
    "download_http_file",
    "post_json",
    "unmarshal_request_json_body",
]

_CHUNK_SIZE = 64 * 1024


def _timeout(timeout_ms: int):
    return timeout_ms / 1000 if timeout_ms > 0 else None


@contextmanager
def _open(request, timeout_ms: int):
    """Open `request`; an HTTP error status still yields its response."""
    try:
        resp = urllib.request.urlopen(request, timeout=_timeout(timeout_ms))
    except urllib.error.HTTPError as exc:
        resp = exc
    with resp:
        yield resp


def get_http_file(url: str, timeout_ms: int = 0) -> bytes:
    """Fetch `url` and return the whole response body; no timeout when timeout_ms <= 0."""
    with _open(url, timeout_ms) as resp:
        return resp.read()


def download_http_file(url: str, save_to: str, timeout_ms: int = 0) -> int:
    """Fetch `url` into the file `save_to`; return the number of bytes written."""
    written = 0
    with _open(url, timeout_ms) as resp, open(save_to, "wb") as fp:
        while chunk := resp.read(_CHUNK_SIZE):
            fp.write(chunk)
            written += len(chunk)
    return written


def _default(obj):
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def post_json(url: str, info, timeout_ms: int = 0) -> tuple[int, bytes]:
    """POST `info` serialised as JSON; return the status code and the response body."""
    data = json.dumps(info, separators=(",", ":"), ensure_ascii=False, default=_default)
    request = urllib.request.Request(
        url,
        data=data.encode("utf-8"),
        headers={"Content-Type": HEADER_FIELD_CONTENT_TYPE},
        method="POST",
    )
    with _open(request, timeout_ms) as resp:
        return resp.code, resp.read()


def unmarshal_request_json_body(body, *args):
    """Decode a JSON request body (bytes or a readable stream).

    Each extra argument is a dotted path that must exist in the document;
    ParamMissingError is raised for the first one that does not.
    """
    raw = body.read() if hasattr(body, "read") else body
    j = Json.from_bytes(raw)
    for key in args:
        if not j.exist(key):
            raise ParamMissingError(f"param missing: {key}")
    return json.loads(raw)