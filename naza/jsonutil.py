"""JSON helpers: path existence checks, missing-field reports and file I/O.

Dataclass fields name their JSON key with ``field(metadata={"json": "key"})``;
a field with ``metadata={"inline": True}`` has its own fields merged into the
parent, like an embedded struct.
"""

from __future__ import annotations

import dataclasses
import inspect
import json
import os

__all__ = [
    "JsonError",
    "Json",
    "collect_not_exist_fields",
    "marshal_json_file",
    "unmarshal_json_file",
]


class JsonError(ValueError):
    """Raised for malformed JSON or an unsuitable target type."""


def _exist(m: dict, path: str) -> bool:
    parts = path.split(".")
    if len(parts) > 1:
        sub = m.get(parts[0])
        if parts[0] not in m or not isinstance(sub, dict):
            return False
        return _exist(sub, parts[1])
    return parts[0] in m


class Json:
    """A decoded JSON object that can be queried by dotted path."""

    def __init__(self, data: dict | None = None) -> None:
        self._data = data if data is not None else {}

    @classmethod
    def from_bytes(cls, raw) -> Json:
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise JsonError(f"invalid json: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise JsonError("json document is not an object")
        return cls(data)

    def exist(self, path: str) -> bool:
        """Whether the key at `path` (dot separated, e.g. ``log.level``) exists."""
        return _exist(self._data, path)


def _is_dataclass_type(t) -> bool:
    return isinstance(t, type) and dataclasses.is_dataclass(t)


def _field_type(cls, f: dataclasses.Field):
    """The field's type, looking up a string annotation by name where needed."""
    ftype = f.type
    if not isinstance(ftype, str):
        return ftype
    factory = f.default_factory
    if factory is not dataclasses.MISSING and _is_dataclass_type(factory):
        return factory
    module = inspect.getmodule(cls)
    if module is None:
        return ftype
    return getattr(module, ftype, ftype)


def _collect(j: Json, prefix: str, cls) -> list[str]:
    if not _is_dataclass_type(cls):
        raise JsonError(f"not a dataclass: {cls!r}")
    missing: list[str] = []
    for f in dataclasses.fields(cls):
        ftype = _field_type(cls, f)
        nested = _is_dataclass_type(ftype)
        if f.metadata.get("inline"):
            missing.extend(_collect(j, prefix, ftype))
            continue
        key = f.metadata.get("json")
        if key is None:
            continue
        if prefix:
            key = f"{prefix}.{key}"
        # A missing nested object is reported through its fields, not itself.
        if not j.exist(key) and not nested:
            missing.append(key)
        if nested:
            missing.extend(_collect(j, key, ftype))
    return missing


def collect_not_exist_fields(data, cls, *args) -> list[str]:
    """List JSON keys declared by dataclass `cls` that are absent from `data`.

    `cls` may be a dataclass or an instance of one. Each extra argument is a
    prefix; missing keys starting with any of them are left out.
    """
    j = Json.from_bytes(data)
    target = cls if isinstance(cls, type) else type(cls)
    missing = _collect(j, "", target)
    return [key for key in missing if not any(key.startswith(p) for p in args)]


def _default(obj):
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def marshal_json_file(obj, filename) -> None:
    """Serialise `obj` compactly to `filename`, replacing its contents."""
    text = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=_default)
    fd = os.open(filename, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o755)
    with os.fdopen(fd, "w", encoding="utf-8") as fp:
        fp.write(text)


def unmarshal_json_file(*args):
    """Decode the first of the given files that can be read.

    Raises the last OSError when none can be read, JsonError on bad JSON.
    """
    if not args:
        raise JsonError("no filename given")
    last_error: OSError | None = None
    for filename in args:
        try:
            with open(filename, "rb") as fp:
                raw = fp.read()
        except OSError as exc:
            last_error = exc
            continue
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise JsonError(f"invalid json in {filename}: {exc}") from exc
    assert last_error is not None
    raise last_error