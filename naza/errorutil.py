"""Helpers for combining, wrapping and inspecting exceptions."""

from __future__ import annotations

import inspect
import os

__all__ = ["WrappedError", "combine_errors", "wrap", "unwrap", "is_error", "as_error"]


class WrappedError(Exception):
    """An exception annotated with the call site that wrapped it."""

    def __init__(self, err: BaseException, message: str) -> None:
        super().__init__(message)
        self.err = err
        self.__cause__ = err


def combine_errors(*args):
    """Return the first argument that is not None, or None."""
    return next((err for err in args if err is not None), None)


def wrap(err, *args):
    """Wrap `err` with the caller's file name and line, plus optional messages."""
    if err is None:
        return None
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    if caller is not None:
        location = f"{os.path.basename(caller.f_code.co_filename)}:{caller.f_lineno}"
    else:
        location = "?:0"
    del frame, caller
    if args:
        message = f"{err}([{' '.join(args)}] {location})"
    else:
        message = f"{err}({location})"
    return WrappedError(err, message)


def unwrap(err):
    """Return the exception that `err` wraps, or None."""
    if err is None:
        return None
    if isinstance(err, WrappedError):
        return err.err
    return err.__cause__


def _chain(err):
    seen = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = unwrap(err)


def is_error(err, target) -> bool:
    """Whether `err` or anything it wraps is `target` (an instance or a class)."""
    for e in _chain(err):
        if isinstance(target, type):
            if isinstance(e, target):
                return True
        elif e is target or e == target:
            return True
    return False


def as_error(err, target_type):
    """Return the first exception in the wrap chain of `err` of `target_type`, or None."""
    return next((e for e in _chain(err) if isinstance(e, target_type)), None)