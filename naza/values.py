"""Value comparison helpers."""

from __future__ import annotations

__all__ = ["is_nil", "equal", "equal_integer"]

_BYTES_TYPES = (bytes, bytearray, memoryview)


def is_nil(actual) -> bool:
    """Whether `actual` is None."""
    return actual is None


def equal(expected, actual) -> bool:
    """Deep equality that also requires both values to be of the same type.

    Byte-like values compare by content regardless of their concrete type.
    """
    if expected is None:
        return is_nil(actual)
    if isinstance(expected, _BYTES_TYPES):
        if not isinstance(actual, _BYTES_TYPES):
            return False
        return bytes(expected) == bytes(actual)
    return type(expected) is type(actual) and expected == actual


def _is_integer(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def equal_integer(a, b) -> bool:
    """Whether `a` and `b` are both integers of equal value."""
    return _is_integer(a) and _is_integer(b) and a == b