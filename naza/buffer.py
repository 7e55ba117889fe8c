"""A growable first-in first-out byte buffer that exposes its storage directly."""

from __future__ import annotations

import logging

__all__ = ["Buffer", "sub", "prefix", "round_up_power_of_two"]

_log = logging.getLogger(__name__)

GROW_MIN_THRESHOLD = 128
GROW_ROUND_THRESHOLD = 1048576  # 1 MiB


def round_up_power_of_two(n: int) -> int:
    """Return the smallest power of two that is >= n, never less than 2."""
    if n <= 2:
        return 2
    return 1 << (n - 1).bit_length()


def sub(b, index: int, length: int):
    """Slice `length` items of `b` from `index`, clipped to the bounds of `b`."""
    return b[index:index + length]


def prefix(b, length: int):
    """Return at most the first `length` items of `b`."""
    return sub(b, 0, length)


class Buffer:
    """FIFO byte buffer whose readable and writable regions can be used in place.

    Reading: ``bytes()`` then ``skip(n)``, ``peek(n)``, ``read()``/``readinto()``.
    Writing: ``reserve_bytes(n)``, fill it, then ``flush(n)``; or ``write()``.
    """

    def __init__(self, init_cap: int = 0) -> None:
        self._core = bytearray(init_cap) if init_cap > 0 else bytearray()
        self._rpos = 0
        self._wpos = 0

    @classmethod
    def from_bytes(cls, b) -> Buffer:
        """Use `b` as backing storage without copying when it is a bytearray.

        The storage starts out empty: its contents become readable only after flush().
        """
        buf = cls()
        buf._core = b if isinstance(b, bytearray) else bytearray(b)
        return buf

    # ----- reading -------------------------------------------------------

    def bytes(self) -> memoryview:
        """All unread data, as a view into the buffer (no copy)."""
        return memoryview(self._core)[self._rpos:self._wpos]

    def peek(self, n: int) -> memoryview:
        """Up to `n` unread bytes as a view, without consuming them."""
        if len(self) < n:
            return self.bytes()
        return memoryview(self._core)[self._rpos:self._rpos + n]

    def skip(self, n: int) -> None:
        """Mark the first `n` unread bytes as consumed."""
        if n > self._wpos - self._rpos:
            _log.warning("Buffer.skip too large. n=%d, %s", n, self.debug_string())
            self.reset()
            return
        self._rpos += n
        self._reset_if_empty()

    def read(self, size: int = -1) -> bytes:
        """Copy out and consume up to `size` bytes (all when negative)."""
        available = len(self)
        n = available if size < 0 else min(size, available)
        data = bytes(self._core[self._rpos:self._rpos + n])
        if n:
            self.skip(n)
        return data

    def readinto(self, b) -> int:
        """Copy unread data into the writable buffer `b`; return the count."""
        target = memoryview(b).cast("B")
        n = min(len(target), len(self))
        if n == 0:
            return 0
        target[:n] = self._core[self._rpos:self._rpos + n]
        self.skip(n)
        return n

    # ----- writing -------------------------------------------------------

    def grow(self, n: int) -> None:
        """Ensure at least `n` bytes of writable space."""
        tail = len(self._core) - self._wpos
        if tail >= n:
            return

        if self._rpos + tail >= n:
            length = len(self)
            _log.debug("Buffer.grow. move, this round need=%d, copy=%d", n, length)
            self._core[:length] = self._core[self._rpos:self._wpos]
            self._wpos = length
            self._rpos = 0
            return

        if n <= GROW_MIN_THRESHOLD:
            n = GROW_MIN_THRESHOLD
        elif n < GROW_ROUND_THRESHOLD:
            n = round_up_power_of_two(n)

        length = len(self)
        needed = length + n
        if self._core:
            _log.debug(
                "Buffer.grow. realloc, this round need=%d, copy=%d, cap=(%d -> %d)",
                n, length, self.cap(), needed,
            )
        core = bytearray(needed)
        core[:length] = self._core[self._rpos:self._wpos]
        self._core = core
        self._wpos = length
        self._rpos = 0

    def writable_bytes(self) -> memoryview:
        """The free space after the written data, as a writable view."""
        return memoryview(self._core)[self._wpos:]

    def reserve_bytes(self, n: int) -> memoryview:
        """Grow as needed and return exactly `n` writable bytes; call flush() after."""
        self.grow(n)
        return self.writable_bytes()[:n]

    def flush(self, n: int) -> None:
        """Commit `n` bytes written into the writable region."""
        if len(self._core) - self._wpos < n:
            _log.warning("Buffer.flush too large. n=%d, %s", n, self.debug_string())
            self._wpos = len(self._core)
            return
        self._wpos += n

    def write(self, data) -> int:
        """Append a copy of `data`, growing as needed; return its length."""
        data = memoryview(data).cast("B")
        n = len(data)
        self.grow(n)
        self._core[self._wpos:self._wpos + n] = data
        self._wpos += n
        return n

    def write_string(self, s: str) -> int:
        """Append `s` encoded as UTF-8."""
        return self.write(s.encode("utf-8"))

    # ----- housekeeping --------------------------------------------------

    def truncate(self, n: int) -> None:
        """Drop the last `n` unread bytes, undoing a write."""
        if len(self) < n:
            _log.warning("Buffer.truncate too large. n=%d, %s", n, self.debug_string())
            self.reset()
            return
        self._wpos -= n
        self._reset_if_empty()

    def reset(self) -> None:
        """Discard all data but keep the storage for reuse."""
        self._rpos = 0
        self._wpos = 0

    def reset_and_free(self) -> None:
        """Discard all data and release the storage."""
        self._core = bytearray()
        self._rpos = 0
        self._wpos = 0

    def cap(self) -> int:
        """Total size of the storage."""
        return len(self._core)

    def debug_string(self) -> str:
        return f"len(core)={len(self._core)}, rpos={self._rpos}, wpos={self._wpos}"

    def __len__(self) -> int:
        return self._wpos - self._rpos

    def __bytes__(self) -> bytes:
        return bytes(self._core[self._rpos:self._wpos])

    def __str__(self) -> str:
        return bytes(self).decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"Buffer({self.debug_string()})"

    def _reset_if_empty(self) -> None:
        if self._rpos == self._wpos:
            self.reset()