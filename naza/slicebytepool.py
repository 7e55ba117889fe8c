"""Pools of reusable byte buffers, bucketed by power-of-two capacity.

Buffers handed out are ``memoryview`` objects over a ``bytearray`` whose
length is the buffer's capacity, so a buffer can be shorter than the memory
behind it, and that memory is reused when the buffer comes back.
"""

from __future__ import annotations

import collections
import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

__all__ = [
    "Strategy",
    "Status",
    "SliceBucket",
    "StdPoolBucket",
    "SliceBytePool",
    "SharedSliceByte",
    "new_shared_slice_byte",
    "wrap_shared_slice_byte",
    "up2power",
    "down2power",
    "get",
    "put",
    "retrieve_status",
    "init",
]

MIN_SIZE = 1024
MAX_SIZE = 1073741824

_STD_POOL_BUCKET_LIMIT = 64

Buf = Union[bytearray, bytes, memoryview]


class Strategy(IntEnum):
    # Buckets may drop cached buffers on their own.
    MULTI_STD_POOL_BUCKET = 1
    # Buckets keep every cached buffer forever.
    MULTI_SLICE_POOL_BUCKET = 2


@dataclass(frozen=True)
class Status:
    get_count: int = 0
    put_count: int = 0
    hit_count: int = 0
    size_bytes: int = 0


def _base(buf: Buf):
    """The object owning the memory behind `buf`."""
    return buf.obj if isinstance(buf, memoryview) else buf


def _capacity(buf: Buf) -> int:
    return len(_base(buf))


def _view(buf: Buf, size: int) -> memoryview:
    base = _base(buf)
    if size > len(base):
        raise ValueError(f"size {size} exceeds buffer capacity {len(base)}")
    return memoryview(base)[:size]


def up2power(n: int) -> int:
    """The smallest power of two >= `n`, at least 2; `n` itself when n >= 1073741824."""
    if n >= MAX_SIZE:
        return n
    p = 2
    while n > p:
        p <<= 1
    return p


def down2power(n: int) -> int:
    """The largest power of two <= `n`, clamped to [2, 1073741824]."""
    if n < 2:
        return 2
    if n >= MAX_SIZE:
        return MAX_SIZE
    return 1 << (n.bit_length() - 1)


class SliceBucket:
    """A bucket that keeps every buffer put into it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._core: list = []

    def get(self, size: int) -> Optional[memoryview]:
        """A cached buffer resized to `size`, or None when the bucket is empty."""
        with self._lock:
            if not self._core:
                return None
            buf = self._core.pop()
        return _view(buf, size)

    def put(self, buf: Buf) -> None:
        with self._lock:
            self._core.append(buf)


class StdPoolBucket:
    """A bucket that keeps only a limited number of buffers and drops the oldest."""

    def __init__(self, limit: int = _STD_POOL_BUCKET_LIMIT) -> None:
        self._lock = threading.Lock()
        self._core: collections.deque = collections.deque(maxlen=limit)

    def get(self, size: int) -> Optional[memoryview]:
        with self._lock:
            if not self._core:
                return None
            buf = self._core.pop()
        return _view(buf, size)

    def put(self, buf: Buf) -> None:
        with self._lock:
            self._core.append(buf)


class SliceBytePool:
    """Hands out byte buffers of a requested size, reusing returned ones."""

    def __init__(self, strategy: Strategy = Strategy.MULTI_SLICE_POOL_BUCKET) -> None:
        self.strategy = Strategy(strategy)
        bucket_type = (
            StdPoolBucket if self.strategy == Strategy.MULTI_STD_POOL_BUCKET else SliceBucket
        )
        self._buckets = {}
        size = MIN_SIZE
        while size <= MAX_SIZE:
            self._buckets[size] = bucket_type()
            size <<= 1
        self._lock = threading.Lock()
        self._get_count = 0
        self._put_count = 0
        self._hit_count = 0
        self._size_bytes = 0

    def _bucket(self, size: int):
        bucket = self._buckets.get(max(size, MIN_SIZE))
        if bucket is None:
            raise ValueError(f"buffer size out of pool range: {size}")
        return bucket

    def get(self, size: int) -> memoryview:
        """A buffer of length `size`, like ``bytearray(size)`` but possibly reused."""
        with self._lock:
            self._get_count += 1
        cap = up2power(size)
        buf = self._bucket(cap).get(size)
        if buf is None:
            return memoryview(bytearray(max(cap, MIN_SIZE)))[:size]
        with self._lock:
            self._hit_count += 1
            self._size_bytes -= _capacity(buf)
        return buf

    def put(self, buf: Buf) -> None:
        """Return `buf` to the pool for reuse."""
        cap = _capacity(buf)
        bucket = self._bucket(down2power(cap))
        with self._lock:
            self._put_count += 1
            self._size_bytes += cap
        bucket.put(buf)

    def retrieve_status(self) -> Status:
        with self._lock:
            return Status(self._get_count, self._put_count, self._hit_count, self._size_bytes)


class SharedSliceByte:
    """A reference-counted buffer that returns itself to its pool on the last release."""

    def __init__(self, core: Buf, pool: SliceBytePool) -> None:
        self.core = core
        self.pool = pool
        self._lock = threading.Lock()
        self._count = 1

    def ref(self) -> SharedSliceByte:
        """Add a reference and return this same object."""
        with self._lock:
            self._count += 1
        return self

    def release_if_needed(self) -> None:
        """Drop a reference; the last one gives the buffer back to the pool."""
        with self._lock:
            self._count -= 1
            last = self._count == 0
        if last:
            self.pool.put(self.core)


def new_shared_slice_byte(size: int, pool: Optional[SliceBytePool] = None) -> SharedSliceByte:
    """A shared buffer of `size` bytes taken from `pool` (the default pool when None)."""
    pool = pool if pool is not None else _default_pool
    return SharedSliceByte(pool.get(size), pool)


def wrap_shared_slice_byte(b: Buf, pool: Optional[SliceBytePool] = None) -> SharedSliceByte:
    """A shared buffer around `b`, released into `pool` (the default pool when None)."""
    return SharedSliceByte(b, pool if pool is not None else _default_pool)


_default_pool = SliceBytePool(Strategy.MULTI_SLICE_POOL_BUCKET)


def get(size: int) -> memoryview:
    return _default_pool.get(size)


def put(buf: Buf) -> None:
    _default_pool.put(buf)


def retrieve_status() -> Status:
    return _default_pool.retrieve_status()


def init(strategy: Strategy) -> None:
    """Replace the default pool with a fresh one using `strategy`."""
    global _default_pool
    _default_pool = SliceBytePool(strategy)