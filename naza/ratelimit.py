"""Rate limiters: a leaky bucket and a token bucket.

A leaky bucket hands out one resource at most once per interval; a token
bucket produces tokens in the background, caches them up to a capacity and
lets callers take several at once.
"""

from __future__ import annotations

import abc
import threading
import time

__all__ = [
    "ResourceNotAvailableError",
    "TokenNotEnoughError",
    "RateLimiter",
    "LeakyBucket",
    "TokenBucket",
]


class ResourceNotAvailableError(Exception):
    """Raised when a leaky bucket has no resource available yet."""


class TokenNotEnoughError(Exception):
    """Raised when a token bucket holds fewer tokens than requested."""


def _now_ms() -> int:
    return time.monotonic_ns() // 1_000_000


class RateLimiter(abc.ABC):
    @abc.abstractmethod
    def try_acquire(self) -> None:
        """Take one resource now or raise."""

    @abc.abstractmethod
    def wait_until_acquire(self) -> None:
        """Block until one resource is taken."""


class LeakyBucket(RateLimiter):
    """Grants a resource only when more than `interval_ms` passed since the last grant."""

    def __init__(self, interval_ms: int) -> None:
        self.interval_ms = interval_ms
        self._lock = threading.Lock()
        # The first acquisition is measured from creation time.
        self._last_tick = _now_ms()

    def try_acquire(self) -> None:
        """Take the resource or raise ResourceNotAvailableError."""
        with self._lock:
            now = _now_ms()
            if now - self._last_tick > self.interval_ms:
                self._last_tick = now
                return
        raise ResourceNotAvailableError("resource not available")

    def wait_until_acquire(self) -> None:
        """Block until the resource is granted."""
        with self._lock:
            now = _now_ms()
            diff = now - self._last_tick
            if diff > self.interval_ms:
                self._last_tick = now
                return
            # Reserve the next slot before releasing the lock so others queue behind it.
            self._last_tick += self.interval_ms
        time.sleep((self.interval_ms - diff) / 1000)

    def maybe_available_interval_ms(self) -> int:
        """Milliseconds until a resource may be available; 0 means now (not guaranteed)."""
        with self._lock:
            now = _now_ms()
            if now - self._last_tick > self.interval_ms:
                return 0
            return self._last_tick + self.interval_ms - now


class TokenBucket(RateLimiter):
    """Adds `prod_token_num_every_interval` tokens every `prod_token_interval_ms`, up to `capacity`."""

    def __init__(
        self, capacity: int, prod_token_interval_ms: int, prod_token_num_every_interval: int
    ) -> None:
        if prod_token_interval_ms <= 0:
            raise ValueError(f"token interval must be positive: {prod_token_interval_ms}")
        self.capacity = capacity
        self._interval = prod_token_interval_ms / 1000
        self._num_every_interval = prod_token_num_every_interval
        self._available = 0
        self._cond = threading.Condition()
        self._disposed = threading.Event()
        self._thread = threading.Thread(target=self._produce, name="token-bucket", daemon=True)
        self._thread.start()

    def try_acquire(self) -> None:
        self.try_acquire_with_num(1)

    def wait_until_acquire(self) -> None:
        self.wait_until_acquire_with_num(1)

    def try_acquire_with_num(self, num: int) -> None:
        """Take `num` tokens or raise TokenNotEnoughError."""
        self._check_acquire_num(num)
        with self._cond:
            if self._available >= num:
                self._available -= num
                return
        raise TokenNotEnoughError(f"token not enough: want {num}")

    def wait_until_acquire_with_num(self, num: int) -> None:
        """Block until `num` tokens are taken."""
        self._check_acquire_num(num)
        with self._cond:
            self._cond.wait_for(lambda: self._available >= num)
            self._available -= num

    def dispose(self) -> None:
        """Stop producing tokens."""
        self._disposed.set()
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def __enter__(self) -> TokenBucket:
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    def _produce(self) -> None:
        next_tick = time.monotonic() + self._interval
        while not self._disposed.wait(max(0.0, next_tick - time.monotonic())):
            with self._cond:
                self._available = min(self._available + self._num_every_interval, self.capacity)
                self._cond.notify_all()
            next_tick += self._interval
            now = time.monotonic()
            if next_tick < now:
                next_tick = now + self._interval

    def _check_acquire_num(self, num: int) -> None:
        if num > self.capacity:
            raise ValueError(
                f"acquire num should not be bigger than capacity. num={num}, capacity={self.capacity}"
            )