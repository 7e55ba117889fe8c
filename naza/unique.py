"""Unique, prefixed, monotonically numbered keys."""

from __future__ import annotations

import itertools
import threading

__all__ = ["SingleGenerator", "MultiGenerator", "gen_unique_key"]


class SingleGenerator:
    """Generates keys for one fixed prefix: PREFIX1, PREFIX2, ..."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def gen_unique_key(self) -> str:
        with self._lock:
            n = next(self._counter)
        return f"{self.prefix}{n}"


class MultiGenerator:
    """Generates keys for any number of prefixes, each numbered independently."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._prefix_to_id: dict[str, int] = {}

    def gen_unique_key(self, prefix: str) -> str:
        with self._lock:
            n = self._prefix_to_id.get(prefix, 0) + 1
            self._prefix_to_id[prefix] = n
        return f"{prefix}{n}"


_global = MultiGenerator()


def gen_unique_key(prefix: str) -> str:
    """Generate a key from the process-wide generator."""
    return _global.gen_unique_key(prefix)