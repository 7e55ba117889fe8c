"""Snowflake-style 64-bit unique ID generation."""

from __future__ import annotations

import dataclasses
import threading
import time
from dataclasses import dataclass
from typing import Optional

__all__ = ["InitialError", "GenError", "Option", "Node"]

_MASK64 = (1 << 64) - 1


class InitialError(ValueError):
    """Raised for invalid node options or ids."""


class GenError(RuntimeError):
    """Raised when the clock moves backwards."""


@dataclass
class Option:
    data_center_id_bits: int = 5
    worker_id_bits: int = 5
    sequence_bits: int = 12
    twepoch: int = 1288834974657  # 2010/11/4 9:42:54.657 in Unix milliseconds
    always_positive: bool = False


def _bits_to_max(bits: int) -> int:
    return (1 << bits) - 1


def _to_int64(v: int) -> int:
    v &= _MASK64
    return v - (1 << 64) if v >= 1 << 63 else v


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _validate(data_center_id: int, worker_id: int, option: Option) -> None:
    for bits in (option.data_center_id_bits, option.worker_id_bits, option.sequence_bits):
        if bits < 0 or bits > 31:
            raise InitialError(f"bit count out of range: {bits}")
    if option.data_center_id_bits + option.worker_id_bits + option.sequence_bits >= 64:
        raise InitialError("bit counts must sum to less than 64")
    if option.data_center_id_bits > 0 and data_center_id > _bits_to_max(option.data_center_id_bits):
        raise InitialError(f"data center id too large: {data_center_id}")
    if option.worker_id_bits > 0 and worker_id > _bits_to_max(option.worker_id_bits):
        raise InitialError(f"worker id too large: {worker_id}")


class Node:
    """Generates IDs from timestamp, data center id, worker id and a sequence.

    Keyword arguments are Option field names overriding the defaults.
    """

    def __init__(self, data_center_id: int = 0, worker_id: int = 0, **kwargs) -> None:
        option = dataclasses.replace(Option(), **kwargs)
        _validate(data_center_id, worker_id, option)
        self.data_center_id = data_center_id
        self.worker_id = worker_id
        self.option = option
        self._seq_mask = _bits_to_max(option.sequence_bits)
        self._worker_id_shift = option.sequence_bits
        self._data_center_id_shift = option.sequence_bits + option.worker_id_bits
        self._timestamp_shift = (
            option.sequence_bits + option.worker_id_bits + option.data_center_id_bits
        )
        self._lock = threading.Lock()
        self._last_ts = -1
        self._seq = 0

    def gen(self, now_unix_ms: Optional[int] = None) -> int:
        """Return the next ID; `now_unix_ms` overrides the current time."""
        with self._lock:
            now = _now_ms() if now_unix_ms is None else now_unix_ms

            if now < self._last_ts:
                raise GenError(f"clock moved backwards: {now} < {self._last_ts}")

            if now == self._last_ts:
                self._seq = (self._seq + 1) & self._seq_mask
                # Sequence exhausted for this millisecond: wait for the clock.
                if self._seq == 0:
                    while now <= self._last_ts:
                        now = _now_ms()
            else:
                self._seq = 0
            self._last_ts = now

            ts = now - self.option.twepoch
            if self.option.always_positive:
                ts &= ~(1 << (63 - self._timestamp_shift))
            ts <<= self._timestamp_shift

            return _to_int64(
                ts
                | (self.data_center_id << self._data_center_id_shift)
                | (self.worker_id << self._worker_id_shift)
                | self._seq
            )