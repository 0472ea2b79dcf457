"""Snowflake identifiers: time, datacenter, worker and sequence packed in 64 bits."""

from __future__ import annotations

import threading
import time

EPOCH = 1577808000000  # 2020-01-01 00:00:00 in milliseconds
TIMESTAMP_BITS = 41
DATACENTER_ID_BITS = 5
WORKER_ID_BITS = 5
SEQUENCE_BITS = 12

TIMESTAMP_MAX = -1 ^ (-1 << TIMESTAMP_BITS)
DATACENTER_ID_MAX = -1 ^ (-1 << DATACENTER_ID_BITS)
WORKER_ID_MAX = -1 ^ (-1 << WORKER_ID_BITS)
SEQUENCE_MASK = -1 ^ (-1 << SEQUENCE_BITS)

WORKER_ID_SHIFT = SEQUENCE_BITS
DATACENTER_ID_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS
TIMESTAMP_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS + DATACENTER_ID_BITS

_UINT64_MASK = (1 << 64) - 1


class SnowflakeError(ValueError):
    """Raised when the clock has run past the range the id can hold."""


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class SnowflakeGenerator:
    """Thread-safe generator of unique, time-ordered ids."""

    def __init__(self, worker_id: int, datacenter_id: int) -> None:
        self.worker_id = worker_id
        self.datacenter_id = datacenter_id
        self._timestamp = 0
        self._sequence = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        """Return the next id."""
        with self._lock:
            now = _now_ms()
            if self._timestamp == now:
                self._sequence = (self._sequence + 1) & SEQUENCE_MASK
                if self._sequence == 0:
                    # Sequence exhausted for this millisecond: wait for the next.
                    while now <= self._timestamp:
                        now = _now_ms()
            else:
                self._sequence = 0
            elapsed = now - EPOCH
            if elapsed > TIMESTAMP_MAX:
                raise SnowflakeError(f"epoch must be between 0 and {TIMESTAMP_MAX - 1}")
            self._timestamp = now
            value = (
                (elapsed << TIMESTAMP_SHIFT)
                | (self.datacenter_id << DATACENTER_ID_SHIFT)
                | (self.worker_id << WORKER_ID_SHIFT)
                | self._sequence
            )
            return value & _UINT64_MASK