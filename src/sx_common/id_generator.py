"""Snowflake-style ID generator for order and trade ids.

IDs are decimal strings that sort in creation order within one process, which
lets `ORDER BY id DESC` stand in for "newest first" in cursor pagination.
"""

import threading
import time
from collections.abc import Callable

from config.settings import settings

_EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
_NODE_BITS = 10
_SEQUENCE_BITS = 12
_SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class SnowflakeIdGenerator:
    """41-bit ms timestamp | 10-bit node id | 12-bit per-ms sequence."""

    def __init__(self, node_id: int = 0, clock: Callable[[], int] = _wall_clock_ms) -> None:
        if not 0 <= node_id < (1 << _NODE_BITS):
            raise ValueError(f"node_id must be in [0, {(1 << _NODE_BITS) - 1}], got {node_id}")
        self._node_id = node_id
        self._clock = clock
        self._last_ms = -1
        self._sequence = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now_ms = max(self._clock(), self._last_ms)  # never step backwards
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & _SEQUENCE_MASK
                if self._sequence == 0:
                    while now_ms <= self._last_ms:
                        now_ms = self._clock()
            else:
                self._sequence = 0
            self._last_ms = now_ms

            value = (
                (now_ms - _EPOCH_MS) << (_NODE_BITS + _SEQUENCE_BITS)
                | self._node_id << _SEQUENCE_BITS
                | self._sequence
            )
            return str(value)


_default_generator = SnowflakeIdGenerator(node_id=settings.ID_MACHINE_ID)


def generate_id() -> str:
    return _default_generator.next_id()
