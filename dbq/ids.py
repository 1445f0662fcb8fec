"""Snowflake-style 64-bit id generator used by the HTTP push route.

Layout (most significant first): 41 bits of milliseconds since the Twitter
epoch, 10 bits of node id, 12 bits of per-millisecond sequence.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

EPOCH_MS = 1288834974657
NODE_BITS = 10
STEP_BITS = 12
MAX_NODE = (1 << NODE_BITS) - 1
MAX_STEP = (1 << STEP_BITS) - 1
TIME_SHIFT = NODE_BITS + STEP_BITS


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class SnowflakeGenerator:
    """Thread-safe generator of unique, increasing, non-zero int64 ids."""

    def __init__(self, node_id: int = 0, clock: Optional[Callable[[], int]] = None):
        if not 0 <= node_id <= MAX_NODE:
            raise ValueError(f"node_id must be between 0 and {MAX_NODE}")
        self.node_id = node_id
        self._clock = clock or _now_ms
        self._lock = threading.Lock()
        self._last_ms = -1
        self._step = 0

    def generate(self) -> int:
        with self._lock:
            now = self._clock()
            if now < self._last_ms:
                # Clock moved backwards; keep issuing from the last timestamp.
                now = self._last_ms
            if now == self._last_ms:
                self._step = (self._step + 1) & MAX_STEP
                if self._step == 0:
                    while now <= self._last_ms:
                        now = self._clock()
            else:
                self._step = 0
            self._last_ms = now
            return ((now - EPOCH_MS) << TIME_SHIFT) | (self.node_id << STEP_BITS) | self._step

    __call__ = generate


__all__ = ["SnowflakeGenerator"]
