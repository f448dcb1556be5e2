# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/controller/queue.py
"""
Rate-limited work queue keyed by "<namespace>/<name>".

Semantics follow the client-go workqueue:
  - a key that is already pending is not queued twice
  - a key is handed to at most one worker at a time; re-adds while it is
    being processed are parked until done() and then queued again
  - add_rate_limited() re-adds after a per-key exponential backoff
  - forget() clears the key's failure count and cancels a pending
    delayed re-add
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections import deque
from typing import Callable, Optional

log = logging.getLogger("kv2k8s")


class ExponentialBackoff:
    """Per-key delay: base_delay * 2**failures, capped at max_delay."""

    def __init__(self, *, base_delay: float = 0.005, max_delay: float = 1000.0):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._failures: dict[str, int] = {}
        self._lock = threading.Lock()

    def when(self, key: str) -> float:
        with self._lock:
            exp = self._failures.get(key, 0)
            self._failures[key] = exp + 1
        return min(self.base_delay * (2 ** exp), self.max_delay)

    def num_requeues(self, key: str) -> int:
        with self._lock:
            return self._failures.get(key, 0)

    def forget(self, key: str) -> None:
        with self._lock:
            self._failures.pop(key, None)


class RateLimitingQueue:
    def __init__(
        self,
        name: str,
        *,
        backoff: Optional[ExponentialBackoff] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.backoff = backoff or ExponentialBackoff()
        self._clock = clock

        self._cond = threading.Condition()
        self._queue: deque[str] = deque()
        self._dirty: set[str] = set()
        self._processing: set[str] = set()
        self._shutting_down = False

        # delayed adds: heap of (ready_at, seq, key); _waiting holds the
        # live ready_at per key so forgotten or superseded entries are skipped
        self._heap: list[tuple[float, int, str]] = []
        self._waiting: dict[str, float] = {}
        self._seq = itertools.count()
        self._waiter = threading.Thread(target=self._wait_loop, name=f"{name}-delay", daemon=True)
        self._waiter.start()

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def add(self, key: str) -> None:
        with self._cond:
            self._add_locked(key)

    def _add_locked(self, key: str) -> None:
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.append(key)
        self._cond.notify_all()

    def get(self, timeout: Optional[float] = None) -> tuple[Optional[str], bool]:
        """
        Block until a key is available. Returns (key, shutdown); when the
        queue is shut down and drained, returns (None, True). With a
        timeout, returns (None, False) if nothing arrived in time.
        """
        with self._cond:
            deadline = None if timeout is None else self._clock() + timeout
            while not self._queue and not self._shutting_down:
                remaining = None if deadline is None else deadline - self._clock()
                if remaining is not None and remaining <= 0:
                    return None, False
                self._cond.wait(remaining)
            if not self._queue:
                return None, True
            key = self._queue.popleft()
            self._processing.add(key)
            self._dirty.discard(key)
            return key, False

    def done(self, key: str) -> None:
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty:
                self._queue.append(key)
                self._cond.notify_all()

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def is_processing(self, key: str) -> bool:
        with self._cond:
            return key in self._processing

    # ------------------------------------------------------------------
    # Delays and rate limiting
    # ------------------------------------------------------------------

    def add_after(self, key: str, delay: float) -> None:
        if delay <= 0:
            self.add(key)
            return
        with self._cond:
            if self._shutting_down:
                return
            ready_at = self._clock() + delay
            current = self._waiting.get(key)
            if current is not None and current <= ready_at:
                return
            self._waiting[key] = ready_at
            heapq.heappush(self._heap, (ready_at, next(self._seq), key))
            self._cond.notify_all()

    def add_rate_limited(self, key: str) -> None:
        self.add_after(key, self.backoff.when(key))

    def num_requeues(self, key: str) -> int:
        return self.backoff.num_requeues(key)

    def forget(self, key: str) -> None:
        self.backoff.forget(key)
        with self._cond:
            self._waiting.pop(key, None)

    def pending_retry(self, key: str) -> bool:
        with self._cond:
            return key in self._waiting

    def _wait_loop(self) -> None:
        with self._cond:
            while not self._shutting_down:
                now = self._clock()
                while self._heap and self._heap[0][0] <= now:
                    ready_at, _, key = heapq.heappop(self._heap)
                    if self._waiting.get(key) == ready_at:
                        del self._waiting[key]
                        self._add_locked(key)
                timeout = self._heap[0][0] - now if self._heap else None
                self._cond.wait(timeout)

    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        with self._cond:
            self._shutting_down = True
            self._heap.clear()
            self._waiting.clear()
            self._cond.notify_all()
        log.debug("[queue] %s shut down", self.name)

    @property
    def shutting_down(self) -> bool:
        with self._cond:
            return self._shutting_down
