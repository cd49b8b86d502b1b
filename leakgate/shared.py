"""Thread-safe, in-place limiter built on top of the functional store."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from .bucket import Bucket
from .store import BucketStore


class SharedLimiter:
    """Hold the current :class:`BucketStore` snapshot behind one lock.

    Every ``allow`` call drains and admits under the lock, so concurrent
    callers on the same key observe a serial order.
    """

    def __init__(
        self,
        store: BucketStore,
        time_fn: Callable[[], float] | None = None,
    ) -> None:
        self._initial = store
        self._store = store
        self._time_fn = time_fn or time.monotonic
        self._lock = threading.Lock()

    @property
    def store(self) -> BucketStore:
        with self._lock:
            return self._store

    def now(self) -> float:
        return self._time_fn()

    def allow(self, key: str, timestamp: Optional[float] = None) -> bool:
        ts = self._time_fn() if timestamp is None else timestamp
        with self._lock:
            admitted, self._store = self._store.evaluate(key, ts)
        return admitted

    def lookup(self, key: str) -> Optional[Bucket]:
        return self.store.lookup(key)

    def lookup_drained(self, key: str, as_of: Optional[float] = None) -> Optional[Bucket]:
        return self.store.lookup_drained(key, self._time_fn() if as_of is None else as_of)

    def active_count(self) -> int:
        return self.store.active_count()

    def evict(self, now: Optional[float] = None) -> int:
        """Run an eviction pass and return how many entries were removed."""

        with self._lock:
            before = self._store.active_count()
            self._store = self._store.evict(now)
            return before - self._store.active_count()

    def reset(self) -> None:
        with self._lock:
            self._store = self._initial
