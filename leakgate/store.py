"""Per-key leaky bucket store with TTL and size bounded eviction.

A :class:`BucketStore` is an immutable snapshot. :meth:`BucketStore.evaluate`
never touches the receiver; it returns the admission decision together with
the next snapshot. Timestamps are plain seconds supplied by the caller and
the largest one seen so far (``clock``) is the reference for TTL expiry.
"""

from __future__ import annotations

import heapq
import logging
import math
from datetime import timedelta
from typing import Dict, NamedTuple, Optional, Union

from .bucket import Bucket
from .errors import InvalidArgument
from .metrics import DECISIONS, EVICTIONS
from .pmap import ShardedMap

logger = logging.getLogger("leakgate.store")

DEFAULT_TTL_SECONDS = 600.0
DEFAULT_MAX_ENTRIES = 10_000

Duration = Union[float, int, timedelta]


class _Entry(NamedTuple):
    bucket: Bucket
    seq: int
    # store clock at write time; TTL is measured from it
    written_at: float


class Decision(NamedTuple):
    admitted: bool
    store: "BucketStore"


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _positive_seconds(value: Optional[Duration], name: str) -> float:
    if isinstance(value, timedelta):
        value = value.total_seconds()
    if not _is_number(value):
        raise InvalidArgument(f"{name} must be a number of seconds")
    if not math.isfinite(value) or value <= 0:
        raise InvalidArgument(f"{name} must be positive")
    return float(value)


def _check_key(key: object) -> str:
    if not isinstance(key, str) or not key.strip():
        raise InvalidArgument("key cannot be empty")
    return key


def _check_timestamp(value: object, name: str = "timestamp") -> float:
    if not _is_number(value) or not math.isfinite(value):
        raise InvalidArgument(f"{name} must be a finite number")
    if value < 0:
        raise InvalidArgument(f"{name} cannot be negative")
    return float(value)


class BucketStore:
    __slots__ = (
        "_capacity",
        "_leak_rate",
        "_ttl",
        "_max_entries",
        "_sweep_interval",
        "_entries",
        "_clock",
        "_seq",
        "_last_sweep",
    )

    def __init__(
        self,
        capacity: int,
        leak_rate: float,
        ttl: Optional[Duration] = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        sweep_interval: Optional[Duration] = None,
    ) -> None:
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
            raise InvalidArgument("capacity must be a positive integer")
        if not _is_number(leak_rate) or not math.isfinite(leak_rate) or leak_rate <= 0:
            raise InvalidArgument("leak_rate must be positive")
        if not isinstance(max_entries, int) or isinstance(max_entries, bool) or max_entries <= 0:
            raise InvalidArgument("max_entries must be a positive integer")

        self._capacity = capacity
        self._leak_rate = float(leak_rate)
        self._ttl = _positive_seconds(ttl, "ttl")
        self._max_entries = max_entries
        self._sweep_interval = (
            self._ttl if sweep_interval is None else _positive_seconds(sweep_interval, "sweep_interval")
        )
        self._entries: ShardedMap[_Entry] = ShardedMap()
        self._clock = 0.0
        self._seq = 0
        self._last_sweep = 0.0

    def _derive(
        self,
        entries: ShardedMap[_Entry],
        clock: float,
        seq: int,
        last_sweep: float,
    ) -> "BucketStore":
        store = object.__new__(BucketStore)
        store._capacity = self._capacity
        store._leak_rate = self._leak_rate
        store._ttl = self._ttl
        store._max_entries = self._max_entries
        store._sweep_interval = self._sweep_interval
        store._entries = entries
        store._clock = clock
        store._seq = seq
        store._last_sweep = last_sweep
        return store

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def leak_rate(self) -> float:
        return self._leak_rate

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def clock(self) -> float:
        return self._clock

    def _expired(self, entry: _Entry, reference: float) -> bool:
        return reference - entry.written_at > self._ttl

    def _live_entry(self, key: str, reference: float) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is None or self._expired(entry, reference):
            return None
        return entry

    def evaluate(self, key: str, timestamp: float) -> Decision:
        """Leak ``key``'s bucket to ``timestamp`` and try to admit one request.

        Returns ``(admitted, store)``. Rejections still record the drained
        bucket so the next call measures elapsed time from this one.
        """

        key = _check_key(key)
        timestamp = _check_timestamp(timestamp)

        clock = max(self._clock, timestamp)
        entry = self._live_entry(key, clock)
        if entry is None:
            bucket = Bucket(
                capacity=self._capacity,
                leak_rate=self._leak_rate,
                last_update=timestamp,
            )
        else:
            bucket = entry.bucket

        outcome = bucket.drain(timestamp).try_admit()
        seq = self._seq + 1
        entries = self._entries.set(key, _Entry(outcome.bucket, seq, clock))
        if outcome.admitted:
            DECISIONS.labels("admitted").inc()
        else:
            DECISIONS.labels("rejected").inc()
            logger.debug("rejected %r at %.3f: %s", key, timestamp, outcome.bucket)

        store = self._derive(entries, clock, seq, self._last_sweep)
        if clock - store._last_sweep >= store._sweep_interval:
            store = store._sweep(clock)
        if len(store._entries) > store._max_entries:
            store = store._trim()
        return Decision(outcome.admitted, store)

    def lookup(self, key: str) -> Optional[Bucket]:
        """Last written bucket for ``key`` with no leak applied."""

        if not isinstance(key, str) or not key.strip():
            return None
        entry = self._live_entry(key, self._clock)
        return entry.bucket if entry is not None else None

    def lookup_drained(self, key: str, as_of: float) -> Optional[Bucket]:
        """What ``key``'s bucket would hold at ``as_of``; nothing is written."""

        as_of = _check_timestamp(as_of, "as_of")
        bucket = self.lookup(key)
        return bucket.drain(as_of) if bucket is not None else None

    def active_count(self) -> int:
        # Includes expired entries that no sweep has removed yet.
        return len(self._entries)

    def snapshot(self, as_of: Optional[float] = None) -> Dict[str, Bucket]:
        if as_of is not None:
            as_of = _check_timestamp(as_of, "as_of")
        out: Dict[str, Bucket] = {}
        for key, entry in self._entries.items():
            if self._expired(entry, self._clock):
                continue
            out[key] = entry.bucket if as_of is None else entry.bucket.drain(as_of)
        return out

    def evict(self, now: Optional[float] = None) -> "BucketStore":
        """Drop expired entries, then trim to ``max_entries``.

        ``now`` moves the reference time forward; it never moves it back.
        """

        reference = self._clock
        if now is not None:
            reference = max(reference, _check_timestamp(now, "now"))
        store = self._derive(self._entries, reference, self._seq, self._last_sweep)
        store = store._sweep(reference)
        if len(store._entries) > store._max_entries:
            store = store._trim()
        return store

    def _sweep(self, reference: float) -> "BucketStore":
        doomed = [
            key
            for key, entry in self._entries.items()
            if self._expired(entry, reference)
        ]
        if doomed:
            EVICTIONS.labels("ttl").inc(len(doomed))
            logger.info("evicted %d expired bucket(s)", len(doomed))
        return self._derive(self._entries.discard(doomed), self._clock, self._seq, reference)

    def _trim(self) -> "BucketStore":
        excess = len(self._entries) - self._max_entries
        oldest = heapq.nsmallest(excess, self._entries.items(), key=lambda item: item[1].seq)
        EVICTIONS.labels("capacity").inc(excess)
        logger.info("evicted %d least recently written bucket(s)", excess)
        entries = self._entries.discard(key for key, _ in oldest)
        return self._derive(entries, self._clock, self._seq, self._last_sweep)

    def __repr__(self) -> str:
        return (
            f"BucketStore(capacity={self._capacity}, leak_rate={self._leak_rate:.2f}/s, "
            f"active_buckets={len(self._entries)})"
        )


def new_store(
    capacity: int,
    leak_rate: float,
    ttl: Optional[Duration] = DEFAULT_TTL_SECONDS,
    max_entries: int = DEFAULT_MAX_ENTRIES,
    sweep_interval: Optional[Duration] = None,
) -> BucketStore:
    return BucketStore(
        capacity,
        leak_rate,
        ttl=ttl,
        max_entries=max_entries,
        sweep_interval=sweep_interval,
    )
