"""Copy-on-write mapping that shares untouched shards between versions."""

from __future__ import annotations

from typing import Dict, Generic, Iterable, Iterator, Optional, Tuple, TypeVar

V = TypeVar("V")

SHARDS = 64


def _shard_of(key: str) -> int:
    return hash(key) % SHARDS


class ShardedMap(Generic[V]):
    """Persistent ``str -> V`` mapping.

    Every write returns a new map. Only the shard holding the key is copied;
    the other shards are shared with the previous version, so a write costs
    ``O(len / SHARDS + SHARDS)`` instead of a full copy.
    """

    __slots__ = ("_shards", "_size")

    def __init__(self, shards: Optional[Tuple[Dict[str, V], ...]] = None, size: int = 0) -> None:
        self._shards: Tuple[Dict[str, V], ...] = shards or tuple({} for _ in range(SHARDS))
        self._size = size

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        return self._shards[_shard_of(key)].get(key, default)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in self._shards[_shard_of(key)]

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[str]:
        for shard in self._shards:
            yield from shard

    def items(self) -> Iterator[Tuple[str, V]]:
        for shard in self._shards:
            yield from shard.items()

    def set(self, key: str, value: V) -> "ShardedMap[V]":
        index = _shard_of(key)
        shard = dict(self._shards[index])
        size = self._size if key in shard else self._size + 1
        shard[key] = value
        shards = self._shards[:index] + (shard,) + self._shards[index + 1 :]
        return ShardedMap(shards, size)

    def discard(self, keys: Iterable[str]) -> "ShardedMap[V]":
        """Return a map without ``keys``; unknown keys are ignored."""

        by_shard: Dict[int, list[str]] = {}
        for key in keys:
            by_shard.setdefault(_shard_of(key), []).append(key)
        if not by_shard:
            return self

        shards = list(self._shards)
        size = self._size
        for index, doomed in by_shard.items():
            shard = dict(shards[index])
            for key in doomed:
                if key in shard:
                    del shard[key]
                    size -= 1
            shards[index] = shard
        return ShardedMap(tuple(shards), size)
