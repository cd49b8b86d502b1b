from leakgate.pmap import SHARDS, ShardedMap


def test_set_returns_new_map_and_keeps_old():
    empty: ShardedMap[int] = ShardedMap()

    one = empty.set("a", 1)
    two = one.set("a", 2)

    assert len(empty) == 0
    assert "a" not in empty
    assert one.get("a") == 1
    assert two.get("a") == 2
    assert len(two) == 1


def test_unrelated_shards_are_shared():
    base: ShardedMap[int] = ShardedMap()
    for i in range(200):
        base = base.set(f"k{i}", i)

    updated = base.set("k0", -1)

    shared = sum(1 for old, new in zip(base._shards, updated._shards) if old is new)
    assert shared == SHARDS - 1


def test_discard_removes_only_known_keys():
    m: ShardedMap[str] = ShardedMap().set("a", "x").set("b", "y").set("c", "z")

    smaller = m.discard(["a", "c", "missing", "a"])

    assert sorted(smaller) == ["b"]
    assert len(smaller) == 1
    assert len(m) == 3
    assert dict(m.items()) == {"a": "x", "b": "y", "c": "z"}


def test_discard_nothing_returns_same_map():
    m: ShardedMap[int] = ShardedMap().set("a", 1)

    assert m.discard([]) is m


def test_get_default_and_contains():
    m: ShardedMap[int] = ShardedMap().set("a", 1)

    assert m.get("b") is None
    assert m.get("b", 5) == 5
    assert "a" in m
    assert 3 not in m
