from hypothesis import given, strategies as st

from dedupvault.lru_cache import LRUCache, LRUHashMap


def same(item, key):
    return item == key


def filled(max_size, items, **kwargs):
    cache = LRUCache(max_size, same, **kwargs)
    for item in items:
        cache.insert(item)
    return cache


def test_insert_orders_most_recent_first():
    cache = filled(-1, [1, 2, 3])
    assert list(cache) == [3, 2, 1]
    assert len(cache) == 3


def test_eviction_drops_least_recent_and_calls_callbacks():
    freed, victims = [], []
    cache = LRUCache(2, same, on_free=freed.append)
    cache.insert(1)
    cache.insert(2)
    evicted = cache.insert(3, on_victim=victims.append)
    assert evicted == 1
    assert list(cache) == [3, 2]
    assert freed == [1]
    assert victims == [1]


def test_lookup_promotes_and_counts():
    cache = filled(2, [1, 2])
    assert cache.lookup(1) == 1
    assert cache.lookup(9) is None
    assert (cache.hit_count, cache.miss_count) == (1, 1)
    cache.insert(3)
    assert list(cache) == [3, 1]


def test_peek_keeps_order():
    cache = filled(-1, [1, 2, 3])
    assert cache.peek(1) == 1
    assert cache.peek(7) is None
    assert list(cache) == [3, 2, 1]
    assert cache.hit_count == 0


def test_hits_uses_given_matcher_without_counting():
    cache = filled(-1, [10, 21, 30])
    found = cache.hits(1, lambda item, key: item % 10 == key)
    assert found == 21
    assert list(cache) == [21, 30, 10]
    assert cache.hit_count == 0


def test_kicks_removes_first_match_from_tail():
    freed = []
    cache = filled(-1, [1, 2, 3, 4], on_free=freed.append)
    kicked = cache.kicks(None, lambda item, key: item % 2 == 0)
    assert kicked == 2
    assert list(cache) == [4, 3, 1]
    assert freed == [2]
    assert cache.kicks(None, lambda item, key: item > 100) is None


def test_is_full():
    assert filled(-1, [1, 2, 3]).is_full() is False
    cache = filled(2, [1])
    assert cache.is_full() is False
    cache.insert(2)
    assert cache.is_full() is True


@given(st.integers(min_value=1, max_value=8), st.lists(st.integers(), unique=True))
def test_size_bounded_and_keeps_newest(max_size, items):
    cache = filled(max_size, items)
    assert len(cache) == min(max_size, len(items))
    assert list(cache) == list(reversed(items))[:max_size]


def test_hashmap_lookup_and_contains():
    cache = LRUHashMap(4)
    cache.insert("a", 1)
    assert cache.lookup("a") == 1
    assert cache.lookup("b") is None
    assert "a" in cache
    assert "b" not in cache


def test_hashmap_eviction_returns_victim():
    cache = LRUHashMap(2)
    cache.insert("a", 1)
    cache.insert("b", 2)
    cache.lookup("a")
    assert cache.insert_and_retrieve("c", 3) == ("b", 2)
    assert "b" not in cache
    assert len(cache) == 2


def test_hashmap_insert_frees_victim_value():
    freed = []
    cache = LRUHashMap(1, on_free=freed.append)
    cache.insert("a", 1)
    cache.insert("b", 2)
    assert freed == [1]
    assert cache.lookup("b") == 2


def test_hashmap_reinsert_replaces_value():
    cache = LRUHashMap(2)
    cache.insert("a", 1)
    assert cache.insert_and_retrieve("a", 5) is None
    assert cache.lookup("a") == 5
    assert len(cache) == 1