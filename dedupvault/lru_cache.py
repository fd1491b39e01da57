"""Least-recently-used caches: a predicate-searched list and a keyed map."""

from collections import OrderedDict

INFINITE = -1

_MISSING = object()


class LRUCache:
    """An LRU cache whose items are found by a matching predicate.

    ``matches(item, key)`` decides whether a cached item answers a lookup.
    A ``max_size`` greater than zero bounds the cache; a negative size
    means an unbounded cache. ``on_free`` receives every evicted item.
    Items are kept most recently used first.
    """

    def __init__(self, max_size, matches, on_free=None):
        self.max_size = max_size
        self._matches = matches
        self._on_free = on_free
        self._items = []
        self.hit_count = 0
        self.miss_count = 0

    def _find(self, key, matches):
        return next(
            (idx for idx, item in enumerate(self._items) if matches(item, key)),
            None,
        )

    def _promote(self, idx):
        item = self._items.pop(idx)
        self._items.insert(0, item)
        return item

    def lookup(self, key):
        """Return the matching item and make it most recent, or None."""
        idx = self._find(key, self._matches)
        if idx is None:
            self.miss_count += 1
            return None
        self.hit_count += 1
        return self._promote(idx)

    def peek(self, key):
        """Return the matching item without touching its recency."""
        idx = self._find(key, self._matches)
        return None if idx is None else self._items[idx]

    def hits(self, key, matches):
        """Promote the item matched by ``matches`` without counting a hit."""
        idx = self._find(key, matches)
        return None if idx is None else self._promote(idx)

    def insert(self, item, on_victim=None):
        """Insert an item known to be absent; return the evicted item, if any."""
        victim = _MISSING
        if self.max_size > 0 and len(self._items) == self.max_size:
            victim = self._items.pop()
        self._items.insert(0, item)
        if victim is _MISSING:
            return None
        if on_victim is not None:
            on_victim(victim)
        if self._on_free is not None:
            self._on_free(victim)
        return victim

    def kicks(self, key, matches):
        """Remove the least recent item satisfying ``matches``; return it."""
        idx = next(
            (
                i
                for i in reversed(range(len(self._items)))
                if matches(self._items[i], key)
            ),
            None,
        )
        if idx is None:
            return None
        item = self._items.pop(idx)
        if self._on_free is not None:
            self._on_free(item)
        return item

    def is_full(self):
        if self.max_size < 0:
            return False
        return len(self._items) >= self.max_size

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        """Iterate from the most to the least recently used item."""
        return iter(list(self._items))


class LRUHashMap:
    """A keyed LRU map; ``on_free`` receives values evicted by ``insert``."""

    def __init__(self, max_size, on_free=None):
        self.max_size = max_size
        self._on_free = on_free
        self._map = OrderedDict()

    def lookup(self, key):
        """Return the value for ``key`` and make it most recent, or None."""
        if key not in self._map:
            return None
        self._map.move_to_end(key)
        return self._map[key]

    def insert_and_retrieve(self, key, value):
        """Insert a pair; return the evicted ``(key, value)`` or None."""
        if key in self._map:
            self._map[key] = value
            self._map.move_to_end(key)
            return None
        victim = None
        if self.max_size > 0 and len(self._map) == self.max_size:
            victim = self._map.popitem(last=False)
        self._map[key] = value
        return victim

    def insert(self, key, value):
        victim = self.insert_and_retrieve(key, value)
        if victim is not None and self._on_free is not None:
            self._on_free(victim[1])

    def __len__(self):
        return len(self._map)

    def __contains__(self, key):
        return key in self._map