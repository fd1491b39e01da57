"""A FIFO queue and a bounded, thread-safe queue that can be terminated."""

import threading
from collections import deque


class Queue:
    """A plain first-in, first-out queue."""

    def __init__(self):
        self._items = deque()

    def push(self, item):
        self._items.append(item)

    def pop(self):
        """Remove and return the head, or None when empty."""
        return self._items.popleft() if self._items else None

    def top(self):
        """Return the head without removing it, or None when empty."""
        return self._items[0] if self._items else None

    def get(self, n):
        """Return the n-th item from the head, or None when out of range."""
        if n < 0 or n >= len(self._items):
            return None
        return self._items[n]

    def find(self, predicate):
        """Return the first item for which ``predicate`` is true, or None."""
        return next((item for item in self._items if predicate(item)), None)

    def clear(self, release=None):
        """Empty the queue, passing each removed item to ``release``."""
        while self._items:
            item = self._items.popleft()
            if release is not None:
                release(item)

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))


class SyncQueue:
    """A bounded queue shared between producer and consumer threads.

    ``push`` blocks while the queue holds ``max_size`` items (a size of zero
    or less means unbounded) and drops items once the queue is terminated.
    ``pop`` and ``top`` block until an item arrives and return None once the
    queue is terminated and empty.
    """

    def __init__(self, max_size=0):
        self.max_size = max_size
        self._items = Queue()
        self._terminated = False
        self._lock = threading.Lock()
        self._not_full = threading.Condition(self._lock)
        self._not_empty = threading.Condition(self._lock)

    @property
    def terminated(self):
        return self._terminated

    def push(self, item):
        """Append an item; return False if the queue was already terminated."""
        with self._lock:
            if self._terminated:
                return False
            while self.max_size > 0 and len(self._items) >= self.max_size:
                self._not_full.wait()
            self._items.push(item)
            self._not_empty.notify_all()
            return True

    def _wait_for_item(self):
        while not len(self._items):
            if self._terminated:
                return False
            self._not_empty.wait()
        return True

    def pop(self):
        with self._lock:
            if not self._wait_for_item():
                return None
            item = self._items.pop()
            self._not_full.notify_all()
            return item

    def top(self):
        with self._lock:
            if not self._wait_for_item():
                return None
            return self._items.top()

    def terminate(self):
        with self._lock:
            self._terminated = True
            self._not_empty.notify_all()

    def find(self, predicate, copy=None):
        """Find a queued item; pass it through ``copy`` while still locked."""
        with self._lock:
            item = self._items.find(predicate)
            if item is not None and copy is not None:
                item = copy(item)
            return item

    def __len__(self):
        with self._lock:
            return len(self._items)

    def __iter__(self):
        """Consume items until the queue is terminated and drained."""
        while True:
            item = self.pop()
            if item is None:
                return
            yield item