"""The rewrite buffer that tracks duplicate chunks per container."""

from collections import deque
from dataclasses import dataclass

from dedupvault.trace import TEMPORARY_ID, ChunkFlag


@dataclass
class ContainerRecord:
    """How many buffered duplicate bytes refer to one container."""

    cid: int
    size: int = 0
    out_of_order: bool = True


class RewriteBuffer:
    """A window of chunks awaiting a rewrite decision.

    Boundary markers pass through without counting toward ``capacity``.
    ``on_duplicate_pop`` is called with each duplicate chunk leaving the
    buffer.
    """

    def __init__(self, capacity, on_duplicate_pop=None):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._on_duplicate_pop = on_duplicate_pop
        self._chunks = deque()
        self._records = {}
        self._num = 0
        self.size = 0

    def push(self, chunk):
        """Buffer a chunk; return True once the buffer is full."""
        if chunk.has(ChunkFlag.BOUNDARY):
            self._chunks.append(chunk)
            return False
        if self._num >= self.capacity:
            raise OverflowError("rewrite buffer is already full")
        if chunk.id != TEMPORARY_ID:
            if not chunk.has(ChunkFlag.DUPLICATE):
                raise ValueError("a chunk with a container id must be a duplicate")
            record = self._records.get(chunk.id)
            if record is None:
                self._records[chunk.id] = ContainerRecord(chunk.id, chunk.size)
            else:
                record.size += chunk.size
        self._chunks.append(chunk)
        self._num += 1
        self.size += chunk.size
        return self._num >= self.capacity

    def top(self):
        return self._chunks[0] if self._chunks else None

    def pop(self):
        """Remove and return the oldest chunk, or None when empty."""
        if not self._chunks:
            return None
        chunk = self._chunks.popleft()
        if chunk.has(ChunkFlag.BOUNDARY):
            return chunk
        if chunk.has(ChunkFlag.DUPLICATE) and chunk.id != TEMPORARY_ID:
            record = self._records.get(chunk.id)
            if record is None:
                raise KeyError(f"no record for container {chunk.id}")
            record.size -= chunk.size
            if record.size == 0:
                del self._records[chunk.id]
            if self._on_duplicate_pop is not None:
                self._on_duplicate_pop(chunk)
        self._num -= 1
        self.size -= chunk.size
        return chunk

    def records(self):
        """Container records in ascending container id order."""
        return [self._records[cid] for cid in sorted(self._records)]

    def __len__(self):
        return self._num


def records_by_length(records):
    """Container records sorted by buffered size, largest first."""
    return sorted(records, key=lambda record: -record.size)


def pass_through(source, sink, on_duplicate=None):
    """Forward every chunk unchanged, then terminate the sink."""
    for chunk in source:
        sink.push(chunk)
        if on_duplicate is not None and chunk.has(ChunkFlag.DUPLICATE):
            on_duplicate(chunk)
    sink.terminate()