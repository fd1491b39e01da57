# dedupvault

Components for a chunk-level deduplicating backup store. The package is a
library. It has no command-line program, so you import the parts you need.

## What is inside

- `dedupvault.serial`: `Writer` and `Reader`. They write and read big-endian
  16-, 32- and 64-bit integers, NUL-terminated strings and raw bytes. A
  `Writer` can be given a capacity, and writing past it raises `ValueError`.
- `dedupvault.queues`: two queues.
  - `Queue` is a plain FIFO.
  - `SyncQueue` is a bounded, thread-safe FIFO. Once you call `terminate()`,
    `push()` drops items and returns `False`. `pop()` and `top()` return `None`
    once the queue is drained. Iterating a `SyncQueue` consumes it until it is
    terminated and empty.
- `dedupvault.trace`: the chunk model and the trace format.
  - `Chunk` and `ChunkFlag` describe chunks and boundary markers.
  - `hash_to_code` and `code_to_hash` convert between 20-byte fingerprints and
    40-digit hex codes.
  - `write_trace` and `read_trace` write and read the text trace format over
    binary streams.
  - `trace_path` names the trace file for a backup path.
- `dedupvault.lru_cache`: two LRU structures.
  - `LRUCache` finds items with a matching predicate and counts hits and misses.
  - `LRUHashMap` finds items by key.
- `dedupvault.rewrite`: `RewriteBuffer`, a window of chunks that keeps
  per-container records (`ContainerRecord`) of the duplicate bytes it buffers.
  The module also has `records_by_length` and `pass_through`, which forwards
  chunks from one queue to another.
- `dedupvault.features`: container-id features.
  - `calc_feature` and `compute_features` give min-hash features of a set of
    container ids.
  - `FeatureTable` maps feature values to recipe ids.
  - `unique_containers` counts distinct container ids.
- `dedupvault.recipestore`: `RecipeStore` and `BackupVersion`.
  - A backup version `bvN` is stored as three files under `<directory>/recipes`:
    `.meta`, `.recipe` and `.records`.
  - Chunk pointers are grouped into segments. Segments are addressed by ids
    built with `make_segment_id` and taken apart with `segment_id_backup`,
    `segment_id_offset` and `segment_id_size`.
  - `RecipeStore.prefetch_segments` reads consecutive segments of any version.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

Round-trip a chunk trace:

```python
import io
from dedupvault.trace import Chunk, ChunkFlag, write_trace, read_trace

chunks = [
    Chunk(data=b"notes.txt", flags=ChunkFlag.FILE_START),
    Chunk(fp=bytes(range(20)), size=4096),
    Chunk(flags=ChunkFlag.FILE_END),
]
buf = io.BytesIO()
write_trace(chunks, buf)
buf.seek(0)
for chunk in read_trace(buf):
    print(chunk)
```

Use the bounded queue between threads:

```python
import threading
from dedupvault.queues import SyncQueue

q = SyncQueue(100)

def produce():
    for i in range(10):
        q.push(i)
    q.terminate()

threading.Thread(target=produce).start()
for item in q:
    print(item)
```

Write a backup version and read it back:

```python
import tempfile
from dedupvault.recipestore import ChunkPointer, FileRecipeMeta, RecipeStore
from dedupvault.trace import ChunkFlag

with tempfile.TemporaryDirectory() as workdir:
    store = RecipeStore(workdir)
    with store.create_backup_version("/data/project/") as bv:
        bv.append_segment_flag(ChunkFlag.SEGMENT_START, 2)
        bv.append_chunk_pointers([
            ChunkPointer(bytes(20), 0, 4096),
            ChunkPointer(bytes([1] * 20), 1, 4096),
        ])
        bv.append_segment_flag(ChunkFlag.SEGMENT_END, 0)
        bv.append_file_recipe_meta(FileRecipeMeta("notes.txt", 2, 8192))
        bv.update()
    store.close()

    with RecipeStore(workdir).open_backup_version(0) as bv:
        print(bv.read_next_file_recipe_meta())
        print(bv.read_next_chunk_pointers(2))
```

## What the package does not do

The package describes backups but does not store chunk data. It has:

- no container pool that holds chunk contents;
- no Bloom filter;
- no monitor of restore fragmentation;
- no step that orders file recipes by similarity.

It also has no command that runs a backup or a restore. `RecipeStore` keeps only
recipes and access records. The features and `FeatureTable` in
`dedupvault.features` are building blocks: the package does not apply them to
order recipes on its own.