"""Backup versions: file recipe metadata, chunk pointer recipes and access records.

A backup version ``bvN`` consists of three files in the ``recipes`` directory:

* ``bvN.meta`` holds a header (version number, deleted flag, file and chunk
  counts, backup path) followed by one entry per file recipe;
* ``bvN.recipe`` holds the fingerprint sequence of the backup as fixed-size
  chunk pointers, possibly delimited by segment boundary flags;
* ``bvN.records`` holds the sequence of referenced container ids, ended by
  ``TEMPORARY_ID``.
"""

import io
import logging
import os
import struct
from dataclasses import dataclass, field
from pathlib import Path

from dedupvault.trace import FINGERPRINT_SIZE, TEMPORARY_ID, ChunkFlag

_log = logging.getLogger(__name__)

_POINTER = struct.Struct("<20sqi")
_HEADER = struct.Struct("<iiqqi")
_INT32 = struct.Struct("<i")
_INT64 = struct.Struct("<q")
_META_TAIL = struct.Struct("<qq")
_BUFFER_SIZE = 64 * 1024
_COUNT_FILE = "backupversion.count"
_SEGMENT_START_ID = -int(ChunkFlag.SEGMENT_START)
_SEGMENT_END_ID = -int(ChunkFlag.SEGMENT_END)
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


@dataclass(frozen=True)
class ChunkPointer:
    """A fingerprint and the container holding its chunk.

    A negative ``id`` equal to minus a segment flag marks a segment boundary;
    for a segment start, ``size`` is the segment length in chunks.
    """

    fp: bytes
    id: int
    size: int


@dataclass
class FileRecipeMeta:
    """Where a file's recipe lies: its name, chunk count and size."""

    filename: str
    chunknum: int = 0
    filesize: int = 0


@dataclass
class SegmentRecipe:
    """The chunk pointers of one segment, keyed by fingerprint."""

    id: int = TEMPORARY_ID
    kvpairs: dict = field(default_factory=dict)

    def __contains__(self, fp):
        return bytes(fp) in self.kvpairs

    def __iter__(self):
        return iter(list(self.kvpairs))


def make_segment_id(backup, offset, size):
    """Pack a 16-bit backup number, 32-bit offset and 16-bit size."""
    return (backup << 48) + (offset << 16) + size


def segment_id_size(segment_id):
    return segment_id & 0xFFFF


def segment_id_offset(segment_id):
    return (segment_id >> 16) & 0xFFFFFFFF


def segment_id_backup(segment_id):
    return segment_id >> 48


def _pack_pointer(pointer):
    fp = bytes(pointer.fp)
    if len(fp) != FINGERPRINT_SIZE:
        raise ValueError(f"fingerprint must be {FINGERPRINT_SIZE} bytes")
    return _POINTER.pack(fp, pointer.id, pointer.size)


def _read_pointer(stream):
    raw = stream.read(_POINTER.size)
    if len(raw) < _POINTER.size:
        return None
    return ChunkPointer(*_POINTER.unpack(raw))


def _is_segment_flag(pointer):
    return pointer.id in (_SEGMENT_START_ID, _SEGMENT_END_ID)


def _read_exact(stream, length):
    data = stream.read(length)
    if len(data) != length:
        raise EOFError(f"expected {length} bytes, got {len(data)}")
    return data


def _read_segment(stream, bv_num):
    """Read one flagged segment at the current offset, or None if there is none."""
    offset = stream.tell()
    flag = _read_pointer(stream)
    if flag is None or flag.id != _SEGMENT_START_ID:
        _log.debug("no more segment can be read at offset %d", offset)
        return None
    recipe = SegmentRecipe(make_segment_id(bv_num, offset, flag.size))
    for _ in range(flag.size):
        pointer = _read_pointer(stream)
        if pointer is None:
            raise EOFError("segment ends before its declared length")
        if pointer.id <= TEMPORARY_ID:
            raise ValueError(f"expected a container id, got {pointer.id}")
        recipe.kvpairs[pointer.fp] = pointer
    end = _read_pointer(stream)
    if end is None or end.id != _SEGMENT_END_ID:
        raise ValueError("segment is not closed by an end flag")
    return recipe


class BackupVersion:
    """An open backup version, either being written or being read."""

    def __init__(self, bv_num, path, fname_prefix, metadata, recipe, records,
                 writable, deleted=False, number_of_files=0, number_of_chunks=0):
        self.bv_num = bv_num
        self.path = path
        self.fname_prefix = fname_prefix
        self.deleted = deleted
        self.number_of_files = number_of_files
        self.number_of_chunks = number_of_chunks
        self.writable = writable
        self._metadata = metadata
        self._recipe = recipe
        self._records = records
        self._metabuf = bytearray()
        self._recordbuf = bytearray()
        self._segment = None
        self._segment_capacity = 0
        self._access_record = TEMPORARY_ID
        self._files_read = 0
        self._chunks_read = 0
        self._records_done = False

    def _require_writable(self):
        if not self.writable:
            raise io.UnsupportedOperation("backup version is opened for reading")

    def _header(self):
        path = self.path.encode(_ENCODING, _ERRORS)
        return _HEADER.pack(self.bv_num, int(self.deleted), self.number_of_files,
                            self.number_of_chunks, len(path)) + path

    def _flush_meta(self):
        if self._metabuf:
            self._metadata.seek(0, os.SEEK_END)
            self._metadata.write(self._metabuf)
            self._metabuf.clear()

    def _flush_records(self):
        if self._recordbuf:
            self._records.write(self._recordbuf)
            self._recordbuf.clear()

    def append_file_recipe_meta(self, meta):
        self._require_writable()
        name = meta.filename.encode(_ENCODING, _ERRORS)
        entry = _INT32.pack(len(name)) + name + _META_TAIL.pack(meta.chunknum, meta.filesize)
        if len(entry) > _BUFFER_SIZE - len(self._metabuf):
            self._flush_meta()
        self._metabuf += entry
        self.number_of_files += 1

    def append_segment_flag(self, flag, segment_size):
        """Open or close a segment; return its segment id, or TEMPORARY_ID on close."""
        self._require_writable()
        if flag not in (ChunkFlag.SEGMENT_START, ChunkFlag.SEGMENT_END):
            raise ValueError(f"not a segment flag: {flag!r}")
        self._recipe.seek(0, os.SEEK_END)
        offset = self._recipe.tell()
        if flag == ChunkFlag.SEGMENT_END:
            if self._segment is None:
                raise RuntimeError("no segment is open")
            _log.debug("write a segment at offset %d", offset)
            self._recipe.write(self._segment)
            self._segment = None
            self._segment_capacity = 0
            return TEMPORARY_ID
        if self._segment is not None:
            raise RuntimeError("a segment is already open")
        self._segment = bytearray()
        self._segment_capacity = segment_size
        return make_segment_id(self.bv_num, offset, segment_size)

    def append_chunk_pointers(self, pointers):
        """Add chunk pointers to the open segment and record container accesses."""
        self._require_writable()
        if self._segment is None:
            raise RuntimeError("no segment is open")
        for pointer in pointers:
            if pointer.id == TEMPORARY_ID:
                raise ValueError("a chunk pointer needs a container id")
            if len(self._segment) >= self._segment_capacity * _POINTER.size:
                raise OverflowError("segment is full")
            packed = _pack_pointer(pointer)
            if self._access_record not in (TEMPORARY_ID, pointer.id):
                if len(self._recordbuf) + _INT64.size > _BUFFER_SIZE:
                    self._flush_records()
                self._recordbuf += _INT64.pack(self._access_record)
            self._access_record = pointer.id
            self._segment += packed
            self.number_of_chunks += 1

    def update(self):
        """Write buffered metadata and records and refresh the header."""
        self._require_writable()
        self._flush_meta()
        self._metadata.seek(0)
        self._metadata.write(self._header())
        self._metadata.seek(0, os.SEEK_END)
        self._flush_records()
        if self._access_record != TEMPORARY_ID:
            self._records.write(_INT64.pack(self._access_record))
        # TEMPORARY_ID marks the end of the records.
        self._access_record = TEMPORARY_ID
        self._records.write(_INT64.pack(TEMPORARY_ID))
        for stream in (self._metadata, self._recipe, self._records):
            stream.flush()

    def read_next_file_recipe_meta(self):
        """Return the next file recipe meta, or None once all have been read."""
        if self._files_read >= self.number_of_files:
            return None
        (length,) = _INT32.unpack(_read_exact(self._metadata, _INT32.size))
        name = _read_exact(self._metadata, length).decode(_ENCODING, _ERRORS)
        chunknum, filesize = _META_TAIL.unpack(_read_exact(self._metadata, _META_TAIL.size))
        self._files_read += 1
        return FileRecipeMeta(name, chunknum, filesize)

    def read_next_chunk_pointers(self, n):
        """Read up to ``n`` chunk pointers, skipping segment boundaries.

        An empty list means the end of the stream.
        """
        remaining = self.number_of_chunks - self._chunks_read
        if remaining <= 0:
            return []
        num = min(n, remaining)
        result = []
        while len(result) < num:
            pointer = _read_pointer(self._recipe)
            if pointer is None:
                raise EOFError("recipe ends before its declared chunk count")
            if not _is_segment_flag(pointer):
                result.append(pointer)
        self._chunks_read += num
        return result

    def read_chunk_pointers(self, offset, n):
        """Read ``n`` chunk pointers at ``offset``; boundaries are an error."""
        self._recipe.seek(offset)
        result = []
        for index in range(n):
            pointer = _read_pointer(self._recipe)
            if pointer is None:
                raise EOFError(f"only {index} of {n} chunk pointers at offset {offset}")
            if _is_segment_flag(pointer):
                raise ValueError(f"segment boundary at pointer {index} of {n}")
            result.append(pointer)
        return result

    def read_next_records(self, n):
        """Read up to ``n`` container ids; None once the end marker was read."""
        if self._records_done:
            return None
        ids = []
        for _ in range(n):
            raw = self._records.read(_INT64.size)
            if len(raw) < _INT64.size:
                break
            ids.append(_INT64.unpack(raw)[0])
        if not ids or ids[-1] == TEMPORARY_ID:
            self._records_done = True
        return ids

    def read_next_segment(self):
        return _read_segment(self._recipe, self.bv_num)

    def close(self):
        for stream in (self._metadata, self._recipe, self._records):
            if not stream.closed:
                stream.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class RecipeStore:
    """The directory of backup versions and the running version counter."""

    def __init__(self, directory, fake_containers=False):
        self.directory = Path(directory) / "recipes"
        self.directory.mkdir(parents=True, exist_ok=True)
        self.fake_containers = fake_containers
        self._count = 0
        self._prefetched = None
        count_file = self.directory / _COUNT_FILE
        if count_file.exists():
            raw = count_file.read_bytes()[:_INT32.size]
            if len(raw) == _INT32.size:
                (self._count,) = _INT32.unpack(raw)
        _log.info("init recipe store successfully")

    def _prefix(self, number):
        return self.directory / f"bv{number}"

    def next_version_number(self):
        number = self._count
        self._count += 1
        return number

    def create_backup_version(self, path):
        """Start a new backup version of the directory containing ``path``."""
        text = str(path)
        cut = text.rfind("/")
        if cut < 0:
            raise ValueError(f"path has no directory part: {text!r}")
        number = self.next_version_number()
        prefix = self._prefix(number)
        if self.fake_containers:
            streams = (io.BytesIO(), io.BytesIO(), io.BytesIO())
        else:
            streams = (
                open(f"{prefix}.meta", "wb"),
                open(f"{prefix}.recipe", "w+b"),
                open(f"{prefix}.records", "wb"),
            )
        version = BackupVersion(number, text[:cut + 1], str(prefix), *streams, writable=True)
        version._metadata.write(version._header())
        return version

    def exists(self, number):
        return Path(f"{self._prefix(number)}.meta").exists()

    def open_backup_version(self, number):
        """Open an existing backup version for reading."""
        if not self.exists(number):
            raise FileNotFoundError(f"backup version {number} doesn't exist")
        prefix = self._prefix(number)
        metadata = open(f"{prefix}.meta", "rb")
        try:
            bv_num, deleted, files, chunks, pathlen = _HEADER.unpack(
                _read_exact(metadata, _HEADER.size))
            if bv_num != number:
                raise ValueError(f"bv{number}.meta holds version {bv_num}")
            path = _read_exact(metadata, pathlen).decode(_ENCODING, _ERRORS)
            recipe = open(f"{prefix}.recipe", "rb")
        except BaseException:
            metadata.close()
            raise
        try:
            records = open(f"{prefix}.records", "rb")
        except BaseException:
            metadata.close()
            recipe.close()
            raise
        if deleted:
            _log.info("backup version %d has been deleted", number)
        return BackupVersion(bv_num, path, str(prefix), metadata, recipe, records,
                             writable=False, deleted=bool(deleted),
                             number_of_files=files, number_of_chunks=chunks)

    def prefetch_segments(self, segment_id, prefetch_num, current=None):
        """Read up to ``prefetch_num`` consecutive segments starting at ``segment_id``.

        ``current`` is the version being backed up; segments of it are read
        from it directly, other versions are opened and kept open.
        """
        if segment_id == TEMPORARY_ID:
            raise ValueError("cannot prefetch a temporary segment id")
        bnum = segment_id_backup(segment_id)
        offset = segment_id_offset(segment_id)
        if current is not None and current.bv_num == bnum:
            version = current
        else:
            if self._prefetched is None or self._prefetched.bv_num != bnum:
                if self._prefetched is not None:
                    self._prefetched.close()
                    self._prefetched = None
                self._prefetched = self.open_backup_version(bnum)
            version = self._prefetched
        version._recipe.seek(offset)
        segments = []
        for _ in range(prefetch_num):
            segment = _read_segment(version._recipe, version.bv_num)
            if segment is None:
                if not segments:
                    raise ValueError(f"no segment at offset {offset} of backup {bnum}")
                break
            segments.append(segment)
        return segments

    def close(self):
        """Close any prefetched version and save the version counter."""
        if self._prefetched is not None:
            self._prefetched.close()
            self._prefetched = None
        (self.directory / _COUNT_FILE).write_bytes(_INT32.pack(self._count))