"""Chunk streams and the plain-text trace format that records them."""

import enum
import string
from dataclasses import dataclass, field

FINGERPRINT_SIZE = 20
TEMPORARY_ID = -1

_FILE_START_PREFIX = b"file start "
_FILE_END_PREFIX = b"file end"
_STREAM_END = b"stream end"
_HEX = frozenset(string.hexdigits)


class ChunkFlag(enum.IntFlag):
    """Markers carried by a chunk in the backup pipeline."""

    FILE_START = 1 << 0
    FILE_END = 1 << 1
    SEGMENT_START = 1 << 2
    SEGMENT_END = 1 << 3
    DUPLICATE = 1 << 4
    BOUNDARY = FILE_START | FILE_END | SEGMENT_START | SEGMENT_END


@dataclass
class Chunk:
    """A data chunk or a file/segment boundary marker."""

    size: int = 0
    fp: bytes = bytes(FINGERPRINT_SIZE)
    data: bytes = b""
    id: int = TEMPORARY_ID
    flags: ChunkFlag = field(default=ChunkFlag(0))
    old_fp: bytes = bytes(FINGERPRINT_SIZE)

    def has(self, flag):
        """True if any bit of ``flag`` is set on this chunk."""
        return bool(self.flags & flag)


def hash_to_code(digest):
    """Encode a 20-byte fingerprint as 40 upper-case hex digits."""
    digest = bytes(digest)
    if len(digest) != FINGERPRINT_SIZE:
        raise ValueError(f"fingerprint must be {FINGERPRINT_SIZE} bytes")
    return digest.hex().upper()


def code_to_hash(code):
    """Decode 40 hex digits (either case) into a 20-byte fingerprint."""
    if isinstance(code, (bytes, bytearray)):
        code = bytes(code).decode("ascii")
    if len(code) != 2 * FINGERPRINT_SIZE or not set(code) <= _HEX:
        raise ValueError(f"not a {2 * FINGERPRINT_SIZE}-digit hex code: {code!r}")
    return bytes.fromhex(code)


def trace_path(path):
    """Name of the trace file for a backup path: trailing slashes dropped."""
    stripped = str(path).rstrip("/")
    if not stripped:
        raise ValueError("path has no name to trace")
    return stripped + ".trace"


def write_trace(chunks, stream):
    """Write a chunk stream to a binary stream in trace format."""
    for chunk in chunks:
        if chunk.has(ChunkFlag.FILE_START):
            name = bytes(chunk.data)
            stream.write(_FILE_START_PREFIX + str(len(name)).encode() + b"\n")
            stream.write(name + b"\n")
        elif chunk.has(ChunkFlag.FILE_END):
            stream.write(_FILE_END_PREFIX + b"\n")
        else:
            stream.write(f"{hash_to_code(chunk.fp)} {chunk.size}\n".encode("ascii"))
    stream.write(_STREAM_END)


def _read_line(stream):
    line = stream.readline()
    if not line:
        raise ValueError("trace ends before 'stream end'")
    return line


def _parse_chunk_line(line):
    if len(line) < 42 or line[40:41] != b" ":
        raise ValueError(f"malformed chunk line: {line!r}")
    try:
        size = int(line[41:])
    except ValueError as exc:
        raise ValueError(f"malformed chunk size: {line!r}") from exc
    return Chunk(size=size, fp=code_to_hash(line[:40]))


def read_trace(stream):
    """Yield the chunks recorded in a binary trace stream."""
    while True:
        line = _read_line(stream)
        if line.rstrip(b"\n") == _STREAM_END:
            return
        if not line.startswith(_FILE_START_PREFIX):
            raise ValueError(f"expected a file start, got {line!r}")
        try:
            length = int(line[len(_FILE_START_PREFIX):])
        except ValueError as exc:
            raise ValueError(f"malformed file start: {line!r}") from exc
        if length < 0:
            raise ValueError(f"negative file name length: {line!r}")
        name = stream.read(length + 1)
        if len(name) != length + 1 or not name.endswith(b"\n"):
            raise ValueError("truncated file name")
        yield Chunk(data=name[:-1], flags=ChunkFlag.FILE_START)

        while True:
            line = _read_line(stream)
            if line.startswith(_FILE_END_PREFIX):
                break
            yield _parse_chunk_line(line)
        yield Chunk(flags=ChunkFlag.FILE_END)