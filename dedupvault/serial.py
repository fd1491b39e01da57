"""Fixed-layout, network-order serialisation into bounded buffers."""

import struct

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class Writer:
    """Appends big-endian integers, C strings and raw bytes to a buffer.

    ``capacity`` bounds the number of bytes that may be written; ``None``
    leaves the buffer unbounded. Writing past the bound raises ValueError.
    Every writing method returns the writer so calls can be chained.
    """

    def __init__(self, capacity=None):
        if capacity is not None and capacity < 0:
            raise ValueError("capacity must not be negative")
        self._capacity = capacity
        self._buf = bytearray()

    def _put(self, data):
        if self._capacity is not None and len(self._buf) + len(data) > self._capacity:
            raise ValueError(
                f"writing {len(data)} bytes exceeds capacity {self._capacity} "
                f"({len(self._buf)} already used)"
            )
        self._buf += data
        return self

    def _pack(self, fmt, value):
        try:
            data = struct.pack(fmt, value)
        except struct.error as exc:
            raise ValueError(f"{value!r} does not fit format {fmt!r}") from exc
        return self._put(data)

    def int16(self, value):
        return self._pack(">h", value)

    def uint16(self, value):
        return self._pack(">H", value)

    def int32(self, value):
        return self._pack(">i", value)

    def uint32(self, value):
        return self._pack(">I", value)

    def int64(self, value):
        return self._pack(">q", value)

    def uint64(self, value):
        return self._pack(">Q", value)

    def string(self, text):
        """Write a NUL-terminated string (str or bytes)."""
        data = text.encode(_ENCODING, _ERRORS) if isinstance(text, str) else bytes(text)
        if b"\0" in data:
            raise ValueError("string must not contain NUL bytes")
        return self._put(data + b"\0")

    def raw(self, data):
        return self._put(bytes(data))

    def getvalue(self):
        return bytes(self._buf)

    def __len__(self):
        return len(self._buf)


class Reader:
    """Reads values written by :class:`Writer` from a byte string."""

    def __init__(self, data):
        self._data = bytes(data)
        self._pos = 0

    def _take(self, length):
        if length < 0:
            raise ValueError("length must not be negative")
        end = self._pos + length
        if end > len(self._data):
            raise ValueError(
                f"need {length} bytes but only {self.remaining()} remain"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def _unpack(self, fmt):
        return struct.unpack(fmt, self._take(struct.calcsize(fmt)))[0]

    def int16(self):
        return self._unpack(">h")

    def uint16(self):
        return self._unpack(">H")

    def int32(self):
        return self._unpack(">i")

    def uint32(self):
        return self._unpack(">I")

    def int64(self):
        return self._unpack(">q")

    def uint64(self):
        return self._unpack(">Q")

    def string(self):
        """Read a NUL-terminated string and return it as str."""
        end = self._data.find(b"\0", self._pos)
        if end < 0:
            raise ValueError("unterminated string")
        text = self._data[self._pos:end]
        self._pos = end + 1
        return text.decode(_ENCODING, _ERRORS)

    def raw(self, length):
        return self._take(length)

    def remaining(self):
        return len(self._data) - self._pos