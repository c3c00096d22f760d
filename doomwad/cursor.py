"""
Bounds-checked little-endian reader over an immutable byte buffer.

Every decoder owns one ByteCursor for the duration of a single decode
pass.  The buffer itself is never copied or mutated; only the position
moves.  Any read that would run past the end of the buffer raises
OutOfBounds instead of returning a short result.
"""

import struct
from typing import Optional

from doomwad.errors import OutOfBounds

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_I16 = struct.Struct("<h")
_U32 = struct.Struct("<I")


class ByteCursor:
    """
    Forward reader over *data*.

    *base* is the absolute archive offset of ``data[0]`` and *label* the
    lump name; both are only used to make error messages point at the
    right place in the file.
    """

    def __init__(self, data, position: int = 0, base: int = 0,
                 label: Optional[str] = None) -> None:
        self._data = memoryview(data).toreadonly()
        self._pos = position
        self.base = base
        self.label = label

    def __len__(self) -> int:
        return len(self._data)

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def seek(self, position: int) -> None:
        """Jump to *position*; a position past the end fails on the next read."""
        if position < 0:
            raise OutOfBounds(self.base + position, 0, self.base + len(self._data), self.label)
        self._pos = position

    def skip(self, count: int) -> None:
        self._check(count)
        self._pos += count

    def _check(self, width: int) -> None:
        if self._pos + width > len(self._data):
            raise OutOfBounds(
                self.base + self._pos, width, self.base + len(self._data), self.label
            )

    def _unpack(self, fmt: struct.Struct) -> int:
        self._check(fmt.size)
        value, = fmt.unpack_from(self._data, self._pos)
        self._pos += fmt.size
        return value

    def peek_u8(self) -> int:
        self._check(1)
        return self._data[self._pos]

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_u16le(self) -> int:
        return self._unpack(_U16)

    def read_i16le(self) -> int:
        return self._unpack(_I16)

    def read_u32le(self) -> int:
        return self._unpack(_U32)

    def read_bytes(self, count: int) -> bytes:
        """Return an owned copy of the next *count* bytes."""
        self._check(count)
        chunk = self._data[self._pos: self._pos + count].tobytes()
        self._pos += count
        return chunk

    def read_fixed_string(self, length: int) -> str:
        """
        Read a NUL-padded ASCII field of exactly *length* bytes.

        Copying stops at the first NUL and every copied byte is uppercased,
        but the position always advances by the full *length*.
        """
        raw = self.read_bytes(length)
        end = raw.find(b"\x00")
        if end != -1:
            raw = raw[:end]
        return raw.decode("ascii", errors="replace").upper()
