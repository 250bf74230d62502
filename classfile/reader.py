"""Byte cursors over class file (big-endian) and DEX (little-endian) input."""

import struct

from core.errors import ClassFormatError, TruncatedInputError


class ByteReader:
    """Sequential reader; every read advances ``offset``."""

    __slots__ = ("data", "offset", "base")

    _U1 = struct.Struct(">B")
    _U2 = struct.Struct(">H")
    _U4 = struct.Struct(">I")
    _U8 = struct.Struct(">Q")
    _S1 = struct.Struct(">b")
    _S2 = struct.Struct(">h")
    _S4 = struct.Struct(">i")
    _S8 = struct.Struct(">q")
    _F4 = struct.Struct(">f")
    _F8 = struct.Struct(">d")

    def __init__(self, data, offset=0, base=0):
        self.data = bytes(data)
        self.offset = offset
        # Absolute position of data[0] in the enclosing file, for error offsets.
        self.base = base

    @property
    def remaining(self):
        return len(self.data) - self.offset

    @property
    def position(self):
        return self.base + self.offset

    def _unpack(self, fmt):
        if self.remaining < fmt.size:
            raise TruncatedInputError(self.position, fmt.size, self.remaining)
        (value,) = fmt.unpack_from(self.data, self.offset)
        self.offset += fmt.size
        return value

    def u1(self):
        return self._unpack(self._U1)

    def u2(self):
        return self._unpack(self._U2)

    def u4(self):
        return self._unpack(self._U4)

    def u8(self):
        return self._unpack(self._U8)

    def s1(self):
        return self._unpack(self._S1)

    def s2(self):
        return self._unpack(self._S2)

    def s4(self):
        return self._unpack(self._S4)

    def s8(self):
        return self._unpack(self._S8)

    def f4(self):
        return self._unpack(self._F4)

    def f8(self):
        return self._unpack(self._F8)

    def take(self, size):
        if size < 0 or self.remaining < size:
            raise TruncatedInputError(self.position, size, self.remaining)
        chunk = self.data[self.offset:self.offset + size]
        self.offset += size
        return chunk

    def sub_reader(self, size):
        """Reader over the next ``size`` bytes, keeping absolute offsets."""
        start = self.position
        return type(self)(self.take(size), base=start)

    def skip(self, size):
        self.take(size)

    def at(self, offset):
        """New reader over the same bytes, positioned at ``offset``."""
        if not 0 <= offset <= len(self.data):
            raise ClassFormatError(
                f"offset 0x{offset:x} outside input of {len(self.data)} bytes", offset=self.base + offset
            )
        return type(self)(self.data, offset, self.base)


class LittleEndianReader(ByteReader):
    """Same cursor for little-endian formats such as DEX."""

    __slots__ = ()

    _U1 = struct.Struct("<B")
    _U2 = struct.Struct("<H")
    _U4 = struct.Struct("<I")
    _U8 = struct.Struct("<Q")
    _S1 = struct.Struct("<b")
    _S2 = struct.Struct("<h")
    _S4 = struct.Struct("<i")
    _S8 = struct.Struct("<q")
    _F4 = struct.Struct("<f")
    _F8 = struct.Struct("<d")
