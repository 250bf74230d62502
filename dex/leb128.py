"""Unsigned LEB128, the variable-length integers of DEX data items."""

from core.errors import DexFormatError

# A u4 never needs more than five 7-bit groups.
MAX_BYTES = 5


def read_uleb128(reader):
    """Read one ULEB128 value, advancing ``reader`` past it."""
    start = reader.position
    result = 0
    for shift in range(0, 7 * MAX_BYTES, 7):
        byte = reader.u1()
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result
    raise DexFormatError(f"uleb128 longer than {MAX_BYTES} bytes", offset=start)
