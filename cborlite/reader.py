"""Forward, zero-copy CBOR reader.

Every primitive read reports failure through a sentinel instead of raising.
Arrays and maps only yield their declared count: the caller issues that many
child reads itself and must stop at the first failed read, since there is no
rollback.
"""

from __future__ import annotations

import struct

from cborlite.wire import (
    ADDITIONAL_INFO_MASK,
    EXTENSION_FORMATS,
    MAJOR_TYPE_MASK,
    SIZE_MAX,
    MajorType,
    SimpleValue,
    Size,
)


class CborReader:
    """Reads CBOR items from a buffer it does not own.

    Strings are returned as memoryview slices of that buffer, which must
    outlive them. With strict=True, read_array() and read_map() reject
    counts that cannot fit into the remaining bytes.
    """

    def __init__(self, cbor, size: int | None = None, *, strict: bool = False):
        view = memoryview(cbor).cast("B")
        if size is None:
            size = view.nbytes
        if size < 0 or size > view.nbytes:
            raise ValueError(f"size {size} out of range for {view.nbytes}-byte buffer")
        self._cbor = view[:size]
        self._offset = 0
        self._size = size
        self.strict = strict

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return self._size - self._offset

    def stop(self) -> int:
        """Return the offset of the first byte that was not consumed."""
        return self._offset

    def peek_major_type(self) -> MajorType:
        """Inspect the major type of the next item without consuming it."""
        if not self.remaining:
            return MajorType.NONE
        return MajorType(self._cbor[self._offset] & MAJOR_TYPE_MASK)

    def read_unsigned(self) -> tuple[Size, int]:
        """Read an unsigned integer, ignoring the major type bits.

        Returns (size code, value); immediate values report Size.SIZE_1.
        On error returns (Size.NONE, 0). The descriptor byte stays consumed.
        """
        if not self.remaining:
            return Size.NONE, 0
        info = self._cbor[self._offset] & ADDITIONAL_INFO_MASK
        self._offset += 1

        if info < Size.SIZE_1:
            return Size.SIZE_1, info

        try:
            size = Size(info)
        except ValueError:
            return Size.NONE, 0
        width, fmt = EXTENSION_FORMATS[size]
        if width > self.remaining:
            return Size.NONE, 0

        (value,) = struct.unpack_from(fmt, self._cbor, self._offset)
        self._offset += width
        return size, value

    def _read_string(self) -> memoryview | None:
        size, length = self.read_unsigned()
        if size is Size.NONE or length > SIZE_MAX or length > self.remaining:
            return None
        start = self._offset
        self._offset += length
        return self._cbor[start:self._offset]

    def read_data(self) -> memoryview | None:
        """Read a byte string; returns a view of its payload or None."""
        if self.peek_major_type() != MajorType.BYTE_STRING:
            return None
        return self._read_string()

    def read_text(self) -> memoryview | None:
        """Read a text string as raw, unvalidated bytes; returns a view or None."""
        if self.peek_major_type() != MajorType.TEXT_STRING:
            return None
        return self._read_string()

    def _read_count(self, min_item_size: int) -> int:
        size, count = self.read_unsigned()
        if size is Size.NONE or count >= SIZE_MAX:
            return SIZE_MAX
        if self.strict and count * min_item_size > self.remaining:
            return SIZE_MAX
        return count

    def read_array(self) -> int:
        """Read an array header; returns the element count or SIZE_MAX."""
        if self.peek_major_type() != MajorType.ARRAY:
            return SIZE_MAX
        return self._read_count(1)

    def read_map(self) -> int:
        """Read a map header; returns the number of pairs or SIZE_MAX."""
        if self.peek_major_type() != MajorType.MAP:
            return SIZE_MAX
        return self._read_count(2)

    def read_simple(self) -> int:
        """Consume one byte and return it as a simple value code."""
        if not self.remaining:
            return SimpleValue.NONE
        value = self._cbor[self._offset]
        self._offset += 1
        return value
