"""Shared wire-format definition for the restricted CBOR subset (RFC 8949).

Major types, simple values, additional-information size codes and the
minimal-width table used by both the writer and the reader.

Descriptor byte layout: [major type (3 bits)] [additional info (5 bits)].
Additional info 0-23 is an immediate value; 0x18-0x1B announce 1, 2, 4 or 8
big-endian extension bytes.
"""

from __future__ import annotations

import struct
import sys
from enum import IntEnum

# Default number of arrays/maps a writer may hold open at once
MAX_NESTING = 8

UINT8_MAX = 0xFF
UINT16_MAX = 0xFFFF
UINT32_MAX = 0xFFFFFFFF
UINT64_MAX = 0xFFFFFFFFFFFFFFFF

# Largest size representable on this host; also the reader's count sentinel
SIZE_MAX = sys.maxsize

MAJOR_TYPE_MASK = 0xE0
ADDITIONAL_INFO_MASK = 0x1F


class MajorType(IntEnum):
    NONE = -1
    UNSIGNED = 0x00
    NEGATIVE = 0x20  # recognised on read, never produced
    BYTE_STRING = 0x40
    TEXT_STRING = 0x60
    ARRAY = 0x80
    MAP = 0xA0
    TAG = 0xC0  # recognised on read, never produced
    SIMPLE = 0xE0


class SimpleValue(IntEnum):
    NONE = -1
    FALSE = 0xF4
    TRUE = 0xF5
    NULL = 0xF6
    UNDEFINED = 0xF7


class Size(IntEnum):
    NONE = -1  # error condition
    SIZE_1 = 0x18
    SIZE_2 = 0x19
    SIZE_4 = 0x1A
    SIZE_8 = 0x1B


# Extension width in bytes and big-endian struct format per size code
EXTENSION_FORMATS = {
    Size.SIZE_1: (1, ">B"),
    Size.SIZE_2: (2, ">H"),
    Size.SIZE_4: (4, ">I"),
    Size.SIZE_8: (8, ">Q"),
}


def unsigned_width(value: int) -> tuple[int, int]:
    """Return (extra bytes, descriptor) for the minimal encoding of value.

    value must lie in 0..UINT64_MAX. The descriptor never has any of the
    top three bits set, so a major type can be OR-ed onto it afterwards.
    """
    if value < Size.SIZE_1:
        return 0, value
    if value <= UINT8_MAX:
        return 1, Size.SIZE_1
    if value <= UINT16_MAX:
        return 2, Size.SIZE_2
    if value <= UINT32_MAX:
        return 4, Size.SIZE_4
    return 8, Size.SIZE_8


def pack_unsigned(value: int) -> bytes:
    """Minimal-width unsigned encoding of value, descriptor byte first."""
    extra, descriptor = unsigned_width(value)
    if not extra:
        return bytes([descriptor])
    _, fmt = EXTENSION_FORMATS[Size(descriptor)]
    return bytes([descriptor]) + struct.pack(fmt, value)


def unsigned_size(value: int) -> int:
    """Number of bytes prepend_unsigned() needs for value."""
    return 1 + unsigned_width(value)[0]


def byte_string_size(length: int) -> int:
    """Number of bytes a byte or text string of the given length occupies."""
    return unsigned_size(length) + length
