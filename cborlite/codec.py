"""Object-level CBOR encode/decode built on CborWriter and CborReader."""

from __future__ import annotations

from typing import Any

from cborlite.reader import CborReader
from cborlite.wire import (
    MAX_NESTING,
    SIZE_MAX,
    UINT64_MAX,
    MajorType,
    SimpleValue,
    Size,
    byte_string_size,
    unsigned_size,
)
from cborlite.writer import CborWriter


class CborError(Exception):
    pass


class CborEncodeError(CborError):
    pass


class CborDecodeError(CborError):
    pass


class _Undefined:
    """The CBOR ``undefined`` simple value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()

_BYTES_TYPES = (bytes, bytearray, memoryview)

_SIMPLE_VALUES = {
    SimpleValue.FALSE: False,
    SimpleValue.TRUE: True,
    SimpleValue.NULL: None,
    SimpleValue.UNDEFINED: UNDEFINED,
}


def _check_unsigned(value: int) -> None:
    if value < 0:
        raise CborEncodeError(f"negative integers are not supported: {value}")
    if value > UINT64_MAX:
        raise CborEncodeError(f"integer too large: {value}")


def _text_bytes(value: str) -> bytes:
    return value.encode("utf-8", "surrogateescape")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _check_depth(depth: int, max_nesting: int) -> None:
    if depth >= max_nesting:
        raise CborEncodeError(f"nesting deeper than {max_nesting}")


def _measure(value: Any, depth: int, max_nesting: int) -> int:
    if value is None or value is UNDEFINED or isinstance(value, bool):
        return 1
    if isinstance(value, int):
        _check_unsigned(value)
        return unsigned_size(value)
    if isinstance(value, _BYTES_TYPES):
        return byte_string_size(memoryview(value).nbytes)
    if isinstance(value, str):
        return byte_string_size(len(_text_bytes(value)))
    if isinstance(value, (list, tuple)):
        _check_depth(depth, max_nesting)
        return unsigned_size(len(value)) + sum(
            _measure(item, depth + 1, max_nesting) for item in value
        )
    if isinstance(value, dict):
        _check_depth(depth, max_nesting)
        return unsigned_size(len(value)) + sum(
            _measure(k, depth + 1, max_nesting) + _measure(v, depth + 1, max_nesting)
            for k, v in value.items()
        )
    raise CborEncodeError(f"unsupported type: {type(value).__name__}")


def encoded_size(value: Any, *, max_nesting: int = MAX_NESTING) -> int:
    """Return the exact number of bytes encode() produces for value.

    Raises CborEncodeError for unsupported values and for arrays/maps
    nested deeper than max_nesting.
    """
    return _measure(value, 0, max_nesting)


def _prepend_value(writer: CborWriter, value: Any, depth: int) -> None:
    if value is None:
        writer.prepend_null()
    elif value is UNDEFINED:
        writer.prepend_undefined()
    elif isinstance(value, bool):
        writer.prepend_bool(value)
    elif isinstance(value, int):
        _check_unsigned(value)
        writer.prepend_unsigned(value)
    elif isinstance(value, _BYTES_TYPES):
        writer.prepend_data(value)
    elif isinstance(value, str):
        writer.prepend_text(_text_bytes(value))
    elif isinstance(value, (list, tuple)):
        _check_depth(depth, writer.max_nesting)
        writer.open_array()
        for item in reversed(value):
            _prepend_value(writer, item, depth + 1)
        writer.wrap_array()
    elif isinstance(value, dict):
        _check_depth(depth, writer.max_nesting)
        writer.open_map()
        for key, item in reversed(list(value.items())):
            _prepend_value(writer, item, depth + 1)
            _prepend_value(writer, key, depth + 1)
        writer.wrap_map()
    else:
        raise CborEncodeError(f"unsupported type: {type(value).__name__}")


def encode(value: Any, *, buffer=None, max_nesting: int = MAX_NESTING) -> bytes:
    """Encode a Python value to CBOR bytes.

    Args:
        value: None, UNDEFINED, bool, unsigned int, bytes-like, str, list,
            tuple or dict built from those.
        buffer: Optional writable buffer to encode into. Defaults to a
            buffer of exactly encoded_size(value) bytes.
        max_nesting: Maximum number of simultaneously open arrays/maps.

    Returns:
        CBOR encoded bytes

    Raises:
        CborEncodeError: If the value is unsupported, does not fit into
            buffer, or nests deeper than max_nesting
    """
    size = encoded_size(value, max_nesting=max_nesting)
    if buffer is None:
        buffer = bytearray(size)
    writer = CborWriter(buffer, max_nesting=max_nesting)
    _prepend_value(writer, value, 0)
    encoded = writer.stop()
    if encoded is None:
        raise CborEncodeError(
            f"encoding failed: needs {size} bytes "
            f"(buffer has {memoryview(buffer).nbytes})"
        )
    return bytes(encoded)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _decode_item(reader: CborReader, depth: int, max_nesting: int) -> Any:
    offset = reader.offset
    major_type = reader.peek_major_type()

    if major_type == MajorType.NONE:
        raise CborDecodeError(f"unexpected end of input at offset {offset}")

    if major_type == MajorType.UNSIGNED:
        size, value = reader.read_unsigned()
        if size == Size.NONE:
            raise CborDecodeError(f"malformed unsigned integer at offset {offset}")
        return value

    if major_type in (MajorType.BYTE_STRING, MajorType.TEXT_STRING):
        if major_type == MajorType.BYTE_STRING:
            view = reader.read_data()
        else:
            view = reader.read_text()
        if view is None:
            raise CborDecodeError(f"truncated or malformed string at offset {offset}")
        if major_type == MajorType.BYTE_STRING:
            return bytes(view)
        return bytes(view).decode("utf-8", "surrogateescape")

    if major_type in (MajorType.ARRAY, MajorType.MAP):
        if depth >= max_nesting:
            raise CborDecodeError(
                f"nesting deeper than {max_nesting} at offset {offset}"
            )
        if major_type == MajorType.ARRAY:
            count = reader.read_array()
        else:
            count = reader.read_map()
        if count == SIZE_MAX:
            raise CborDecodeError(f"malformed container header at offset {offset}")
        if major_type == MajorType.ARRAY:
            return [_decode_item(reader, depth + 1, max_nesting) for _ in range(count)]
        result = {}
        for _ in range(count):
            key_offset = reader.offset
            key = _decode_item(reader, depth + 1, max_nesting)
            try:
                hash(key)
            except TypeError:
                raise CborDecodeError(
                    f"unhashable map key of type {type(key).__name__} at offset {key_offset}"
                ) from None
            result[key] = _decode_item(reader, depth + 1, max_nesting)
        return result

    if major_type == MajorType.SIMPLE:
        code = reader.read_simple()
        if code not in _SIMPLE_VALUES:
            raise CborDecodeError(f"unsupported simple value 0x{code:02X} at offset {offset}")
        return _SIMPLE_VALUES[code]

    raise CborDecodeError(
        f"unsupported major type {major_type >> 5} at offset {offset}"
    )


def decode(data, *, strict: bool = False, max_nesting: int = MAX_NESTING) -> Any:
    """Decode exactly one CBOR item.

    Args:
        data: CBOR encoded bytes
        strict: Reject array/map counts that cannot fit the remaining input
        max_nesting: Maximum depth of nested arrays/maps

    Returns:
        Decoded Python value

    Raises:
        CborDecodeError: If data is truncated, malformed, uses unsupported
            items, or has trailing bytes
    """
    reader = CborReader(data, strict=strict)
    value = _decode_item(reader, 0, max_nesting)
    end = reader.stop()
    if reader.remaining:
        raise CborDecodeError(f"{reader.remaining} trailing byte(s) at offset {end}")
    return value
