"""Tests for the forward zero-copy CBOR reader."""

import pytest

from cborlite.reader import CborReader
from cborlite.wire import SIZE_MAX, MajorType, SimpleValue, Size
from cborlite.writer import CborWriter

SCENARIO = bytes.fromhex("82430a0b0c187b")


# ---------------------------------------------------------------------------
# Round trip with the writer
# ---------------------------------------------------------------------------


def test_read_scenario():
    reader = CborReader(SCENARIO)
    assert reader.read_array() == 2
    data = reader.read_data()
    assert data is not None
    assert len(data) == 3
    assert bytes(data) == b"\x0a\x0b\x0c"
    assert reader.read_unsigned() == (Size.SIZE_1, 123)
    assert reader.stop() == len(SCENARIO)


def test_read_back_from_writer_buffer():
    """Reader runs directly on the tail of the writer's buffer."""
    buffer = bytearray(128)
    writer = CborWriter(buffer)
    writer.open_map()
    writer.prepend_null()
    writer.prepend_text("k")
    writer.prepend_unsigned(70000)
    writer.prepend_unsigned(1)
    writer.wrap_map()
    encoded = writer.stop()
    start = len(buffer) - len(encoded)

    reader = CborReader(memoryview(buffer)[start:])
    assert reader.read_map() == 2
    assert reader.read_unsigned() == (Size.SIZE_1, 1)
    assert reader.read_unsigned() == (Size.SIZE_4, 70000)
    assert bytes(reader.read_text()) == b"k"
    assert reader.read_simple() == SimpleValue.NULL
    assert reader.remaining == 0


def test_data_is_not_copied():
    buffer = bytearray(b"\x42\x01\x02")
    reader = CborReader(buffer)
    data = reader.read_data()
    buffer[1] = 0xFF
    assert data[0] == 0xFF


# ---------------------------------------------------------------------------
# Unsigned integers
# ---------------------------------------------------------------------------


def test_immediate_value_reports_size_1():
    reader = CborReader(b"\x17")
    assert reader.read_unsigned() == (Size.SIZE_1, 23)
    assert reader.remaining == 0


@pytest.mark.parametrize(
    "encoded, size, value",
    [
        ("1818", Size.SIZE_1, 24),
        ("190100", Size.SIZE_2, 256),
        ("1a00010000", Size.SIZE_4, 65536),
        ("1b0000000100000000", Size.SIZE_8, 2**32),
    ],
)
def test_extension_widths(encoded, size, value):
    reader = CborReader(bytes.fromhex(encoded))
    assert reader.read_unsigned() == (size, value)
    assert reader.remaining == 0


def test_non_minimal_widths_accepted():
    """Longer encodings than necessary are still read."""
    reader = CborReader(bytes.fromhex("1900051b0000000000000001"))
    assert reader.read_unsigned() == (Size.SIZE_2, 5)
    assert reader.read_unsigned() == (Size.SIZE_8, 1)


@pytest.mark.parametrize("descriptor", [0x1C, 0x1D, 0x1E, 0x1F])
def test_reserved_additional_info_fails(descriptor):
    reader = CborReader(bytes([descriptor, 0, 0]))
    assert reader.read_unsigned() == (Size.NONE, 0)
    assert reader.offset == 1


def test_truncated_extension_fails():
    reader = CborReader(b"\x19\x01")
    assert reader.read_unsigned() == (Size.NONE, 0)
    assert reader.offset == 1


def test_read_unsigned_on_empty_input():
    reader = CborReader(b"")
    assert reader.read_unsigned() == (Size.NONE, 0)
    assert reader.offset == 0


def test_read_unsigned_ignores_major_type():
    reader = CborReader(b"\x83")
    assert reader.read_unsigned() == (Size.SIZE_1, 3)


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


def test_read_text():
    reader = CborReader(b"\x63abc")
    text = reader.read_text()
    assert bytes(text) == b"abc"


def test_text_is_not_validated():
    reader = CborReader(b"\x62\xff\xfe")
    assert bytes(reader.read_text()) == b"\xff\xfe"


def test_wrong_major_type_does_not_consume():
    reader = CborReader(b"\x63abc")
    assert reader.read_data() is None
    assert reader.offset == 0
    assert reader.read_array() == SIZE_MAX
    assert reader.read_map() == SIZE_MAX
    assert reader.offset == 0


def test_truncated_string_fails_within_bounds():
    """Declared length 5 but only 3 payload bytes are available."""
    raw = b"\x45\x01\x02\x03\x04\x05"
    reader = CborReader(raw, 4)
    assert reader.read_data() is None
    assert reader.offset == 1
    assert reader.remaining == 3


def test_empty_string():
    reader = CborReader(b"\x40")
    data = reader.read_data()
    assert data is not None
    assert len(data) == 0


# ---------------------------------------------------------------------------
# Arrays and maps
# ---------------------------------------------------------------------------


def test_declared_count_is_advisory():
    """Lenient mode returns the declared count even if bytes are missing."""
    reader = CborReader(b"\x85\x01")
    assert reader.read_array() == 5
    assert reader.read_unsigned() == (Size.SIZE_1, 1)
    assert reader.read_unsigned() == (Size.NONE, 0)


def test_strict_mode_rejects_overdeclared_array():
    reader = CborReader(b"\x85\x01", strict=True)
    assert reader.read_array() == SIZE_MAX


def test_strict_mode_rejects_overdeclared_map():
    reader = CborReader(b"\xa2\x01\x02\x03", strict=True)
    assert reader.read_map() == SIZE_MAX


def test_strict_mode_accepts_exact_fit():
    reader = CborReader(b"\xa1\x01\x02", strict=True)
    assert reader.read_map() == 1


def test_array_count_at_size_max_fails():
    reader = CborReader(b"\x9b" + b"\xff" * 8)
    assert reader.read_array() == SIZE_MAX


def test_map_count_at_size_max_fails():
    reader = CborReader(b"\xbb" + b"\xff" * 8)
    assert reader.read_map() == SIZE_MAX


def test_string_length_beyond_size_max_fails():
    """A 2**64-1 byte length is rejected once its header has been read."""
    reader = CborReader(b"\x5b" + b"\xff" * 8 + b"\x00")
    assert reader.read_data() is None
    assert reader.offset == 9
    assert reader.remaining == 1


def test_truncated_array_header_fails():
    reader = CborReader(b"\x98")
    assert reader.read_array() == SIZE_MAX


# ---------------------------------------------------------------------------
# Simple values and cursor
# ---------------------------------------------------------------------------


def test_read_simple_returns_raw_byte():
    reader = CborReader(b"\xf4\xf5\xf7\x01")
    assert reader.read_simple() == SimpleValue.FALSE
    assert reader.read_simple() == SimpleValue.TRUE
    assert reader.read_simple() == SimpleValue.UNDEFINED
    assert reader.read_simple() == 0x01
    assert reader.read_simple() == SimpleValue.NONE


def test_peek_major_type():
    reader = CborReader(b"\x20\xc1")
    assert reader.peek_major_type() == MajorType.NEGATIVE
    reader.read_simple()
    assert reader.peek_major_type() == MajorType.TAG
    reader.read_simple()
    assert reader.peek_major_type() == MajorType.NONE


def test_stop_reports_trailing_data():
    reader = CborReader(b"\x01\x02\x03")
    reader.read_unsigned()
    assert reader.stop() == 1
    assert reader.remaining == 2


def test_size_out_of_range_rejected():
    with pytest.raises(ValueError, match="out of range"):
        CborReader(b"\x01", 2)
