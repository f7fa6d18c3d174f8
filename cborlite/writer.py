"""CBOR writer that fills a caller-owned buffer from its end toward its start.

Items are prepended, so callers emit the last item first and wrap containers
after their contents:

    writer = CborWriter(buffer)
    writer.open_array()
    writer.prepend_unsigned(123)
    writer.prepend_data(b"\\x0a\\x0b\\x0c")
    writer.wrap_array()
    encoded = writer.stop()  # [h'0a0b0c', 123]

Any overflow or structural misuse poisons the writer. Later calls become
no-ops and stop() returns None, so a long chain of calls needs one check.
"""

from __future__ import annotations

import logging

from cborlite.wire import MAX_NESTING, UINT64_MAX, MajorType, SimpleValue, pack_unsigned

logger = logging.getLogger(__name__)


class CborWriter:
    """Tail-first CBOR encoder with a bounded stack of open containers."""

    def __init__(self, buffer, size: int | None = None, *, max_nesting: int = MAX_NESTING):
        view = memoryview(buffer)
        if view.readonly:
            raise TypeError("CBOR writer needs a writable buffer")
        if size is None:
            size = view.nbytes
        if size < 0 or size > view.nbytes:
            raise ValueError(f"size {size} out of range for {view.nbytes}-byte buffer")
        if max_nesting < 1:
            raise ValueError(f"max_nesting must be at least 1, got {max_nesting}")

        self._buffer = view.cast("B")[:size]
        self._end = size
        # Write position; None once the writer has failed
        self._position: int | None = size
        self._max_nesting = max_nesting
        # Counts down from max_nesting (nothing open) to 0 (all frames in use)
        self._nesting_depth = max_nesting
        self._objects = [0] * max_nesting

    @property
    def failed(self) -> bool:
        return self._position is None

    @property
    def free(self) -> int:
        """Bytes left in front of the write position."""
        return self._position or 0

    @property
    def nesting_depth(self) -> int:
        """Number of currently open arrays and maps."""
        return self._max_nesting - self._nesting_depth

    @property
    def max_nesting(self) -> int:
        return self._max_nesting

    def stop(self) -> memoryview | None:
        """Return the encoded bytes, or None if a failure occurred or a container is open."""
        if self._position is None or self._nesting_depth != self._max_nesting:
            return None
        return self._buffer[self._position:self._end]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fail(self, reason: str) -> None:
        if self._position is not None:
            logger.debug("CBOR writer failed: %s", reason)
        self._position = None

    def _increment(self) -> None:
        if self._nesting_depth == self._max_nesting:
            return
        self._objects[self._nesting_depth] += 1

    def _prepend(self, chunk) -> None:
        size = len(chunk)
        if not size:
            return
        if self.free < size:
            self._fail(f"{size} bytes do not fit into {self.free} free bytes")
            return
        self._position -= size
        self._buffer[self._position:self._position + size] = chunk

    def _prepend_unsigned(self, value: int) -> None:
        if not 0 <= value <= UINT64_MAX:
            self._fail(f"unsigned value {value} out of range")
            return
        self._prepend(pack_unsigned(value))

    def _tag(self, major_type: MajorType) -> None:
        # Only valid right after _prepend_unsigned(): its first byte has the
        # top three bits clear.
        if self._position is None:
            return
        self._buffer[self._position] |= major_type

    def _prepend_simple(self, value: SimpleValue) -> None:
        if not self.free:
            self._fail("no room for simple value")
        else:
            self._position -= 1
            self._buffer[self._position] = int(value)
        self._increment()

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def prepend_object(self, obj) -> None:
        """Prepend an already encoded CBOR item."""
        self._prepend(memoryview(obj).cast("B"))
        self._increment()

    def prepend_unsigned(self, value: int) -> None:
        self._prepend_unsigned(value)
        self._increment()

    def wrap_data(self, data_size: int) -> None:
        """Turn the data_size bytes in front of the write position into a byte string."""
        self.prepend_unsigned(data_size)
        self._tag(MajorType.BYTE_STRING)

    def prepend_data(self, data) -> None:
        data = memoryview(data).cast("B")
        self._prepend(data)
        self.wrap_data(len(data))

    def prepend_text(self, text) -> None:
        if isinstance(text, str):
            text = text.encode("utf-8", "surrogateescape")
        text = memoryview(text).cast("B")
        self._prepend(text)
        self.prepend_unsigned(len(text))
        self._tag(MajorType.TEXT_STRING)

    def prepend_null(self) -> None:
        self._prepend_simple(SimpleValue.NULL)

    def prepend_undefined(self) -> None:
        self._prepend_simple(SimpleValue.UNDEFINED)

    def prepend_bool(self, value) -> None:
        self._prepend_simple(SimpleValue.TRUE if value else SimpleValue.FALSE)

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def open_array(self) -> int | None:
        """Collect subsequently prepended items into an array.

        Returns the position of the first byte after the array.
        """
        if not self._nesting_depth:
            self._fail(f"more than {self._max_nesting} nested containers")
            return None
        self._nesting_depth -= 1
        self._objects[self._nesting_depth] = 0
        return self._position

    def wrap_array(self) -> int | None:
        """Close the innermost open container as an array.

        Returns the position of the array's first byte.
        """
        if self._nesting_depth == self._max_nesting:
            self._fail("wrap_array() without open container")
            return None
        return self._wrap(self._objects[self._nesting_depth], MajorType.ARRAY)

    def open_map(self) -> int | None:
        """Collect subsequently prepended key/value items into a map.

        Prepend each value before its key. Returns the position of the first
        byte after the map.
        """
        return self.open_array()

    def wrap_map(self) -> int | None:
        """Close the innermost open container as a map.

        Returns the position of the map's first byte.
        """
        if self._nesting_depth == self._max_nesting:
            self._fail("wrap_map() without open container")
            return None
        count = self._objects[self._nesting_depth]
        if count & 1:
            self._fail(f"map holds {count} items, key without value")
            return None
        return self._wrap(count >> 1, MajorType.MAP)

    def _wrap(self, count: int, major_type: MajorType) -> int | None:
        self._prepend_unsigned(count)
        if self._position is None:
            return None
        self._tag(major_type)
        self._nesting_depth += 1
        # The closed container is a single item of its parent
        self._increment()
        return self._position
