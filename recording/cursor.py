"""
Binary Cursor

Bounds-checked reads of fixed-width text fields and little-endian int16
samples from a read-only byte buffer.
"""

import numpy as np

from .constants import TEXT_ENCODING, SAMPLE_BYTES
from .errors import RangeError


class BinaryCursor:
    """
    Read-only view over a recording buffer.

    The buffer is never copied or mutated, so one buffer may back any
    number of cursors (and decoders) at once.
    """

    def __init__(self, buffer: bytes | bytearray | memoryview):
        self._data = np.frombuffer(buffer, dtype=np.uint8)

    def __len__(self) -> int:
        return int(self._data.size)

    def _check(self, offset: int, length: int) -> None:
        if offset < 0 or length < 0 or offset + length > self._data.size:
            raise RangeError(
                f"Read of {length} bytes at offset {offset} exceeds buffer "
                f"of {self._data.size} bytes."
            )

    def read_bytes(self, offset: int, length: int) -> bytes:
        """Raw bytes at [offset, offset + length)."""
        self._check(offset, length)
        return self._data[offset:offset + length].tobytes()

    def read_text(self, offset: int, width: int) -> str:
        """Fixed-width ASCII field, space padding trimmed."""
        return self.read_bytes(offset, width).decode(TEXT_ENCODING).strip()

    def read_int16(self, offset: int) -> int:
        """Single little-endian signed 16-bit integer."""
        return int(self.read_int16_array(offset, 1)[0])

    def read_int16_array(self, offset: int, count: int) -> np.ndarray:
        """
        Block of little-endian signed 16-bit integers.

        Returns
        -------
        np.ndarray
            Shape (count,), int16 view into the buffer (read-only)
        """
        self._check(offset, count * SAMPLE_BYTES)
        return self._data[offset:offset + count * SAMPLE_BYTES].view("<i2")
