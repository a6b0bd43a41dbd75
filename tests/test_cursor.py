import numpy as np
import pytest

from recording import BinaryCursor, RangeError


@pytest.fixture
def cursor():
    # "AB  " text field, then int16 LE: 1, -2, 32767
    return BinaryCursor(b"AB  " + np.array([1, -2, 32767], dtype="<i2").tobytes())


def test_read_text_trims_padding(cursor):
    assert cursor.read_text(0, 4) == "AB"


def test_read_int16_little_endian(cursor):
    assert cursor.read_int16(4) == 1
    assert cursor.read_int16(6) == -2
    assert cursor.read_int16(8) == 32767


def test_read_int16_array(cursor):
    block = cursor.read_int16_array(4, 3)
    assert block.dtype == np.dtype("<i2")
    assert block.tolist() == [1, -2, 32767]


def test_read_int16_at_odd_offset():
    cur = BinaryCursor(b"\x00" + np.array([-300, 300], dtype="<i2").tobytes())
    assert cur.read_int16_array(1, 2).tolist() == [-300, 300]


def test_length(cursor):
    assert len(cursor) == 10


@pytest.mark.parametrize("offset,length", [(8, 4), (10, 1), (-1, 2)])
def test_read_past_end_raises(cursor, offset, length):
    with pytest.raises(RangeError):
        cursor.read_bytes(offset, length)


def test_int16_array_past_end_raises(cursor):
    with pytest.raises(RangeError):
        cursor.read_int16_array(4, 4)


def test_range_error_is_index_error(cursor):
    with pytest.raises(IndexError):
        cursor.read_int16(9)


def test_buffer_is_not_modified():
    raw = bytearray(b"XY" + np.array([5], dtype="<i2").tobytes())
    before = bytes(raw)
    cur = BinaryCursor(raw)
    cur.read_text(0, 2)
    cur.read_int16_array(2, 1)
    assert bytes(raw) == before
