import numpy as np
import pytest

from analysis import resample


def test_downsample_evenly_spaced():
    assert resample(np.arange(0, 101, 10), 5).tolist() == [0.0, 25.0, 50.0, 75.0, 100.0]


def test_upsample_interpolates():
    assert resample([0.0, 1.0], 3).tolist() == [0.0, 0.5, 1.0]
    assert resample([2.0, 4.0, 8.0], 5).tolist() == pytest.approx([2.0, 3.0, 4.0, 6.0, 8.0])


def test_end_points_preserved():
    x = np.random.default_rng(0).normal(size=1237)
    out = resample(x, 400)
    assert out.size == 400
    assert out[0] == x[0]
    assert out[-1] == x[-1]
    assert out.min() >= x.min() and out.max() <= x.max()


def test_same_length_returns_copy():
    x = np.arange(5, dtype=np.int16)
    out = resample(x, 5)
    assert out is not x
    assert out.dtype == np.float64
    assert out.tolist() == [0.0, 1.0, 2.0, 3.0, 4.0]


def test_no_upsample_returns_input_unchanged():
    x = np.arange(4.0)
    assert resample(x, 4, upsample=False) is x
    assert resample(x, 10, upsample=False) is x


def test_no_upsample_still_downsamples():
    assert resample(np.arange(0.0, 9.0), 3, upsample=False).tolist() == [0.0, 4.0, 8.0]


def test_single_point_is_middle_sample():
    assert resample([1.0, 2.0, 3.0, 4.0], 1).tolist() == [2.0]
    assert resample([1.0, 2.0, 3.0], 1).tolist() == [2.0]


@pytest.mark.parametrize("x,n", [([], 5), ([1.0, 2.0], 0), ([1.0, 2.0], -3)])
def test_empty_result(x, n):
    out = resample(x, n)
    assert isinstance(out, np.ndarray)
    assert out.size == 0
