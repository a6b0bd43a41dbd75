"""
Fixed-Count Resampler

Bounds the number of points handed to a renderer by linear interpolation
onto `n` evenly spaced positions.
"""

import numpy as np


def resample(x, n: int, upsample: bool = True):
    """
    Resample `x` to `n` points.

    Parameters
    ----------
    x : array-like
        Input samples
    n : int
        Target point count
    upsample : bool
        If False, inputs with at most `n` points are returned unchanged

    Returns
    -------
    np.ndarray or the input object
        - `x` itself when upsampling is disabled and `n >= len(x)`
        - a float64 copy when `n == len(x)`
        - `[x[(len(x) - 1) // 2]]` when `n == 1`
        - an empty array for empty input or `n <= 0`
        - otherwise `n` linearly interpolated points whose first and last
          values equal the first and last inputs

    Examples
    --------
    >>> resample(np.arange(0, 101, 10), 5)
    array([  0.,  25.,  50.,  75., 100.])
    """
    length = len(x)

    if not upsample and n >= length:
        return x
    if n == length:
        return np.array(x, dtype=np.float64, copy=True)
    if length == 0 or n <= 0:
        return np.empty(0, dtype=np.float64)

    values = np.asarray(x, dtype=np.float64)
    if n == 1:
        return values[[(length - 1) // 2]].copy()

    positions = np.arange(n) * ((length - 1) / (n - 1))
    left = np.floor(positions).astype(np.intp)
    right = np.minimum(np.ceil(positions).astype(np.intp), length - 1)
    ratio = positions - left

    out = values[left] * (1.0 - ratio) + values[right] * ratio
    out[0] = values[0]
    out[-1] = values[-1]
    return out
