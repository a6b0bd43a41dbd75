"""
Filter Correction Tables

Per-(characteristic, order, stage) quality factors, cutoff correction
factors and matched-Z section coefficients.

`order` counts 2nd-order stages, so an order-n table row describes a
2n-pole analog prototype split into n conjugate pole pairs. Rows are
derived once from the scipy.signal analog prototypes:

    w0   = |p|                   section natural frequency
    Q    = w0 / (-2 Re p)
    f3dB = w0 / wc(3 dB)         cutoff correction, 3 dB corner at Fc
    f1dB = w0 / wc(1 dB)         cutoff correction, 1 dB corner at Fc
    as   = -2 Re p' / |p'|^2     H(s) = 1 / (1 + as*s + bs*s^2),
    bs   = 1 / |p'|^2            p' = p / wc(3 dB)

Stages are ordered by ascending Q.
"""

import math
from functools import lru_cache

import numpy as np
from scipy import signal
from scipy.optimize import brentq

from .constants import MAX_ORDER
from .errors import ParameterError

# ═══════════════════════════════════════════════════════════════════════════════
# CHARACTERISTICS
# ═══════════════════════════════════════════════════════════════════════════════

CHEBYSHEV_RIPPLE_DB = {
    "chebyshev05": 0.5,
    "chebyshev1": 1.0,
    "chebyshev2": 2.0,
    "chebyshev3": 3.0,
}

# Characteristics whose Q/f come from the table (Butterworth is closed-form)
TABLE_CHARACTERISTICS = ("bessel",) + tuple(CHEBYSHEV_RIPPLE_DB)

# Characteristics with matched-Z section tables
MATCHED_Z_CHARACTERISTICS = ("butterworth",) + TABLE_CHARACTERISTICS

TABLE_COLUMNS = ("q", "f3db", "f1db", "as", "bs")

ATTENUATION_3DB = 10.0 * math.log10(2.0)
ATTENUATION_1DB = 1.0


# ═══════════════════════════════════════════════════════════════════════════════
# ANALOG PROTOTYPES
# ═══════════════════════════════════════════════════════════════════════════════

def _prototype_poles(characteristic: str, n_poles: int) -> np.ndarray:
    if characteristic == "butterworth":
        _, p, _ = signal.buttap(n_poles)
    elif characteristic == "bessel":
        _, p, _ = signal.besselap(n_poles, norm="mag")
    else:
        _, p, _ = signal.cheb1ap(n_poles, CHEBYSHEV_RIPPLE_DB[characteristic])
    return np.asarray(p, dtype=np.complex128)


def _allpole_gain_db(poles: np.ndarray, w: float) -> float:
    """Magnitude of an all-pole prototype at jw, relative to DC, in dB."""
    gain = np.prod(np.abs(poles)) / np.prod(np.abs(1j * w - poles))
    return 20.0 * math.log10(gain)


def _corner(characteristic: str, poles: np.ndarray, attenuation_db: float) -> float:
    """
    Angular frequency (rad/s) where the prototype is `attenuation_db` below
    its DC gain.

    Even-order Chebyshev prototypes sit one ripple below their passband peak
    at DC, so the corner lies at `ripple + attenuation_db` below the peak.
    """
    n = len(poles)
    if characteristic == "butterworth":
        return (10.0 ** (attenuation_db / 10.0) - 1.0) ** (1.0 / (2 * n))

    if characteristic in CHEBYSHEV_RIPPLE_DB:
        ripple_db = CHEBYSHEV_RIPPLE_DB[characteristic]
        eps = math.sqrt(10.0 ** (ripple_db / 10.0) - 1.0)
        ratio = math.sqrt(10.0 ** ((ripple_db + attenuation_db) / 10.0) - 1.0) / eps
        return math.cosh(math.acosh(ratio) / n)

    # Bessel: monotonic magnitude, root-find the corner
    return brentq(lambda w: _allpole_gain_db(poles, w) + attenuation_db, 1e-6, 1e3)


def _sections(poles: np.ndarray) -> list:
    upper = [p for p in poles if p.imag > 0]
    return sorted(upper, key=lambda p: abs(p) / (-2.0 * p.real))


# ═══════════════════════════════════════════════════════════════════════════════
# TABLE ACCESS
# ═══════════════════════════════════════════════════════════════════════════════

@lru_cache(maxsize=None)
def filter_table(characteristic: str) -> dict:
    """
    Full table for one characteristic.

    Returns
    -------
    dict
        column name → tuple of rows, row `order - 1` holding `order` stage
        values (orders 1..MAX_ORDER)

    Raises
    ------
    ParameterError
        Characteristic has no table
    """
    if characteristic not in MATCHED_Z_CHARACTERISTICS:
        raise ParameterError(f"No filter table for characteristic: {characteristic}", parameter="characteristic")

    columns = {name: [] for name in TABLE_COLUMNS}
    for order in range(1, MAX_ORDER + 1):
        poles = _prototype_poles(characteristic, 2 * order)
        wc3 = _corner(characteristic, poles, ATTENUATION_3DB)
        wc1 = _corner(characteristic, poles, ATTENUATION_1DB)

        row = {name: [] for name in TABLE_COLUMNS}
        for p in _sections(poles):
            w0 = abs(p)
            pn = p / wc3
            row["q"].append(float(w0 / (-2.0 * p.real)))
            row["f3db"].append(float(w0 / wc3))
            row["f1db"].append(float(w0 / wc1))
            row["as"].append(float(-2.0 * pn.real / abs(pn) ** 2))
            row["bs"].append(float(1.0 / abs(pn) ** 2))

        for name in TABLE_COLUMNS:
            columns[name].append(tuple(row[name]))

    return {name: tuple(rows) for name, rows in columns.items()}


def table_value(characteristic: str, column: str, order: int, stage: int) -> float:
    """Single table entry, bounds-checked."""
    table = filter_table(characteristic)
    if column not in table:
        raise ParameterError(f"Unknown table column: {column}", parameter=column)
    if not 1 <= order <= len(table[column]):
        raise ParameterError(f"Order {order} outside table range 1..{len(table[column])}", parameter="order")
    row = table[column][order - 1]
    if not 0 <= stage < len(row):
        raise ParameterError(f"Stage {stage} outside 0..{len(row) - 1} for order {order}", parameter="order")
    return row[stage]
