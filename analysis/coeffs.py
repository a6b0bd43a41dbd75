"""
Biquad Coefficient Formulas

Closed-form 2nd-order sections. Bilinear formulas follow the RBJ Audio EQ
Cookbook; two fixed forms cover the matched-Z transform and the
Bessel-Thomson prototype.

Every section is normalised so a0 = 1:

    H(z) = k * (b0 + b1 z^-1 + b2 z^-2) / (1 + a1 z^-1 + a2 z^-2)
"""

import math
from dataclasses import dataclass

from .errors import ParameterError


@dataclass(frozen=True)
class BiquadCoeffs:
    """Immutable section coefficients; safe to share across channels."""
    b: tuple[float, float, float]
    a: tuple[float, float]
    k: float = 1.0


@dataclass(frozen=True)
class BiquadParams:
    sample_rate: float
    cutoff: float
    q: float | None = None
    bandwidth: float | None = None     # Octaves, replaces Q where supported
    gain: float = 0.0                  # dB, peak/shelf only
    pre_gain: bool = False             # Expose passband gain as k
    a_s: float | None = None           # Matched-Z analog section terms
    b_s: float | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# SHARED PRE-CALCULATION
# ═══════════════════════════════════════════════════════════════════════════════

def _pre_calc(p: BiquadParams, *, use_bandwidth: bool = True) -> tuple[float, float, float, tuple]:
    """Return (alpha, cw, a0, (a1, a2)) for the Q- or bandwidth-based forms."""
    bandwidth = p.bandwidth if use_bandwidth else None
    if not p.q and not bandwidth:
        raise ParameterError("Either Q or bandwidth is required", parameter="q")

    w = 2.0 * math.pi * p.cutoff / p.sample_rate
    if bandwidth:
        alpha = math.sin(w) * math.sinh(math.log(2.0) / 2.0 * bandwidth * w / math.sin(w))
    else:
        alpha = math.sin(w) / (2.0 * p.q)
    cw = math.cos(w)
    a0 = 1.0 + alpha
    return alpha, cw, a0, (-2.0 * cw / a0, (1.0 - alpha) / a0)


def _pre_calc_gain(p: BiquadParams) -> tuple[float, float, float]:
    """Return (alpha, cw, A) for the peak/shelf forms."""
    if not p.q:
        raise ParameterError("Q is required for peak and shelf sections", parameter="q")
    w = 2.0 * math.pi * p.cutoff / p.sample_rate
    alpha = math.sin(w) / (2.0 * p.q)
    cw = math.cos(w)
    A = 10.0 ** (p.gain / 40.0)
    return alpha, cw, A


# ═══════════════════════════════════════════════════════════════════════════════
# COOKBOOK (BILINEAR) SECTIONS
# ═══════════════════════════════════════════════════════════════════════════════

def lowpass(p: BiquadParams) -> BiquadCoeffs:
    """H(s) = 1 / (s^2 + s/Q + 1)"""
    _, cw, a0, a = _pre_calc(p, use_bandwidth=False)
    if p.pre_gain:
        base = 1.0 / a0
        return BiquadCoeffs(b=(base, 2.0 * base, base), a=a, k=(1.0 - cw) * 0.5)
    base = (1.0 - cw) / (2.0 * a0)
    return BiquadCoeffs(b=(base, 2.0 * base, base), a=a)


def highpass(p: BiquadParams) -> BiquadCoeffs:
    """H(s) = s^2 / (s^2 + s/Q + 1)"""
    _, cw, a0, a = _pre_calc(p, use_bandwidth=False)
    if p.pre_gain:
        base = 1.0 / a0
        return BiquadCoeffs(b=(base, -2.0 * base, base), a=a, k=(1.0 + cw) * 0.5)
    base = (1.0 + cw) / (2.0 * a0)
    return BiquadCoeffs(b=(base, -2.0 * base, base), a=a)


def allpass(p: BiquadParams) -> BiquadCoeffs:
    """H(s) = (s^2 - s/Q + 1) / (s^2 + s/Q + 1)"""
    alpha, cw, a0, a = _pre_calc(p)
    return BiquadCoeffs(b=((1.0 - alpha) / a0, -2.0 * cw / a0, (1.0 + alpha) / a0), a=a)


def bandpass(p: BiquadParams) -> BiquadCoeffs:
    """H(s) = (s/Q) / (s^2 + s/Q + 1), 0 dB peak gain"""
    alpha, _, a0, a = _pre_calc(p)
    base = alpha / a0
    return BiquadCoeffs(b=(base, 0.0, -base), a=a)


def bandpass_q(p: BiquadParams) -> BiquadCoeffs:
    """H(s) = s / (s^2 + s/Q + 1), constant skirt gain, peak gain = Q"""
    _, _, a0, a = _pre_calc(p)
    base = math.sin(2.0 * math.pi * p.cutoff / p.sample_rate) / 2.0 / a0
    return BiquadCoeffs(b=(base, 0.0, -base), a=a)


def bandstop(p: BiquadParams) -> BiquadCoeffs:
    """H(s) = (s^2 + 1) / (s^2 + s/Q + 1)"""
    _, cw, a0, a = _pre_calc(p)
    base = 1.0 / a0
    return BiquadCoeffs(b=(base, -2.0 * cw / a0, base), a=a)


def peak(p: BiquadParams) -> BiquadCoeffs:
    """H(s) = (s^2 + s*(A/Q) + 1) / (s^2 + s/(A*Q) + 1)"""
    alpha, cw, A = _pre_calc_gain(p)
    a0 = 1.0 + alpha / A
    return BiquadCoeffs(
        b=((1.0 + alpha * A) / a0, -2.0 * cw / a0, (1.0 - alpha * A) / a0),
        a=(-2.0 * cw / a0, (1.0 - alpha / A) / a0),
    )


def lowshelf(p: BiquadParams) -> BiquadCoeffs:
    """H(s) = A * (s^2 + (sqrt(A)/Q)*s + A) / (A*s^2 + (sqrt(A)/Q)*s + 1)"""
    alpha, cw, A = _pre_calc_gain(p)
    sa = 2.0 * math.sqrt(A) * alpha
    a0 = A + 1.0 + (A - 1.0) * cw + sa
    return BiquadCoeffs(
        b=(
            A * (A + 1.0 - (A - 1.0) * cw + sa) / a0,
            2.0 * A * (A - 1.0 - (A + 1.0) * cw) / a0,
            A * (A + 1.0 - (A - 1.0) * cw - sa) / a0,
        ),
        a=(
            -2.0 * (A - 1.0 + (A + 1.0) * cw) / a0,
            (A + 1.0 + (A - 1.0) * cw - sa) / a0,
        ),
    )


def highshelf(p: BiquadParams) -> BiquadCoeffs:
    """H(s) = A * (A*s^2 + (sqrt(A)/Q)*s + 1) / (s^2 + (sqrt(A)/Q)*s + A)"""
    alpha, cw, A = _pre_calc_gain(p)
    sa = 2.0 * math.sqrt(A) * alpha
    a0 = A + 1.0 - (A - 1.0) * cw + sa
    return BiquadCoeffs(
        b=(
            A * (A + 1.0 + (A - 1.0) * cw + sa) / a0,
            -2.0 * A * (A - 1.0 + (A + 1.0) * cw) / a0,
            A * (A + 1.0 + (A - 1.0) * cw - sa) / a0,
        ),
        a=(
            2.0 * (A - 1.0 - (A + 1.0) * cw) / a0,
            (A + 1.0 - (A - 1.0) * cw - sa) / a0,
        ),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# FIXED-FORM SECTIONS
# ═══════════════════════════════════════════════════════════════════════════════

def lowpass_mz(p: BiquadParams) -> BiquadCoeffs:
    """
    Matched-Z lowpass: H(s) = 1 / (1 + as*s/wc + bs*s^2/wc^2)

    The analog pole pair s = wc * (sigma ± j*omega) maps to
    z = exp(s / fs). DC gain is folded into b0 unless pre_gain is set.
    """
    if not p.a_s or not p.b_s:
        raise ParameterError("as and bs are required for matched-Z sections", parameter="as/bs")

    w = 2.0 * math.pi * p.cutoff / p.sample_rate
    sigma = -(p.a_s / (2.0 * p.b_s))
    omega = -w * math.sqrt(abs(p.a_s ** 2 / (4.0 * p.b_s ** 2) - 1.0 / p.b_s))

    a1 = -2.0 * math.exp(sigma * w) * math.cos(omega)
    a2 = math.exp(2.0 * sigma * w)
    dc = 1.0 + a1 + a2

    if p.pre_gain:
        return BiquadCoeffs(b=(1.0, 0.0, 0.0), a=(a1, a2), k=dc)
    return BiquadCoeffs(b=(dc, 0.0, 0.0), a=(a1, a2))


def lowpass_bt(p: BiquadParams) -> BiquadCoeffs:
    """Bessel-Thomson lowpass: H(s) = 3 / (s^2 + 3s + 3)"""
    wp = math.tan(2.0 * math.pi * p.cutoff / (2.0 * p.sample_rate))
    wp2 = wp * wp
    a0 = 3.0 * wp + 3.0 * wp2 + 1.0
    b0 = 3.0 * wp2 / a0
    return BiquadCoeffs(
        b=(b0, 2.0 * b0, b0),
        a=((6.0 * wp2 - 2.0) / a0, (3.0 * wp2 - 3.0 * wp + 1.0) / a0),
    )


def highpass_bt(p: BiquadParams) -> BiquadCoeffs:
    """Bessel-Thomson highpass: H(s) = 3s^2 / (3s^2 + 3s + 1)"""
    wp = math.tan(2.0 * math.pi * p.cutoff / (2.0 * p.sample_rate))
    wp2 = wp * wp
    a0 = wp2 + 3.0 * wp + 3.0
    b0 = 3.0 / a0
    return BiquadCoeffs(
        b=(b0, -2.0 * b0, b0),
        a=((2.0 * wp2 - 6.0) / a0, (wp2 - 3.0 * wp + 3.0) / a0),
    )


# Behavior name → section formula
FORMULAS = {
    "lowpass": lowpass,
    "highpass": highpass,
    "bandpass": bandpass,
    "bandpass_q": bandpass_q,
    "bandstop": bandstop,
    "allpass": allpass,
    "peak": peak,
    "lowshelf": lowshelf,
    "highshelf": highshelf,
    "lowpass_mz": lowpass_mz,
    "lowpass_bt": lowpass_bt,
    "highpass_bt": highpass_bt,
}
