"""
Filter Engine

Applies a biquad cascade to sample sequences and computes frequency-domain
diagnostics.

Coefficients are immutable and shared; delay state lives in a per-channel
arena owned by the engine, so one engine can filter every channel of a
recording that uses the same cascade. A single channel's state must not be
stepped from two threads at once.

Each section is the direct-form II recursion

    temp = k*x - a1*z0 - a2*z1
    y    = b0*temp + b1*z0 + b2*z1
    z1, z0 = z0, temp

with stage i's output feeding stage i+1.
"""

import logging
import math
from dataclasses import dataclass
from collections.abc import MutableSequence
from typing import Hashable, Sequence

import numpy as np
from scipy import signal

from . import complex_math as cm
from .coeffs import BiquadCoeffs
from .complex_math import Complex
from .constants import DEFAULT_RESPONSE_RESOLUTION, DEFAULT_STEP_LENGTH

log = logging.getLogger(__name__)

ONE = Complex(1.0, 0.0)


@dataclass
class FrequencyResponse:
    magnitude: float
    phase: float                          # Radians, summed over stages
    db_magnitude: float
    unwrapped_phase: float | None = None  # Filled by FilterEngine.response()
    group_delay: float | None = None
    phase_delay: float | None = None


@dataclass(frozen=True)
class Peak:
    sample: int
    value: float


@dataclass
class ResponseExtrema:
    out: np.ndarray
    max: Peak | None = None
    min: Peak | None = None


@dataclass(frozen=True)
class PoleZero:
    """Roots of one section's numerator (zeros) and denominator (poles)."""
    zeros: tuple[Complex, Complex]
    poles: tuple[Complex, Complex]


# ═══════════════════════════════════════════════════════════════════════════════
# SECTION HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def _run_section(section: BiquadCoeffs, z: list, x: np.ndarray) -> np.ndarray:
    """
    Run one section over `x`, updating its delay state `z` in place.

    The recursion is split into its all-pole part (producing temp) and its
    FIR part, each evaluated by lfilter with initial conditions derived from
    (z0, z1).
    """
    if x.size == 0:
        return x.copy()

    b0, b1, b2 = section.b
    a1, a2 = section.a
    z0, z1 = z

    temp, _ = signal.lfilter([section.k], [1.0, a1, a2], x, zi=[-a1 * z0 - a2 * z1, -a2 * z0])
    out, _ = signal.lfilter([b0, b1, b2], [1.0], temp, zi=[b1 * z0 + b2 * z1, b2 * z0])

    z[1] = float(temp[-2]) if temp.size > 1 else z0
    z[0] = float(temp[-1])
    return out


def _section_response(section: BiquadCoeffs, z: Complex) -> Complex:
    """H(z) = k * (b0 + z*(b1 + z*b2)) / (1 + z*(a1 + z*a2))"""
    b0, b1, b2 = (Complex(v) for v in section.b)
    a1, a2 = (Complex(v) for v in section.a)
    numerator = cm.mul(Complex(section.k), cm.add(b0, cm.mul(z, cm.add(b1, cm.mul(b2, z)))))
    denominator = cm.add(ONE, cm.mul(z, cm.add(a1, cm.mul(a2, z))))
    return cm.div(numerator, denominator)


def _quadratic_roots(n1: float, n2: float) -> tuple[Complex, Complex]:
    """Roots of x^2 + n1*x + n2."""
    re = -n1 / 2.0
    disc = (n1 / 2.0) ** 2 - n2
    if disc < 0:
        im = math.sqrt(-disc)
        return Complex(re, im), Complex(re, -im)
    root = math.sqrt(disc)
    return Complex(re + root), Complex(re - root)


def _to_db(magnitude: float) -> float:
    with np.errstate(divide="ignore"):
        return float(20.0 * np.log10(magnitude))


def _find_extrema(out: np.ndarray) -> ResponseExtrema:
    """First local maximum, then the first local minimum after it."""
    result = ResponseExtrema(out=out)
    for i in range(1, len(out) - 1):
        if result.max is None and out[i] > out[i + 1]:
            result.max = Peak(sample=i, value=float(out[i]))
        if result.max is not None and result.min is None and out[i] < out[i + 1]:
            result.min = Peak(sample=i, value=float(out[i]))
            break
    return result


# ═══════════════════════════════════════════════════════════════════════════════
# ENGINE
# ═══════════════════════════════════════════════════════════════════════════════

class FilterEngine:
    """
    Cascade of biquad sections with per-channel delay state.

    Parameters
    ----------
    cascade : sequence of BiquadCoeffs
        Sections in application order (output of design.design)

    Examples
    --------
    >>> engine = FilterEngine(design({"sample_rate": 200, "cutoff": 0.3,
    ...                               "behavior": "highpass",
    ...                               "characteristic": "butterworth", "order": 2}))
    >>> y = engine.filtfilt(x, channel="C3-M2")
    """

    def __init__(self, cascade: Sequence[BiquadCoeffs]):
        self.cascade = tuple(cascade)
        self._states: dict[Hashable, list[list[float]]] = {}

    def __len__(self) -> int:
        return len(self.cascade)

    @property
    def channels(self) -> tuple:
        """Channel ids currently holding delay state."""
        return tuple(self._states)

    def _fresh_state(self) -> list[list[float]]:
        return [[0.0, 0.0] for _ in self.cascade]

    def _state(self, channel: Hashable) -> list[list[float]]:
        state = self._states.get(channel)
        if state is None:
            state = self._states[channel] = self._fresh_state()
        return state

    def _run(self, x: np.ndarray, state: list[list[float]]) -> np.ndarray:
        out = x
        for section, z in zip(self.cascade, state):
            out = _run_section(section, z, out)
        return out if self.cascade else x.copy()

    @staticmethod
    def _as_samples(samples) -> np.ndarray:
        return np.asarray(samples, dtype=np.float64).ravel()

    @staticmethod
    def _check_writable(samples, size: int) -> None:
        if isinstance(samples, np.ndarray):
            if samples.dtype != np.float64:
                raise ValueError(f"overwrite=True needs a float64 array, got {samples.dtype}")
        elif not isinstance(samples, MutableSequence):
            raise ValueError(f"overwrite=True needs a mutable sequence, got {type(samples).__name__}")
        elif len(samples) != size:
            raise ValueError("overwrite=True needs a flat sequence")

    @staticmethod
    def _write_back(samples, result: np.ndarray):
        if isinstance(samples, np.ndarray):
            samples[...] = result.reshape(samples.shape)
        else:
            samples[:] = result.tolist()
        return samples

    # ───────────────────────────────────────────────────────────────────────
    # Stepping
    # ───────────────────────────────────────────────────────────────────────

    def single_step(self, sample: float, channel: Hashable = 0) -> float:
        """Filter one sample, advancing the channel's delay state."""
        out = self._run(np.array([sample], dtype=np.float64), self._state(channel))
        return float(out[0])

    def multi_step(self, samples, overwrite: bool = False, channel: Hashable = 0) -> np.ndarray:
        """
        Filter a sequence, advancing the channel's delay state.

        With `overwrite=True` the result is written into `samples` (a float64
        array or a flat mutable sequence such as a list) and `samples` itself
        is returned.
        """
        x = self._as_samples(samples)
        if overwrite:
            self._check_writable(samples, x.size)
        result = self._run(x, self._state(channel))
        return self._write_back(samples, result) if overwrite else result

    def filtfilt(self, samples, overwrite: bool = False, channel: Hashable = 0) -> np.ndarray:
        """
        Zero-phase filtering.

        Forward pass with the channel's delay state, then a right-to-left
        pass over the forward output with a fresh state. The net response is
        the squared magnitude with zero phase.
        """
        x = self._as_samples(samples)
        if overwrite:
            self._check_writable(samples, x.size)
        forward = self._run(x, self._state(channel))
        backward = np.ascontiguousarray(self._run(forward[::-1].copy(), self._fresh_state())[::-1])
        return self._write_back(samples, backward) if overwrite else backward

    def simulate(self, samples) -> np.ndarray:
        """Filter a sequence on a fresh, discarded delay state."""
        return self._run(self._as_samples(samples), self._fresh_state())

    def reinit(self, channel: Hashable | None = None) -> None:
        """Zero delay state for one channel, or for every channel."""
        if channel is None:
            self._states.clear()
        else:
            self._states.pop(channel, None)
        log.debug("Reset delay state (%s)", "all channels" if channel is None else channel)

    # ───────────────────────────────────────────────────────────────────────
    # Frequency domain
    # ───────────────────────────────────────────────────────────────────────

    def response_at(self, sample_rate: float, frequency: float) -> FrequencyResponse:
        """Cascade response at one frequency (magnitudes multiply, phases add)."""
        theta = -2.0 * math.pi * frequency / sample_rate
        z = Complex(math.cos(theta), math.sin(theta))

        magnitude, phase = 1.0, 0.0
        for section in self.cascade:
            h = _section_response(section, z)
            magnitude *= cm.magnitude(h)
            phase += cm.phase(h)

        return FrequencyResponse(magnitude=magnitude, phase=phase, db_magnitude=_to_db(magnitude))

    def response(self, resolution: int = DEFAULT_RESPONSE_RESOLUTION) -> list[FrequencyResponse]:
        """
        Response at `resolution` points spanning DC to Nyquist.

        Evaluated with fs = 2 * resolution at frequencies 0..resolution-1.
        Phase is unwrapped by shifting every later point by -/+ 2*pi when
        adjacent points jump by more than +/- pi. Delays use the unwrapped
        phase magnitude:

            phase_delay[i] = |uw[i]| / (i / N)
            group_delay[i] = | |uw[i]| - |uw[i-1]| | / (pi / N)

        Points 0 and 1 are back-filled from points 1 and 2.
        """
        n = int(resolution)
        points = [self.response_at(2 * n, i) for i in range(n)]
        if not points:
            return points

        raw = np.array([p.phase for p in points])
        jumps = np.diff(raw)
        shifts = np.where(jumps > math.pi, -2.0 * math.pi, np.where(jumps < -math.pi, 2.0 * math.pi, 0.0))
        unwrapped = raw + np.concatenate(([0.0], np.cumsum(shifts)))
        magnitude = np.abs(unwrapped)

        phase_delay = np.full(n, math.nan)
        group_delay = np.zeros(n)
        idx = np.arange(1, n)
        phase_delay[1:] = magnitude[1:] / (idx / n)
        group_delay[1:] = np.abs(np.diff(magnitude)) / (math.pi / n)

        if n > 2:
            phase_delay[0], group_delay[0] = phase_delay[1], group_delay[1]
            phase_delay[1], group_delay[1] = phase_delay[2], group_delay[2]

        for i, point in enumerate(points):
            point.unwrapped_phase = float(unwrapped[i])
            point.phase_delay = float(phase_delay[i])
            point.group_delay = float(group_delay[i])
        return points

    # ───────────────────────────────────────────────────────────────────────
    # Time-domain diagnostics
    # ───────────────────────────────────────────────────────────────────────

    def step_response(self, length: int = DEFAULT_STEP_LENGTH) -> ResponseExtrema:
        return _find_extrema(self.simulate(np.ones(length)))

    def impulse_response(self, length: int = DEFAULT_STEP_LENGTH) -> ResponseExtrema:
        impulse = np.zeros(length)
        if length:
            impulse[0] = 1.0
        return _find_extrema(self.simulate(impulse))

    def poles_zeros(self) -> list[PoleZero]:
        """Per-section zeros of b0 + b1 z^-1 + b2 z^-2 and poles of 1 + a1 z^-1 + a2 z^-2."""
        result = []
        for section in self.cascade:
            b0, b1, b2 = section.b
            a1, a2 = section.a
            result.append(PoleZero(zeros=_quadratic_roots(b1 / b0, b2 / b0), poles=_quadratic_roots(a1, a2)))
        return result
