"""
Signal Preprocessing

Per-channel display conditioning: profile filter chain → biquad cascade,
forward or zero-phase filtering, and fixed-count resampling.
"""

import logging

import numpy as np

from .coeffs import BiquadCoeffs
from .constants import DEFAULT_ZERO_PHASE, DEFAULT_DISPLAY_POINTS
from .design import design
from .engine import FilterEngine
from .resample import resample

log = logging.getLogger(__name__)

# Behaviors whose cutoff must stay below Nyquist
LOWPASS_BEHAVIORS = ("lowpass", "lowpass_mz", "lowpass_bt")


# ═══════════════════════════════════════════════════════════════════════════════
# CASCADE CONSTRUCTION
# ═══════════════════════════════════════════════════════════════════════════════

def build_channel_cascade(filters: list[dict], sample_rate: float) -> list[BiquadCoeffs]:
    """
    Design and concatenate a channel's filter chain.

    Parameters
    ----------
    filters : list of dict
        Profile filter entries (FilterSpec fields without sample_rate)
    sample_rate : float
        Channel sampling rate in Hz

    Returns
    -------
    list[BiquadCoeffs]
        Sections of every filter in chain order. Lowpass filters with a
        cutoff at or above Nyquist are left out.
    """
    nyquist = sample_rate / 2.0
    cascade = []
    for entry in filters:
        if entry["behavior"] in LOWPASS_BEHAVIORS and entry["cutoff"] >= nyquist:
            log.debug(
                "Skipping %s at %.4g Hz: not below Nyquist (%.4g Hz)",
                entry["behavior"], entry["cutoff"], nyquist,
            )
            continue
        cascade.extend(design({**entry, "sample_rate": sample_rate}))
    return cascade


# ═══════════════════════════════════════════════════════════════════════════════
# CHANNEL CONDITIONING
# ═══════════════════════════════════════════════════════════════════════════════

def filter_channel(
    samples: np.ndarray,
    engine: FilterEngine,
    *,
    zero_phase: bool = DEFAULT_ZERO_PHASE,
    channel=0,
) -> np.ndarray:
    """Run `engine` over one channel, zero-phase or forward only."""
    if not len(engine):
        return np.asarray(samples, dtype=np.float64).copy()
    if zero_phase:
        return engine.filtfilt(samples, channel=channel)
    return engine.multi_step(samples, channel=channel)


def preprocess_channel(
    physical: np.ndarray,
    *,
    sample_rate: float,
    filters: list[dict] | None = None,
    zero_phase: bool = DEFAULT_ZERO_PHASE,
    display_points: int | None = DEFAULT_DISPLAY_POINTS,
    remove_dc: bool = False,
) -> tuple[np.ndarray, FilterEngine]:
    """
    Full display conditioning for a single channel.

    Parameters
    ----------
    physical : np.ndarray
        Calibrated samples in physical units
    sample_rate : float
        Sampling rate in Hz
    filters : list of dict, optional
        Profile filter entries; None or empty leaves the signal unfiltered
    zero_phase : bool
        filtfilt instead of a single forward pass
    display_points : int, optional
        Resample target; None keeps every sample. Inputs shorter than the
        target are not upsampled.
    remove_dc : bool
        Subtract the mean before filtering

    Returns
    -------
    display : np.ndarray
        Conditioned samples
    engine : FilterEngine
        Engine used, for response diagnostics
    """
    x = np.asarray(physical, dtype=np.float64)
    if remove_dc and x.size:
        x = x - np.mean(x)

    engine = FilterEngine(build_channel_cascade(filters or [], sample_rate))
    y = filter_channel(x, engine, zero_phase=zero_phase)

    if display_points is not None:
        y = resample(y, display_points, upsample=False)
    return y, engine


def display_time_axis(num_points: int, start: float, duration: float) -> np.ndarray:
    """Times (s) of `num_points` evenly spaced display points over [start, start + duration]."""
    if num_points <= 0:
        return np.empty(0, dtype=np.float64)
    if num_points == 1:
        return np.array([start + duration / 2.0])
    return np.linspace(start, start + duration, num_points)
