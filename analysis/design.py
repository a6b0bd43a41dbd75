"""
Filter Designer

Turn a filter design request into an ordered cascade of biquad sections,
one per 2nd-order stage.
"""

import logging
import math
from dataclasses import dataclass, fields
from typing import Mapping

from .coeffs import BiquadCoeffs, BiquadParams, FORMULAS
from .constants import MAX_ORDER, CHARACTERISTICS, TRANSFORMS, BAND_BEHAVIORS
from .errors import ParameterError
from .filter_tables import table_value

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterSpec:
    """
    Cascade design request.

    Attributes
    ----------
    sample_rate : float
        Sampling rate in Hz
    cutoff : float
        Cutoff (or centre, for band/peak behaviors) frequency in Hz
    behavior : str
        One of constants.BEHAVIORS
    characteristic : str, optional
        One of constants.CHARACTERISTICS; required unless transform is matchedZ
        (where it selects the pole table and is still needed)
    order : int
        Number of 2nd-order stages, clamped to 0..MAX_ORDER
    transform : str, optional
        "bilinear" (default) or "matchedZ"
    one_db : bool
        Place the 1 dB (instead of 3 dB) corner at `cutoff`
    pre_gain : bool
        Expose section passband gain as k instead of folding it into b
    gain : float
        dB, peak and shelf behaviors
    bandwidth : float, optional
        Octaves, replaces Q for band/allpass behaviors
    """
    sample_rate: float
    cutoff: float
    behavior: str
    characteristic: str | None = None
    order: int = 1
    transform: str | None = None
    one_db: bool = False
    pre_gain: bool = False
    gain: float = 0.0
    bandwidth: float | None = None

    @classmethod
    def from_dict(cls, params: Mapping) -> "FilterSpec":
        known = {f.name for f in fields(cls)}
        unknown = set(params) - known
        if unknown:
            raise ParameterError(f"Unknown filter parameter(s): {sorted(unknown)}", parameter=sorted(unknown)[0])
        for required in ("sample_rate", "cutoff", "behavior"):
            if required not in params:
                raise ParameterError(f"Missing required filter parameter: {required}", parameter=required)
        return cls(**params)


# ═══════════════════════════════════════════════════════════════════════════════
# PER-STAGE PARAMETERS
# ═══════════════════════════════════════════════════════════════════════════════

def _stage_q_f(characteristic: str, order: int, stage: int, one_db: bool) -> tuple[float, float]:
    """Quality factor and cutoff correction for one stage."""
    if characteristic == "butterworth":
        return 0.5 / math.sin(math.pi / (order * 2) * (stage + 0.5)), 1.0
    q = table_value(characteristic, "q", order, stage)
    f = table_value(characteristic, "f1db" if one_db else "f3db", order, stage)
    return q, f


def _matched_z_stage(spec: FilterSpec, order: int, stage: int) -> BiquadCoeffs:
    if not spec.characteristic:
        raise ParameterError("as and bs are required for matched-Z sections", parameter="as/bs")
    params = BiquadParams(
        sample_rate=spec.sample_rate,
        cutoff=spec.cutoff,
        pre_gain=spec.pre_gain,
        a_s=table_value(spec.characteristic, "as", order, stage),
        b_s=table_value(spec.characteristic, "bs", order, stage),
    )
    return FORMULAS["lowpass_mz"](params)


def _standard_stage(spec: FilterSpec, order: int, stage: int) -> BiquadCoeffs:
    q, f = _stage_q_f(spec.characteristic, order, stage, spec.one_db)

    fd = spec.cutoff / f if spec.behavior == "highpass" else spec.cutoff * f
    if spec.behavior in BAND_BEHAVIORS and spec.characteristic == "bessel":
        fd = math.sqrt(order) * fd / order

    params = BiquadParams(
        sample_rate=spec.sample_rate,
        cutoff=fd,
        q=q,
        bandwidth=spec.bandwidth,
        gain=spec.gain,
        pre_gain=spec.pre_gain,
    )
    return FORMULAS[spec.behavior](params)


# ═══════════════════════════════════════════════════════════════════════════════
# DESIGN ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════════

def design(spec: FilterSpec | Mapping) -> list[BiquadCoeffs]:
    """
    Design a biquad cascade.

    Parameters
    ----------
    spec : FilterSpec or mapping
        Design request (a mapping uses FilterSpec field names)

    Returns
    -------
    list[BiquadCoeffs]
        One section per stage, `min(order, MAX_ORDER)` sections

    Raises
    ------
    ParameterError
        Missing characteristic, unknown behavior/characteristic/transform,
        missing Q/bandwidth or matched-Z table terms

    Notes
    -----
    Lowpass cutoffs at or above Nyquist are not clamped here; callers
    drop such stages (see preprocess.build_channel_cascade).
    """
    if isinstance(spec, Mapping):
        spec = FilterSpec.from_dict(spec)

    if spec.sample_rate is None or spec.sample_rate <= 0:
        raise ParameterError(f"Sample rate must be positive, got: {spec.sample_rate}", parameter="sample_rate")

    order = min(max(int(spec.order), 0), MAX_ORDER)

    if spec.transform == "matchedZ":
        cascade = [_matched_z_stage(spec, order, i) for i in range(order)]
    else:
        if spec.transform not in (None, "bilinear"):
            raise ParameterError(
                f"Unknown transform: {spec.transform} (expected one of {TRANSFORMS})",
                parameter="transform",
            )
        if not spec.characteristic:
            raise ParameterError("Characteristic is required", parameter="characteristic")
        if spec.characteristic not in CHARACTERISTICS:
            raise ParameterError(f"Unknown filter characteristic: {spec.characteristic}", parameter="characteristic")
        if spec.behavior not in FORMULAS:
            raise ParameterError(f"Unknown filter behavior: {spec.behavior}", parameter="behavior")
        cascade = [_standard_stage(spec, order, i) for i in range(order)]

    log.debug(
        "Designed %s/%s cascade: %d stage(s) at %.4g Hz (fs=%.4g)",
        spec.behavior, spec.characteristic, len(cascade), spec.cutoff, spec.sample_rate,
    )
    return cascade
