"""
Analysis Package

Display conditioning for decoded biosignal recordings: biquad filter
design, cascade filtering (forward and zero-phase), frequency/step
diagnostics, fixed-count resampling and PDF reports.

Usage:
    # Whole recording with the default AASM profile
    from analysis.pipeline import run_pipeline
    results = run_pipeline(Path("night.edf"), export_pdf_report=True)

    # Single filter
    from analysis import design, FilterEngine
    engine = FilterEngine(design({"sample_rate": 200, "cutoff": 35,
                                  "behavior": "lowpass",
                                  "characteristic": "butterworth", "order": 2}))
    y = engine.filtfilt(x)
"""

__version__ = "0.4.1"

# Primary API
from .pipeline import run_pipeline

# Filter design and application
from .errors import ParameterError
from .coeffs import BiquadCoeffs, BiquadParams
from .design import FilterSpec, design
from .engine import FilterEngine, FrequencyResponse, ResponseExtrema, Peak, PoleZero
from .resample import resample
from .complex_math import Complex

# Profiles and channel conditioning
from .config import load_filter_profile, validate_filter_profile, match_channel_filters
from .preprocess import build_channel_cascade, preprocess_channel

__all__ = [
    # Pipeline
    "run_pipeline",
    # Design
    "ParameterError",
    "BiquadCoeffs",
    "BiquadParams",
    "FilterSpec",
    "design",
    # Engine
    "FilterEngine",
    "FrequencyResponse",
    "ResponseExtrema",
    "Peak",
    "PoleZero",
    "Complex",
    # Resampling
    "resample",
    # Profiles
    "load_filter_profile",
    "validate_filter_profile",
    "match_channel_filters",
    "build_channel_cascade",
    "preprocess_channel",
]
