"""
Constants for filter design, filtering and display conditioning.

Separated into:
- DESIGN LIMITS: Hard bounds on cascade construction
- DEFAULTS & POLICY: Configurable values
- FILTER PROFILE: Default per-category filter chains
"""

# =============================================================================
# DESIGN LIMITS
# =============================================================================

MAX_ORDER = 12                 # Max 2nd-order stages per cascade

BEHAVIORS = (
    "lowpass",
    "highpass",
    "bandpass",
    "bandpass_q",              # Constant skirt gain, peak = Q
    "bandstop",
    "allpass",
    "peak",
    "lowshelf",
    "highshelf",
    "lowpass_mz",              # Matched-Z section (needs as/bs)
    "lowpass_bt",              # Bessel-Thomson fixed form
    "highpass_bt",
)

BAND_BEHAVIORS = ("bandpass", "bandstop")

CHARACTERISTICS = (
    "butterworth",
    "bessel",
    "chebyshev05",
    "chebyshev1",
    "chebyshev2",
    "chebyshev3",
)

TRANSFORMS = ("bilinear", "matchedZ")


# =============================================================================
# DEFAULTS & POLICY (configurable)
# =============================================================================

DEFAULT_RESPONSE_RESOLUTION = 100     # Points in response()
DEFAULT_DISPLAY_POINTS = 2000         # Resample target per channel
DEFAULT_ZERO_PHASE = True             # filtfilt vs single forward pass
DEFAULT_STEP_LENGTH = 200             # Samples in step/impulse diagnostics


# =============================================================================
# FILTER PROFILE (AASM scoring manual recommendations)
# =============================================================================

def _band(highpass_hz: float, lowpass_hz: float) -> list:
    return [
        {"behavior": "highpass", "cutoff": highpass_hz, "characteristic": "butterworth", "order": 2},
        {"behavior": "lowpass", "cutoff": lowpass_hz, "characteristic": "butterworth", "order": 2},
    ]


DEFAULT_FILTER_PROFILE = {
    "zero_phase": DEFAULT_ZERO_PHASE,
    "display_points": DEFAULT_DISPLAY_POINTS,
    "channels": [
        {"name": "EEG", "match": ["eeg"], "filters": _band(0.3, 35.0)},
        {"name": "EOG", "match": ["eog"], "filters": _band(0.3, 35.0)},
        {"name": "EMG", "match": ["emg"], "filters": _band(10.0, 100.0)},
        {"name": "ECG", "match": ["ecg", "ekg"], "filters": _band(0.3, 70.0)},
        {"name": "AIRFLOW", "match": ["flow"], "filters": _band(0.1, 15.0)},
        {"name": "BELT", "match": ["belt", "thor", "abdo", "effort"], "filters": _band(0.1, 15.0)},
        {"name": "PRESSURE", "match": ["pressure"], "filters": _band(0.03, 100.0)},
        {"name": "SNORE", "match": ["snore"], "filters": _band(10.0, 100.0)},
    ],
}
