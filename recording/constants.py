"""
Constants for the EDF/EDF+ recording format.

Separated into:
- LAYOUT CONSTANTS: Format-defined, do not change
- EDF+ MARKERS: Reserved-field and annotation-channel conventions
- DATE HANDLING: Two-digit year pivot
"""

# =============================================================================
# LAYOUT CONSTANTS (format-defined, do not change)
# =============================================================================

GLOBAL_HEADER_BYTES = 256     # Fixed global header
SIGNAL_HEADER_BYTES = 256     # Per-signal metadata, summed over all fields
SAMPLE_BYTES = 2              # Little-endian int16 per sample

# Global header: (field, width) in file order
GLOBAL_FIELDS = (
    ("version", 8),
    ("patient_id", 80),
    ("recording_id", 80),
    ("start_date", 8),        # dd.mm.yy
    ("start_time", 8),        # hh.mm.ss
    ("header_bytes", 8),
    ("reserved", 44),
    ("data_records", 8),
    ("record_duration", 8),
    ("signal_count", 4),
)

# Per-signal header: (field, width), stored column-major across signals
SIGNAL_FIELDS = (
    ("label", 16),
    ("transducer_type", 80),
    ("physical_dimension", 8),
    ("physical_min", 8),
    ("physical_max", 8),
    ("digital_min", 8),
    ("digital_max", 8),
    ("prefiltering", 80),
    ("samples_per_record", 8),
    ("reserved", 32),
)


def _field_starts(fields: tuple) -> dict:
    """Byte start of each field within a single (un-interleaved) header row."""
    starts = {}
    pos = 0
    for name, width in fields:
        starts[name] = (pos, width)
        pos += width
    return starts


GLOBAL_FIELD_OFFSETS = _field_starts(GLOBAL_FIELDS)
SIGNAL_FIELD_OFFSETS = _field_starts(SIGNAL_FIELDS)


# =============================================================================
# EDF+ MARKERS
# =============================================================================

EDF_PLUS_PREFIX = "EDF+"
DISCONTINUOUS_MARKER = "EDF+D"        # Unsupported variant
ANNOTATION_LABEL = "EDF Annotations"

TAL_SEPARATOR = "\x14"                # Between TAL segments
DURATION_SEPARATOR = "\x15"           # Between onset and duration
PADDING = "\x00"

# Text encoding for header fields and annotation records (never fails)
TEXT_ENCODING = "latin-1"


# =============================================================================
# DATE HANDLING
# =============================================================================

# EDF clipping date: yy >= 85 is 19yy, otherwise 20yy
YEAR_PIVOT = 85

MONTH_ABBREVIATIONS = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AUG": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}
