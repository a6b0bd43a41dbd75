"""
Recording package for EDF/EDF+ biosignal files.

Modules:
- constants: Format layout constants and EDF+ markers
- errors: FormatError / RangeError
- cursor: BinaryCursor bounds-checked buffer reads
- edf_types: Header, SignalDescriptor, Annotation value objects
- edf_reader: EDFReader header / signal / annotation decoding

Usage:
    from recording import EDFReader
    reader = EDFReader.from_path("night.edf")
    header = reader.read_header()
    uv = reader.read_signal(0, records=range(0, 30))
"""

from .errors import FormatError, RangeError
from .cursor import BinaryCursor
from .edf_types import Header, SignalDescriptor, Annotation
from .edf_reader import EDFReader, parse_tal_text, signal_field_offset

__version__ = "0.4.1"

__all__ = [
    # Errors
    "FormatError",
    "RangeError",

    # Buffer access
    "BinaryCursor",

    # Value objects
    "Header",
    "SignalDescriptor",
    "Annotation",

    # Decoder
    "EDFReader",
    "parse_tal_text",
    "signal_field_offset",
]
