"""
EDF value objects: header, per-signal descriptor, annotation.
"""

from dataclasses import dataclass, field
from datetime import datetime

import numpy as np

from .constants import ANNOTATION_LABEL, EDF_PLUS_PREFIX, SAMPLE_BYTES


@dataclass
class SignalDescriptor:
    label: str
    transducer_type: str
    physical_dimension: str
    physical_min: float
    physical_max: float
    digital_min: int
    digital_max: int
    prefiltering: str
    samples_per_record: int
    reserved: str

    @property
    def is_annotation(self) -> bool:
        return ANNOTATION_LABEL in self.label

    def sample_rate(self, record_duration: float) -> float:
        """Samples per second, or 0.0 for zero-length records."""
        if record_duration <= 0:
            return 0.0
        return self.samples_per_record / record_duration

    def to_physical(self, digital):
        """
        Affine digital → physical map.

        physical = pmin + (digital - dmin) * (pmax - pmin) / (dmax - dmin)

        A degenerate digital range maps everything to 0.

        Parameters
        ----------
        digital : int or np.ndarray
            Raw sample value(s)

        Returns
        -------
        float or np.ndarray
            Physical value(s) in `physical_dimension` units
        """
        x = np.asarray(digital, dtype=np.float64)
        if self.digital_max == self.digital_min:
            out = np.zeros_like(x)
        else:
            scale = (self.physical_max - self.physical_min) / (self.digital_max - self.digital_min)
            out = self.physical_min + (x - self.digital_min) * scale
        return float(out) if out.ndim == 0 else out


@dataclass
class Header:
    version: str
    patient_id: str
    recording_id: str
    start_time: datetime
    header_bytes: int
    reserved: str
    data_records: int
    record_duration: float
    signal_count: int
    signals: list[SignalDescriptor] = field(default_factory=list)

    @property
    def is_edf_plus(self) -> bool:
        return self.reserved.startswith(EDF_PLUS_PREFIX)

    @property
    def duration(self) -> float:
        """Total recording length in seconds."""
        return self.data_records * self.record_duration

    @property
    def record_bytes(self) -> int:
        """Byte stride of one data record (all signals)."""
        return sum(s.samples_per_record * SAMPLE_BYTES for s in self.signals)

    @property
    def annotation_index(self) -> int | None:
        """Index of the first annotation channel, if any."""
        for i, sig in enumerate(self.signals):
            if sig.is_annotation:
                return i
        return None


@dataclass(frozen=True)
class Annotation:
    onset: float
    duration: float | None
    text: str
