"""
EDF / EDF+ Recording Decoder

Parse the fixed-layout header, reconstruct calibrated per-channel sample
streams, and decode the optional EDF+ annotation channel.
"""

import copy
import logging
import re
from datetime import datetime
from pathlib import Path

import numpy as np

from .constants import (
    GLOBAL_HEADER_BYTES,
    SIGNAL_HEADER_BYTES,
    SAMPLE_BYTES,
    GLOBAL_FIELD_OFFSETS,
    SIGNAL_FIELDS,
    SIGNAL_FIELD_OFFSETS,
    DISCONTINUOUS_MARKER,
    EDF_PLUS_PREFIX,
    TAL_SEPARATOR,
    DURATION_SEPARATOR,
    PADDING,
    TEXT_ENCODING,
    YEAR_PIVOT,
    MONTH_ABBREVIATIONS,
)
from .cursor import BinaryCursor
from .edf_types import Header, SignalDescriptor, Annotation
from .errors import FormatError, RangeError

log = logging.getLogger(__name__)

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_TAL_STAMP_RE = re.compile(r"^([+-]?\d+(?:\.\d*)?)(?:\x15(\d+(?:\.\d*)?)?)?$")
_STARTDATE_RE = re.compile(r"^Startdate (\d{2})-([A-Z]{3})-(\d{4})\b")

RecordSelection = int | range | slice | None


# ═══════════════════════════════════════════════════════════════════════════════
# FIELD PARSING HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def _parse_int(text: str, field: str, offset: int) -> int:
    if not _INT_RE.match(text):
        raise FormatError(f"Field '{field}' is not an integer: {text!r}", offset=offset, field=field)
    return int(text)


def _parse_float(text: str, field: str, offset: int) -> float:
    if not _FLOAT_RE.match(text):
        raise FormatError(f"Field '{field}' is not a number: {text!r}", offset=offset, field=field)
    return float(text)


def _parse_start_time(date_str: str, time_str: str, recording_id: str, edf_plus: bool) -> datetime:
    """
    Combine the dd.mm.yy / hh.mm.ss header fields into a naive datetime.

    Two-digit years use the EDF 1985 pivot. EDF+ files carry the full year
    in the recording id ("Startdate 10-DEC-2009 ..."), which wins when present.
    """
    date_offset = GLOBAL_FIELD_OFFSETS["start_date"][0]
    time_offset = GLOBAL_FIELD_OFFSETS["start_time"][0]

    date_parts = date_str.split(".")
    time_parts = time_str.split(".")
    if len(date_parts) != 3 or not all(p.isdigit() and len(p) == 2 for p in date_parts):
        raise FormatError(f"Start date is not dd.mm.yy: {date_str!r}", offset=date_offset, field="start_date")
    if len(time_parts) != 3 or not all(p.isdigit() and len(p) == 2 for p in time_parts):
        raise FormatError(f"Start time is not hh.mm.ss: {time_str!r}", offset=time_offset, field="start_time")

    day, month, yy = (int(p) for p in date_parts)
    year = 1900 + yy if yy >= YEAR_PIVOT else 2000 + yy

    if edf_plus:
        m = _STARTDATE_RE.match(recording_id)
        if m and m.group(2) in MONTH_ABBREVIATIONS:
            year = int(m.group(3))

    hour, minute, second = (int(p) for p in time_parts)
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError as e:
        raise FormatError(f"Invalid start timestamp {date_str} {time_str}: {e}", offset=date_offset, field="start_date")


def signal_field_offset(field: str, signal_count: int, signal_index: int) -> int:
    """
    Absolute byte offset of one signal's metadata field.

    Signal fields are stored column-major: field X of every signal comes
    before field Y of any signal.

        offset = 256 + field_start * signal_count + field_width * signal_index
    """
    start, width = SIGNAL_FIELD_OFFSETS[field]
    return GLOBAL_HEADER_BYTES + start * signal_count + width * signal_index


# ═══════════════════════════════════════════════════════════════════════════════
# ANNOTATION (TAL) PARSER
# ═══════════════════════════════════════════════════════════════════════════════

def parse_tal_text(text: str) -> list[Annotation]:
    """
    Decode one annotation record's text into events.

    Segments are separated by 0x14. A segment that is entirely a time stamp
    ("onset" or "onset<0x15>duration") starts a new annotation list; every
    other non-empty segment is an annotation sharing the latest time stamp,
    even when it begins with a digit. A segment holding 0x15 that does not
    parse is a malformed time stamp: it is dropped together with the text
    that follows it. Never raises.
    """
    events = []
    onset: float | None = None
    duration: float | None = None

    for segment in text.replace(PADDING, "").split(TAL_SEPARATOR):
        if not segment:
            continue

        stamp = _TAL_STAMP_RE.match(segment)
        if stamp:
            onset = float(stamp.group(1))
            duration = float(stamp.group(2)) if stamp.group(2) else None
        elif DURATION_SEPARATOR in segment:
            log.debug("Skipping malformed TAL time stamp %r", segment)
            onset, duration = None, None
        elif onset is not None:
            if segment.strip():
                events.append(Annotation(onset=onset, duration=duration, text=segment.strip()))
        else:
            log.debug("Skipping annotation without onset %r", segment)

    return events


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN DECODER
# ═══════════════════════════════════════════════════════════════════════════════

class EDFReader:
    """
    Random-access decoder over an in-memory EDF/EDF+ buffer.

    Header parsing is memoised; every public call returns data the caller
    owns. Reads never modify the buffer.
    """

    def __init__(self, buffer: bytes | bytearray | memoryview):
        self._cursor = BinaryCursor(buffer)
        self._header: Header | None = None

    @classmethod
    def from_path(cls, path: Path | str) -> "EDFReader":
        """Read a recording file fully into memory."""
        return cls(Path(path).read_bytes())

    # ───────────────────────────────────────────────────────────────────────
    # Header
    # ───────────────────────────────────────────────────────────────────────

    def _global_text(self, field: str) -> str:
        start, width = GLOBAL_FIELD_OFFSETS[field]
        return self._cursor.read_text(start, width)

    def _global_int(self, field: str) -> int:
        return _parse_int(self._global_text(field), field, GLOBAL_FIELD_OFFSETS[field][0])

    def _global_float(self, field: str) -> float:
        return _parse_float(self._global_text(field), field, GLOBAL_FIELD_OFFSETS[field][0])

    def _signal_text(self, field: str, signal_count: int, index: int) -> tuple[str, int]:
        offset = signal_field_offset(field, signal_count, index)
        return self._cursor.read_text(offset, SIGNAL_FIELD_OFFSETS[field][1]), offset

    def _parse_signal(self, signal_count: int, index: int) -> SignalDescriptor:
        def field(name, parse=None):
            text, offset = self._signal_text(name, signal_count, index)
            return parse(text, name, offset) if parse else text

        return SignalDescriptor(
            label=field("label"),
            transducer_type=field("transducer_type"),
            physical_dimension=field("physical_dimension"),
            physical_min=field("physical_min", _parse_float),
            physical_max=field("physical_max", _parse_float),
            digital_min=field("digital_min", _parse_int),
            digital_max=field("digital_max", _parse_int),
            prefiltering=field("prefiltering"),
            samples_per_record=field("samples_per_record", _parse_int),
            reserved=field("reserved"),
        )

    def _parse_header(self) -> Header:
        if len(self._cursor) < GLOBAL_HEADER_BYTES:
            raise FormatError(
                f"Recording too small: {len(self._cursor)} bytes (< {GLOBAL_HEADER_BYTES}).",
                offset=0,
            )

        reserved = self._global_text("reserved")
        if reserved.startswith(DISCONTINUOUS_MARKER):
            raise FormatError(
                "Discontinuous (EDF+D) recordings are not supported",
                offset=GLOBAL_FIELD_OFFSETS["reserved"][0],
                field="reserved",
            )

        version = self._global_text("version")
        patient_id = self._global_text("patient_id")
        recording_id = self._global_text("recording_id")
        start_time = _parse_start_time(
            self._global_text("start_date"),
            self._global_text("start_time"),
            recording_id,
            edf_plus=reserved.startswith(EDF_PLUS_PREFIX),
        )
        header_bytes = self._global_int("header_bytes")
        data_records = self._global_int("data_records")
        record_duration = self._global_float("record_duration")
        signal_count = self._global_int("signal_count")

        if signal_count < 0:
            raise FormatError(
                f"Negative signal count: {signal_count}",
                offset=GLOBAL_FIELD_OFFSETS["signal_count"][0],
                field="signal_count",
            )

        needed = GLOBAL_HEADER_BYTES + SIGNAL_HEADER_BYTES * signal_count
        if len(self._cursor) < needed:
            raise FormatError(
                f"Header truncated: {signal_count} signals need {needed} bytes, "
                f"buffer has {len(self._cursor)}.",
                offset=GLOBAL_HEADER_BYTES,
            )
        if header_bytes != needed:
            log.debug("Declared header length %d differs from %d; trusting the file", header_bytes, needed)

        signals = [self._parse_signal(signal_count, i) for i in range(signal_count)]

        header = Header(
            version=version,
            patient_id=patient_id,
            recording_id=recording_id,
            start_time=start_time,
            header_bytes=header_bytes,
            reserved=reserved,
            data_records=data_records,
            record_duration=record_duration,
            signal_count=signal_count,
            signals=signals,
        )

        if data_records == -1:
            stride = header.record_bytes
            header.data_records = (len(self._cursor) - header_bytes) // stride if stride else 0
            log.warning(
                "Header declares an unknown record count; inferred %d records from file size",
                header.data_records,
            )

        log.debug(
            "Parsed header: %d signals, %d records x %.3fs",
            signal_count, header.data_records, record_duration,
        )
        return header

    def read_header(self) -> Header:
        """
        Parse (once) and return the recording header.

        Returns
        -------
        Header
            Independent deep copy; mutating it does not affect later reads.

        Raises
        ------
        FormatError
            Unsupported variant or malformed numeric field.
        """
        return copy.deepcopy(self._header_ref())

    def signal_offsets(self) -> dict[str, list[int]]:
        """Absolute byte offset of every signal metadata field, per signal."""
        n = self._header_ref().signal_count
        return {
            field: [signal_field_offset(field, n, i) for i in range(n)]
            for field, _ in SIGNAL_FIELDS
        }

    def record_range(self, records: RecordSelection = None) -> range:
        """Record indices a selection resolves to (bounds-checked)."""
        return self._record_range(self._header_ref(), records)

    def _header_ref(self) -> Header:
        if self._header is None:
            self._header = self._parse_header()
        return self._header

    # ───────────────────────────────────────────────────────────────────────
    # Data records
    # ───────────────────────────────────────────────────────────────────────

    @staticmethod
    def _record_range(header: Header, records: RecordSelection) -> range:
        all_records = range(header.data_records)
        if records is None:
            return all_records
        if isinstance(records, slice):
            return all_records[records]
        if isinstance(records, range):
            if len(records) and (min(records) < 0 or max(records) >= header.data_records):
                raise RangeError(
                    f"Record range {records.start}..{records.stop} outside 0..{header.data_records - 1}"
                )
            return records
        rec = int(records)
        if not 0 <= rec < header.data_records:
            raise RangeError(f"Record {rec} outside 0..{header.data_records - 1}")
        return range(rec, rec + 1)

    @staticmethod
    def _signal_byte_offset(header: Header, index: int) -> int:
        return sum(s.samples_per_record * SAMPLE_BYTES for s in header.signals[:index])

    def _check_signal(self, header: Header, index: int) -> SignalDescriptor:
        if not 0 <= index < header.signal_count:
            raise RangeError(f"Signal {index} outside 0..{header.signal_count - 1}")
        return header.signals[index]

    def _channel_block(self, header: Header, index: int, rec_range: range) -> np.ndarray:
        """
        Raw int16 samples of one signal for the selected records.

        Returns
        -------
        np.ndarray
            Shape (n_records, samples_per_record)
        """
        spr = header.signals[index].samples_per_record
        stride = header.record_bytes
        sig_offset = self._signal_byte_offset(header, index)

        if len(rec_range) == 0 or spr == 0:
            return np.zeros((len(rec_range), spr), dtype=np.int16)

        if rec_range.step == 1:
            start = header.header_bytes + rec_range.start * stride
            block = self._cursor.read_int16_array(start, len(rec_range) * stride // SAMPLE_BYTES)
            block = block.reshape(len(rec_range), stride // SAMPLE_BYTES)
            col = sig_offset // SAMPLE_BYTES
            return block[:, col:col + spr]

        rows = [
            self._cursor.read_int16_array(header.header_bytes + rec * stride + sig_offset, spr)
            for rec in rec_range
        ]
        return np.stack(rows)

    def read_digital(self, index: int, records: RecordSelection = None) -> np.ndarray:
        """Raw int16 samples of one signal, record order then sample order."""
        header = self._header_ref()
        self._check_signal(header, index)
        rec_range = self._record_range(header, records)
        return self._channel_block(header, index, rec_range).ravel().copy()

    def read_signal(self, index: int, records: RecordSelection = None) -> np.ndarray:
        """
        Calibrated samples of one signal.

        Parameters
        ----------
        index : int
            Signal index in header order
        records : int, range, slice or None
            Record selection; None reads the whole recording

        Returns
        -------
        np.ndarray
            float64 physical values, record order then in-record order

        Raises
        ------
        RangeError
            Signal or record index outside the recording
        """
        header = self._header_ref()
        signal = self._check_signal(header, index)
        rec_range = self._record_range(header, records)
        digital = self._channel_block(header, index, rec_range).ravel()
        return np.asarray(signal.to_physical(digital), dtype=np.float64).reshape(-1)

    def read_annotations(self, records: RecordSelection = None) -> list[Annotation]:
        """
        Decode EDF+ annotations from the first annotation channel.

        Recordings without an annotation channel yield an empty list.
        Malformed TAL content is skipped.
        """
        header = self._header_ref()
        index = header.annotation_index
        if index is None:
            return []

        rec_range = self._record_range(header, records)
        block = self._channel_block(header, index, rec_range)

        annotations = []
        for row in block:
            text = row.tobytes().decode(TEXT_ENCODING)
            annotations.extend(parse_tal_text(text))
        return annotations
