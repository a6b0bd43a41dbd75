import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest

from recording.constants import SIGNAL_FIELDS

SAMPLE_RATE = 200
N_RECORDS = 600
ANNOTATION_SAMPLES = 51

GENERATOR_LABELS = [
    "squarewave",
    "ramp",
    "pulse",
    "ECG",
    "noise",
    "sine 1 Hz",
    "sine 8 Hz",
    "sine 8.5 Hz",
    "sine 15 Hz",
    "sine 17 Hz",
    "sine 50 Hz",
    "EDF Annotations",
]


# ═══════════════════════════════════════════════════════════════════════════════
# EDF BUILDERS
# ═══════════════════════════════════════════════════════════════════════════════

def _field(value, width: int) -> bytes:
    text = f"{value:g}" if isinstance(value, float) else str(value)
    assert len(text) <= width, f"{text!r} does not fit in {width} bytes"
    return text.ljust(width).encode("latin-1")


def signal_spec(label: str, samples_per_record: int, **overrides) -> dict:
    spec = {
        "label": label,
        "transducer_type": "",
        "physical_dimension": "uV",
        "physical_min": -1000,
        "physical_max": 1000,
        "digital_min": -32768,
        "digital_max": 32767,
        "prefiltering": "",
        "samples_per_record": samples_per_record,
        "reserved": "",
    }
    spec.update(overrides)
    return spec


def annotation_spec(samples_per_record: int = ANNOTATION_SAMPLES) -> dict:
    return signal_spec(
        "EDF Annotations", samples_per_record,
        physical_dimension="", physical_min=-1, physical_max=1,
    )


def to_digital(physical, spec: dict) -> np.ndarray:
    """Inverse of the affine calibration, rounded and clipped to int16."""
    x = np.asarray(physical, dtype=np.float64)
    scale = (spec["digital_max"] - spec["digital_min"]) / (spec["physical_max"] - spec["physical_min"])
    # Centre-relative form keeps values near zero from cancelling against the offset
    mid_physical = (spec["physical_max"] + spec["physical_min"]) / 2.0
    mid_digital = (spec["digital_max"] + spec["digital_min"]) / 2.0
    digital = np.round(mid_digital + (x - mid_physical) * scale)
    return np.clip(digital, spec["digital_min"], spec["digital_max"]).astype("<i2")


def tal_block(texts: list[str], samples_per_record: int = ANNOTATION_SAMPLES) -> np.ndarray:
    """One annotation-channel row per TAL text, NUL padded."""
    width = samples_per_record * 2
    rows = []
    for text in texts:
        raw = text.encode("latin-1")
        assert len(raw) <= width
        rows.append(np.frombuffer(raw.ljust(width, b"\x00"), dtype="<i2"))
    return np.stack(rows)


def build_edf(
    signals: list[dict],
    data: list[np.ndarray],
    *,
    reserved: str = "EDF+C",
    data_records: int | None = None,
    record_duration: float = 1,
    version: str = "0",
    patient_id: str = "X X X X",
    recording_id: str = "Startdate 10-DEC-2009 X X test_generator",
    start_date: str = "10.12.09",
    start_time: str = "12.44.02",
    header_bytes: int | None = None,
) -> bytes:
    """
    Assemble an EDF buffer.

    `data[i]` holds signal i as an int16 array of shape
    (n_records, samples_per_record).
    """
    n = len(signals)
    n_records = data[0].shape[0] if data else 0
    head = b"".join([
        _field(version, 8),
        _field(patient_id, 80),
        _field(recording_id, 80),
        _field(start_date, 8),
        _field(start_time, 8),
        _field(256 * (n + 1) if header_bytes is None else header_bytes, 8),
        _field(reserved, 44),
        _field(n_records if data_records is None else data_records, 8),
        _field(record_duration, 8),
        _field(n, 4),
    ])
    for name, width in SIGNAL_FIELDS:
        head += b"".join(_field(sig[name], width) for sig in signals)

    if not data:
        return head
    body = np.concatenate([np.asarray(d, dtype="<i2") for d in data], axis=1)
    return head + body.tobytes()


def generator_recording() -> bytes:
    """12 channels, 600 one-second records, 200 Hz signals, 51-sample annotations."""
    specs = [signal_spec(label, SAMPLE_RATE) for label in GENERATOR_LABELS[:-1]] + [annotation_spec()]

    k = np.arange(N_RECORDS * SAMPLE_RATE) + 1
    t = k / SAMPLE_RATE
    rng = np.random.default_rng(7)
    waves = {
        "squarewave": np.where((t % 1.0) < 0.5, 100.0, -100.0),
        "ramp": (t % 1.0) * 200.0 - 100.0,
        "pulse": np.where((t % 1.0) < 0.01, 100.0, 0.0),
        "ECG": 800.0 * np.exp(-(((t % 1.0) - 0.3) / 0.01) ** 2),
        "noise": rng.normal(0.0, 20.0, t.size),
    }
    data = []
    for spec in specs[:-1]:
        label = spec["label"]
        if label.startswith("sine"):
            # Phase from integer sample indices so whole half-cycles land exactly on pi
            half_cycles = round(2 * float(label.split()[1])) * k % (2 * SAMPLE_RATE)
            wave = 100.0 * np.sin(np.pi * half_cycles / SAMPLE_RATE)
        else:
            wave = waves[label]
        data.append(to_digital(wave, spec).reshape(N_RECORDS, SAMPLE_RATE))

    texts = [f"+{k}\x14\x14\x00" for k in range(N_RECORDS)]
    texts[0] += "+0\x14RECORD START\x14\x00"
    texts[-1] += f"+{N_RECORDS}\x14REC STOP\x14\x00"
    data.append(tal_block(texts))

    return build_edf(specs, data)


# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def generator_edf() -> bytes:
    return generator_recording()


@pytest.fixture
def small_edf() -> bytes:
    """EEG at 4 Hz, belt at 2 Hz, annotations; 3 records of 1 s."""
    specs = [
        signal_spec("EEG C3-M2", 4),
        signal_spec("Resp belt", 2, physical_dimension="mV", physical_min=0, physical_max=10,
                    digital_min=0, digital_max=1000),
        annotation_spec(16),
    ]
    eeg = np.arange(12, dtype="<i2").reshape(3, 4)
    belt = np.array([[0, 1000], [500, 250], [100, 900]], dtype="<i2")
    ann = tal_block(["+0\x14\x14\x00", "+1\x14\x14+1.5\x151\x14Arousal\x14\x00", "+2\x14\x14\x00"], 16)
    return build_edf(specs, [eeg, belt, ann])
