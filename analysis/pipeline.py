"""
Main Analysis Pipeline

Orchestrates the recording display-conditioning flow:
1. Load recording (path or raw bytes)
2. Decode header
3. Decode annotations
4. Condition every signal channel (profile filters, filtfilt, resample)
5. Generate plots
6. Export PDF report
"""

import argparse
import logging
from pathlib import Path

import matplotlib.pyplot as plt

from recording import EDFReader, FormatError, RangeError

from .config import load_filter_profile, merge_profile_with_args, match_channel_filters
from .errors import ParameterError
from .plots import plot_channel_montage, plot_filter_response
from .preprocess import preprocess_channel, display_time_axis
from .report import plot_recording_summary_page, export_pdf

log = logging.getLogger(__name__)


def parse_record_selection(text: str | None) -> int | slice | None:
    """
    Parse a START:STOP record selection (either side optional).

    Examples: "0:30", ":10", "100:", "5" (single record, bounds-checked
    by the reader; slices clamp like Python slicing).
    """
    if text is None or not text.strip():
        return None
    try:
        if ":" not in text:
            return int(text)
        start_s, stop_s = text.split(":", 1)
        start = int(start_s) if start_s.strip() else None
        stop = int(stop_s) if stop_s.strip() else None
    except ValueError:
        raise ValueError(f"Invalid record selection: {text!r} (expected START:STOP)")
    return slice(start, stop)


def run_pipeline(
    source: Path | bytes,
    *,
    profile: dict | None = None,
    records: int | range | slice | None = None,
    display_plots: bool = False,
    export_pdf_report: bool = False,
    pdf_path: Path | None = None,
    out_dir: Path | None = None,
    source_name: str | None = None,
) -> dict:
    """
    Execute the full recording conditioning pipeline.

    Supports both file path (offline) and raw bytes (already in memory).

    Parameters
    ----------
    source : Path or bytes
        Path to the .edf file OR raw recording bytes
    profile : dict, optional
        Validated filter profile. Default: built-in AASM profile
    records : int, range, slice, optional
        Record selection; None conditions the whole recording
    display_plots : bool
        If True, display plots interactively
    export_pdf_report : bool
        If True, export a PDF report
    pdf_path : Path, optional
        Explicit PDF path. Default: out_dir / "<stem>_report.pdf"
    out_dir : Path, optional
        Output directory for PDF. Default: source.parent / "reports"
        (current directory for bytes sources)
    source_name : str, optional
        Display name for the source (used when source is bytes)

    Returns
    -------
    dict
        - header: decoded Header
        - annotations: list of Annotation
        - channels: per-signal results (label, sample_rate, unit, profile,
          filters, stages, time, display, engine, n_samples, n_display)
        - plots: list of generated figures
        - pdf_path: exported PDF path or None
    """
    if profile is None:
        profile = load_filter_profile()

    is_bytes_source = isinstance(source, (bytes, bytearray, memoryview))

    if is_bytes_source:
        edf_bytes = bytes(source)
        edf_path = None
        display_name = source_name if source_name else "In-memory recording"
    else:
        edf_path = Path(source)
        display_name = source_name if source_name else edf_path.name
        edf_bytes = edf_path.read_bytes()

    # ═══════════════════════════════════════════════════════════════════
    # STEP 1: HEADER
    # ═══════════════════════════════════════════════════════════════════
    reader = EDFReader(edf_bytes)
    header = reader.read_header()
    rec_range = reader.record_range(records)

    print("=" * 80)
    print(" RECORDING METADATA ".center(80, "="))
    print("=" * 80)
    print(f"Source:     {display_name}")
    print(f"Bytes:      {len(edf_bytes):,}")
    print(f"Format:     {'EDF+' if header.is_edf_plus else 'EDF'}")
    print(f"Patient:    {header.patient_id}")
    print(f"Recording:  {header.recording_id}")
    print(f"Start:      {header.start_time:%Y-%m-%d %H:%M:%S}")
    print(f"Records:    {header.data_records} x {header.record_duration:g} s ({header.duration:g} s)")
    print(f"Signals:    {header.signal_count}")
    if len(rec_range) != header.data_records:
        print(f"Selection:  records {rec_range.start}..{rec_range.stop - 1} ({len(rec_range)} records)")

    # ═══════════════════════════════════════════════════════════════════
    # STEP 2: ANNOTATIONS
    # ═══════════════════════════════════════════════════════════════════
    print("\n" + "─" * 80)
    print("ANNOTATIONS")
    print("─" * 80)
    annotations = reader.read_annotations(rec_range)
    if annotations:
        for ann in annotations:
            duration = f" ({ann.duration:g} s)" if ann.duration is not None else ""
            print(f"  {ann.onset:>10.3f} s{duration}  {ann.text}")
    else:
        print("  None")

    # ═══════════════════════════════════════════════════════════════════
    # STEP 3: CHANNEL CONDITIONING
    # ═══════════════════════════════════════════════════════════════════
    print("\n" + "=" * 80)
    print(" CHANNEL CONDITIONING ".center(80, "="))
    print("=" * 80)
    mode = "zero-phase (filtfilt)" if profile["zero_phase"] else "forward only"
    print(f"Mode: {mode} | display points: {profile['display_points']:,}\n")

    start_s = rec_range.start * header.record_duration if len(rec_range) else 0.0
    channels = []
    for index, sig in enumerate(header.signals):
        if sig.is_annotation:
            continue

        fs = sig.sample_rate(header.record_duration)
        entry = match_channel_filters(profile, sig.label)
        filters = entry["filters"] if entry else []
        if fs <= 0 and filters:
            log.warning("Signal %d (%s) has no usable sample rate; left unfiltered", index, sig.label)
            filters = []

        physical = reader.read_signal(index, rec_range)
        display, engine = preprocess_channel(
            physical,
            sample_rate=fs,
            filters=filters,
            zero_phase=profile["zero_phase"],
            display_points=profile["display_points"],
        )
        duration_s = physical.size / fs if fs > 0 else 0.0

        channels.append({
            "index": index,
            "label": sig.label,
            "unit": sig.physical_dimension,
            "sample_rate": fs,
            "profile": entry["name"] if entry else None,
            "filters": filters,
            "stages": len(engine),
            "engine": engine,
            "time": display_time_axis(display.size, start_s, duration_s),
            "display": display,
            "n_samples": physical.size,
            "n_display": display.size,
        })
        print(f"  [{index:>2}] {sig.label:<16} {fs:>8g} Hz  profile={entry['name'] if entry else '-':<9} "
              f"stages={len(engine):<2} {physical.size:>9,} → {display.size:,} pts")

    # ═══════════════════════════════════════════════════════════════════
    # STEP 4: GENERATE PLOTS
    # ═══════════════════════════════════════════════════════════════════
    print("\n" + "─" * 80)
    print("GENERATING PLOTS")
    print("─" * 80)

    plots = []
    print("  1. Recording summary...")
    plots.append(plot_recording_summary_page(
        display_name,
        header,
        channels,
        annotations,
        zero_phase=profile["zero_phase"],
        display_points=profile["display_points"],
    ))

    print("  2. Channel montage...")
    plots.append(plot_channel_montage(channels, title=display_name, annotations=annotations))

    # One response page per distinct (profile entry, sample rate)
    seen = set()
    for ch in channels:
        key = (ch["profile"], ch["sample_rate"])
        if not ch["stages"] or key in seen:
            continue
        seen.add(key)
        print(f"  {len(plots) + 1}. Filter response: {ch['profile']} @ {ch['sample_rate']:g} Hz...")
        plots.append(plot_filter_response(
            ch["engine"],
            sample_rate=ch["sample_rate"],
            title=f"{ch['profile']} filter chain",
        ))

    # ═══════════════════════════════════════════════════════════════════
    # STEP 5: DISPLAY OR EXPORT
    # ═══════════════════════════════════════════════════════════════════
    if display_plots:
        plt.show()

    exported = None
    if export_pdf_report or pdf_path is not None:
        if pdf_path is None:
            if out_dir:
                out_dir_path = Path(out_dir)
            else:
                out_dir_path = edf_path.parent / "reports" if edf_path else Path.cwd()
            stem = edf_path.stem if edf_path else "recording"
            pdf_path = out_dir_path / f"{stem}_report.pdf"

        print(f"\n✓ Exporting PDF: {Path(pdf_path).name}")
        exported = export_pdf(plots, pdf_path, display_plots=display_plots)

    print("\n" + "=" * 80)
    print("✓ ANALYSIS COMPLETE")
    print("=" * 80)

    return {
        "header": header,
        "annotations": annotations,
        "channels": channels,
        "plots": plots,
        "pdf_path": exported,
    }


def parse_arguments(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        prog="psg-signal",
        description="EDF/EDF+ recording decoder and display conditioner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  # Default AASM filter profile, whole recording
  %(prog)s night.edf

  # First 30 records with a custom profile, exported to PDF
  %(prog)s night.edf --records 0:30 --profile lab.json --pdf night.pdf

  # Forward-only filtering, 5000 display points per channel
  %(prog)s night.edf --no-zero-phase --points 5000

Profile:
  - JSON mapping label keywords to filter chains
  - CLI flags (--points, --no-zero-phase) override profile values
        '''
    )

    parser.add_argument('recording', type=str,
                       help='Path to EDF/EDF+ recording')
    parser.add_argument('-p', '--profile', type=str, default=None,
                       help='Filter profile JSON file (default: built-in AASM profile)')
    parser.add_argument('-n', '--points', type=int, default=None,
                       help='Display points per channel (overrides profile value)')
    parser.add_argument('-r', '--records', type=str, default=None,
                       help='Record selection START:STOP (default: all records)')
    parser.add_argument('--no-zero-phase', action='store_true',
                       help='Single forward pass instead of filtfilt')
    parser.add_argument('--pdf', type=str, default=None,
                       help='Export report to this PDF path')
    parser.add_argument('-v', '--verbose', action='store_true',
                       help='Enable debug logging')

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_arguments(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        profile = merge_profile_with_args(load_filter_profile(args.profile), args)
        run_pipeline(
            Path(args.recording),
            profile=profile,
            records=parse_record_selection(args.records),
            pdf_path=Path(args.pdf) if args.pdf else None,
        )
    except FileNotFoundError as e:
        print(f"❌ Recording not found: {e.filename}")
        return 1
    except (FormatError, RangeError, ParameterError, ValueError) as e:
        print(f"❌ {type(e).__name__}: {e}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
