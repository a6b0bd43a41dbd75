"""
Report Generation

PDF summary page and export functionality.
"""

from pathlib import Path
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages

from recording import Header


def _describe_filters(filters: list[dict]) -> str:
    if not filters:
        return "none"
    return ", ".join(f"{f['behavior']} {f['cutoff']:g} Hz (x{f.get('order', 1)})" for f in filters)


def plot_recording_summary_page(
    source_name: str,
    header: Header,
    channel_results: list[dict],
    annotations: list,
    *,
    zero_phase: bool,
    display_points: int,
) -> plt.Figure:
    """
    Create a text-based summary page for PDF (page 1).
    Shows recording metadata, per-channel conditioning and annotations.
    """
    fig, ax = plt.subplots(figsize=(11, 14))
    ax.axis('off')

    lines = []

    lines.append("=" * 80)
    lines.append("RECORDING REPORT".center(80))
    lines.append("=" * 80)
    lines.append("")

    lines.append("RECORDING".center(80, "-"))
    lines.append(f"Source:     {source_name}")
    lines.append(f"Format:     {'EDF+' if header.is_edf_plus else 'EDF'} ({header.reserved or '-'})")
    lines.append(f"Patient:    {header.patient_id}")
    lines.append(f"Recording:  {header.recording_id}")
    lines.append(f"Start:      {header.start_time:%Y-%m-%d %H:%M:%S}")
    lines.append(f"Records:    {header.data_records} x {header.record_duration:g} s = {header.duration:g} s")
    lines.append(f"Signals:    {header.signal_count}")
    lines.append("")

    lines.append("CONDITIONING".center(80, "-"))
    lines.append(f"Zero phase:     {'YES' if zero_phase else 'NO (forward only)'}")
    lines.append(f"Display points: {display_points:,} per channel")
    lines.append("")

    lines.append("CHANNELS".center(80, "-"))
    for r in channel_results:
        lines.append(f"[{r['index']:>2}] {r['label']:<16} {r['sample_rate']:>8g} Hz  {r['unit']:<6} profile={r['profile'] or '-'}")
        lines.append(f"     filters: {_describe_filters(r['filters'])}")
        lines.append(f"     stages:  {r['stages']}  samples: {r['n_samples']:,} -> {r['n_display']:,}")
    lines.append("")

    lines.append("ANNOTATIONS".center(80, "-"))
    if annotations:
        for ann in annotations[:20]:
            duration = f" ({ann.duration:g} s)" if ann.duration is not None else ""
            lines.append(f"    {ann.onset:>10.3f} s{duration}  {ann.text}")
        if len(annotations) > 20:
            lines.append(f"    ... {len(annotations) - 20} more")
    else:
        lines.append("    None")

    text = "\n".join(lines)
    ax.text(0.05, 0.95, text,
            verticalalignment='top',
            horizontalalignment='left',
            fontsize=8,
            family='monospace',
            transform=ax.transAxes)

    fig.suptitle("EDF Recording Report",
                 fontsize=14, fontweight='bold', y=0.98)

    return fig


def export_pdf(plots: list, output_path: Path, *, display_plots: bool = False) -> Path:
    """
    Export list of matplotlib figures to a multi-page PDF.

    Parameters
    ----------
    plots : list
        List of plt.Figure objects
    output_path : Path
        Output PDF file path
    display_plots : bool
        If True, keep figures open; if False, close after export

    Returns
    -------
    Path
        Path to the exported PDF
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with PdfPages(output_path) as pdf:
        for fig in plots:
            pdf.savefig(fig)
            if not display_plots:
                plt.close(fig)

    return output_path
