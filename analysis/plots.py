"""
Visualization Functions

All matplotlib figure generators for recording display and filter
diagnostics.
"""

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.gridspec as gridspec

from .constants import DEFAULT_RESPONSE_RESOLUTION, DEFAULT_STEP_LENGTH
from .engine import FilterEngine


# ═══════════════════════════════════════════════════════════════════════════════
# FILTER DIAGNOSTICS
# ═══════════════════════════════════════════════════════════════════════════════

def plot_filter_response(
    engine: FilterEngine,
    *,
    sample_rate: float,
    title: str,
    resolution: int = DEFAULT_RESPONSE_RESOLUTION,
    step_length: int = DEFAULT_STEP_LENGTH,
) -> plt.Figure:
    """
    2×2 figure:
      [0,0] Magnitude (dB) DC to Nyquist
      [0,1] Unwrapped phase
      [1,0] Group delay
      [1,1] Step response with first peak / settle markers
    """
    points = engine.response(resolution)
    freqs = np.arange(len(points)) / max(len(points), 1) * (sample_rate / 2.0)
    db = np.array([p.db_magnitude for p in points])
    phase = np.array([p.unwrapped_phase for p in points])
    group = np.array([p.group_delay for p in points])

    fig, axes = plt.subplots(2, 2, figsize=(16, 10))
    ax_mag, ax_phase, ax_gd, ax_step = axes.flatten()
    fig.suptitle(f"{title} | fs={sample_rate:g} Hz | stages={len(engine)}", fontsize=13)

    ax_mag.plot(freqs, np.clip(db, -120.0, None), linewidth=1.1, color='steelblue')
    ax_mag.axhline(-3.0, linestyle="--", linewidth=1.0, color='gray', label="-3 dB")
    ax_mag.set_title("Magnitude response")
    ax_mag.set_xlabel("Frequency (Hz)")
    ax_mag.set_ylabel("dB")
    ax_mag.legend(loc="lower left")
    ax_mag.grid(alpha=0.3)

    ax_phase.plot(freqs, phase, linewidth=1.1, color='#FF9800')
    ax_phase.set_title("Phase (unwrapped)")
    ax_phase.set_xlabel("Frequency (Hz)")
    ax_phase.set_ylabel("rad")
    ax_phase.grid(alpha=0.3)

    ax_gd.plot(freqs, group, linewidth=1.1, color='#2196F3')
    ax_gd.set_title("Group delay")
    ax_gd.set_xlabel("Frequency (Hz)")
    ax_gd.set_ylabel("Samples")
    ax_gd.grid(alpha=0.3)

    step = engine.step_response(step_length)
    t = np.arange(step.out.size) / float(sample_rate)
    ax_step.plot(t, step.out, linewidth=1.1, color='#59a14e')
    for marker, color in ((step.max, 'red'), (step.min, 'orange')):
        if marker is not None:
            ax_step.plot(marker.sample / sample_rate, marker.value, 'o', color=color)
    ax_step.set_title(f"Step response ({step_length} samples)")
    ax_step.set_xlabel("Time (s)")
    ax_step.set_ylabel("Amplitude")
    ax_step.grid(alpha=0.3)

    plt.tight_layout()
    return fig


# ═══════════════════════════════════════════════════════════════════════════════
# RECORDING MONTAGE
# ═══════════════════════════════════════════════════════════════════════════════

def plot_channel_montage(
    channels: list[dict],
    *,
    title: str,
    annotations: list | None = None,
) -> plt.Figure:
    """
    One row per channel, shared time axis.

    Parameters
    ----------
    channels : list of dict
        Each with keys: label, unit, time (s), display (conditioned samples)
    title : str
        Figure title
    annotations : list of Annotation, optional
        Drawn as vertical markers on every row
    """
    n = len(channels)
    if n == 0:
        fig, ax = plt.subplots(figsize=(16, 4))
        ax.text(0.5, 0.5, 'No signal channels', ha='center', va='center', fontsize=16)
        ax.axis('off')
        return fig

    fig = plt.figure(figsize=(16, max(4, 1.4 * n)))
    gs = gridspec.GridSpec(n, 1, figure=fig, hspace=0.15)
    colors = plt.cm.tab10(range(10))

    ax_first = None
    for i, ch in enumerate(channels):
        ax = fig.add_subplot(gs[i], sharex=ax_first)
        ax_first = ax_first or ax
        ax.plot(ch["time"], ch["display"], linewidth=0.7, color=colors[i % 10])
        ax.set_ylabel(f"{ch['label']}\n({ch['unit']})", fontsize=8, rotation=0, ha='right', va='center')
        ax.tick_params(labelsize=7)
        ax.grid(alpha=0.25)
        for ann in annotations or []:
            ax.axvline(ann.onset, color='red', linestyle='--', linewidth=0.8, alpha=0.6)
        if i < n - 1:
            ax.tick_params(labelbottom=False)
        else:
            ax.set_xlabel("Time (s)")

    fig.suptitle(title, fontsize=13, fontweight='bold')
    return fig
