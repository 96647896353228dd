from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use('Agg')
import matplotlib.pyplot as plt

from knee_sim.trial import TrialRecord


def _mark_breakpoints(ax, breakpoints) -> None:
    for t in breakpoints[1:-1]:
        ax.axvline(x=float(t), color='gray', linewidth=0.8, linestyle='--')


def plot_trial_signals(record: TrialRecord, out_path: Path) -> None:
    """Flexion angles on top, active load channels below (loaded trials only)."""
    loads = record.loads
    n_rows = 2 if loads is not None else 1
    fig, axes = plt.subplots(
        n_rows, 1, figsize=(12, 4 * n_rows + 1), sharex=True, squeeze=False
    )
    ax1 = axes[0, 0]
    t = record.time_s

    ax1.plot(t, record.knee_flex_deg, label='knee_flex_r', linewidth=2.0)
    ax1.plot(t, record.hip_flex_deg, label='hip_flex_r', linewidth=1.0)
    ax1.set_ylabel('Angle (deg)')
    ax1.set_title(f'{record.name}: prescribed coordinates')
    ax1.grid(True, alpha=0.3)
    ax1.legend(fontsize=8)
    _mark_breakpoints(ax1, record.plan.breakpoints)

    if loads is not None:
        ax2 = axes[1, 0]
        for name in loads.active_channels:
            if name.startswith('force_p'):
                continue  # application points are constant
            unit = 'Nm' if name.startswith('torque') else 'N'
            ax2.plot(t, loads.channel(name), label=f'{name} ({unit})', linewidth=1.5)
        ax2.axhline(y=0, color='gray', linewidth=0.8)
        ax2.set_ylabel('Load')
        ax2.legend(fontsize=8)
        ax2.grid(True, alpha=0.3)
        _mark_breakpoints(ax2, record.plan.breakpoints)

    axes[-1, 0].set_xlabel('Time (s)')
    plt.tight_layout()
    plt.savefig(out_path, dpi=160, bbox_inches='tight')
    plt.close(fig)
