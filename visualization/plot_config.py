"""Shared plotting defaults for visualization modules."""

from __future__ import annotations

from typing import Dict, Tuple

import matplotlib.pyplot as plt

DEFAULT_COLORS: Dict[str, str] = {
    "track": "#111111",
    "driven": "#1f77b4",
    "reference": "#ffbf00",      # simulator draws the reference in yellow
    "predicted": "#2ca02c",      # and the MPC prediction in green
    "steering": "#9467bd",
    "throttle": "#d62728",
    "constraint": "#7f7f7f",
    "car": "#e31a1c",
}


def apply_plot_style() -> None:
    """Apply consistent matplotlib defaults used by project plots."""
    plt.rcParams.update(
        {
            "font.family": "DejaVu Sans",
            "font.size": 10,
            "axes.titlesize": 12,
            "axes.labelsize": 10,
            "axes.grid": True,
            "grid.alpha": 0.25,
            "grid.linestyle": "--",
            "lines.linewidth": 1.8,
            "legend.frameon": True,
            "legend.framealpha": 0.9,
            "figure.dpi": 120,
        }
    )


def get_command_bounds() -> Tuple[float, float]:
    """Normalized actuator command range."""
    return -1.0, 1.0
