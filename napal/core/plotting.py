# napal/core/plotting.py
from __future__ import annotations
from pathlib import Path
import logging
import matplotlib
import numpy as np

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.ticker import MaxNLocator

from .errors import ReportError
from .model import ChartSpec, PlotSettings

_LOG = logging.getLogger(__name__)

_DPI = 100


def _pt(px: int) -> float:
    """Plot settings are in pixels, matplotlib fonts in points."""
    return px * 72.0 / _DPI


def _y_range(spec: ChartSpec) -> tuple[float, float]:
    low = min(0.0, spec.value_min)
    high = spec.value_max
    if high <= low:
        high = low + 1.0
    return low, high


def render_chart(spec: ChartSpec, settings: PlotSettings, out_dir: Path) -> Path:
    """Draw one metric's chart to ``<out_dir>/<key>.png``."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{spec.key}.png"

    fig = plt.figure(figsize=(spec.width / _DPI, spec.height / _DPI), dpi=_DPI)
    try:
        caption_px = settings.caption_size * 1.6
        fig.subplots_adjust(
            left=min(0.45, settings.y_label_area_size / spec.width),
            right=1.0 - min(0.2, 20.0 / spec.width),
            bottom=min(0.45, settings.x_label_area_size / spec.height),
            top=1.0 - min(0.45, caption_px / spec.height),
        )
        ax = fig.add_subplot(1, 1, 1)
        for s in spec.series:
            color = tuple(c / 255.0 for c in s.color)
            # inf/NaN samples are left out of the line
            values = np.where(np.isfinite(s.values), s.values, np.nan)
            ax.plot(s.elapsed, values, color=color,
                    linewidth=_pt(settings.stroke_width), label=s.file_name)

        ax.set_xlim(0, max(spec.time_max, 1))
        ax.set_ylim(*_y_range(spec))
        ax.set_title(spec.metric, fontsize=_pt(settings.caption_size))
        ax.set_xlabel(f"Time ({spec.axis_unit})")
        ax.set_ylabel("Value")
        ax.xaxis.set_major_locator(MaxNLocator(nbins=max(1, settings.x_labels), integer=True))
        ax.yaxis.set_major_locator(MaxNLocator(nbins=max(1, settings.y_labels)))
        ax.tick_params(axis="x", labelsize=_pt(settings.x_label_style))
        ax.tick_params(axis="y", labelsize=_pt(settings.y_label_style))
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=_pt(settings.legend_label_font), loc="upper right",
                  framealpha=0.8, edgecolor="black")
        try:
            fig.savefig(out_path, dpi=_DPI)
        except OSError as e:
            raise ReportError(f"Could not write chart {out_path}: {e}") from e
    finally:
        plt.close(fig)

    _LOG.debug("[OK] %s: %d series → %s", spec.metric, len(spec.series), out_path)
    return out_path
