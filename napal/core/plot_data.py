# napal/core/plot_data.py
from __future__ import annotations
import logging
from typing import Sequence
import numpy as np

from .batch import LoadedBatch
from .errors import DataError, PaletteExhaustedError
from .model import RGB, AxisUnit, ChartSpec, FileTimeSeries, SeriesSpec
from .statistics import metric_key

_LOG = logging.getLogger(__name__)

_UNIT_NS = {
    "seconds": 1_000_000_000,
    "minutes": 60 * 1_000_000_000,
}


def elapsed_since_start(f: FileTimeSeries, axis_unit: AxisUnit) -> np.ndarray:
    """Whole seconds/minutes since the file's first sample, truncated toward zero."""
    if axis_unit not in _UNIT_NS:
        raise ValueError(f"unknown axis unit {axis_unit!r}; options are seconds or minutes")
    ts = np.asarray(f.timestamps, dtype="datetime64[ns]").astype(np.int64)
    if ts.size == 0:
        return np.zeros(0, dtype=np.int64)
    delta = ts - ts[0]
    # integer division floors; truncate negatives (out-of-order rows) toward zero instead
    return np.sign(delta) * (np.abs(delta) // _UNIT_NS[axis_unit])


def prepare_chart(metric: str,
                  batch: LoadedBatch,
                  axis_unit: AxisUnit,
                  width_per_point: int,
                  min_width: int,
                  colors: Sequence[RGB],
                  key: str | None = None,
                  height: int = 768) -> ChartSpec:
    """
    Everything needed to draw one metric across every file that has it:
    per-file (elapsed, value) series, shared axis maxima, image width and
    one palette color per file, by position.
    """
    files = batch.files_containing(metric)
    if not files:
        raise DataError(f"no loaded file contains metric {metric!r}")
    if len(files) > len(colors):
        raise PaletteExhaustedError(
            f"metric {metric!r} is shared by {len(files)} files but only "
            f"{len(colors)} colors are configured"
        )

    series: list[SeriesSpec] = []
    time_max: int | None = None
    value_max = -np.inf
    value_min = np.inf
    max_points = 0
    for idx, f in enumerate(files):
        values = f.metrics[metric]
        if len(values) == 0:
            raise DataError(f"{f.file_name}: metric {metric!r} has no samples")
        finite = values[np.isfinite(values)]
        if finite.size == 0:
            raise DataError(f"{f.file_name}: metric {metric!r} has no finite samples")
        elapsed = elapsed_since_start(f, axis_unit)
        last = int(elapsed[-1])
        time_max = last if time_max is None else max(time_max, last)
        value_max = max(value_max, float(np.max(finite)))
        value_min = min(value_min, float(np.min(finite)))
        max_points = max(max_points, len(values))
        series.append(SeriesSpec(
            file_name=f.file_name,
            elapsed=elapsed,
            values=values,
            color=tuple(colors[idx]),
        ))

    width = max(int(min_width), max_points * int(width_per_point))
    _LOG.debug("chart %s: %d series, x<=%s %s, y<=%s, width=%d",
               metric, len(series), time_max, axis_unit, value_max, width)
    return ChartSpec(
        metric=metric,
        key=key or metric_key(metric),
        axis_unit=axis_unit,
        series=tuple(series),
        value_max=value_max,
        value_min=value_min,
        time_max=int(time_max),
        width=width,
        height=height,
    )
