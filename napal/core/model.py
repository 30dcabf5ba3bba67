# napal/core/model.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal
import numpy as np
import pandas as pd

AxisUnit = Literal["seconds", "minutes"]
ReportFormat = Literal["csv", "mat", "both"]
RGB = tuple[int, int, int]


@dataclass(frozen=True)
class MetricRuleSet:
    wanted: tuple[str, ...] = ()
    ignored: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtractedTable:
    source: Path                      # raw input csv
    path: Path                        # reduced copy on disk
    columns: tuple[str, ...]          # header of the reduced copy, time column first
    kept_indices: tuple[int, ...]     # positions in the raw header
    rows_written: int
    rows_dropped: int


@dataclass(frozen=True)
class FileTimeSeries:
    file_name: str                    # display identity (base name of the raw input)
    timestamps: pd.Series             # datetime64, one per row
    metrics: dict[str, np.ndarray]    # float64 arrays, len == len(timestamps)
    source_path: Path | None = None
    defaulted_cells: dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.timestamps)

    def contains_metric(self, name: str) -> bool:
        return name in self.metrics


@dataclass(frozen=True)
class Statistic:
    mean: float
    median: float
    p25: float
    p75: float
    p90: float
    p99: float


# metric key -> file name -> Statistic
StatisticsReport = dict[str, dict[str, Statistic]]


@dataclass(frozen=True)
class SeriesSpec:
    file_name: str
    elapsed: np.ndarray               # whole seconds/minutes since the file's first sample
    values: np.ndarray
    color: RGB


@dataclass(frozen=True)
class ChartSpec:
    metric: str
    key: str                          # filesystem-safe stem of the chart image
    axis_unit: AxisUnit
    series: tuple[SeriesSpec, ...]
    value_max: float
    value_min: float
    time_max: int
    width: int
    height: int = 768


@dataclass(frozen=True)
class PlotSettings:
    # image size
    minimum_width: int = 1500
    # label areas
    caption_size: int = 50
    x_label_area_size: int = 70
    y_label_area_size: int = 100
    # ticks
    x_labels: int = 10
    x_label_style: int = 20
    y_labels: int = 10
    y_label_style: int = 20
    # legend / lines
    legend_label_font: int = 20
    stroke_width: int = 2


@dataclass(frozen=True)
class RunConfig:
    target_directory: Path
    wanted_metrics_file: Path
    plot_settings_file: Path
    colors_file: Path
    time_format: str = "%m/%d/%Y %H:%M:%S.%f"
    x_axis: AxisUnit = "seconds"
    width_per_point: int = 1
    skip_parse: bool = False
    workers: int | None = None
    report_format: ReportFormat = "csv"
