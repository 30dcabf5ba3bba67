# napal/core/pipeline.py
from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
import logging
import time

from ..loaders.extract import extract_all, intermediate_path
from ..loaders.timeseries import load_batch
from ..utils.parallel import run_all
from .batch import LoadedBatch
from .errors import ConfigError
from .model import RGB, PlotSettings, RunConfig, StatisticsReport
from .plot_data import prepare_chart
from .plotting import render_chart
from .reports import render_html, write_statistics_table
from .rules import load_rules
from .settings import load_colors, load_plot_settings
from .statistics import compute_statistics, metric_keys

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    batch: LoadedBatch
    statistics: StatisticsReport
    charts: list[Path]
    report_files: list[Path]


def _tail(path: Path, depth: int) -> str:
    return "/".join(path.parts[-(depth + 1):])


def display_names(paths: list[Path]) -> list[str]:
    """
    Base names; inputs sharing one get parent folders prepended, one level
    at a time, until every name is unique.
    """
    depths = [0] * len(paths)
    while True:
        names = [_tail(p, d) for p, d in zip(paths, depths)]
        counts = Counter(names)
        clashing = [i for i, n in enumerate(names) if counts[n] > 1]
        if not clashing:
            return names
        widened = False
        for i in clashing:
            if depths[i] + 1 < len(paths[i].parts):
                depths[i] += 1
                widened = True
        if not widened:
            raise ConfigError(f"Input files share the display name {names[clashing[0]]!r}")


def check_intermediate_paths(files: list[Path]) -> list[Path]:
    """One distinct ``.altered.csv`` per input, so no two extractions write the same file."""
    parsed = [intermediate_path(f) for f in files]
    owners: dict[Path, Path] = {}
    for f, p in zip(files, parsed):
        key = p.resolve()
        if key in owners:
            raise ConfigError(f"Input files {str(owners[key])!r} and {str(f)!r} both parse to {str(p)!r}")
        owners[key] = f
    return parsed


def generate_charts(batch: LoadedBatch, cfg: RunConfig, settings: PlotSettings,
                    colors: list[RGB]) -> list[Path]:
    start = time.perf_counter()
    _LOG.info("Generating plots..")

    keys = metric_keys(batch.distinct_metrics())
    specs = [
        prepare_chart(metric, batch, cfg.x_axis, cfg.width_per_point,
                      settings.minimum_width, colors, key=key)
        for metric, key in keys.items()
    ]
    tasks = [(spec, settings, cfg.target_directory) for spec in specs]
    charts = run_all(render_chart, tasks, max_workers=cfg.workers, label="plot")
    _LOG.debug("Generate plots duration: %.3fs", time.perf_counter() - start)
    return charts


def run_pipeline(files: list[Path], cfg: RunConfig) -> PipelineResult:
    """
    extract (unless skipped) -> load -> statistics + charts -> report page.
    Each stage finishes for the whole batch before the next one starts and
    the first failure anywhere aborts the run.
    """
    start = time.perf_counter()
    files = [Path(f) for f in files]
    try:
        cfg.target_directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Could not create directory {cfg.target_directory}: {e}") from e

    # read once, shared read-only by every stage
    settings = load_plot_settings(cfg.plot_settings_file)
    colors = load_colors(cfg.colors_file)
    parsed = check_intermediate_paths(files)
    names = display_names(files)

    if cfg.skip_parse:
        _LOG.debug("Skipping file parsing")
    else:
        rules = load_rules(cfg.wanted_metrics_file)
        extract_all(files, rules, workers=cfg.workers)

    batch = load_batch(parsed, cfg.time_format, names, workers=cfg.workers)
    _LOG.info("Loaded %d file(s) with %d distinct metric(s)", len(batch), len(batch.distinct_metrics()))

    statistics = compute_statistics(batch)
    charts = generate_charts(batch, cfg, settings, colors)

    report_files = write_statistics_table(statistics, cfg.target_directory / "statistics",
                                          fmt=cfg.report_format)
    report_files.append(render_html(statistics, cfg.target_directory))

    _LOG.info("Done! Program execution duration: %.3fs", time.perf_counter() - start)
    return PipelineResult(batch=batch, statistics=statistics, charts=charts,
                          report_files=report_files)
