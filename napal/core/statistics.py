# napal/core/statistics.py
from __future__ import annotations
import logging
import re
import time
from typing import Iterable
import numpy as np

from .batch import LoadedBatch
from .errors import DataError, MetricKeyCollisionError
from .model import Statistic, StatisticsReport

_LOG = logging.getLogger(__name__)

_PERCENTILES = (25, 50, 75, 90, 99)
_MAX_KEY_LEN = 200


def metric_key(name: str) -> str:
    """Filesystem-safe stem for a metric; also its key in the statistics report."""
    s = re.sub(r"[^A-Za-z0-9._-]+", "_", str(name)).strip("_.")
    s = s[:_MAX_KEY_LEN]
    return s or "metric"


def metric_keys(names: Iterable[str]) -> dict[str, str]:
    keys: dict[str, str] = {}
    owners: dict[str, str] = {}
    for name in sorted(names):
        key = metric_key(name)
        if key in owners:
            raise MetricKeyCollisionError(
                f"metrics {owners[key]!r} and {name!r} both map to output name {key!r}"
            )
        owners[key] = name
        keys[name] = key
    return keys


def compute_statistic(values) -> Statistic:
    """
    Mean, median and the 25/75/90/99th percentiles of one value sequence.

    Percentiles use the median-unbiased interpolation (Hyndman & Fan type 8),
    whose 50th percentile is the ordinary median.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        raise DataError("cannot compute statistics of an empty value sequence")

    p25, median, p75, p90, p99 = np.percentile(arr, _PERCENTILES, method="median_unbiased")
    # summation error can push the mean of a constant run just past its bounds
    mean = float(np.clip(np.mean(arr), np.min(arr), np.max(arr)))
    return Statistic(
        mean=mean,
        median=float(median),
        p25=float(p25),
        p75=float(p75),
        p90=float(p90),
        p99=float(p99),
    )


def compute_statistics(batch: LoadedBatch) -> StatisticsReport:
    start = time.perf_counter()
    report: StatisticsReport = {}
    keys = metric_keys(batch.distinct_metrics())
    for metric, key in keys.items():
        per_file = report.setdefault(key, {})
        for f in batch.files_containing(metric):
            try:
                per_file[f.file_name] = compute_statistic(f.metrics[metric])
            except DataError as e:
                raise DataError(f"{f.file_name}: metric {metric!r}: {e}") from e
    _LOG.debug("Statistics calculation duration: %.3fs", time.perf_counter() - start)
    return report
