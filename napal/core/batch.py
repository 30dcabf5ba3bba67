# napal/core/batch.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator

from .model import FileTimeSeries


@dataclass(frozen=True)
class LoadedBatch:
    """All loaded files of one run, in input order, plus the metric index views."""

    files: tuple[FileTimeSeries, ...] = ()

    def __iter__(self) -> Iterator[FileTimeSeries]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    def distinct_metrics(self) -> set[str]:
        metrics: set[str] = set()
        for f in self.files:
            metrics.update(f.metrics)
        return metrics

    def files_containing(self, metric: str) -> list[FileTimeSeries]:
        return [f for f in self.files if f.contains_metric(metric)]
