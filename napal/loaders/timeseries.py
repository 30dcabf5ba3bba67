# napal/loaders/timeseries.py
from __future__ import annotations
from pathlib import Path
import logging
import time
import numpy as np
import pandas as pd

from ..core.batch import LoadedBatch
from ..core.errors import LoadError, TimestampParseError
from ..core.model import FileTimeSeries
from ..utils.parallel import run_all

_LOG = logging.getLogger(__name__)


def _read_table(path: Path) -> pd.DataFrame:
    try:
        return pd.read_csv(path, header=None, dtype=str, keep_default_na=False, na_values=[])
    except FileNotFoundError as e:
        raise LoadError(f"Could not open file {path}") from e
    except pd.errors.EmptyDataError as e:
        raise LoadError(f"Problem obtaining parsed csv headers of {path}: file is empty") from e
    except (OSError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise LoadError(f"Problem reading parsed csv {path}: {e}") from e


def _parse_timestamps(raw: pd.Series, time_format: str, path: Path) -> pd.Series:
    try:
        parsed = pd.to_datetime(raw, format=time_format, errors="coerce")
    except (ValueError, TypeError) as e:
        raise TimestampParseError(f"{path}: time format {time_format!r} failed: {e}") from e
    # blank cells and "NaT"/"nan" text come back as NaT instead of raising
    bad = raw[parsed.isna()]
    if not bad.empty:
        row, entry = bad.index[0], bad.iloc[0]
        raise TimestampParseError(
            f"{path}: the time format {time_format!r} did not work for the entry {entry!r} (row {row})"
        )
    return parsed


def _to_float(raw: pd.Series) -> tuple[np.ndarray, int]:
    values = pd.to_numeric(raw, errors="coerce")
    # literal NaN text parses to NaN on purpose; only genuine failures are defaulted
    failed = values.isna() & (raw.str.strip().str.lower() != "nan")
    values = values.mask(failed, 0.0)
    return values.to_numpy(dtype=float), int(failed.sum())


def load_timeseries(path: Path, time_format: str, display_name: str | None = None) -> FileTimeSeries:
    """
    Parse one extracted table.

    Column 0 must match ``time_format`` on every row; the first mismatch is
    fatal for the file. Any other cell that is not a number is loaded as 0.0
    and counted in ``defaulted_cells``.
    """
    path = Path(path)
    df = _read_table(path)
    if df.empty:
        raise LoadError(f"Problem obtaining parsed csv headers of {path}: file is empty")

    headers = [str(h) for h in df.iloc[0].tolist()]
    rows = df.iloc[1:].reset_index(drop=True)
    rows.index = rows.index + 2          # 1-based line numbers in the file

    timestamps = _parse_timestamps(rows[0], time_format, path).reset_index(drop=True)

    metrics: dict[str, np.ndarray] = {}
    defaulted: dict[str, int] = {}
    for idx, name in enumerate(headers):
        if idx == 0:
            continue
        if name in metrics:
            _LOG.warning("%s: duplicate column %r ignored (keeping the first one)", path.name, name)
            continue
        values, n_bad = _to_float(rows[idx])
        metrics[name] = values
        if n_bad:
            defaulted[name] = n_bad

    if defaulted:
        _LOG.warning("%s: %d non-numeric cell(s) loaded as 0.0 across %d metric(s)",
                     path.name, sum(defaulted.values()), len(defaulted))
        _LOG.debug("%s: defaulted cells per metric: %s", path.name, defaulted)

    return FileTimeSeries(
        file_name=display_name or path.name,
        timestamps=timestamps,
        metrics=metrics,
        source_path=path,
        defaulted_cells=defaulted,
    )


def load_batch(paths: list[Path], time_format: str,
               display_names: list[str] | None = None,
               workers: int | None = None) -> LoadedBatch:
    """Load every extracted table, keeping input order."""
    start = time.perf_counter()
    _LOG.info("Loading csv..")
    names = display_names or [None] * len(paths)
    if len(names) != len(paths):
        raise ValueError("display_names must match paths one to one")
    tasks = [(Path(p), time_format, n) for p, n in zip(paths, names)]
    files = run_all(load_timeseries, tasks, max_workers=workers, label="load")
    _LOG.debug("Data loading duration: %.3fs", time.perf_counter() - start)
    return LoadedBatch(tuple(files))
