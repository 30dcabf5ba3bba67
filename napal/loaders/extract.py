# napal/loaders/extract.py
from __future__ import annotations
from pathlib import Path
import logging
import time
import pandas as pd

from ..core.errors import ExtractionError
from ..core.model import ExtractedTable, MetricRuleSet
from ..core.rules import select_columns
from ..utils.parallel import run_all

_LOG = logging.getLogger(__name__)

INTERMEDIATE_SUFFIX = ".altered.csv"


def intermediate_path(raw_path: Path) -> Path:
    """Where the reduced copy of ``raw_path`` lives (next to the input)."""
    raw_path = Path(raw_path)
    return raw_path.with_name(raw_path.stem + INTERMEDIATE_SUFFIX)


def _read_raw(path: Path) -> pd.DataFrame:
    # Everything as text, header row included as row 0. Rows with more fields
    # than the header are skipped by the parser; short rows come back with NaN.
    try:
        return pd.read_csv(path, header=None, dtype=str, keep_default_na=False,
                           na_values=[], on_bad_lines="skip", skip_blank_lines=True)
    except FileNotFoundError as e:
        raise ExtractionError(f"Could not open file {path}") from e
    except pd.errors.EmptyDataError as e:
        raise ExtractionError(f"File {path} has no header row") from e
    except (OSError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ExtractionError(f"File {path} has some csv issues: {e}") from e


def extract_columns(raw_path: Path, out_path: Path, rules: MetricRuleSet) -> ExtractedTable:
    """
    Write the time column plus every wanted column of ``raw_path`` to
    ``out_path``. Malformed data rows are dropped, not the file.
    """
    start = time.perf_counter()
    raw_path, out_path = Path(raw_path), Path(out_path)

    df = _read_raw(raw_path)
    if df.empty:
        raise ExtractionError(f"File {raw_path} has no header row")

    headers = df.iloc[0]
    if headers.isna().any():
        raise ExtractionError(f"File {raw_path} has an unreadable header row")

    keep = select_columns(headers.tolist(), rules)
    _LOG.debug("%s: relevant idxs are %s", raw_path.name, keep)

    rows = df.iloc[1:]
    malformed = rows.isna().any(axis=1)
    rows = rows.loc[~malformed]
    out = pd.concat([df.iloc[[0]], rows]).iloc[:, keep]

    try:
        out.to_csv(out_path, header=False, index=False)
    except OSError as e:
        raise ExtractionError(f"Could not create file {out_path}: {e}") from e

    dropped = int(malformed.sum())
    if dropped:
        _LOG.debug("%s: dropped %d malformed row(s)", raw_path.name, dropped)
    _LOG.debug("%s column extraction duration: %.3fs", raw_path.name, time.perf_counter() - start)

    return ExtractedTable(
        source=raw_path,
        path=out_path,
        columns=tuple(str(h) for h in headers.iloc[keep]),
        kept_indices=tuple(keep),
        rows_written=int(len(rows)),
        rows_dropped=dropped,
    )


def extract_all(raw_paths: list[Path], rules: MetricRuleSet,
                workers: int | None = None) -> list[ExtractedTable]:
    """Extract every file in parallel; any failure aborts the whole batch."""
    start = time.perf_counter()
    _LOG.info("Parsing csv..")
    _LOG.debug("Parallel parsing files: %s", [str(p) for p in raw_paths])
    tasks = [(Path(p), intermediate_path(Path(p)), rules) for p in raw_paths]
    tables = run_all(extract_columns, tasks, max_workers=workers, label="extraction")
    _LOG.debug("TOTAL extraction duration: %.3fs", time.perf_counter() - start)
    return tables
