# napal/core/reports.py
from __future__ import annotations
from dataclasses import asdict
from pathlib import Path
import logging
import numpy as np
import pandas as pd
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from scipy.io import savemat

from .errors import ReportError
from .model import ReportFormat, StatisticsReport

_LOG = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "index.html.j2"

_STAT_COLUMNS = ["average", "median", "p25", "p75", "p90", "p99"]


def report_to_mapping(report: StatisticsReport) -> dict[str, dict[str, dict[str, float]]]:
    """``{metric: {file: {average, median, p25, p75, p90, p99}}}`` for the templating side."""
    out: dict[str, dict[str, dict[str, float]]] = {}
    for key in sorted(report):
        out[key] = {}
        for file_name, stat in report[key].items():
            d = asdict(stat)
            d["average"] = d.pop("mean")
            out[key][file_name] = {c: d[c] for c in _STAT_COLUMNS}
    return out


def _build_dataframe(report: StatisticsReport) -> pd.DataFrame:
    rows = []
    for key, per_file in report_to_mapping(report).items():
        for file_name, stats in per_file.items():
            rows.append({"metric": key, "file": file_name, **stats})
    return pd.DataFrame(rows, columns=["metric", "file"] + _STAT_COLUMNS)


def _write_csv(df_out: pd.DataFrame, out_csv: Path) -> None:
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df_out.to_csv(out_csv, index=False, encoding="utf-8")
    _LOG.info("[OK] wrote statistics → %s", out_csv)


def _to_mat_cellstr(seq: list[str]) -> np.ndarray:
    """Make a MATLAB column cell array from a list of strings."""
    arr = np.empty((len(seq), 1), dtype=object)
    arr[:, 0] = [str(s) for s in seq]
    return arr


def _write_mat(df_out: pd.DataFrame, out_mat: Path, varname: str = "statistics") -> None:
    """Strings become cell arrays (Nx1), numerics become double (Nx1)."""
    out_mat.parent.mkdir(parents=True, exist_ok=True)
    mat_struct = {
        "metric": _to_mat_cellstr(df_out["metric"].tolist()),
        "file": _to_mat_cellstr(df_out["file"].tolist()),
    }
    for col in _STAT_COLUMNS:
        mat_struct[col] = df_out[col].to_numpy(dtype=float).reshape(-1, 1)
    savemat(out_mat, {varname: mat_struct})
    _LOG.info("[OK] wrote statistics → %s", out_mat)


def write_statistics_table(report: StatisticsReport, out_base: Path,
                           fmt: ReportFormat = "csv") -> list[Path]:
    """
    One row per (metric, file).
    - out_base is a base path without extension (e.g. .../statistics)
    - fmt: "csv" | "mat" | "both"
    """
    if fmt not in ("csv", "mat", "both"):
        raise ReportError(f"unknown report format {fmt!r}; options are csv, mat or both")
    df_out = _build_dataframe(report)
    written = []
    try:
        if fmt in ("csv", "both"):
            _write_csv(df_out, out_base.with_suffix(".csv"))
            written.append(out_base.with_suffix(".csv"))
        if fmt in ("mat", "both"):
            _write_mat(df_out, out_base.with_suffix(".mat"))
            written.append(out_base.with_suffix(".mat"))
    except OSError as e:
        raise ReportError(f"Could not write statistics table {out_base}: {e}") from e
    return written


def render_html(report: StatisticsReport, out_dir: Path,
                template_dir: Path | None = None) -> Path:
    template_dir = Path(template_dir or TEMPLATE_DIR)
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    index_path = Path(out_dir) / "index.htm"
    try:
        template = env.get_template(TEMPLATE_NAME)
        content = template.render(metric=report_to_mapping(report))
    except TemplateError as e:
        raise ReportError(f"Could not render template {template_dir / TEMPLATE_NAME}: {e}") from e
    try:
        index_path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ReportError(f"Could not write file {index_path}: {e}") from e
    _LOG.info("[OK] wrote report page → %s", index_path)
    return index_path
