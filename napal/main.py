# napal/main.py
from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
import argparse
import logging
import sys
import yaml

from .core.errors import ConfigError, NapalError
from .core.model import RunConfig
from .core.pipeline import run_pipeline

_LOG = logging.getLogger(__name__)

HERE = Path(__file__).resolve().parent
DEFAULT_CONFIG = HERE / "config.yaml"

EPILOG = """
Examples:
  napal testfile.csv
      Uses the default metrics, plot settings and plot colors from napal/config/.
  napal -v -wm specific-metrics.txt testfile.csv
      Prints debug information and uses the metrics listed in specific-metrics.txt.
  napal testfile1.csv testfile2.csv
      Creates plots with two lines each, to compare two executions of the same thing.
"""


def load_config(cfg_path: Path) -> dict:
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Could not open run config {cfg_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Run config {cfg_path} is not valid YAML: {e}") from e


def resolve_file(path_str: str | Path) -> Path:
    """The path as given if it exists, else relative to the napal package."""
    p = Path(path_str)
    if p.exists():
        return p
    bundled = HERE / p
    if not p.is_absolute() and bundled.exists():
        return bundled
    raise ConfigError(f"The file {str(path_str)!r} does not exist")


def input_file(path_str: str) -> Path:
    p = Path(path_str)
    if not p.is_file():
        raise ConfigError(f"The file {path_str!r} does not exist")
    return p


def default_target_directory(root: str | Path) -> Path:
    now = datetime.now(timezone.utc)
    return Path(root) / f"{now.year}-{now.month}-{now.day}_{now.hour}-{now.minute}-{now.second}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="napal",
        description="Performance Analysis of Logs: compare performance counter CSV "
                    "files metric by metric, with charts and a statistics report.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument("files", nargs="*", help="CSV files to analyse (column 0 is the time)")
    parser.add_argument("-t", "--target-dir", help="directory for results "
                        "(default <results root>/{year}-{month}-{day}_{hour}-{minute}-{second})")
    parser.add_argument("-wm", "--wanted-metrics", help="file listing wanted/ignored metric substrings")
    parser.add_argument("-ps", "--plot-settings", help="plot settings file")
    parser.add_argument("-c", "--colors-file", help="file with one R,G,B line color per line")
    parser.add_argument("-w", "--width-per-point", type=int, help="image width per sample (default 1)")
    parser.add_argument("-s", "--skip-parse", action="store_true", default=None,
                        help="reuse the .altered.csv files from a previous run")
    parser.add_argument("-tf", "--time-format", help="strftime format of the time column "
                        "(default %%m/%%d/%%Y %%H:%%M:%%S.%%f)")
    parser.add_argument("-x", "--xaxis", choices=["seconds", "minutes"], help="x axis unit")
    parser.add_argument("-j", "--workers", type=int, help="parallel worker processes (default one per CPU)")
    parser.add_argument("--report-format", choices=["csv", "mat", "both"], help="statistics table format")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="YAML run config")
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="display debug information")
    return parser


def build_run_config(args: argparse.Namespace, cfg: dict) -> RunConfig:
    """Merge command line over the YAML defaults into one immutable RunConfig."""
    files_cfg = cfg.get("config_files", {}) or {}
    input_cfg = cfg.get("input", {}) or {}
    plot_cfg = cfg.get("plot", {}) or {}

    target = args.target_dir or default_target_directory((cfg.get("output") or {}).get("root", "results"))
    workers = args.workers if args.workers is not None else (cfg.get("parallel", {}) or {}).get("workers")
    width_per_point = args.width_per_point if args.width_per_point is not None else int(plot_cfg.get("width_per_point", 1))
    if width_per_point < 1:
        raise ConfigError(f"width per point must be positive, got {width_per_point}")
    x_axis = str(args.xaxis or plot_cfg.get("x_axis", "seconds")).lower()
    if x_axis not in ("seconds", "minutes"):
        raise ConfigError(f"Wrong x axis unit {x_axis!r}. Options are seconds or minutes")

    return RunConfig(
        target_directory=Path(target),
        wanted_metrics_file=resolve_file(args.wanted_metrics or files_cfg.get("wanted_metrics", "config/DefaultMetrics.txt")),
        plot_settings_file=resolve_file(args.plot_settings or files_cfg.get("plot_settings", "config/DefaultPlotSettings.txt")),
        colors_file=resolve_file(args.colors_file or files_cfg.get("plot_colors", "config/DefaultPlotLineColors.txt")),
        time_format=args.time_format or str(input_cfg.get("time_format", "%m/%d/%Y %H:%M:%S.%f")),
        x_axis=x_axis,
        width_per_point=width_per_point,
        skip_parse=bool(args.skip_parse if args.skip_parse is not None else input_cfg.get("skip_parse", False)),
        workers=int(workers) if workers is not None else None,
        report_format=str(args.report_format or (cfg.get("reports", {}) or {}).get("format", "csv")).lower(),
    )


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(message)s",
        stream=sys.stdout,
    )
    # matplotlib and PIL are chatty at debug level
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def log_run_config(run_cfg: RunConfig, files: list[Path]) -> None:
    _LOG.info("Files: %s", ", ".join(str(f) for f in files))
    _LOG.info("     The analysed metrics file is %s.", run_cfg.wanted_metrics_file)
    _LOG.info("     The plot config file is %s.", run_cfg.plot_settings_file)
    _LOG.info("     The colors file is %s.", run_cfg.colors_file)
    _LOG.info("     Target directory is %s.", run_cfg.target_directory)
    _LOG.info("Other configs:")
    _LOG.info("     Width per point is %d.", run_cfg.width_per_point)
    _LOG.info("     The data time format is %s.", run_cfg.time_format)
    _LOG.info("     Plot X axis will be in %s.", run_cfg.x_axis)
    _LOG.debug("     Workers: %s, report format: %s, skip parse: %s",
               run_cfg.workers or "auto", run_cfg.report_format, run_cfg.skip_parse)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else argv
    args = parser.parse_args(argv)
    if not args.files:
        parser.print_help()
        return 0

    try:
        cfg = load_config(args.config)
        verbose = bool(args.verbose if args.verbose is not None else (cfg.get("logging", {}) or {}).get("verbose", False))
        setup_logging(verbose)

        run_cfg = build_run_config(args, cfg)
        files = [input_file(f) for f in args.files]
        log_run_config(run_cfg, files)
        run_pipeline(files, run_cfg)
    except NapalError as e:
        setup_logging(False)
        _LOG.error("[FATAL] %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
