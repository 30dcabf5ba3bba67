# napal/core/settings.py
from __future__ import annotations
from dataclasses import fields, replace
from pathlib import Path
import logging

from .errors import ConfigError
from .model import RGB, PlotSettings

_LOG = logging.getLogger(__name__)

_SETTING_NAMES = {f.name for f in fields(PlotSettings)}


def _read_lines(path: Path, what: str) -> list[str]:
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            return f.read().splitlines()
    except OSError as e:
        raise ConfigError(f"Could not open {what} file {path}: {e}") from e


def load_plot_settings(path: Path | str) -> PlotSettings:
    """
    ``key: value`` per line. Lines containing ``//`` are comments, unknown
    keys are ignored and missing keys keep the built-in defaults.
    """
    overrides: dict[str, int] = {}
    for lineno, line in enumerate(_read_lines(Path(path), "plot settings"), start=1):
        if not line.strip() or "//" in line:
            continue
        key, _, value = (part.strip() for part in line.partition(":"))
        if key not in _SETTING_NAMES:
            continue
        try:
            overrides[key] = int(value)
        except ValueError as e:
            raise ConfigError(f"{path}:{lineno}: {key} expects an integer, got {value!r}") from e

    settings = replace(PlotSettings(), **overrides)
    _LOG.debug("Plot settings: %s", settings)
    return settings


def parse_rgb(text: str) -> RGB:
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 3:
        raise ValueError(f"expected R,G,B, got {text!r}")
    rgb = tuple(int(p) for p in parts)
    if any(c < 0 or c > 255 for c in rgb):
        raise ValueError(f"color components must be within 0-255, got {text!r}")
    return rgb


def load_colors(path: Path | str) -> list[RGB]:
    """Line colors in palette order, one ``R,G,B`` triple per line."""
    colors: list[RGB] = []
    for lineno, line in enumerate(_read_lines(Path(path), "colors"), start=1):
        if not line.strip():
            continue
        try:
            colors.append(parse_rgb(line))
        except ValueError as e:
            raise ConfigError(f"{path}:{lineno}: {e}") from e
    if not colors:
        raise ConfigError(f"Colors file {path} defines no colors")
    _LOG.debug("Loaded %d line colors from %s", len(colors), path)
    return colors
