# napal/core/rules.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Sequence

from .errors import ConfigError
from .model import MetricRuleSet

_LOG = logging.getLogger(__name__)

SEPARATOR = "#$%#$%THIS_IS_THE_SEPARATOR. UP ARE WANTED METRICS, BELOW ARE IGNORED METRICS."


def load_rules(source: Path | str) -> MetricRuleSet:
    """
    Read the wanted/ignored substring lists.

    Every non-blank line before the separator line is a wanted entry, every
    non-blank line after it an ignored entry. Without a separator nothing is
    ignored.
    """
    path = Path(source)
    try:
        with path.open("r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise ConfigError(f"Could not open metrics file {path}: {e}") from e

    wanted: list[str] = []
    ignored: list[str] = []
    target = wanted
    for line in lines:
        if not line:
            continue
        if line == SEPARATOR:
            target = ignored
            continue
        target.append(line)

    _LOG.debug("Looking for metrics that contain: %s", wanted)
    _LOG.debug("Ignoring any metrics that contain: %s", ignored)
    return MetricRuleSet(wanted=tuple(wanted), ignored=tuple(ignored))


def is_wanted_column(header: str, rules: MetricRuleSet) -> bool:
    if not any(w in header for w in rules.wanted):
        return False
    return not any(i in header for i in rules.ignored)


def select_columns(headers: Sequence[str], rules: MetricRuleSet) -> list[int]:
    """Indices to keep; the time column (0) always comes first."""
    keep = [0]
    for idx, header in enumerate(headers):
        if idx == 0:
            continue
        if is_wanted_column(str(header), rules):
            keep.append(idx)
    return keep
