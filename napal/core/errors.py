# napal/core/errors.py
from __future__ import annotations


class NapalError(Exception):
    """Base exception for every fatal napal failure."""

    pass


class ConfigError(NapalError):
    """Raised when a rules, settings, colors or run config source is unusable."""

    pass


class PaletteExhaustedError(ConfigError):
    """Raised when more files share a metric than the palette has colors."""

    pass


class ExtractionError(NapalError):
    """Raised when a raw table cannot be read or its reduced copy cannot be written."""

    pass


class LoadError(NapalError):
    """Raised when an extracted table cannot be loaded."""

    pass


class TimestampParseError(LoadError):
    """Raised when a row's time column does not match the configured format."""

    pass


class DataError(NapalError):
    """Raised when loaded data violates a precondition of a later stage."""

    pass


class MetricKeyCollisionError(DataError):
    """Raised when two metric names sanitize to the same output key."""

    pass


class ReportError(NapalError):
    """Raised when the report page or statistics tables cannot be written."""

    pass
