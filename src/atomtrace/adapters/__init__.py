"""Adapters that translate external report formats into atomtrace models."""

from atomtrace.adapters.coverage import (
    CoverageFormatError,
    CoverageParseError,
    UnrecognizedCoverageFormatError,
    detect_and_parse,
)

__all__ = [
    "CoverageFormatError",
    "CoverageParseError",
    "UnrecognizedCoverageFormatError",
    "detect_and_parse",
]
