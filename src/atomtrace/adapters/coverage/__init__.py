"""Coverage report normalization.

``detect_and_parse`` tries each parser in a fixed priority order (lcov, then
Istanbul JSON, then Cobertura XML) and returns the first claim. The order
matters: the JSON and XML checks are loose structural sniffs, so a line
protocol payload must get the first look.
"""

from __future__ import annotations

import logging

from atomtrace.adapters.coverage.base import (
    CoverageFormatError,
    CoverageParseError,
    CoverageParser,
    ParseResult,
    UnrecognizedCoverageFormatError,
)
from atomtrace.adapters.coverage.cobertura import CoberturaParser
from atomtrace.adapters.coverage.istanbul import IstanbulJsonParser
from atomtrace.adapters.coverage.lcov import LcovParser

logger = logging.getLogger(__name__)

PARSERS: tuple[CoverageParser, ...] = (
    LcovParser(),
    IstanbulJsonParser(),
    CoberturaParser(),
)

_UNRECOGNIZED_MSG = (
    "Unable to detect coverage format. Supported formats: lcov, istanbul JSON, cobertura XML"
)


def detect_parser(content: str) -> CoverageParser | None:
    """Return the first parser that claims *content*, or ``None``."""
    for parser in PARSERS:
        if parser.can_parse(content):
            return parser
    return None


def detect_and_parse(content: str) -> ParseResult:
    """Auto-detect the format of *content* and normalize it.

    Raises:
        UnrecognizedCoverageFormatError: No parser recognizes the payload.
        CoverageParseError: The recognized payload could not be decoded.
    """
    parser = detect_parser(content)
    if parser is None:
        raise UnrecognizedCoverageFormatError(_UNRECOGNIZED_MSG)

    logger.debug("Detected %s coverage payload", parser.format.value)
    try:
        return parser.parse(content)
    except CoverageParseError as e:
        msg = f"Unable to parse {parser.format.value} coverage report: {e}"
        raise CoverageParseError(msg) from e


__all__ = [
    "PARSERS",
    "CoberturaParser",
    "CoverageFormatError",
    "CoverageParseError",
    "CoverageParser",
    "IstanbulJsonParser",
    "LcovParser",
    "ParseResult",
    "UnrecognizedCoverageFormatError",
    "detect_and_parse",
    "detect_parser",
]
