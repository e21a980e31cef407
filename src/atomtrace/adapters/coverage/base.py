"""Base classes and errors for coverage report parsers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from atomtrace.models.coverage import CoverageSummary

if TYPE_CHECKING:
    from atomtrace.models.coverage import CoverageFormat, FileCoverage


class CoverageFormatError(ValueError):
    """Base class for coverage payloads that cannot be normalized."""


class UnrecognizedCoverageFormatError(CoverageFormatError):
    """No parser claimed the payload."""


class CoverageParseError(CoverageFormatError):
    """A parser claimed the payload but its encoding is malformed."""


@dataclass
class ParseResult:
    """Normalized output of a coverage parser."""

    summary: CoverageSummary = field(default_factory=CoverageSummary)
    files: list[FileCoverage] = field(default_factory=list)
    format: CoverageFormat | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format.value if self.format else None,
            "summary": self.summary.to_dict(),
            "files": [f.to_dict() for f in self.files],
        }


class CoverageParser(ABC):
    """Abstract base class for native coverage formats.

    Each concrete parser recognizes one report format and translates it into
    the canonical ``{summary, files}`` shape. Parsers are total over the
    content they accept: structurally odd records are skipped, and only
    undecodable JSON/XML raises.
    """

    @property
    @abstractmethod
    def format(self) -> CoverageFormat:
        """Format label attached to results from this parser."""

    @abstractmethod
    def can_parse(self, content: str) -> bool:
        """Return True if *content* looks like this parser's format."""

    @abstractmethod
    def parse(self, content: str) -> ParseResult:
        """Parse *content* into a canonical result.

        Raises:
            CoverageParseError: If the payload cannot be decoded at all.
        """
