"""Canonical coverage report models.

Every coverage parser (lcov, Istanbul JSON, Cobertura XML) translates its
native report into these shapes, and the coverage store persists them.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# Percentage reported for an empty denominator.
EMPTY_DIMENSION_PCT = 100.0


class CoverageFormat(Enum):
    """Native report formats understood by the normalizer."""

    LCOV = "lcov"
    ISTANBUL = "istanbul"
    COBERTURA = "cobertura"


def round_ratio(ratio: float) -> float:
    """Convert a 0..1 ratio into a percentage rounded half-up to two decimals."""
    return math.floor(ratio * 10000 + 0.5) / 100


def percentage(covered: int, total: int) -> float:
    """Return ``covered/total`` as a two-decimal percentage (100 when *total* is 0)."""
    if total == 0:
        return EMPTY_DIMENSION_PCT
    return round_ratio(covered / total)


def _count(value: Any) -> int:
    """Coerce a stored count to an int; anything non-numeric counts as 0."""
    if isinstance(value, bool):
        return 0
    try:
        return int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return 0


def _get(data: dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    """Read *snake* or its camelCase spelling from *data*."""
    if snake in data:
        return data[snake]
    return data.get(camel, default)


@dataclass
class DimensionSummary:
    """Covered/total counts for one coverage or quality dimension."""

    total: int = 0
    """Number of measurable units (lines, branches, ...)."""

    covered: int = 0
    """Units that were hit. Not clamped to ``total``."""

    pct: float = 0.0
    """Percentage in ``[0, 100]``."""

    @classmethod
    def from_counts(cls, total: int, covered: int) -> DimensionSummary:
        """Build a summary whose ``pct`` is derived from the counts."""
        return cls(total=total, covered=covered, pct=percentage(covered, total))

    @classmethod
    def zero(cls) -> DimensionSummary:
        """Placeholder for a dimension the source report does not carry."""
        return cls(total=0, covered=0, pct=0.0)

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "covered": self.covered, "pct": self.pct}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DimensionSummary:
        if not isinstance(data, dict):
            return cls.zero()
        pct = data.get("pct", 0)
        return cls(
            total=_count(data.get("total")),
            covered=_count(data.get("covered")),
            pct=float(pct) if isinstance(pct, (int, float)) else 0.0,
        )


@dataclass
class CoverageSummary:
    """Aggregate coverage across the four canonical dimensions."""

    statements: DimensionSummary = field(default_factory=DimensionSummary.zero)
    branches: DimensionSummary = field(default_factory=DimensionSummary.zero)
    functions: DimensionSummary = field(default_factory=DimensionSummary.zero)
    lines: DimensionSummary = field(default_factory=DimensionSummary.zero)

    @classmethod
    def from_totals(
        cls,
        *,
        statements: tuple[int, int] = (0, 0),
        branches: tuple[int, int] = (0, 0),
        functions: tuple[int, int] = (0, 0),
        lines: tuple[int, int] = (0, 0),
    ) -> CoverageSummary:
        """Build a summary from ``(total, covered)`` pairs."""
        return cls(
            statements=DimensionSummary.from_counts(*statements),
            branches=DimensionSummary.from_counts(*branches),
            functions=DimensionSummary.from_counts(*functions),
            lines=DimensionSummary.from_counts(*lines),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "statements": self.statements.to_dict(),
            "branches": self.branches.to_dict(),
            "functions": self.functions.to_dict(),
            "lines": self.lines.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CoverageSummary:
        data = data if isinstance(data, dict) else {}
        return cls(
            statements=DimensionSummary.from_dict(data.get("statements")),
            branches=DimensionSummary.from_dict(data.get("branches")),
            functions=DimensionSummary.from_dict(data.get("functions")),
            lines=DimensionSummary.from_dict(data.get("lines")),
        )


@dataclass
class FileCoverage:
    """Coverage data for a single source file."""

    file_path: str
    statements: DimensionSummary = field(default_factory=DimensionSummary.zero)
    branches: DimensionSummary = field(default_factory=DimensionSummary.zero)
    functions: DimensionSummary = field(default_factory=DimensionSummary.zero)
    lines: DimensionSummary = field(default_factory=DimensionSummary.zero)
    uncovered_lines: list[int] = field(default_factory=list)
    """Line numbers with zero hits, ascending."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "statements": self.statements.to_dict(),
            "branches": self.branches.to_dict(),
            "functions": self.functions.to_dict(),
            "lines": self.lines.to_dict(),
            "uncovered_lines": list(self.uncovered_lines),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileCoverage:
        return cls(
            file_path=str(_get(data, "file_path", "filePath", "")),
            statements=DimensionSummary.from_dict(data.get("statements")),
            branches=DimensionSummary.from_dict(data.get("branches")),
            functions=DimensionSummary.from_dict(data.get("functions")),
            lines=DimensionSummary.from_dict(data.get("lines")),
            uncovered_lines=[int(n) for n in _get(data, "uncovered_lines", "uncoveredLines", [])],
        )


@dataclass
class CoverageReport:
    """A normalized, persisted coverage report.

    Reports are immutable once stored; the most recently stored one is the
    "latest" report consumed by the epistemic metrics.
    """

    format: CoverageFormat
    summary: CoverageSummary
    files: list[FileCoverage] = field(default_factory=list)

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    """Store-assigned identifier."""

    project_id: str | None = None
    commit_hash: str | None = None
    branch_name: str | None = None
    metadata: dict[str, Any] | None = None

    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    """ISO timestamp of ingestion."""

    def find_file(self, file_path: str) -> FileCoverage | None:
        """Return the entry whose path equals *file_path* exactly."""
        for file_cov in self.files:
            if file_cov.file_path == file_path:
                return file_cov
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "format": self.format.value,
            "project_id": self.project_id,
            "commit_hash": self.commit_hash,
            "branch_name": self.branch_name,
            "summary": self.summary.to_dict(),
            "files": [f.to_dict() for f in self.files],
            "metadata": self.metadata,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CoverageReport:
        files_raw = _get(data, "files", "fileDetails", []) or []
        return cls(
            id=str(data["id"]) if data.get("id") else str(uuid.uuid4()),
            format=CoverageFormat(data.get("format", CoverageFormat.LCOV.value)),
            summary=CoverageSummary.from_dict(data.get("summary")),
            files=[FileCoverage.from_dict(f) for f in files_raw if isinstance(f, dict)],
            project_id=_get(data, "project_id", "projectId"),
            commit_hash=_get(data, "commit_hash", "commitHash"),
            branch_name=_get(data, "branch_name", "branchName"),
            metadata=data.get("metadata"),
            created_at=str(
                _get(data, "created_at", "createdAt", None) or datetime.now(UTC).isoformat()
            ),
        )
