"""Data models for atomtrace."""

from atomtrace.models.coverage import (
    CoverageFormat,
    CoverageReport,
    CoverageSummary,
    DimensionSummary,
    FileCoverage,
)
from atomtrace.models.records import (
    Atom,
    AtomRecommendation,
    AtomStatus,
    RecommendationStatus,
    RecordSnapshot,
    TestRecord,
)

__all__ = [
    "Atom",
    "AtomRecommendation",
    "AtomStatus",
    "CoverageFormat",
    "CoverageReport",
    "CoverageSummary",
    "DimensionSummary",
    "FileCoverage",
    "RecommendationStatus",
    "RecordSnapshot",
    "TestRecord",
]
