"""Epistemic stack: how much of the intent base is actually known to hold.

Atoms and recommendations fall into four levels:

- **proven**: committed atoms with at least one accepted test linkage,
- **committed**: committed atoms with no such linkage yet,
- **inferred**: pending recommendations awaiting review,
- **unknown**: orphan tests and test files with no atom linkage.

Unknown is reported as raw counts only; it is not part of ``total_known``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from atomtrace.metrics.coupling import LinkageIndex, code_atom_coverage, test_atom_coupling
from atomtrace.models.records import RecommendationStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from atomtrace.models.coverage import CoverageReport
    from atomtrace.models.records import Atom, AtomRecommendation, TestRecord

logger = logging.getLogger(__name__)

# ── Quality-weighted certainty constants ─────────────────────────

DEFAULT_AVG_TEST_QUALITY = 50.0
"""Quality used for an unscored test, or a proven atom without test records."""

DEFAULT_COVERAGE_PCT = 50.0
"""Line coverage assumed when no coverage report has been stored."""

TEST_QUALITY_CERTAINTY_WEIGHT = 0.7
COVERAGE_CERTAINTY_WEIGHT = 0.3

# ── Proven breakdown thresholds ──────────────────────────────────

HIGH_CONFIDENCE_THRESHOLD = 80.0
MEDIUM_CONFIDENCE_THRESHOLD = 50.0


def _share(count: int, total: int) -> float:
    return count / total if total > 0 else 0.0


# ── Result types ─────────────────────────────────────────────────


@dataclass
class EpistemicLevel:
    count: int = 0
    percentage: float = 0.0
    """Fraction in ``[0, 1]`` of the level's denominator."""

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "percentage": self.percentage}


@dataclass
class UnknownLevel:
    orphan_tests_count: int = 0
    uncovered_code_files_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "orphan_tests_count": self.orphan_tests_count,
            "uncovered_code_files_count": self.uncovered_code_files_count,
        }


@dataclass
class ProvenBreakdown:
    """Proven atoms by average test quality; unscored atoms count as medium."""

    high_confidence: EpistemicLevel = field(default_factory=EpistemicLevel)
    medium_confidence: EpistemicLevel = field(default_factory=EpistemicLevel)
    low_confidence: EpistemicLevel = field(default_factory=EpistemicLevel)

    def to_dict(self) -> dict[str, Any]:
        return {
            "high_confidence": self.high_confidence.to_dict(),
            "medium_confidence": self.medium_confidence.to_dict(),
            "low_confidence": self.low_confidence.to_dict(),
        }


@dataclass
class CoverageDepth:
    atoms_with_coverage: int = 0
    average_coverage_depth: float = 0.0
    """Mean line pct over matched (test file, atom) pairs only."""

    atoms_without_coverage: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "atoms_with_coverage": self.atoms_with_coverage,
            "average_coverage_depth": self.average_coverage_depth,
            "atoms_without_coverage": self.atoms_without_coverage,
        }


@dataclass
class EpistemicMetrics:
    proven: EpistemicLevel
    committed: EpistemicLevel
    inferred: EpistemicLevel
    unknown: UnknownLevel
    total_certainty: float
    quality_weighted_certainty: float
    proven_breakdown: ProvenBreakdown
    coverage_depth: CoverageDepth
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "proven": self.proven.to_dict(),
            "committed": self.committed.to_dict(),
            "inferred": self.inferred.to_dict(),
            "unknown": self.unknown.to_dict(),
            "total_certainty": self.total_certainty,
            "quality_weighted_certainty": self.quality_weighted_certainty,
            "proven_breakdown": self.proven_breakdown.to_dict(),
            "coverage_depth": self.coverage_depth.to_dict(),
            "timestamp": self.timestamp,
        }


# ── Refinements ──────────────────────────────────────────────────


def quality_weighted_certainty(
    proven_ids: list[str],
    index: LinkageIndex,
    latest_report: CoverageReport | None,
    total_known: int,
) -> float:
    """Mean per-atom certainty ``(quality*0.7 + coverage*0.3)/100`` over proven atoms.

    Degrades to 0 (not to the midpoint) when nothing is known or proven.
    """
    if total_known == 0 or not proven_ids:
        return 0.0

    avg_coverage = (
        latest_report.summary.lines.pct if latest_report is not None else DEFAULT_COVERAGE_PCT
    )

    total = 0.0
    for atom_id in proven_ids:
        scores = [
            t.quality_score if t.quality_score is not None else DEFAULT_AVG_TEST_QUALITY
            for t in index.tests_for(atom_id)
        ]
        avg_quality = sum(scores) / len(scores) if scores else DEFAULT_AVG_TEST_QUALITY
        total += (
            avg_quality * TEST_QUALITY_CERTAINTY_WEIGHT + avg_coverage * COVERAGE_CERTAINTY_WEIGHT
        ) / 100
    return total / len(proven_ids)


def proven_breakdown(proven_ids: list[str], index: LinkageIndex) -> ProvenBreakdown:
    """Bucket proven atoms by the mean of their non-null test quality scores."""
    high = medium = low = 0
    for atom_id in proven_ids:
        scores = [t.quality_score for t in index.tests_for(atom_id) if t.quality_score is not None]
        if not scores:
            medium += 1
            continue
        avg = sum(scores) / len(scores)
        if avg >= HIGH_CONFIDENCE_THRESHOLD:
            high += 1
        elif avg >= MEDIUM_CONFIDENCE_THRESHOLD:
            medium += 1
        else:
            low += 1

    total = len(proven_ids)
    return ProvenBreakdown(
        high_confidence=EpistemicLevel(high, _share(high, total)),
        medium_confidence=EpistemicLevel(medium, _share(medium, total)),
        low_confidence=EpistemicLevel(low, _share(low, total)),
    )


def coverage_depth(
    proven_ids: list[str],
    index: LinkageIndex,
    latest_report: CoverageReport | None,
    total_committed: int,
) -> CoverageDepth:
    """Match proven atoms' test files against the latest report's files.

    Paths are compared exactly; no normalization is applied.
    """
    if latest_report is None or not proven_ids:
        return CoverageDepth(atoms_without_coverage=total_committed)

    pct_by_file = {f.file_path: f.lines.pct for f in latest_report.files}

    pairs: dict[tuple[str, str], None] = {}
    for atom_id in proven_ids:
        for test in index.tests_for(atom_id):
            pairs[(test.file_path, atom_id)] = None

    covered_atoms: set[str] = set()
    values: list[float] = []
    for file_path, atom_id in pairs:
        pct = pct_by_file.get(file_path)
        if pct is None:
            continue
        covered_atoms.add(atom_id)
        values.append(pct)

    return CoverageDepth(
        atoms_with_coverage=len(covered_atoms),
        average_coverage_depth=sum(values) / len(values) if values else 0.0,
        atoms_without_coverage=total_committed - len(covered_atoms),
    )


# ── Entry point ──────────────────────────────────────────────────


def compute_epistemic_metrics(
    atoms: Iterable[Atom],
    tests: Iterable[TestRecord],
    recommendations: Iterable[AtomRecommendation],
    latest_report: CoverageReport | None = None,
    *,
    index: LinkageIndex | None = None,
) -> EpistemicMetrics:
    """Compute the four-level stack and its quality-weighted refinements.

    Args:
        atoms: All atoms in the snapshot.
        tests: All test records in the snapshot.
        recommendations: All recommendations in the snapshot.
        latest_report: Most recently stored coverage report, if any.
        index: Prebuilt linkage index to share with the coupling engine.

    Returns:
        The epistemic metrics for the snapshot.
    """
    tests = list(tests)
    recommendations = list(recommendations)
    if index is None:
        index = LinkageIndex.build(tests, recommendations)

    committed_ids = [atom.id for atom in atoms if atom.is_committed]
    proven_ids = [atom_id for atom_id in committed_ids if atom_id in index.linked_atom_ids]
    total_committed = len(committed_ids)

    proven_count = len(proven_ids)
    committed_count = max(total_committed - proven_count, 0)
    inferred_count = sum(1 for r in recommendations if r.status is RecommendationStatus.PENDING)
    total_known = proven_count + committed_count + inferred_count

    unknown = UnknownLevel(
        orphan_tests_count=len(test_atom_coupling(tests).orphan_tests),
        uncovered_code_files_count=len(code_atom_coverage(tests).uncovered_files),
    )

    metrics = EpistemicMetrics(
        proven=EpistemicLevel(proven_count, _share(proven_count, total_known)),
        committed=EpistemicLevel(committed_count, _share(committed_count, total_known)),
        inferred=EpistemicLevel(inferred_count, _share(inferred_count, total_known)),
        unknown=unknown,
        total_certainty=_share(proven_count + committed_count, total_known),
        quality_weighted_certainty=quality_weighted_certainty(
            proven_ids, index, latest_report, total_known
        ),
        proven_breakdown=proven_breakdown(proven_ids, index),
        coverage_depth=coverage_depth(proven_ids, index, latest_report, total_committed),
    )
    logger.debug(
        "Epistemic stack: proven=%d committed=%d inferred=%d certainty=%.3f",
        proven_count,
        committed_count,
        inferred_count,
        metrics.total_certainty,
    )
    return metrics
