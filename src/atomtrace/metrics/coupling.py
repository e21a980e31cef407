"""Atom/test/code coupling metrics.

Coupling answers three questions over a record snapshot:

- atom -> test: how many committed atoms have at least one accepted
  recommendation pointing at them,
- test -> atom: how many tests are linked to an atom (annotation or
  recommendation),
- code -> atom: how many test files contain at least one linked test.

It also scores how *strong* each atom's linkage is from the quality of the
linked tests and how the link was established.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

    from atomtrace.models.records import Atom, AtomRecommendation, TestRecord

logger = logging.getLogger(__name__)

# ── Coupling strength constants ──────────────────────────────────

DEFAULT_TEST_QUALITY = 50.0
"""Quality assumed for a linked test that has not been scored."""

COVERAGE_DEPTH_PLACEHOLDER = 50.0
"""Coverage depth used per test; no per-test coverage is joined here."""

DEFAULT_ATOM_STRENGTH = 0.5
"""Strength of a linked atom with no joined test records."""

ANNOTATION_ACCURACY_EXPLICIT = 100.0
ANNOTATION_ACCURACY_CONFIDENT = 70.0
ANNOTATION_ACCURACY_INFERRED = 50.0
CONFIDENT_RECOMMENDATION_THRESHOLD = 80.0

TEST_QUALITY_WEIGHT = 0.5
COVERAGE_DEPTH_WEIGHT = 0.3
ANNOTATION_ACCURACY_WEIGHT = 0.2

STRONG_COUPLING_THRESHOLD = 0.8
MODERATE_COUPLING_THRESHOLD = 0.5


def _rate(matched: int, total: int) -> float:
    return matched / total if total > 0 else 0.0


# ── Result types ─────────────────────────────────────────────────


@dataclass
class AtomSummary:
    """Identifying fields of an orphan atom."""

    id: str
    atom_id: str
    description: str
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "atom_id": self.atom_id,
            "description": self.description,
            "status": self.status,
        }


@dataclass
class TestSummary:
    """Identifying fields of an orphan test."""

    __test__ = False  # not a pytest test class

    id: str
    file_path: str
    test_name: str
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "file_path": self.file_path,
            "test_name": self.test_name,
            "status": self.status,
        }


@dataclass
class StrengthDistribution:
    """Linked atoms bucketed by coupling strength."""

    strong: int = 0
    """Strength >= 0.8."""

    moderate: int = 0
    """Strength in [0.5, 0.8)."""

    weak: int = 0
    """Strength < 0.5."""

    def to_dict(self) -> dict[str, int]:
        return {"strong": self.strong, "moderate": self.moderate, "weak": self.weak}


@dataclass
class AtomTestCoupling:
    total_atoms: int = 0
    atoms_with_tests: int = 0
    rate: float = 0.0
    orphan_atoms: list[AtomSummary] = field(default_factory=list)
    average_coupling_strength: float = 0.0
    strength_distribution: StrengthDistribution = field(default_factory=StrengthDistribution)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_atoms": self.total_atoms,
            "atoms_with_tests": self.atoms_with_tests,
            "rate": self.rate,
            "orphan_atoms": [a.to_dict() for a in self.orphan_atoms],
            "average_coupling_strength": self.average_coupling_strength,
            "strength_distribution": self.strength_distribution.to_dict(),
        }


@dataclass
class TestAtomCoupling:
    __test__ = False  # not a pytest test class

    total_tests: int = 0
    tests_with_atoms: int = 0
    rate: float = 0.0
    orphan_tests: list[TestSummary] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_tests": self.total_tests,
            "tests_with_atoms": self.tests_with_atoms,
            "rate": self.rate,
            "orphan_tests": [t.to_dict() for t in self.orphan_tests],
        }


@dataclass
class CodeAtomCoverage:
    """Test-file level linkage; a file counts once however many tests it holds."""

    total_source_files: int = 0
    files_with_atoms: int = 0
    rate: float = 0.0
    uncovered_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_source_files": self.total_source_files,
            "files_with_atoms": self.files_with_atoms,
            "rate": self.rate,
            "uncovered_files": list(self.uncovered_files),
        }


@dataclass
class CouplingMetrics:
    atom_test_coupling: AtomTestCoupling
    test_atom_coupling: TestAtomCoupling
    code_atom_coverage: CodeAtomCoverage
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "atom_test_coupling": self.atom_test_coupling.to_dict(),
            "test_atom_coupling": self.test_atom_coupling.to_dict(),
            "code_atom_coverage": self.code_atom_coverage.to_dict(),
            "timestamp": self.timestamp,
        }


# ── Join index ───────────────────────────────────────────────────


@dataclass
class LinkageIndex:
    """Joins between atoms, accepted recommendations and test records.

    Built once per snapshot and shared by the coupling and epistemic
    engines so both see the same linkage.
    """

    accepted_by_id: dict[str, AtomRecommendation] = field(default_factory=dict)
    """Accepted recommendations keyed by recommendation id."""

    linked_atom_ids: set[str] = field(default_factory=set)
    """Atom ids named by at least one accepted recommendation."""

    tests_by_atom: dict[str, list[tuple[TestRecord, AtomRecommendation]]] = field(
        default_factory=dict
    )
    """Test records joined to each atom through an accepted recommendation."""

    @classmethod
    def build(
        cls,
        tests: Iterable[TestRecord],
        recommendations: Iterable[AtomRecommendation],
    ) -> LinkageIndex:
        index = cls()
        for rec in recommendations:
            if not rec.is_accepted:
                continue
            index.accepted_by_id[rec.id] = rec
            if rec.atom_id is not None:
                index.linked_atom_ids.add(rec.atom_id)

        for test in tests:
            if test.atom_recommendation_id is None:
                continue
            rec = index.accepted_by_id.get(test.atom_recommendation_id)
            if rec is None or rec.atom_id is None:
                continue
            index.tests_by_atom.setdefault(rec.atom_id, []).append((test, rec))
        return index

    def tests_for(self, atom_id: str) -> list[TestRecord]:
        return [test for test, _ in self.tests_by_atom.get(atom_id, [])]


# ── Coupling strength ────────────────────────────────────────────


def _annotation_accuracy(test: TestRecord, rec: AtomRecommendation) -> float:
    if test.had_atom_annotation:
        return ANNOTATION_ACCURACY_EXPLICIT
    if rec.confidence is not None and rec.confidence >= CONFIDENT_RECOMMENDATION_THRESHOLD:
        return ANNOTATION_ACCURACY_CONFIDENT
    return ANNOTATION_ACCURACY_INFERRED


def record_strength(test: TestRecord, rec: AtomRecommendation) -> float:
    """Coupling strength in ``[0, 1]`` contributed by one linked test."""
    quality = test.quality_score if test.quality_score is not None else DEFAULT_TEST_QUALITY
    return (
        quality * TEST_QUALITY_WEIGHT
        + COVERAGE_DEPTH_PLACEHOLDER * COVERAGE_DEPTH_WEIGHT
        + _annotation_accuracy(test, rec) * ANNOTATION_ACCURACY_WEIGHT
    ) / 100


def atom_strength(atom_id: str, index: LinkageIndex) -> float:
    """Mean strength of an atom's linked tests (``DEFAULT_ATOM_STRENGTH`` if none)."""
    joined = index.tests_by_atom.get(atom_id, [])
    if not joined:
        return DEFAULT_ATOM_STRENGTH
    return sum(record_strength(test, rec) for test, rec in joined) / len(joined)


def coupling_strength(index: LinkageIndex) -> tuple[float, StrengthDistribution]:
    """Average strength and bucket counts over every linked atom id."""
    distribution = StrengthDistribution()
    if not index.linked_atom_ids:
        return 0.0, distribution

    total = 0.0
    for atom_id in index.linked_atom_ids:
        strength = atom_strength(atom_id, index)
        total += strength
        if strength >= STRONG_COUPLING_THRESHOLD:
            distribution.strong += 1
        elif strength >= MODERATE_COUPLING_THRESHOLD:
            distribution.moderate += 1
        else:
            distribution.weak += 1
    return total / len(index.linked_atom_ids), distribution


# ── Coupling rates ───────────────────────────────────────────────


def atom_test_coupling(
    atoms: Iterable[Atom],
    tests: Iterable[TestRecord],
    recommendations: Iterable[AtomRecommendation],
    *,
    index: LinkageIndex | None = None,
) -> AtomTestCoupling:
    """Share of committed atoms with an accepted recommendation."""
    committed = [atom for atom in atoms if atom.is_committed]
    if not committed:
        return AtomTestCoupling()

    if index is None:
        index = LinkageIndex.build(tests, recommendations)

    orphans: list[AtomSummary] = []
    matched = 0
    for atom in committed:
        if atom.id in index.linked_atom_ids:
            matched += 1
        else:
            orphans.append(
                AtomSummary(
                    id=atom.id,
                    atom_id=atom.atom_id,
                    description=atom.description,
                    status=atom.status.value,
                )
            )

    average, distribution = coupling_strength(index)
    return AtomTestCoupling(
        total_atoms=len(committed),
        atoms_with_tests=matched,
        rate=_rate(matched, len(committed)),
        orphan_atoms=orphans,
        average_coupling_strength=average,
        strength_distribution=distribution,
    )


def test_atom_coupling(tests: Iterable[TestRecord]) -> TestAtomCoupling:
    """Share of test records linked to an atom."""
    records = list(tests)
    orphans = [
        TestSummary(id=t.id, file_path=t.file_path, test_name=t.test_name, status=t.status)
        for t in records
        if not t.is_linked
    ]
    matched = len(records) - len(orphans)
    return TestAtomCoupling(
        total_tests=len(records),
        tests_with_atoms=matched,
        rate=_rate(matched, len(records)),
        orphan_tests=orphans,
    )


def code_atom_coverage(tests: Iterable[TestRecord]) -> CodeAtomCoverage:
    """Share of distinct test file paths holding at least one linked test."""
    paths: dict[str, bool] = {}
    for test in tests:
        paths[test.file_path] = paths.get(test.file_path, False) or test.is_linked

    covered = sum(1 for linked in paths.values() if linked)
    return CodeAtomCoverage(
        total_source_files=len(paths),
        files_with_atoms=covered,
        rate=_rate(covered, len(paths)),
        uncovered_files=[path for path, linked in paths.items() if not linked],
    )


def compute_coupling_metrics(
    atoms: Iterable[Atom],
    tests: Iterable[TestRecord],
    recommendations: Iterable[AtomRecommendation],
    *,
    index: LinkageIndex | None = None,
) -> CouplingMetrics:
    """Compute all three coupling views over one snapshot."""
    tests = list(tests)
    if index is None:
        index = LinkageIndex.build(tests, recommendations)

    metrics = CouplingMetrics(
        atom_test_coupling=atom_test_coupling(atoms, tests, (), index=index),
        test_atom_coupling=test_atom_coupling(tests),
        code_atom_coverage=code_atom_coverage(tests),
    )
    logger.debug(
        "Coupling: atoms %.2f, tests %.2f, files %.2f",
        metrics.atom_test_coupling.rate,
        metrics.test_atom_coupling.rate,
        metrics.code_atom_coverage.rate,
    )
    return metrics
