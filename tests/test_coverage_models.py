"""Tests for the canonical coverage and record models."""

from __future__ import annotations

import pytest

from atomtrace.models.coverage import (
    CoverageFormat,
    CoverageReport,
    CoverageSummary,
    DimensionSummary,
    FileCoverage,
    percentage,
    round_ratio,
)
from atomtrace.models.records import (
    Atom,
    AtomRecommendation,
    AtomStatus,
    RecommendationStatus,
    RecordSnapshot,
    TestRecord,
)


class TestPercentage:
    def test_zero_total_is_full(self) -> None:
        assert percentage(0, 0) == 100

    def test_rounds_half_up(self) -> None:
        # 1/32 is exactly 3.125%
        assert percentage(1, 32) == 3.13
        assert round_ratio(0.5) == 50

    def test_two_decimals(self) -> None:
        assert percentage(2, 3) == 66.67
        assert percentage(1, 3) == 33.33

    def test_covered_not_clamped(self) -> None:
        assert DimensionSummary.from_counts(total=2, covered=3).pct == 150


class TestDimensionSummary:
    def test_from_dict_none_is_zero(self) -> None:
        assert DimensionSummary.from_dict(None) == DimensionSummary(0, 0, 0.0)

    def test_from_dict_ignores_extra_keys(self) -> None:
        dim = DimensionSummary.from_dict({"total": 5, "covered": 4, "skipped": 1, "pct": 80})
        assert dim == DimensionSummary(total=5, covered=4, pct=80.0)


class TestCoverageReport:
    def _report(self) -> CoverageReport:
        return CoverageReport(
            format=CoverageFormat.LCOV,
            summary=CoverageSummary.from_totals(lines=(10, 8), statements=(10, 8)),
            files=[
                FileCoverage(
                    file_path="src/a.ts",
                    lines=DimensionSummary.from_counts(10, 8),
                    uncovered_lines=[3, 7],
                )
            ],
            project_id="proj",
            commit_hash="abc123",
            branch_name="main",
            metadata={"ci": True},
        )

    def test_defaults(self) -> None:
        report = CoverageReport(format=CoverageFormat.ISTANBUL, summary=CoverageSummary())
        assert report.id
        assert report.created_at
        assert report.files == []
        assert report.project_id is None

    def test_ids_are_unique(self) -> None:
        first = CoverageReport(format=CoverageFormat.LCOV, summary=CoverageSummary())
        second = CoverageReport(format=CoverageFormat.LCOV, summary=CoverageSummary())
        assert first.id != second.id

    def test_find_file_exact_match(self) -> None:
        report = self._report()
        assert report.find_file("src/a.ts") is report.files[0]
        assert report.find_file("./src/a.ts") is None

    def test_dict_round_trip(self) -> None:
        report = self._report()
        restored = CoverageReport.from_dict(report.to_dict())
        assert restored == report

    def test_from_dict_accepts_camel_case(self) -> None:
        data = {
            "id": "r-1",
            "format": "cobertura",
            "projectId": "proj",
            "commitHash": "deadbeef",
            "branchName": "feature",
            "createdAt": "2026-01-01T00:00:00+00:00",
            "summary": {"lines": {"total": 4, "covered": 2, "pct": 50}},
            "fileDetails": [{"filePath": "x.py", "uncoveredLines": [1, 2]}],
        }
        report = CoverageReport.from_dict(data)
        assert report.format is CoverageFormat.COBERTURA
        assert report.project_id == "proj"
        assert report.commit_hash == "deadbeef"
        assert report.branch_name == "feature"
        assert report.created_at == "2026-01-01T00:00:00+00:00"
        assert report.files[0].file_path == "x.py"
        assert report.files[0].uncovered_lines == [1, 2]


class TestRecords:
    def test_atom_from_dict(self) -> None:
        atom = Atom.from_dict(
            {"id": "a1", "atomId": "IA-001", "status": "committed", "qualityScore": "75"}
        )
        assert atom.atom_id == "IA-001"
        assert atom.is_committed
        assert atom.quality_score == 75.0

    def test_atom_defaults(self) -> None:
        atom = Atom.from_dict({"id": "a2"})
        assert atom.atom_id == "a2"
        assert atom.status is AtomStatus.DRAFT
        assert atom.quality_score is None

    def test_unknown_atom_status_raises(self) -> None:
        with pytest.raises(ValueError):
            Atom.from_dict({"id": "a3", "status": "archived"})

    def test_test_record_linkage(self) -> None:
        annotated = TestRecord(
            id="t1", file_path="a.spec.ts", test_name="a", had_atom_annotation=True
        )
        via_rec = TestRecord(
            id="t2", file_path="a.spec.ts", test_name="b", atom_recommendation_id="r1"
        )
        orphan = TestRecord(id="t3", file_path="a.spec.ts", test_name="c")
        assert annotated.is_linked
        assert via_rec.is_linked
        assert not orphan.is_linked

    def test_test_record_from_camel_case(self) -> None:
        record = TestRecord.from_dict(
            {
                "id": "t1",
                "filePath": "src/a.spec.ts",
                "testName": "does a thing",
                "hadAtomAnnotation": True,
                "atomRecommendationId": "r9",
                "qualityScore": 88,
            }
        )
        assert record.file_path == "src/a.spec.ts"
        assert record.had_atom_annotation
        assert record.atom_recommendation_id == "r9"
        assert record.quality_score == 88.0

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("false", False), ("False", False), ("no", False), ("", False), ("true", True), (1, True)],
    )
    def test_annotation_flag_parsing(self, raw: object, expected: bool) -> None:
        record = TestRecord.from_dict({"id": "t1", "hadAtomAnnotation": raw})
        assert record.had_atom_annotation is expected

    def test_zero_ids_are_kept(self) -> None:
        record = TestRecord.from_dict({"id": "t1", "atomRecommendationId": 0})
        rec = AtomRecommendation.from_dict({"id": "r1", "atomId": 0})
        assert record.atom_recommendation_id == "0"
        assert record.is_linked
        assert rec.atom_id == "0"

    def test_empty_recommendation_id_is_unlinked(self) -> None:
        record = TestRecord.from_dict({"id": "t1", "atomRecommendationId": ""})
        assert record.atom_recommendation_id is None
        assert not record.is_linked

    def test_recommendation_from_dict(self) -> None:
        rec = AtomRecommendation.from_dict(
            {"id": "r1", "atomId": "a1", "status": "accepted", "confidence": 92}
        )
        assert rec.is_accepted
        assert rec.status is RecommendationStatus.ACCEPTED
        assert rec.confidence == 92.0

    def test_recommendation_without_atom(self) -> None:
        rec = AtomRecommendation.from_dict({"id": "r2"})
        assert rec.atom_id is None
        assert rec.status is RecommendationStatus.PENDING

    def test_snapshot_round_trip(self) -> None:
        snapshot = RecordSnapshot(
            atoms=[Atom(id="a1", atom_id="IA-001", status=AtomStatus.COMMITTED)],
            tests=[TestRecord(id="t1", file_path="x", test_name="y")],
            recommendations=[AtomRecommendation(id="r1", atom_id="a1")],
        )
        assert RecordSnapshot.from_dict(snapshot.to_dict()) == snapshot
