"""Tests for the LCOV tracefile parser."""

from __future__ import annotations

from atomtrace.adapters.coverage.lcov import LcovParser
from atomtrace.models.coverage import CoverageFormat, DimensionSummary

# ── Fixtures ─────────────────────────────────────────────────────

LCOV_SINGLE_FILE = """TN:
SF:/src/utils/math.ts
FNF:3
FNH:2
BRF:4
BRH:3
LF:20
LH:18
DA:1,5
DA:2,5
DA:3,0
DA:4,5
DA:10,0
end_of_record
"""

LCOV_MULTI_FILE = """TN:
SF:/src/services/auth.ts
FNF:5
FNH:5
BRF:6
BRH:4
LF:30
LH:28
DA:1,10
DA:2,10
DA:5,0
DA:8,0
end_of_record
SF:/src/services/users.ts
FNF:3
FNH:1
BRF:2
BRH:0
LF:15
LH:10
DA:1,2
DA:3,0
end_of_record
"""

LCOV_ZERO_TOTALS = """TN:
SF:/src/empty.ts
FNF:0
FNH:0
BRF:0
BRH:0
LF:0
LH:0
end_of_record
"""

LCOV_MISSING_DIMENSIONS = """TN:
SF:/src/partial.ts
LF:10
LH:7
DA:1,1
DA:2,0
DA:3,1
end_of_record
"""

ISTANBUL_LIKE = '{"total": {"lines": {"total": 1, "covered": 1, "pct": 100}}}'

COBERTURA_LIKE = """<?xml version="1.0"?>
<coverage line-rate="0.85">
  <packages/>
</coverage>"""


class TestCanParse:
    def test_content_starting_with_tn(self) -> None:
        assert LcovParser().can_parse("TN:\nSF:/src/file.ts\nend_of_record\n")

    def test_content_starting_with_sf(self) -> None:
        assert LcovParser().can_parse("SF:/src/file.ts\nLF:10\nLH:5\nend_of_record\n")

    def test_tn_mid_content(self) -> None:
        assert LcovParser().can_parse("some header\nTN:\nSF:/a.ts\nend_of_record\n")

    def test_rejects_istanbul_json(self) -> None:
        assert not LcovParser().can_parse(ISTANBUL_LIKE)

    def test_rejects_cobertura_xml(self) -> None:
        assert not LcovParser().can_parse(COBERTURA_LIKE)

    def test_rejects_empty_and_arbitrary_text(self) -> None:
        parser = LcovParser()
        assert not parser.can_parse("")
        assert not parser.can_parse("hello world, nothing to see here")


class TestParse:
    def test_single_file_all_dimensions(self) -> None:
        result = LcovParser().parse(LCOV_SINGLE_FILE)

        assert result.format is CoverageFormat.LCOV
        assert len(result.files) == 1
        file_cov = result.files[0]
        assert file_cov.file_path == "/src/utils/math.ts"
        assert file_cov.statements == DimensionSummary(total=20, covered=18, pct=90)
        assert file_cov.branches == DimensionSummary(total=4, covered=3, pct=75)
        assert file_cov.functions == DimensionSummary(total=3, covered=2, pct=66.67)
        assert file_cov.lines == DimensionSummary(total=20, covered=18, pct=90)

    def test_uncovered_lines_from_da_records(self) -> None:
        result = LcovParser().parse(LCOV_SINGLE_FILE)
        assert result.files[0].uncovered_lines == [3, 10]

    def test_uncovered_lines_sorted(self) -> None:
        lcov = "SF:/src/z.ts\nDA:20,0\nDA:5,1\nDA:10,0\nDA:1,0\nLF:4\nLH:1\nend_of_record\n"
        result = LcovParser().parse(lcov)
        assert result.files[0].uncovered_lines == [1, 10, 20]

    def test_repeated_da_line_counts_once(self) -> None:
        lcov = "SF:/src/dup.ts\nDA:4,0\nDA:4,0\nDA:6,0\nend_of_record\n"
        result = LcovParser().parse(lcov)
        assert result.files[0].uncovered_lines == [4, 6]

    def test_line_hit_in_any_da_record_is_covered(self) -> None:
        lcov = "SF:/src/dup.ts\nDA:4,0\nDA:4,2\nend_of_record\n"
        result = LcovParser().parse(lcov)
        assert result.files[0].uncovered_lines == []

    def test_multiple_files_aggregate_summary(self) -> None:
        result = LcovParser().parse(LCOV_MULTI_FILE)

        assert [f.file_path for f in result.files] == [
            "/src/services/auth.ts",
            "/src/services/users.ts",
        ]
        assert result.summary.lines == DimensionSummary(total=45, covered=38, pct=84.44)
        assert result.summary.statements == DimensionSummary(total=45, covered=38, pct=84.44)
        assert result.summary.functions == DimensionSummary(total=8, covered=6, pct=75)
        assert result.summary.branches == DimensionSummary(total=8, covered=4, pct=50)

    def test_zero_totals_are_fully_covered(self) -> None:
        result = LcovParser().parse(LCOV_ZERO_TOTALS)

        file_cov = result.files[0]
        assert file_cov.statements.pct == 100
        assert file_cov.branches.pct == 100
        assert file_cov.functions.pct == 100
        assert file_cov.lines.pct == 100
        assert file_cov.uncovered_lines == []

    def test_missing_dimensions_default_to_zero(self) -> None:
        result = LcovParser().parse(LCOV_MISSING_DIMENSIONS)

        file_cov = result.files[0]
        assert file_cov.lines == DimensionSummary(total=10, covered=7, pct=70)
        assert file_cov.functions == DimensionSummary(total=0, covered=0, pct=100)
        assert file_cov.branches == DimensionSummary(total=0, covered=0, pct=100)

    def test_unparsable_counter_defaults_to_zero(self) -> None:
        lcov = "SF:/src/odd.ts\nLF:abc\nLH:3\nend_of_record\n"
        result = LcovParser().parse(lcov)
        assert result.files[0].lines.total == 0
        assert result.files[0].lines.covered == 3

    def test_record_without_end_is_dropped(self) -> None:
        result = LcovParser().parse("TN:\nSF:/src/no-end.ts\nLF:5\nLH:3\n")
        assert result.files == []
        assert result.summary.lines.total == 0

    def test_unterminated_record_before_next_sf_is_dropped(self) -> None:
        lcov = "SF:/src/a.ts\nLF:5\nLH:3\nSF:/src/b.ts\nLF:2\nLH:2\nend_of_record\n"
        result = LcovParser().parse(lcov)
        assert [f.file_path for f in result.files] == ["/src/b.ts"]

    def test_empty_content(self) -> None:
        result = LcovParser().parse("")
        assert result.files == []
        assert result.summary.statements.total == 0
        assert result.summary.statements.pct == 100

    def test_two_decimal_rounding(self) -> None:
        lcov = "SF:/src/precise.ts\nFNF:3\nFNH:1\nLF:7\nLH:3\nend_of_record\n"
        result = LcovParser().parse(lcov)
        assert result.files[0].lines.pct == 42.86
        assert result.files[0].functions.pct == 33.33

    def test_windows_line_endings(self) -> None:
        result = LcovParser().parse(LCOV_SINGLE_FILE.replace("\n", "\r\n"))
        assert result.files[0].file_path == "/src/utils/math.ts"
        assert result.files[0].uncovered_lines == [3, 10]
