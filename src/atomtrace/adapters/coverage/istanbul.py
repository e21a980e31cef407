"""Istanbul JSON coverage parser for JavaScript/TypeScript reports.

Istanbul (built into Jest and Vitest, standalone via nyc/c8) writes two JSON
shapes, both supported here:

- ``coverage-summary.json``: pre-aggregated ``{"total": {...}, "<path>": {...}}``
  where each entry holds ``lines``/``statements``/``functions``/``branches``
  dimension objects.
- ``coverage-final.json``: the raw instrumentation map keyed by file path,
  each entry holding statement (``s``), branch (``b``) and function (``f``)
  hit counters plus an optional ``statementMap``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from atomtrace.adapters.coverage.base import CoverageParseError, CoverageParser, ParseResult
from atomtrace.models.coverage import (
    CoverageFormat,
    CoverageSummary,
    DimensionSummary,
    FileCoverage,
)

logger = logging.getLogger(__name__)

_TOTAL_KEY = "total"
_DIMENSIONS = ("statements", "branches", "functions", "lines")


def _is_summary_shape(data: dict[str, Any]) -> bool:
    total = data.get(_TOTAL_KEY)
    return isinstance(total, dict) and isinstance(total.get("lines"), dict)


def _is_final_shape(data: dict[str, Any]) -> bool:
    if not data:
        return False
    first = next(iter(data.values()))
    return isinstance(first, dict) and ("s" in first or "statementMap" in first)


def _counter_map(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _is_hit(count: Any) -> bool:
    return isinstance(count, (int, float)) and count > 0


class IstanbulJsonParser(CoverageParser):
    """Parser for Istanbul ``coverage-summary.json`` and ``coverage-final.json``."""

    @property
    def format(self) -> CoverageFormat:
        return CoverageFormat.ISTANBUL

    def can_parse(self, content: str) -> bool:
        try:
            data = json.loads(content)
        except (json.JSONDecodeError, TypeError):
            return False
        if not isinstance(data, dict):
            return False
        return _is_summary_shape(data) or _is_final_shape(data)

    def parse(self, content: str) -> ParseResult:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            msg = f"Invalid Istanbul JSON: {e}"
            raise CoverageParseError(msg) from e
        if not isinstance(data, dict):
            msg = "Istanbul JSON must be an object"
            raise CoverageParseError(msg)

        if _is_summary_shape(data):
            return self._parse_summary_format(data)
        return self._parse_final_format(data)

    # ── coverage-summary.json ────────────────────────────────────

    def _parse_summary_format(self, data: dict[str, Any]) -> ParseResult:
        """Read the pre-aggregated shape; percentages are taken verbatim."""
        files: list[FileCoverage] = []
        for file_path, file_data in data.items():
            if file_path == _TOTAL_KEY:
                continue
            if not isinstance(file_data, dict):
                logger.debug("Skipping non-object summary entry for %s", file_path)
                continue
            files.append(
                FileCoverage(
                    file_path=file_path,
                    **{dim: DimensionSummary.from_dict(file_data.get(dim)) for dim in _DIMENSIONS},
                )
            )

        total = data[_TOTAL_KEY]
        summary = CoverageSummary(
            **{dim: DimensionSummary.from_dict(total.get(dim)) for dim in _DIMENSIONS}
        )
        return ParseResult(summary=summary, files=files, format=self.format)

    # ── coverage-final.json ──────────────────────────────────────

    def _parse_final_format(self, data: dict[str, Any]) -> ParseResult:
        """Count raw hit counters per file and sum them into the summary."""
        files: list[FileCoverage] = []
        totals = {dim: [0, 0] for dim in _DIMENSIONS}

        for file_path, file_data in data.items():
            if not isinstance(file_data, dict):
                logger.debug("Skipping non-object coverage entry for %s", file_path)
                continue
            file_cov = self._parse_file_coverage(file_path, file_data)
            files.append(file_cov)
            for dim in _DIMENSIONS:
                dim_summary: DimensionSummary = getattr(file_cov, dim)
                totals[dim][0] += dim_summary.total
                totals[dim][1] += dim_summary.covered

        summary = CoverageSummary.from_totals(
            **{dim: (total, covered) for dim, (total, covered) in totals.items()}
        )
        return ParseResult(summary=summary, files=files, format=self.format)

    def _parse_file_coverage(self, file_path: str, data: dict[str, Any]) -> FileCoverage:
        statement_counts = _counter_map(data.get("s"))
        branch_counts = _counter_map(data.get("b"))
        fn_counts = _counter_map(data.get("f"))

        stmt_total = len(statement_counts)
        stmt_covered = sum(1 for c in statement_counts.values() if _is_hit(c))

        # A branch slot holds one counter per path; every path is one unit
        branch_total = 0
        branch_covered = 0
        for paths in branch_counts.values():
            if not isinstance(paths, list):
                continue
            branch_total += len(paths)
            branch_covered += sum(1 for c in paths if _is_hit(c))

        fn_total = len(fn_counts)
        fn_covered = sum(1 for c in fn_counts.values() if _is_hit(c))

        # Statements stand in for lines; the final format has no line table
        return FileCoverage(
            file_path=file_path,
            statements=DimensionSummary.from_counts(stmt_total, stmt_covered),
            branches=DimensionSummary.from_counts(branch_total, branch_covered),
            functions=DimensionSummary.from_counts(fn_total, fn_covered),
            lines=DimensionSummary.from_counts(stmt_total, stmt_covered),
            uncovered_lines=self._uncovered_lines(statement_counts, data.get("statementMap")),
        )

    def _uncovered_lines(self, statement_counts: dict[str, Any], statement_map: Any) -> list[int]:
        """Resolve zero-hit statements to their start lines via ``statementMap``."""
        if not isinstance(statement_map, dict):
            return []
        lines: set[int] = set()
        for stmt_id, count in statement_counts.items():
            if count != 0:
                continue
            location = statement_map.get(stmt_id)
            if not isinstance(location, dict) or not isinstance(location.get("start"), dict):
                continue
            line = location["start"].get("line")
            if isinstance(line, int):
                lines.add(line)
        return sorted(lines)
