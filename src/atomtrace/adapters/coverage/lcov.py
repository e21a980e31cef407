"""LCOV tracefile parser.

LCOV is a line protocol: each source file is a record opened by ``SF:`` and
closed by ``end_of_record``. Summary counters (``LF``/``LH``, ``FNF``/``FNH``,
``BRF``/``BRH``) give per-file totals and ``DA:<line>,<count>`` lines give
per-line hit counts.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from atomtrace.adapters.coverage.base import CoverageParser, ParseResult
from atomtrace.models.coverage import (
    CoverageFormat,
    CoverageSummary,
    DimensionSummary,
    FileCoverage,
)

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

_LCOV_SF = "SF:"
_LCOV_LF = "LF:"
_LCOV_LH = "LH:"
_LCOV_FNF = "FNF:"
_LCOV_FNH = "FNH:"
_LCOV_BRF = "BRF:"
_LCOV_BRH = "BRH:"
_LCOV_DA = "DA:"
_LCOV_END = "end_of_record"

_DETECT_RE = re.compile(r"^(TN:|SF:)", re.MULTILINE)
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")

# Counter prefix -> _LcovRecordState attribute
_COUNTER_KEYS = {
    _LCOV_LF: "lines_found",
    _LCOV_LH: "lines_hit",
    _LCOV_FNF: "functions_found",
    _LCOV_FNH: "functions_hit",
    _LCOV_BRF: "branches_found",
    _LCOV_BRH: "branches_hit",
}


def _leading_int(value: str) -> int | None:
    """Parse the leading integer of *value*, ignoring trailing junk."""
    match = _LEADING_INT_RE.match(value)
    return int(match.group(1)) if match else None


@dataclass
class _LcovRecordState:
    path: str
    lines_found: int = 0
    lines_hit: int = 0
    functions_found: int = 0
    functions_hit: int = 0
    branches_found: int = 0
    branches_hit: int = 0
    all_lines: set[int] = field(default_factory=set)
    covered_lines: set[int] = field(default_factory=set)


# ── Parser ───────────────────────────────────────────────────────


class LcovParser(CoverageParser):
    """Parser for LCOV ``.info`` tracefiles (gcov/lcov, c8, Jest lcov reporter)."""

    @property
    def format(self) -> CoverageFormat:
        return CoverageFormat.LCOV

    def can_parse(self, content: str) -> bool:
        """LCOV content has at least one line starting with ``TN:`` or ``SF:``."""
        return bool(_DETECT_RE.search(content))

    def parse(self, content: str) -> ParseResult:
        files: list[FileCoverage] = []
        state: _LcovRecordState | None = None

        for raw_line in content.split("\n"):
            line = raw_line.strip()

            if line.startswith(_LCOV_SF):
                if state is not None:
                    logger.debug("Dropping unterminated LCOV record for %s", state.path)
                state = _LcovRecordState(path=line[len(_LCOV_SF) :])
            elif state is None:
                continue
            elif line == _LCOV_END:
                files.append(self._build_file_coverage(state))
                state = None
            elif line.startswith(_LCOV_DA):
                self._apply_line_hits(line[len(_LCOV_DA) :], state)
            else:
                self._apply_counter(line, state)

        if state is not None:
            logger.debug("Dropping unterminated LCOV record for %s", state.path)

        return ParseResult(
            summary=self._aggregate_summary(files),
            files=files,
            format=self.format,
        )

    def _apply_counter(self, line: str, state: _LcovRecordState) -> None:
        for prefix, attr in _COUNTER_KEYS.items():
            if line.startswith(prefix):
                setattr(state, attr, _leading_int(line[len(prefix) :]) or 0)
                return

    def _apply_line_hits(self, value: str, state: _LcovRecordState) -> None:
        parts = value.split(",")
        line_num = _leading_int(parts[0])
        if line_num is None:
            return
        count = _leading_int(parts[1]) if len(parts) > 1 else None
        state.all_lines.add(line_num)
        if count is not None and count > 0:
            state.covered_lines.add(line_num)

    def _build_file_coverage(self, state: _LcovRecordState) -> FileCoverage:
        lines = DimensionSummary.from_counts(state.lines_found, state.lines_hit)
        return FileCoverage(
            file_path=state.path,
            # LCOV has no statement table; statements mirror lines
            statements=DimensionSummary.from_counts(state.lines_found, state.lines_hit),
            branches=DimensionSummary.from_counts(state.branches_found, state.branches_hit),
            functions=DimensionSummary.from_counts(state.functions_found, state.functions_hit),
            lines=lines,
            uncovered_lines=sorted(state.all_lines - state.covered_lines),
        )

    def _aggregate_summary(self, files: list[FileCoverage]) -> CoverageSummary:
        """Sum per-file counts and recompute percentages from the sums."""
        return CoverageSummary.from_totals(
            statements=(
                sum(f.statements.total for f in files),
                sum(f.statements.covered for f in files),
            ),
            branches=(
                sum(f.branches.total for f in files),
                sum(f.branches.covered for f in files),
            ),
            functions=(
                sum(f.functions.total for f in files),
                sum(f.functions.covered for f in files),
            ),
            lines=(
                sum(f.lines.total for f in files),
                sum(f.lines.covered for f in files),
            ),
        )
