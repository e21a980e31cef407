"""Cobertura XML coverage parser.

Cobertura XML is produced by coverage.py (``coverage xml``), Coverlet,
istanbul's cobertura reporter, gcovr and JaCoCo converters::

    <coverage line-rate="0.85" branch-rate="0.75" lines-covered="..." ...>
      <packages><package><classes>
        <class filename="src/file.ts" line-rate="0.9" branch-rate="0.8">
          <methods><method name="f" line-rate="1.0"><lines>...</lines></method></methods>
          <lines>
            <line number="1" hits="1" branch="false"/>
            <line number="5" hits="0" branch="true" condition-coverage="50% (1/2)"/>
          </lines>
        </class>
      </classes></package></packages>
    </coverage>
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from defusedxml import DefusedXmlException, ElementTree
from defusedxml.ElementTree import ParseError as DefusedParseError

from atomtrace.adapters.coverage.base import CoverageParseError, CoverageParser, ParseResult
from atomtrace.models.coverage import (
    CoverageFormat,
    CoverageSummary,
    DimensionSummary,
    FileCoverage,
    round_ratio,
)

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element as XmlElement

logger = logging.getLogger(__name__)

_CONDITION_COVERAGE_RE = re.compile(r"\((\d+)/(\d+)\)")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _local_name(elem: XmlElement) -> str:
    return elem.tag.split("}")[-1] if "}" in elem.tag else elem.tag


def _int_attr(element: XmlElement, key: str) -> int | None:
    value = element.get(key)
    if value is None:
        return None
    match = _LEADING_INT_RE.match(value)
    return int(match.group(1)) if match else None


def _float_attr(element: XmlElement, key: str) -> float:
    value = element.get(key)
    if value is None:
        return 0.0
    match = _LEADING_FLOAT_RE.match(value)
    return float(match.group(1)) if match else 0.0


@dataclass
class _ClassTally:
    lines_found: int = 0
    lines_hit: int = 0
    branches_found: int = 0
    branches_hit: int = 0
    methods_found: int = 0
    methods_hit: int = 0
    uncovered_lines: list[int] = field(default_factory=list)


def _process_line_elem(line_elem: XmlElement, tally: _ClassTally) -> None:
    """Fold one ``<line>`` element into *tally*.

    Lines without integer ``number`` and ``hits`` attributes are ignored, so
    they are never reported as uncovered.
    """
    number = _int_attr(line_elem, "number")
    hits = _int_attr(line_elem, "hits")
    if number is None or hits is None:
        return
    tally.lines_found += 1
    if hits > 0:
        tally.lines_hit += 1
    else:
        tally.uncovered_lines.append(number)

    match = _CONDITION_COVERAGE_RE.search(line_elem.get("condition-coverage", ""))
    if match:
        tally.branches_hit += int(match.group(1))
        tally.branches_found += int(match.group(2))


def _tally_class(class_elem: XmlElement) -> _ClassTally:
    """Count every line (class-level and method-level) and method of a class."""
    tally = _ClassTally()
    for child in class_elem.iter():
        tag = _local_name(child)
        if tag == "line":
            _process_line_elem(child, tally)
        elif tag == "method":
            tally.methods_found += 1
            if _float_attr(child, "line-rate") > 0:
                tally.methods_hit += 1
    tally.uncovered_lines.sort()
    return tally


class CoberturaParser(CoverageParser):
    """Parser for Cobertura XML reports."""

    @property
    def format(self) -> CoverageFormat:
        return CoverageFormat.COBERTURA

    def can_parse(self, content: str) -> bool:
        return "<coverage" in content and ("line-rate" in content or "lines-covered" in content)

    def parse(self, content: str) -> ParseResult:
        try:
            root = ElementTree.fromstring(content)
        except (DefusedParseError, DefusedXmlException) as e:
            msg = f"Invalid Cobertura XML: {e}"
            raise CoverageParseError(msg) from e

        files: list[FileCoverage] = []
        totals = _ClassTally()

        for class_elem in root.iter():
            if _local_name(class_elem) != "class":
                continue
            filename = class_elem.get("filename")
            if not filename:
                logger.debug("Skipping Cobertura class without filename: %s", class_elem.attrib)
                continue
            tally = _tally_class(class_elem)
            totals.lines_found += tally.lines_found
            totals.lines_hit += tally.lines_hit
            totals.branches_found += tally.branches_found
            totals.branches_hit += tally.branches_hit
            totals.methods_found += tally.methods_found
            totals.methods_hit += tally.methods_hit
            files.append(
                FileCoverage(
                    file_path=filename,
                    statements=DimensionSummary.from_counts(tally.lines_found, tally.lines_hit),
                    branches=DimensionSummary.from_counts(
                        tally.branches_found, tally.branches_hit
                    ),
                    functions=DimensionSummary.from_counts(tally.methods_found, tally.methods_hit),
                    lines=DimensionSummary.from_counts(tally.lines_found, tally.lines_hit),
                    uncovered_lines=tally.uncovered_lines,
                )
            )

        if not files:
            return self._parse_top_level(root)

        summary = CoverageSummary.from_totals(
            statements=(totals.lines_found, totals.lines_hit),
            branches=(totals.branches_found, totals.branches_hit),
            functions=(totals.methods_found, totals.methods_hit),
            lines=(totals.lines_found, totals.lines_hit),
        )
        return ParseResult(summary=summary, files=files, format=self.format)

    def _parse_top_level(self, root: XmlElement) -> ParseResult:
        """Build a summary from ``<coverage>`` attributes when no classes exist."""
        lines_valid = _int_attr(root, "lines-valid") or 0
        lines_covered = _int_attr(root, "lines-covered") or 0
        branches_valid = _int_attr(root, "branches-valid") or 0
        branches_covered = _int_attr(root, "branches-covered") or 0

        def _dimension(valid: int, covered: int, rate_attr: str) -> DimensionSummary:
            if valid > 0:
                return DimensionSummary.from_counts(valid, covered)
            rate = _float_attr(root, rate_attr)
            return DimensionSummary(total=0, covered=0, pct=round_ratio(rate))

        lines = _dimension(lines_valid, lines_covered, "line-rate")
        summary = CoverageSummary(
            statements=_dimension(lines_valid, lines_covered, "line-rate"),
            branches=_dimension(branches_valid, branches_covered, "branch-rate"),
            functions=DimensionSummary.zero(),
            lines=lines,
        )
        return ParseResult(summary=summary, files=[], format=self.format)
