"""Tests for coverage format auto-detection."""

from __future__ import annotations

import json

import pytest

from atomtrace.adapters import (
    CoverageFormatError,
    CoverageParseError,
    UnrecognizedCoverageFormatError,
    detect_and_parse,
)
from atomtrace.adapters.coverage import PARSERS, detect_parser
from atomtrace.models.coverage import CoverageFormat

LCOV = "TN:\nSF:/src/a.ts\nLF:4\nLH:3\nDA:1,1\nDA:2,0\nend_of_record\n"

ISTANBUL = json.dumps(
    {"total": {"lines": {"total": 10, "covered": 9, "pct": 90}}},
)

COBERTURA = (
    '<?xml version="1.0"?>'
    '<coverage line-rate="0.5" branch-rate="0">'
    "<packages><package><classes>"
    '<class filename="a.py"><lines>'
    '<line number="1" hits="1"/><line number="2" hits="0"/>'
    "</lines></class>"
    "</classes></package></packages></coverage>"
)


class TestParserOrder:
    def test_priority(self) -> None:
        assert [p.format for p in PARSERS] == [
            CoverageFormat.LCOV,
            CoverageFormat.ISTANBUL,
            CoverageFormat.COBERTURA,
        ]

    def test_detect_parser_returns_none_for_garbage(self) -> None:
        assert detect_parser("just some text") is None


class TestDetectAndParse:
    def test_lcov(self) -> None:
        result = detect_and_parse(LCOV)
        assert result.format is CoverageFormat.LCOV
        assert result.files[0].uncovered_lines == [2]

    def test_istanbul(self) -> None:
        result = detect_and_parse(ISTANBUL)
        assert result.format is CoverageFormat.ISTANBUL
        assert result.summary.lines.pct == 90

    def test_cobertura(self) -> None:
        result = detect_and_parse(COBERTURA)
        assert result.format is CoverageFormat.COBERTURA
        assert result.summary.lines.pct == 50

    def test_garbage_raises(self) -> None:
        with pytest.raises(UnrecognizedCoverageFormatError, match="Unable to detect coverage"):
            detect_and_parse("this is not a coverage report")

    def test_empty_raises(self) -> None:
        with pytest.raises(UnrecognizedCoverageFormatError, match="Unable to detect coverage"):
            detect_and_parse("")

    def test_error_lists_supported_formats(self) -> None:
        with pytest.raises(CoverageFormatError) as exc_info:
            detect_and_parse("{}")
        assert "lcov, istanbul JSON, cobertura XML" in str(exc_info.value)

    def test_claimed_but_malformed_xml(self) -> None:
        with pytest.raises(CoverageParseError, match="Unable to parse cobertura"):
            detect_and_parse('<coverage line-rate="0.5"><unclosed>')

    def test_errors_are_value_errors(self) -> None:
        with pytest.raises(ValueError):
            detect_and_parse("nope")

    def test_result_serializes(self) -> None:
        data = detect_and_parse(LCOV).to_dict()
        assert data["format"] == "lcov"
        assert data["files"][0]["file_path"] == "/src/a.ts"
        assert data["summary"]["lines"] == {"total": 4, "covered": 3, "pct": 75.0}
