"""Coverage report storage using a JSONL file.

Reports are appended to ``.atomtrace/coverage/reports.jsonl`` and never
rewritten. Insertion order defines recency: the last line is the latest
report.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from atomtrace.adapters.coverage import detect_and_parse
from atomtrace.models.coverage import CoverageFormat, CoverageReport, CoverageSummary

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from atomtrace.models.coverage import FileCoverage

logger = logging.getLogger(__name__)

DEFAULT_COVERAGE_DIR = ".atomtrace/coverage"
REPORTS_FILE = "reports.jsonl"
DEFAULT_HISTORY_LIMIT = 20


class CoverageStore:
    """Append-only store of canonical coverage reports."""

    def __init__(self, project_root: Path, *, coverage_dir: str = DEFAULT_COVERAGE_DIR) -> None:
        """Initialize the coverage store.

        Args:
            project_root: Root directory of the project.
            coverage_dir: Directory, relative to the root, holding the JSONL file.
        """
        self._root = project_root
        self._coverage_dir = project_root / coverage_dir
        self._reports_file = self._coverage_dir / REPORTS_FILE

    @property
    def path(self) -> Path:
        return self._reports_file

    def save(self, report: CoverageReport) -> CoverageReport:
        """Append *report* and return it.

        Raises:
            OSError: If the report file cannot be written.
        """
        self._coverage_dir.mkdir(parents=True, exist_ok=True)
        line = json.dumps(report.to_dict(), ensure_ascii=False)
        try:
            with self._reports_file.open("a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")
        except OSError as exc:
            logger.error("Failed to append to %s: %s", self._reports_file, exc)
            raise

        logger.info(
            "Stored %s coverage report %s (lines %.2f%%, %d files)",
            report.format.value,
            report.id,
            report.summary.lines.pct,
            len(report.files),
        )
        return report

    def iter_reports(self, project_id: str | None = None) -> Iterator[CoverageReport]:
        """Stream stored reports oldest first, skipping malformed lines."""
        if not self._reports_file.exists():
            logger.debug("Coverage file does not exist: %s", self._reports_file)
            return

        try:
            with self._reports_file.open("r", encoding="utf-8") as f:
                for line_num, raw_line in enumerate(f, start=1):
                    line = raw_line.strip()
                    if not line:
                        continue
                    try:
                        report = CoverageReport.from_dict(json.loads(line))
                    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                        logger.warning(
                            "Skipping malformed line %d in %s: %s",
                            line_num,
                            REPORTS_FILE,
                            exc,
                        )
                        continue
                    if project_id is not None and report.project_id != project_id:
                        continue
                    yield report
        except OSError as exc:
            logger.error("Failed to read from %s: %s", self._reports_file, exc)

    def get_latest(self, project_id: str | None = None) -> CoverageReport | None:
        """Return the most recently stored report, optionally for one project."""
        latest = None
        for report in self.iter_reports(project_id):
            latest = report
        return latest

    def get_by_id(self, report_id: str) -> CoverageReport | None:
        for report in self.iter_reports():
            if report.id == report_id:
                return report
        return None

    def get_history(
        self,
        project_id: str | None = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
    ) -> tuple[list[CoverageReport], int]:
        """Return one page of reports, newest first, and the total count.

        Args:
            project_id: Restrict to one project (None = all).
            limit: Page size.
            offset: Number of newest reports to skip.

        Returns:
            Tuple of ``(reports, total)``.
        """
        reports = list(self.iter_reports(project_id))
        reports.reverse()
        offset = max(offset, 0)
        return reports[offset : offset + max(limit, 0)], len(reports)

    def get_file_coverage(
        self, file_path: str, project_id: str | None = None
    ) -> FileCoverage | None:
        """Look up *file_path* (exact match) in the latest report."""
        latest = self.get_latest(project_id)
        if latest is None:
            return None
        return latest.find_file(file_path)


def ingest_coverage(
    store: CoverageStore,
    content: str,
    *,
    format: CoverageFormat | str | None = None,
    project_id: str | None = None,
    commit_hash: str | None = None,
    branch_name: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> CoverageReport:
    """Auto-detect, normalize and store a raw coverage payload.

    An explicit *format* replaces the detected label on the stored report;
    detection still chooses the parser.

    Raises:
        CoverageFormatError: If the payload is unrecognized or malformed.
            Nothing is stored in that case.
    """
    result = detect_and_parse(content)
    if format is not None:
        label = CoverageFormat(format)
    elif result.format is not None:
        label = result.format
    else:
        label = CoverageFormat.LCOV

    report = CoverageReport(
        format=label,
        summary=result.summary,
        files=result.files,
        project_id=project_id,
        commit_hash=commit_hash,
        branch_name=branch_name,
        metadata=metadata,
    )
    return store.save(report)


def submit_coverage(
    store: CoverageStore,
    summary: CoverageSummary | dict[str, Any],
    files: list[FileCoverage] | None = None,
    *,
    project_id: str | None = None,
    commit_hash: str | None = None,
    branch_name: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> CoverageReport:
    """Store coverage that was already normalized by the caller.

    Submitted reports are labelled ``istanbul``.
    """
    if isinstance(summary, dict):
        summary = CoverageSummary.from_dict(summary)
    report = CoverageReport(
        format=CoverageFormat.ISTANBUL,
        summary=summary,
        files=list(files or []),
        project_id=project_id,
        commit_hash=commit_hash,
        branch_name=branch_name,
        metadata=metadata,
    )
    return store.save(report)
