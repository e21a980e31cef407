"""Daily metrics snapshots stored in ``.atomtrace/history/``.

One snapshot is kept per UTC calendar day. Recording twice on the same day
overwrites that day's entry, so a repeated or retried snapshot job never
duplicates data.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from atomtrace.metrics.coupling import CouplingMetrics
    from atomtrace.metrics.epistemic import EpistemicMetrics
    from atomtrace.models.coverage import CoverageReport
    from atomtrace.models.records import TestRecord

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_DIR = ".atomtrace/history"
SNAPSHOTS_FILE = "metrics_snapshots.json"

TREND_PERIODS: dict[str, int] = {
    "week": 7,
    "month": 30,
    "quarter": 90,
}

# Lower bound (inclusive) of each test-quality grade, best first
_GRADE_THRESHOLDS = (("A", 90.0), ("B", 80.0), ("C", 70.0), ("D", 60.0))
_FAILING_GRADE = "F"


@dataclass
class MetricsSnapshot:
    """Serialized metrics for one day."""

    snapshot_date: str
    """Calendar day in ``YYYY-MM-DD`` form (UTC)."""

    epistemic_metrics: dict[str, Any] = field(default_factory=dict)
    coupling_metrics: dict[str, Any] = field(default_factory=dict)
    additional_metrics: dict[str, Any] | None = None

    updated_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    """ISO timestamp of the last write for this day."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot_date": self.snapshot_date,
            "epistemic_metrics": self.epistemic_metrics,
            "coupling_metrics": self.coupling_metrics,
            "additional_metrics": self.additional_metrics,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetricsSnapshot:
        return cls(
            snapshot_date=str(data["snapshot_date"]),
            epistemic_metrics=dict(data.get("epistemic_metrics") or {}),
            coupling_metrics=dict(data.get("coupling_metrics") or {}),
            additional_metrics=data.get("additional_metrics"),
            updated_at=str(data.get("updated_at", "")),
        )


def quality_aggregate(tests: Iterable[TestRecord]) -> dict[str, Any]:
    """Average score and A-F grade distribution over scored test records."""
    scores = [t.quality_score for t in tests if t.quality_score is not None]
    distribution = {grade: 0 for grade, _ in _GRADE_THRESHOLDS}
    distribution[_FAILING_GRADE] = 0
    for score in scores:
        for grade, threshold in _GRADE_THRESHOLDS:
            if score >= threshold:
                distribution[grade] += 1
                break
        else:
            distribution[_FAILING_GRADE] += 1

    average = round(sum(scores) / len(scores), 1) if scores else 0
    return {
        "average_score": average,
        "total_analyzed": len(scores),
        "grade_distribution": distribution,
    }


def _coverage_pcts(report: CoverageReport | None) -> dict[str, float] | None:
    if report is None:
        return None
    return {
        "statements": report.summary.statements.pct,
        "branches": report.summary.branches.pct,
        "functions": report.summary.functions.pct,
        "lines": report.summary.lines.pct,
    }


class MetricsHistory:
    """Upsert-by-date store of coupling and epistemic snapshots."""

    def __init__(self, project_root: Path, *, history_dir: str = DEFAULT_HISTORY_DIR) -> None:
        """Initialize the metrics history.

        Args:
            project_root: Root directory of the project.
            history_dir: Directory, relative to the root, holding the snapshot file.
        """
        self._root = project_root
        self._history_dir = project_root / history_dir
        self._snapshots_file = self._history_dir / SNAPSHOTS_FILE

    @property
    def path(self) -> Path:
        return self._snapshots_file

    def record_snapshot(
        self,
        coupling: CouplingMetrics,
        epistemic: EpistemicMetrics,
        tests: Iterable[TestRecord],
        latest_report: CoverageReport | None,
        *,
        today: date | None = None,
    ) -> MetricsSnapshot:
        """Create or overwrite the snapshot for *today* (UTC date by default).

        Args:
            coupling: Coupling metrics computed for the snapshot.
            epistemic: Epistemic metrics computed for the same snapshot.
            tests: Test records, for the quality aggregate.
            latest_report: Latest stored coverage report, if any.
            today: Day to record under; defaults to the current UTC date.

        Returns:
            The stored snapshot.
        """
        day = (today or datetime.now(UTC).date()).isoformat()
        snapshot = MetricsSnapshot(
            snapshot_date=day,
            epistemic_metrics=epistemic.to_dict(),
            coupling_metrics=coupling.to_dict(),
            additional_metrics={
                "test_quality": quality_aggregate(tests),
                "coverage": _coverage_pcts(latest_report),
                "quality_weighted_certainty": epistemic.quality_weighted_certainty,
                "average_coupling_strength": (
                    coupling.atom_test_coupling.average_coupling_strength
                ),
            },
        )

        snapshots = {s.snapshot_date: s for s in self._load()}
        replaced = day in snapshots
        snapshots[day] = snapshot
        self._save(sorted(snapshots.values(), key=lambda s: s.snapshot_date))

        logger.info("%s metrics snapshot for %s", "Updated" if replaced else "Recorded", day)
        return snapshot

    def get_trends(
        self, period: str = "month", *, today: date | None = None
    ) -> list[MetricsSnapshot]:
        """Snapshots within the last 7/30/90 days (inclusive), oldest first.

        Raises:
            ValueError: If *period* is not ``week``, ``month`` or ``quarter``.
        """
        if period not in TREND_PERIODS:
            msg = f"Unknown trend period {period!r}; expected one of {', '.join(TREND_PERIODS)}"
            raise ValueError(msg)

        end = today or datetime.now(UTC).date()
        start = (end - timedelta(days=TREND_PERIODS[period])).isoformat()
        end_str = end.isoformat()
        return [s for s in self._load() if start <= s.snapshot_date <= end_str]

    def get_latest(self) -> MetricsSnapshot | None:
        """Return the snapshot with the most recent date, or ``None``."""
        snapshots = self._load()
        return snapshots[-1] if snapshots else None

    def _load(self) -> list[MetricsSnapshot]:
        """Load snapshots from disk, sorted by date."""
        if not self._snapshots_file.exists():
            return []

        try:
            with self._snapshots_file.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load metrics history: %s", e)
            return []

        if not isinstance(data, list):
            logger.warning("Ignoring malformed metrics history in %s", self._snapshots_file)
            return []

        snapshots: list[MetricsSnapshot] = []
        for item in data:
            try:
                snapshots.append(MetricsSnapshot.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed metrics snapshot: %s", e)
        return sorted(snapshots, key=lambda s: s.snapshot_date)

    def _save(self, snapshots: list[MetricsSnapshot]) -> None:
        self._history_dir.mkdir(parents=True, exist_ok=True)
        try:
            with self._snapshots_file.open("w", encoding="utf-8") as f:
                json.dump([s.to_dict() for s in snapshots], f, indent=2)
            logger.debug("Saved metrics history: %d snapshots", len(snapshots))
        except OSError as e:
            logger.error("Failed to save metrics history: %s", e)
