"""File-backed storage for coverage reports, records and metrics snapshots."""

from atomtrace.memory.coverage_store import CoverageStore, ingest_coverage, submit_coverage
from atomtrace.memory.metrics_history import MetricsHistory, MetricsSnapshot
from atomtrace.memory.record_store import RecordLoadError, load_records

__all__ = [
    "CoverageStore",
    "MetricsHistory",
    "MetricsSnapshot",
    "RecordLoadError",
    "ingest_coverage",
    "load_records",
    "submit_coverage",
]
