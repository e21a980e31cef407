"""Loading atom, test and recommendation records from an export file.

The file may be JSON or YAML; both are handled transparently via
``yaml.safe_load``. Expected top-level layout::

    atoms:
      - {id: a1, atomId: IA-001, status: committed, qualityScore: 85}
    tests:
      - {id: t1, filePath: src/a.spec.ts, testName: works, atomRecommendationId: r1}
    recommendations:
      - {id: r1, atomId: a1, status: accepted, confidence: 90}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import yaml

from atomtrace.models.records import RecordSnapshot

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_RECORD_KEYS = ("atoms", "tests", "recommendations")


class RecordLoadError(ValueError):
    """The records file is missing, unparsable or has an unexpected shape."""


def load_records(path: Path) -> RecordSnapshot:
    """Read a record snapshot from *path*.

    Missing keys load as empty lists.

    Raises:
        RecordLoadError: If the file cannot be read or parsed, or a record
            is missing a required field.
    """
    if not path.is_file():
        raise RecordLoadError(f"Records file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise RecordLoadError(f"Failed to parse records file {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RecordLoadError(f"Records file does not contain a mapping: {path}")

    for key in _RECORD_KEYS:
        value: Any = data.get(key)
        if value is not None and not isinstance(value, list):
            raise RecordLoadError(f"'{key}' must be a list in {path}")

    try:
        snapshot = RecordSnapshot.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordLoadError(f"Invalid record in {path}: {exc}") from exc

    logger.debug(
        "Loaded %d atoms, %d tests, %d recommendations from %s",
        len(snapshot.atoms),
        len(snapshot.tests),
        len(snapshot.recommendations),
        path,
    )
    return snapshot
