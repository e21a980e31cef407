"""Atom, test and recommendation records consumed by the metrics engines.

These records are owned by the surrounding system; atomtrace only reads
them. ``from_dict`` accepts both snake_case and camelCase field names so
exports from the upstream store load unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AtomStatus(Enum):
    """Lifecycle state of an Intent Atom."""

    DRAFT = "draft"
    COMMITTED = "committed"
    SUPERSEDED = "superseded"


class RecommendationStatus(Enum):
    """Review state of an inferred atom recommendation."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


def _field(data: dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    if snake in data:
        return data[snake]
    return data.get(camel, default)


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _optional_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


_TRUE_STRINGS = frozenset({"true", "yes", "1", "on"})


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


@dataclass
class Atom:
    """A discrete, testable statement of intended behavior."""

    id: str
    """Primary key."""

    atom_id: str
    """Human-facing identifier (e.g. ``IA-001``)."""

    description: str = ""
    status: AtomStatus = AtomStatus.DRAFT
    quality_score: float | None = None
    """Atom quality score in ``[0, 100]``, when scored."""

    @property
    def is_committed(self) -> bool:
        return self.status is AtomStatus.COMMITTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "atom_id": self.atom_id,
            "description": self.description,
            "status": self.status.value,
            "quality_score": self.quality_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Atom:
        return cls(
            id=str(data["id"]),
            atom_id=str(_field(data, "atom_id", "atomId", data["id"])),
            description=str(data.get("description", "")),
            status=AtomStatus(data.get("status", AtomStatus.DRAFT.value)),
            quality_score=_optional_float(_field(data, "quality_score", "qualityScore")),
        )


@dataclass
class TestRecord:
    """A discovered test, optionally linked to an atom."""

    __test__ = False  # not a pytest test class

    id: str
    file_path: str
    test_name: str
    status: str = "pending"
    had_atom_annotation: bool = False
    """True when the test carried an explicit ``@atom`` annotation."""

    atom_recommendation_id: str | None = None
    """Recommendation this test was linked through, if any."""

    quality_score: float | None = None

    @property
    def is_linked(self) -> bool:
        """A test is linked when annotated or tied to a recommendation."""
        return self.had_atom_annotation or self.atom_recommendation_id is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "file_path": self.file_path,
            "test_name": self.test_name,
            "status": self.status,
            "had_atom_annotation": self.had_atom_annotation,
            "atom_recommendation_id": self.atom_recommendation_id,
            "quality_score": self.quality_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestRecord:
        rec_id = _field(data, "atom_recommendation_id", "atomRecommendationId")
        return cls(
            id=str(data["id"]),
            file_path=str(_field(data, "file_path", "filePath", "")),
            test_name=str(_field(data, "test_name", "testName", "")),
            status=str(data.get("status", "pending")),
            had_atom_annotation=_flag(
                _field(data, "had_atom_annotation", "hadAtomAnnotation", False)
            ),
            atom_recommendation_id=_optional_id(rec_id),
            quality_score=_optional_float(_field(data, "quality_score", "qualityScore")),
        )


@dataclass
class AtomRecommendation:
    """An inferred atom proposal produced during reconciliation."""

    id: str
    atom_id: str | None = None
    """Atom the recommendation resolved to, once known."""

    status: RecommendationStatus = RecommendationStatus.PENDING
    confidence: float | None = None
    """Inference confidence in ``[0, 100]``."""

    @property
    def is_accepted(self) -> bool:
        return self.status is RecommendationStatus.ACCEPTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "atom_id": self.atom_id,
            "status": self.status.value,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AtomRecommendation:
        atom_id = _field(data, "atom_id", "atomId")
        return cls(
            id=str(data["id"]),
            atom_id=_optional_id(atom_id),
            status=RecommendationStatus(data.get("status", RecommendationStatus.PENDING.value)),
            confidence=_optional_float(data.get("confidence")),
        )


@dataclass
class RecordSnapshot:
    """A consistent read of atoms, tests and recommendations."""

    atoms: list[Atom] = field(default_factory=list)
    tests: list[TestRecord] = field(default_factory=list)
    recommendations: list[AtomRecommendation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "atoms": [a.to_dict() for a in self.atoms],
            "tests": [t.to_dict() for t in self.tests],
            "recommendations": [r.to_dict() for r in self.recommendations],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordSnapshot:
        return cls(
            atoms=[Atom.from_dict(a) for a in data.get("atoms") or []],
            tests=[TestRecord.from_dict(t) for t in data.get("tests") or []],
            recommendations=[
                AtomRecommendation.from_dict(r) for r in data.get("recommendations") or []
            ],
        )
