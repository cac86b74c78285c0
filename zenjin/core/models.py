"""
Data models shared by the sequencing engine.

Records are plain dataclasses. Each mutable record is owned by exactly one
component (BoundaryTracker, RepositionEngine, PathRotator); everything else
receives copies.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from zenjin.core.errors import InvalidPerformance


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# ============================================================================
# Content (owned by external collaborators, read-only here)
# ============================================================================


@dataclass(frozen=True)
class Fact:
    """One atomic piece of content, e.g. the relation 7 x 8 = 56."""

    id: str
    operation: str
    operands: tuple[int, ...] = ()
    answer: float | None = None


@dataclass(frozen=True)
class Stitch:
    """A named, ordered bundle of facts belonging to exactly one learning path."""

    id: str
    path_id: str
    name: str
    fact_ids: tuple[str, ...]
    difficulty: int = 1


@dataclass(frozen=True)
class PathDefinition:
    """Authoring-time description of a learning path."""

    id: str
    name: str
    description: str | None = None


# ============================================================================
# Performance inputs
# ============================================================================


@dataclass(frozen=True)
class AnswerPerformance:
    """Grading result for a single answered question."""

    correct_first_attempt: bool
    response_time_ms: int
    consecutive_correct: int | None = None

    def validate(self) -> None:
        if not isinstance(self.correct_first_attempt, bool):
            raise InvalidPerformance("correct_first_attempt must be a boolean")
        if (
            isinstance(self.response_time_ms, bool)
            or not isinstance(self.response_time_ms, int)
            or self.response_time_ms <= 0
        ):
            raise InvalidPerformance("response_time_ms must be a positive integer")
        if self.consecutive_correct is not None and (
            isinstance(self.consecutive_correct, bool)
            or not isinstance(self.consecutive_correct, int)
            or self.consecutive_correct < 0
        ):
            raise InvalidPerformance("consecutive_correct must be a non-negative integer")


@dataclass(frozen=True)
class StitchPerformance:
    """Aggregated performance over one pass through a stitch."""

    correct_count: int
    total_count: int
    average_response_time_ms: float
    completed_at: datetime | None = None

    @classmethod
    def from_answer(cls, answer: AnswerPerformance) -> StitchPerformance:
        """Treat a single answered question as a one-question stitch pass."""
        return cls(
            correct_count=1 if answer.correct_first_attempt else 0,
            total_count=1,
            average_response_time_ms=float(answer.response_time_ms),
        )

    @property
    def accuracy(self) -> float:
        return self.correct_count / self.total_count

    def validate(self) -> None:
        for name in ("correct_count", "total_count"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidPerformance(f"{name} must be a non-negative integer")
        if self.total_count == 0:
            raise InvalidPerformance("total_count must be positive")
        if self.correct_count > self.total_count:
            raise InvalidPerformance("correct_count cannot exceed total_count")
        if (
            isinstance(self.average_response_time_ms, bool)
            or not isinstance(self.average_response_time_ms, (int, float))
            or self.average_response_time_ms <= 0
        ):
            raise InvalidPerformance("average_response_time_ms must be positive")


# ============================================================================
# Mastery
# ============================================================================


@dataclass
class UserFactMastery:
    """Boundary tracking record for one (user, fact) pair."""

    user_id: str
    fact_id: str
    current_level: int = 1
    mastery_score: float = 0.5
    consecutive_correct: int = 0
    consecutive_incorrect: int = 0
    last_response_time_ms: int | None = None
    last_attempt_at: datetime | None = None
    last_demoted_at: datetime | None = None

    def copy(self) -> UserFactMastery:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_attempt_at"] = _to_iso(self.last_attempt_at)
        data["last_demoted_at"] = _to_iso(self.last_demoted_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserFactMastery:
        payload = dict(data)
        payload["last_attempt_at"] = _from_iso(payload.get("last_attempt_at"))
        payload["last_demoted_at"] = _from_iso(payload.get("last_demoted_at"))
        return cls(**payload)


@dataclass(frozen=True)
class BoundaryUpdateResult:
    """Outcome of one boundary level update."""

    previous_level: int
    new_level: int
    changed: bool
    mastery_score: float


# ============================================================================
# Repositioning
# ============================================================================


@dataclass(frozen=True)
class RepositionResult:
    """Outcome of moving a stitch within its path queue."""

    stitch_id: str
    path_id: str
    previous_position: int
    new_position: int
    skip_number: int
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepositionResult:
        payload = dict(data)
        payload["timestamp"] = datetime.fromisoformat(payload["timestamp"])
        return cls(**payload)


@dataclass
class StitchProgress:
    """Cumulative results of a user's completed passes through one stitch."""

    user_id: str
    path_id: str
    stitch_id: str
    completion_count: int = 0
    correct_count: int = 0
    total_count: int = 0
    mastery_level: float = 0.0
    last_attempt_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_attempt_at"] = _to_iso(self.last_attempt_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StitchProgress:
        payload = dict(data)
        payload["last_attempt_at"] = _from_iso(payload.get("last_attempt_at"))
        return cls(**payload)


# ============================================================================
# Triple helix
# ============================================================================


class PathStatus(str, Enum):
    """Status of a learning path inside the triple helix."""

    ACTIVE = "active"
    PREPARING = "preparing"


class RotationTrigger(str, Enum):
    """Why the host is asking for a rotation."""

    MANUAL = "manual"
    STITCH_COMPLETED = "stitch_completed"
    CADENCE = "cadence"


@dataclass
class HelixPath:
    """One of the three parallel learning paths of a user."""

    path_id: str
    name: str
    status: PathStatus
    difficulty: int = 1
    rotations_since_active: int = 0
    current_stitch_id: str | None = None
    next_stitch_id: str | None = None
    description: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is PathStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HelixPath:
        payload = dict(data)
        payload["status"] = PathStatus(payload["status"])
        return cls(**payload)


@dataclass
class TripleHelixState:
    """Rotation state of one user's three learning paths."""

    user_id: str
    paths: list[HelixPath] = field(default_factory=list)
    rotation_count: int = 0
    last_rotation_at: datetime | None = None
    answers_since_rotation: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "paths": [path.to_dict() for path in self.paths],
            "rotation_count": self.rotation_count,
            "last_rotation_at": _to_iso(self.last_rotation_at),
            "answers_since_rotation": self.answers_since_rotation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TripleHelixState:
        return cls(
            user_id=data["user_id"],
            paths=[HelixPath.from_dict(path) for path in data["paths"]],
            rotation_count=data.get("rotation_count", 0),
            last_rotation_at=_from_iso(data.get("last_rotation_at")),
            answers_since_rotation=data.get("answers_since_rotation", 0),
        )


@dataclass(frozen=True)
class RotationResult:
    """Outcome of a rotation: copies of both paths after the swap."""

    previous_active: HelixPath
    new_active: HelixPath
    rotation_count: int


# ============================================================================
# Facade results
# ============================================================================


@dataclass(frozen=True)
class QuestionSource:
    """Where the next question comes from."""

    path_id: str
    stitch_id: str
    fact_id: str
    boundary_level: int


@dataclass(frozen=True)
class AnswerOutcome:
    """Combined result of recording one answer."""

    previous_level: int
    new_level: int
    changed: bool
    mastery_score: float
    previous_position: int
    new_position: int
    skip_number: int
