"""
Core Module - Shared domain models, levels, errors and collaborator interfaces.

Components:
- errors: Typed error taxonomy (NotFound, InvalidInput, AlreadyInitialized, InvariantViolation)
- levels: The five boundary levels of distinction
- models: Dataclass records (UserFactMastery, TripleHelixState, RepositionResult, ...)
- interfaces: Protocols for FactRepository, StitchContentProvider, PersistenceGateway
"""

from zenjin.core.errors import (
    AlreadyInitialized,
    FactNotFound,
    InvalidDifficulty,
    InvalidInput,
    InvalidLevel,
    InvalidPerformance,
    InvalidStitch,
    InvariantViolation,
    NoActivePath,
    NoMasteryData,
    NoProgressData,
    NoStitchesAvailable,
    NoTripleHelixState,
    NotFound,
    PathNotFound,
    PositionOutOfBounds,
    StitchNotFound,
    UserNotFound,
    ZenjinError,
)
from zenjin.core.levels import BoundaryLevel, LevelDescription, all_levels, describe_level
from zenjin.core.models import (
    AnswerOutcome,
    AnswerPerformance,
    BoundaryUpdateResult,
    Fact,
    HelixPath,
    PathDefinition,
    PathStatus,
    QuestionSource,
    RepositionResult,
    RotationResult,
    RotationTrigger,
    Stitch,
    StitchPerformance,
    StitchProgress,
    TripleHelixState,
    UserFactMastery,
)

__all__ = [
    # Errors
    "ZenjinError",
    "NotFound",
    "UserNotFound",
    "FactNotFound",
    "StitchNotFound",
    "PathNotFound",
    "NoMasteryData",
    "NoActivePath",
    "NoTripleHelixState",
    "NoStitchesAvailable",
    "NoProgressData",
    "InvalidInput",
    "InvalidPerformance",
    "InvalidLevel",
    "InvalidDifficulty",
    "InvalidStitch",
    "PositionOutOfBounds",
    "AlreadyInitialized",
    "InvariantViolation",
    # Levels
    "BoundaryLevel",
    "LevelDescription",
    "all_levels",
    "describe_level",
    # Models
    "Fact",
    "Stitch",
    "PathDefinition",
    "AnswerPerformance",
    "StitchPerformance",
    "StitchProgress",
    "UserFactMastery",
    "BoundaryUpdateResult",
    "RepositionResult",
    "PathStatus",
    "RotationTrigger",
    "HelixPath",
    "TripleHelixState",
    "RotationResult",
    "QuestionSource",
    "AnswerOutcome",
]
