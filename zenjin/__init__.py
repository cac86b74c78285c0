"""
Zenjin Engine - adaptive mastery tracking and stitch sequencing.

Components:
- mastery: BoundaryTracker over five boundary levels per (user, fact)
- sequencing: StitchQueue and the Stitch Repositioning Algorithm
- helix: PathRotator for the three-path triple helix
- engine: SequencingFacade, the single entry point for hosts
- content / persistence: reference collaborators (in-memory content, JSON and SQL stores)
"""

from zenjin.core import (
    AnswerOutcome,
    AnswerPerformance,
    QuestionSource,
    RotationResult,
    RotationTrigger,
    StitchPerformance,
    ZenjinError,
)
from zenjin.engine import SequencingFacade

__version__ = "1.0.0"

__all__ = [
    "SequencingFacade",
    "AnswerPerformance",
    "StitchPerformance",
    "AnswerOutcome",
    "QuestionSource",
    "RotationResult",
    "RotationTrigger",
    "ZenjinError",
]
