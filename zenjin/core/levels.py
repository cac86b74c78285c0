"""
Boundary levels of distinction.

Five fixed, ordinal stages a learner moves through for every fact. Level 5 is
terminal for tracking purposes; there is no level 6.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from zenjin.core.errors import InvalidLevel

MIN_LEVEL = 1
MAX_LEVEL = 5


class BoundaryLevel(IntEnum):
    """Distinction boundary a learner must master for a fact."""

    CATEGORY = 1  # answer must be of the right type
    MAGNITUDE = 2  # answer in a plausible numeric range
    OPERATION = 3  # distinguishing the operation itself
    RELATED_FACT = 4  # adjacent facts in the same operation
    NEAR_MISS = 5  # very close numeric alternatives

    @classmethod
    def from_value(cls, value: object) -> BoundaryLevel:
        """Coerce an integer into a level, raising InvalidLevel when out of range."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidLevel(value)
        if not MIN_LEVEL <= value <= MAX_LEVEL:
            raise InvalidLevel(value)
        return cls(value)

    @property
    def display_name(self) -> str:
        return _DESCRIPTIONS[self].name

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self].description

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            BoundaryLevel.CATEGORY: "red",
            BoundaryLevel.MAGNITUDE: "yellow",
            BoundaryLevel.OPERATION: "cyan",
            BoundaryLevel.RELATED_FACT: "blue",
            BoundaryLevel.NEAR_MISS: "green",
        }[self]


@dataclass(frozen=True)
class LevelDescription:
    """Catalogue entry for a boundary level."""

    level: int
    name: str
    description: str


_DESCRIPTIONS: dict[BoundaryLevel, LevelDescription] = {
    BoundaryLevel.CATEGORY: LevelDescription(
        1, "Category Boundaries", "Mathematical answers must be numerical"
    ),
    BoundaryLevel.MAGNITUDE: LevelDescription(
        2, "Magnitude Boundaries", "Awareness of appropriate numerical ranges"
    ),
    BoundaryLevel.OPERATION: LevelDescription(
        3, "Operation Boundaries", "Differentiation between mathematical operations"
    ),
    BoundaryLevel.RELATED_FACT: LevelDescription(
        4, "Related Fact Boundaries", "Distinction between adjacent facts in the same operation"
    ),
    BoundaryLevel.NEAR_MISS: LevelDescription(
        5, "Near Miss Boundaries", "Precise differentiation between very similar numerical answers"
    ),
}


def describe_level(level: int) -> LevelDescription:
    """Return the catalogue entry for one level (InvalidLevel outside 1..5)."""
    return _DESCRIPTIONS[BoundaryLevel.from_value(level)]


def all_levels() -> list[LevelDescription]:
    """All five levels in ascending order."""
    return [_DESCRIPTIONS[level] for level in BoundaryLevel]
