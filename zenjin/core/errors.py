"""
Error taxonomy for the sequencing engine.

Every error carries a stable ``code`` so hosts can branch on it without
parsing messages:

- NotFound: user, fact, stitch, path or progress absent (recoverable by the caller)
- InvalidInput: out-of-range level or position, malformed performance, duplicate stitch
- AlreadyInitialized: double initialization
- InvariantViolation: internal defect in queue-shift or rotation logic
"""
from __future__ import annotations

from loguru import logger


class ZenjinError(Exception):
    """Base class for all engine errors."""

    code = "ZENJIN_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


# ============================================================================
# Not found
# ============================================================================


class NotFound(ZenjinError):
    code = "NOT_FOUND"


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(f"User not found: {user_id!r}")
        self.user_id = user_id


class FactNotFound(NotFound):
    code = "FACT_NOT_FOUND"

    def __init__(self, fact_id: str):
        super().__init__(f"Fact not found: {fact_id!r}")
        self.fact_id = fact_id


class StitchNotFound(NotFound):
    code = "STITCH_NOT_FOUND"

    def __init__(self, stitch_id: str, path_id: str | None = None):
        where = f" in path {path_id!r}" if path_id else ""
        super().__init__(f"Stitch not found: {stitch_id!r}{where}")
        self.stitch_id = stitch_id
        self.path_id = path_id


class PathNotFound(NotFound):
    code = "PATH_NOT_FOUND"

    def __init__(self, user_id: str, path_id: str):
        super().__init__(f"Learning path not found: {path_id!r} for user {user_id!r}")
        self.user_id = user_id
        self.path_id = path_id


class NoMasteryData(NotFound):
    code = "NO_MASTERY_DATA"

    def __init__(self, user_id: str, fact_id: str):
        super().__init__(f"No mastery data exists for user {user_id!r} and fact {fact_id!r}")
        self.user_id = user_id
        self.fact_id = fact_id


class NoActivePath(NotFound):
    code = "NO_ACTIVE_PATH"

    def __init__(self, user_id: str):
        super().__init__(f"No active learning path exists for user {user_id!r}")
        self.user_id = user_id


class NoTripleHelixState(NotFound):
    code = "NO_TRIPLE_HELIX"

    def __init__(self, user_id: str):
        super().__init__(f"No triple helix exists for user {user_id!r}")
        self.user_id = user_id


class NoStitchesAvailable(NotFound):
    code = "NO_STITCHES_AVAILABLE"

    def __init__(self, user_id: str, path_id: str):
        super().__init__(f"No stitches queued in path {path_id!r} for user {user_id!r}")
        self.user_id = user_id
        self.path_id = path_id


class NoProgressData(NotFound):
    code = "NO_PROGRESS_DATA"

    def __init__(self, user_id: str, stitch_id: str):
        super().__init__(f"No progress data for user {user_id!r} and stitch {stitch_id!r}")
        self.user_id = user_id
        self.stitch_id = stitch_id


# ============================================================================
# Invalid input
# ============================================================================


class InvalidInput(ZenjinError):
    code = "INVALID_INPUT"


class InvalidPerformance(InvalidInput):
    code = "INVALID_PERFORMANCE_DATA"


class InvalidLevel(InvalidInput):
    code = "INVALID_LEVEL"

    def __init__(self, level: object):
        super().__init__(f"Invalid boundary level: {level!r}. Must be an integer between 1 and 5.")
        self.level = level


class InvalidDifficulty(InvalidInput):
    code = "INVALID_DIFFICULTY"

    def __init__(self, difficulty: object):
        super().__init__(f"Invalid difficulty level: {difficulty!r}. Must be between 1 and 5.")
        self.difficulty = difficulty


class InvalidStitch(InvalidInput):
    """Caller-supplied stitch content that cannot be queued (duplicate id, no facts)."""

    code = "INVALID_STITCH"


class PositionOutOfBounds(InvalidInput):
    code = "POSITION_OUT_OF_BOUNDS"

    def __init__(self, path_id: str, position: object, size: int):
        super().__init__(
            f"Position {position!r} is out of bounds for path {path_id!r} (queue of {size})"
        )
        self.path_id = path_id
        self.position = position


# ============================================================================
# State errors
# ============================================================================


class AlreadyInitialized(ZenjinError):
    code = "ALREADY_INITIALIZED"


class InvariantViolation(ZenjinError):
    """Internal consistency failure. Indicates a bug, never user error."""

    code = "INVARIANT_VIOLATION"


def log_invariant_violation(error: InvariantViolation, **context: object) -> None:
    """Log an invariant violation on its own channel, apart from user-facing errors."""
    logger.bind(kind="invariant_violation", **context).critical(
        "Invariant violated: {}", error.message
    )
