"""
Path Rotator (Triple Helix / Live Aid stage model).

Three learning paths per user: one ACTIVE (questions are drawn from it) and
two PREPARING (their queues are being readied). A rotation sends the active
path back to preparing and promotes the preparing path that has waited
longest, so repeated rotations visit the paths round-robin.

Difficulty is per path and independent: changing one path never touches the
other two.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from loguru import logger

from config import EngineTuning
from zenjin.core.errors import AlreadyInitialized, InvalidDifficulty, InvalidInput, PathNotFound
from zenjin.core.interfaces import Clock, utc_now
from zenjin.core.models import (
    HelixPath,
    PathDefinition,
    PathStatus,
    RotationResult,
    RotationTrigger,
    TripleHelixState,
)
from zenjin.helix.path_state import HELIX_SIZE, PathState, check_helix

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


class PathRotator:
    """Sole writer of TripleHelixState."""

    def __init__(self, tuning: EngineTuning | None = None, clock: Clock = utc_now):
        self.tuning = tuning or EngineTuning()
        self._clock = clock

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(
        self,
        path_state: PathState,
        definitions: list[PathDefinition],
        initial_difficulty: int = 1,
    ) -> TripleHelixState:
        """
        Create the triple helix for a new user.

        Path 0 starts active. The preparing paths start with
        rotations_since_active 0 and 1, so the first rotation is deterministic.

        Raises:
            AlreadyInitialized: the user already has a helix
            InvalidDifficulty: initial difficulty outside 1..5
            InvalidInput: not exactly three path definitions
        """
        self._validate_difficulty(initial_difficulty)
        if path_state.initialized:
            raise AlreadyInitialized(f"Triple helix already initialized for user {path_state.user_id!r}")
        if len(definitions) != HELIX_SIZE:
            raise InvalidInput(
                f"A triple helix needs exactly {HELIX_SIZE} paths, got {len(definitions)}"
            )

        paths = [
            HelixPath(
                path_id=definition.id,
                name=definition.name,
                description=definition.description,
                status=PathStatus.ACTIVE if index == 0 else PathStatus.PREPARING,
                difficulty=initial_difficulty,
                rotations_since_active=max(0, index - 1),
            )
            for index, definition in enumerate(definitions)
        ]
        state = TripleHelixState(user_id=path_state.user_id, paths=paths)
        path_state.replace_state(state)

        logger.info(
            f"Initialized triple helix for {path_state.user_id}: "
            f"active={paths[0].path_id}, difficulty={initial_difficulty}"
        )
        return path_state.snapshot()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_active(self, path_state: PathState) -> HelixPath:
        return path_state.active()

    def get_preparing(self, path_state: PathState) -> list[HelixPath]:
        return path_state.preparing()

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------

    def rotate(self, path_state: PathState) -> RotationResult:
        """
        Rotate: active -> preparing, longest-waiting preparing -> active.

        The other preparing path waits one more rotation.

        Raises:
            NoTripleHelixState: user not initialized
            InvariantViolation: the rotated helix is inconsistent
        """
        state = path_state.require()
        paths = [replace(path) for path in state.paths]

        previous = next(path for path in paths if path.is_active)
        preparing = [path for path in paths if not path.is_active]
        # max() keeps the first of equal candidates, i.e. helix order on ties.
        incoming = max(preparing, key=lambda path: path.rotations_since_active)

        previous.status = PathStatus.PREPARING
        previous.rotations_since_active = 0
        previous.next_stitch_id = previous.current_stitch_id or previous.next_stitch_id
        previous.current_stitch_id = None

        incoming.status = PathStatus.ACTIVE
        incoming.rotations_since_active = 0
        incoming.current_stitch_id = incoming.next_stitch_id
        incoming.next_stitch_id = None

        for path in preparing:
            if path is not incoming:
                path.rotations_since_active += 1

        rotated = TripleHelixState(
            user_id=state.user_id,
            paths=paths,
            rotation_count=state.rotation_count + 1,
            last_rotation_at=self._clock(),
            answers_since_rotation=0,
        )
        check_helix(rotated)
        path_state.replace_state(rotated)

        logger.info(
            f"Rotated helix for {state.user_id}: {previous.path_id} -> {incoming.path_id} "
            f"(rotation #{rotated.rotation_count})"
        )
        return RotationResult(
            previous_active=replace(previous),
            new_active=replace(incoming),
            rotation_count=rotated.rotation_count,
        )

    def record_answer(self, path_state: PathState) -> int:
        """Count an answered question toward the rotation cadence."""
        state = path_state.require()
        path_state.replace_state(replace(state, answers_since_rotation=state.answers_since_rotation + 1))
        return state.answers_since_rotation + 1

    def should_rotate(self, path_state: PathState, trigger: RotationTrigger) -> bool:
        """Decide whether a host trigger warrants a rotation now."""
        state = path_state.require()
        if trigger is RotationTrigger.CADENCE:
            return state.answers_since_rotation >= self.tuning.rotation_cadence
        if trigger in (RotationTrigger.MANUAL, RotationTrigger.STITCH_COMPLETED):
            return True
        logger.warning(f"Ignoring unknown rotation trigger {trigger!r} for {state.user_id}")
        return False

    # ------------------------------------------------------------------
    # Per-path updates
    # ------------------------------------------------------------------

    def set_difficulty(self, path_state: PathState, path_id: str, difficulty: int) -> HelixPath:
        """
        Update one path's difficulty.

        Raises:
            InvalidDifficulty: outside 1..5
            NoTripleHelixState: user not initialized
            PathNotFound: unknown path id
        """
        self._validate_difficulty(difficulty)
        state = path_state.require()
        updated = self._update_path(state, path_id, difficulty=difficulty)
        logger.info(f"Difficulty of {state.user_id}/{path_id} set to {difficulty}")
        path_state.replace_state(updated)
        return path_state.find(path_id)

    def refresh_pointers(self, path_state: PathState, path_id: str, queue_order: list[str]) -> HelixPath:
        """
        Point a path's stitch ids at its queue front.

        Active paths present the front stitch now and the following one next;
        preparing paths only know the stitch they will start with.
        """
        state = path_state.require()
        path = path_state.find(path_id)
        front = queue_order[0] if queue_order else None
        if path.is_active:
            current = front
            following = queue_order[1] if len(queue_order) > 1 else None
        else:
            current = None
            following = front
        path_state.replace_state(
            self._update_path(state, path_id, current_stitch_id=current, next_stitch_id=following)
        )
        return path_state.find(path_id)

    @staticmethod
    def _update_path(state: TripleHelixState, path_id: str, **changes: object) -> TripleHelixState:
        if not any(path.path_id == path_id for path in state.paths):
            raise PathNotFound(state.user_id, path_id)
        paths = [
            replace(path, **changes) if path.path_id == path_id else replace(path)
            for path in state.paths
        ]
        return replace(state, paths=paths)

    @staticmethod
    def _validate_difficulty(difficulty: object) -> None:
        if isinstance(difficulty, bool) or not isinstance(difficulty, int):
            raise InvalidDifficulty(difficulty)
        if not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
            raise InvalidDifficulty(difficulty)


def last_rotation_age_seconds(state: TripleHelixState, now: datetime) -> float | None:
    """Seconds since the last rotation, or None if the helix never rotated."""
    if state.last_rotation_at is None:
        return None
    return (now - state.last_rotation_at).total_seconds()
