"""
Sequencing Facade.

The only entry point the rest of the application uses. It composes
BoundaryTracker, RepositionEngine and PathRotator over per-user state handles
and answers two questions:

- what should this user see next (``next_question_source``)
- how does state change after an answer (``record_answer``)

The facade reads state and delegates every write to the owning component.
Rotation is never self-scheduled; hosts call ``maybe_rotate`` on their own
cadence.
"""
from __future__ import annotations

import threading
from typing import Any

from loguru import logger

from config import EngineTuning
from zenjin.core.errors import (
    AlreadyInitialized,
    InvalidStitch,
    InvariantViolation,
    NoMasteryData,
    NoStitchesAvailable,
    PositionOutOfBounds,
    UserNotFound,
)
from zenjin.core.interfaces import Clock, FactRepository, StitchContentProvider, utc_now
from zenjin.core.levels import BoundaryLevel, LevelDescription, all_levels, describe_level
from zenjin.core.models import (
    AnswerOutcome,
    AnswerPerformance,
    HelixPath,
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
from zenjin.engine.user_state import UserState
from zenjin.helix.path_rotator import PathRotator
from zenjin.mastery.boundary_tracker import BoundaryTracker
from zenjin.sequencing.reposition_engine import RepositionEngine


class SequencingFacade:
    """
    Adaptive sequencing engine for many users.

    Calls for one user are serialized by that user's lock; different users
    proceed independently.
    """

    def __init__(
        self,
        content: StitchContentProvider,
        facts: FactRepository | None = None,
        tuning: EngineTuning | None = None,
        clock: Clock = utc_now,
    ):
        self.tuning = tuning or EngineTuning()
        self.content = content
        self.tracker = BoundaryTracker(self.tuning, facts, clock)
        self.reposition_engine = RepositionEngine(self.tuning, clock)
        self.rotator = PathRotator(self.tuning, clock)
        self._users: dict[str, UserState] = {}
        self._registry_lock = threading.Lock()

    # ========================================================================
    # User lifecycle
    # ========================================================================

    def initialize_user(self, user_id: str, initial_difficulty: int = 1) -> TripleHelixState:
        """
        Set up a new user: triple helix plus one stitch queue per path.

        Stitch content is read from the provider here and only here; each
        queue keeps the fact ids of its stitches.

        Raises:
            UserNotFound: blank user id
            AlreadyInitialized: user already known to this engine
            InvalidDifficulty: initial difficulty outside 1..5
            InvalidStitch: the provider returned duplicate or empty stitches
        """
        if not isinstance(user_id, str) or not user_id.strip():
            raise UserNotFound(user_id)

        with self._registry_lock:
            if user_id in self._users:
                raise AlreadyInitialized(f"User {user_id!r} is already initialized")
            state = UserState(user_id)

            definitions = self.content.get_paths()
            initial = {
                definition.id: self._checked_initial_stitches(definition.id)
                for definition in definitions
            }
            with state.transaction():
                self.rotator.initialize(state.helix, definitions, initial_difficulty)
                for definition in definitions:
                    stitches = initial[definition.id]
                    queue = state.queues.add_path(
                        definition.id,
                        [stitch.id for stitch in stitches],
                        {stitch.id: stitch.fact_ids for stitch in stitches},
                    )
                    self.rotator.refresh_pointers(state.helix, definition.id, queue.snapshot())

            self._users[user_id] = state

        logger.info(f"Initialized user {user_id} with {len(definitions)} paths")
        return state.helix.snapshot()

    def has_user(self, user_id: str) -> bool:
        with self._registry_lock:
            return user_id in self._users

    def user_ids(self) -> list[str]:
        with self._registry_lock:
            return list(self._users)

    def get_state(self, user_id: str) -> dict[str, Any]:
        """Full snapshot of a user's records, for persistence or debugging."""
        state = self._state(user_id)
        with state.lock:
            return state.to_dict()

    def load_state(self, snapshot: dict[str, Any], replace: bool = False) -> str:
        """
        Rehydrate a user from a snapshot produced by ``get_state``.

        Raises:
            AlreadyInitialized: user already loaded and ``replace`` is False
            InvariantViolation: the snapshot breaks a record invariant
        """
        state = UserState.from_dict(snapshot)
        for record in state.mastery:
            self.tracker.check_record(record)
        if state.helix.initialized:
            helix_paths = {path.path_id for path in state.helix.snapshot().paths}
            if helix_paths != set(state.queues.path_ids()):
                raise InvariantViolation(
                    f"Snapshot for {state.user_id!r} has queues {sorted(state.queues.path_ids())} "
                    f"but helix paths {sorted(helix_paths)}"
                )

        with self._registry_lock:
            if state.user_id in self._users and not replace:
                raise AlreadyInitialized(f"User {state.user_id!r} is already loaded")
            self._users[state.user_id] = state

        logger.debug(f"Loaded state for {state.user_id}")
        return state.user_id

    def unload_user(self, user_id: str) -> dict[str, Any]:
        """Drop a user from memory and return their final snapshot."""
        with self._registry_lock:
            state = self._users.pop(user_id, None)
        if state is None:
            raise UserNotFound(user_id)
        with state.lock:
            return state.to_dict()

    # ========================================================================
    # Question flow
    # ========================================================================

    def next_question_source(self, user_id: str) -> QuestionSource:
        """
        Where the next question comes from: front stitch of the active path.

        A fact that has never been answered reports the initial level without
        creating a record.

        Raises:
            UserNotFound, NoTripleHelixState, NoActivePath, NoStitchesAvailable
        """
        state = self._state(user_id)
        with state.lock:
            active = self.rotator.get_active(state.helix)
            queue = state.queues.queue(active.path_id)
            stitch_id = queue.front()
            if stitch_id is None:
                raise NoStitchesAvailable(user_id, active.path_id)
            fact_id = queue.primary_fact_id(stitch_id)
            try:
                level = self.tracker.get_level(state.mastery, fact_id)
            except NoMasteryData:
                level = int(BoundaryLevel.CATEGORY)

        return QuestionSource(
            path_id=active.path_id,
            stitch_id=stitch_id,
            fact_id=fact_id,
            boundary_level=level,
        )

    def record_answer(
        self,
        user_id: str,
        path_id: str,
        stitch_id: str,
        fact_id: str,
        performance: AnswerPerformance,
        stitch_performance: StitchPerformance | None = None,
    ) -> AnswerOutcome:
        """
        Apply a graded answer: boundary update first, then repositioning.

        ``stitch_performance`` aggregates a completed stitch pass; when omitted
        the single answer is used. A supplied pass is also folded into the
        stitch's progress. The whole call is atomic: on any error all three
        stores are left as they were.

        Raises:
            InvalidPerformance, UserNotFound, PathNotFound, StitchNotFound,
            FactNotFound, InvariantViolation
        """
        performance.validate()
        pass_performance = stitch_performance or StitchPerformance.from_answer(performance)
        pass_performance.validate()

        state = self._state(user_id)
        with state.lock, state.transaction():
            queue = state.queues.queue(path_id)
            queue.position_of(stitch_id)

            if fact_id not in state.mastery:
                self.tracker.initialize(state.mastery, fact_id)
            boundary = self.tracker.update(state.mastery, fact_id, performance)
            moved = self.reposition_engine.reposition(state.queues, path_id, stitch_id, pass_performance)
            if stitch_performance is not None:
                self.reposition_engine.update_progress(state.queues, path_id, stitch_id, stitch_performance)

            self.rotator.refresh_pointers(state.helix, path_id, queue.snapshot())
            self.rotator.record_answer(state.helix)

        return AnswerOutcome(
            previous_level=boundary.previous_level,
            new_level=boundary.new_level,
            changed=boundary.changed,
            mastery_score=boundary.mastery_score,
            previous_position=moved.previous_position,
            new_position=moved.new_position,
            skip_number=moved.skip_number,
        )

    # ========================================================================
    # Rotation and paths
    # ========================================================================

    def rotate(self, user_id: str) -> RotationResult:
        """Rotate the user's helix unconditionally."""
        state = self._state(user_id)
        with state.lock:
            return self._rotate(state)

    def maybe_rotate(self, user_id: str, trigger: RotationTrigger) -> RotationResult | None:
        """
        Rotate if the trigger warrants it.

        MANUAL and STITCH_COMPLETED always rotate; CADENCE rotates once
        ``rotation_cadence`` answers have been recorded since the last rotation.
        """
        state = self._state(user_id)
        with state.lock:
            if not self.rotator.should_rotate(state.helix, trigger):
                logger.debug(f"Rotation for {user_id} not due ({trigger!r})")
                return None
            logger.debug(f"Rotation for {user_id} triggered by {trigger!r}")
            return self._rotate(state)

    def get_active_path(self, user_id: str) -> HelixPath:
        state = self._state(user_id)
        with state.lock:
            return self.rotator.get_active(state.helix)

    def get_preparing_paths(self, user_id: str) -> list[HelixPath]:
        state = self._state(user_id)
        with state.lock:
            return self.rotator.get_preparing(state.helix)

    def get_helix(self, user_id: str) -> TripleHelixState:
        state = self._state(user_id)
        with state.lock:
            return state.helix.snapshot()

    def set_difficulty(self, user_id: str, path_id: str, difficulty: int) -> HelixPath:
        state = self._state(user_id)
        with state.lock, state.transaction():
            return self.rotator.set_difficulty(state.helix, path_id, difficulty)

    # ========================================================================
    # Mastery reads
    # ========================================================================

    def get_level(self, user_id: str, fact_id: str) -> int:
        state = self._state(user_id)
        with state.lock:
            return self.tracker.get_level(state.mastery, fact_id)

    def get_mastery(self, user_id: str, fact_id: str) -> UserFactMastery:
        state = self._state(user_id)
        with state.lock:
            return self.tracker.get_mastery(state.mastery, fact_id)

    def list_mastery(self, user_id: str) -> list[UserFactMastery]:
        state = self._state(user_id)
        with state.lock:
            return sorted(state.mastery, key=lambda record: record.fact_id)

    @staticmethod
    def describe_level(level: int) -> LevelDescription:
        return describe_level(level)

    @staticmethod
    def all_levels() -> list[LevelDescription]:
        return all_levels()

    # ========================================================================
    # Queues
    # ========================================================================

    def get_stitch_queue(self, user_id: str, path_id: str) -> list[tuple[str, int]]:
        """Ordered (stitch_id, position) pairs for one path."""
        state = self._state(user_id)
        with state.lock:
            queue = state.queues.queue(path_id)
            return [(stitch_id, position) for position, stitch_id in enumerate(queue.snapshot())]

    def add_stitch(self, user_id: str, stitch: Stitch) -> int:
        """
        Queue a newly authored stitch at the back of its path. Returns its position.

        Raises:
            UserNotFound, PathNotFound
            InvalidStitch: the stitch is already queued or has no facts
        """
        state = self._state(user_id)
        with state.lock:
            queue = state.queues.queue(stitch.path_id)
            if stitch.id in queue:
                raise InvalidStitch(f"Stitch {stitch.id!r} is already queued in path {stitch.path_id!r}")
            if not stitch.fact_ids:
                raise InvalidStitch(f"Stitch {stitch.id!r} has no facts")
            with state.transaction():
                position = queue.append(stitch.id, stitch.fact_ids)
                self.rotator.refresh_pointers(state.helix, stitch.path_id, queue.snapshot())
        logger.debug(f"Queued new stitch {stitch.id} for {user_id} at position {position}")
        return position

    def remove_stitch(self, user_id: str, path_id: str, stitch_id: str) -> int:
        """
        Take a stitch out of a path queue; the stitches behind it move up.

        Its repositioning history and progress go with it. Returns the
        position it held.

        Raises:
            UserNotFound, PathNotFound, StitchNotFound
        """
        state = self._state(user_id)
        with state.lock, state.transaction():
            position = state.queues.discard(path_id, stitch_id)
            queue = state.queues.queue(path_id)
            queue.check_dense()
            self.rotator.refresh_pointers(state.helix, path_id, queue.snapshot())
        logger.debug(f"Removed stitch {stitch_id} from {user_id}/{path_id} (was at {position})")
        return position

    def get_stitch_at_position(self, user_id: str, path_id: str, position: int) -> str:
        """
        Stitch id at a queue position.

        Raises:
            UserNotFound, PathNotFound
            PositionOutOfBounds: position outside 0..N-1
        """
        state = self._state(user_id)
        with state.lock:
            queue = state.queues.queue(path_id)
            if isinstance(position, bool) or not isinstance(position, int):
                raise PositionOutOfBounds(path_id, position, len(queue))
            stitch_id = queue.peek(position)
            if stitch_id is None:
                raise PositionOutOfBounds(path_id, position, len(queue))
            return stitch_id

    def get_stitch_progress(self, user_id: str, path_id: str, stitch_id: str) -> StitchProgress:
        """
        Raises:
            UserNotFound, PathNotFound, StitchNotFound
            NoProgressData: the stitch has no completed pass yet
        """
        state = self._state(user_id)
        with state.lock:
            return self.reposition_engine.get_progress(state.queues, path_id, stitch_id)

    def update_stitch_progress(
        self,
        user_id: str,
        path_id: str,
        stitch_id: str,
        performance: StitchPerformance,
    ) -> StitchProgress:
        """Record a completed stitch pass without moving the stitch."""
        performance.validate()
        state = self._state(user_id)
        with state.lock, state.transaction():
            return self.reposition_engine.update_progress(state.queues, path_id, stitch_id, performance)

    def get_repositioning_history(
        self,
        user_id: str,
        path_id: str,
        stitch_id: str,
        limit: int | None = None,
    ) -> list[RepositionResult]:
        state = self._state(user_id)
        with state.lock:
            return self.reposition_engine.get_history(state.queues, path_id, stitch_id, limit)

    # ========================================================================
    # Internals
    # ========================================================================

    def _rotate(self, state: UserState) -> RotationResult:
        """Rotate a user whose lock the caller holds."""
        with state.transaction():
            result = self.rotator.rotate(state.helix)
            for path_id in state.queues.path_ids():
                self.rotator.refresh_pointers(state.helix, path_id, state.queues.queue(path_id).snapshot())
            return RotationResult(
                previous_active=state.helix.find(result.previous_active.path_id),
                new_active=state.helix.find(result.new_active.path_id),
                rotation_count=result.rotation_count,
            )

    def _checked_initial_stitches(self, path_id: str) -> list[Stitch]:
        stitches = list(self.content.get_initial_stitches(path_id))
        seen: set[str] = set()
        for stitch in stitches:
            if stitch.id in seen:
                raise InvalidStitch(f"Content provider returned stitch {stitch.id!r} twice for path {path_id!r}")
            if not stitch.fact_ids:
                raise InvalidStitch(f"Stitch {stitch.id!r} in path {path_id!r} has no facts")
            seen.add(stitch.id)
        return stitches

    def _state(self, user_id: str) -> UserState:
        with self._registry_lock:
            state = self._users.get(user_id)
        if state is None:
            raise UserNotFound(user_id)
        return state
