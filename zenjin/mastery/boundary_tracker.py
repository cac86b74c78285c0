"""
Boundary Tracker.

Moves a learner through the five boundary levels for each fact using a
hysteresis state machine:

- masteryScore is an exponentially weighted average of first-attempt outcomes
- Promotion: +1 level after ``promote_threshold`` consecutive correct answers,
  the last one faster than the level's response ceiling
- Demotion: -1 level after ``demote_threshold`` consecutive misses, at most
  once per ``demotion_dwell_seconds`` window
- Both streak counters reset on every level change, so one streak can never
  promote twice
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from loguru import logger

from config import EngineTuning
from zenjin.core.errors import (
    AlreadyInitialized,
    InvariantViolation,
    NoMasteryData,
    UserNotFound,
)
from zenjin.core.interfaces import Clock, FactRepository, utc_now
from zenjin.core.levels import MAX_LEVEL, MIN_LEVEL, BoundaryLevel
from zenjin.core.models import AnswerPerformance, BoundaryUpdateResult, UserFactMastery
from zenjin.mastery.mastery_store import MasteryStore


class BoundaryTracker:
    """
    Promotion/demotion state machine over a user's MasteryStore.

    The tracker itself is stateless; every call receives the user-scoped store.
    """

    def __init__(
        self,
        tuning: EngineTuning | None = None,
        fact_repository: FactRepository | None = None,
        clock: Clock = utc_now,
    ):
        self.tuning = tuning or EngineTuning()
        self._facts = fact_repository
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_level(self, store: MasteryStore, fact_id: str) -> int:
        """
        Current boundary level for a fact.

        Raises:
            NoMasteryData: if the fact was never initialized for this user
        """
        return self.get_mastery(store, fact_id).current_level

    def get_mastery(self, store: MasteryStore, fact_id: str) -> UserFactMastery:
        """Copy of the full mastery record."""
        record = store.get(fact_id)
        if record is None:
            raise NoMasteryData(store.user_id, fact_id)
        return record

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def initialize(self, store: MasteryStore, fact_id: str, initial_level: int = 1) -> UserFactMastery:
        """
        Create the mastery record for a fact.

        Args:
            store: The user's mastery store
            fact_id: Fact identifier, validated against the fact repository
            initial_level: Starting boundary level (1-5)

        Raises:
            UserNotFound: blank user id
            FactNotFound: fact unknown to the repository
            InvalidLevel: initial level outside 1..5
            AlreadyInitialized: a record already exists
        """
        self._validate_user(store.user_id)
        level = BoundaryLevel.from_value(initial_level)
        if self._facts is not None:
            self._facts.get_fact_by_id(fact_id)
        if fact_id in store:
            raise AlreadyInitialized(
                f"Mastery data already exists for user {store.user_id!r} and fact {fact_id!r}"
            )

        record = UserFactMastery(
            user_id=store.user_id,
            fact_id=fact_id,
            current_level=int(level),
            mastery_score=self.tuning.initial_mastery_score,
        )
        store.put(record)
        logger.debug(f"Initialized mastery for {store.user_id}/{fact_id} at level {int(level)}")
        return record.copy()

    def update(
        self,
        store: MasteryStore,
        fact_id: str,
        performance: AnswerPerformance,
    ) -> BoundaryUpdateResult:
        """
        Apply one graded answer to the fact's record.

        The new record is computed on a copy and written back only after it
        passes the invariant checks.

        Raises:
            InvalidPerformance: malformed performance input
            NoMasteryData: fact not initialized
            InvariantViolation: internal defect (level skipped or out of range)
        """
        performance.validate()
        current = self.get_mastery(store, fact_id)
        now = self._clock()

        updated = self._apply(current, performance, now)
        self.check_record(updated)
        if abs(updated.current_level - current.current_level) > 1:
            raise InvariantViolation(
                f"Level jumped from {current.current_level} to {updated.current_level} for {fact_id!r}"
            )

        store.put(updated)

        changed = updated.current_level != current.current_level
        if changed:
            direction = "promoted" if updated.current_level > current.current_level else "demoted"
            logger.info(
                f"{store.user_id}/{fact_id} {direction}: "
                f"{BoundaryLevel(current.current_level).display_name} -> "
                f"{BoundaryLevel(updated.current_level).display_name}"
            )

        return BoundaryUpdateResult(
            previous_level=current.current_level,
            new_level=updated.current_level,
            changed=changed,
            mastery_score=updated.mastery_score,
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _apply(
        self,
        record: UserFactMastery,
        performance: AnswerPerformance,
        now: datetime,
    ) -> UserFactMastery:
        correct = performance.correct_first_attempt
        score = self.next_score(record.mastery_score, correct)

        if correct:
            consecutive_correct = record.consecutive_correct + 1
            consecutive_incorrect = 0
        else:
            consecutive_correct = 0
            consecutive_incorrect = record.consecutive_incorrect + 1

        level = record.current_level
        last_demoted_at = record.last_demoted_at

        if correct and self._should_promote(level, consecutive_correct, performance.response_time_ms):
            level += 1
        elif not correct and self._should_demote(level, consecutive_incorrect, last_demoted_at, now):
            level -= 1
            last_demoted_at = now

        if level != record.current_level:
            consecutive_correct = 0
            consecutive_incorrect = 0

        return replace(
            record,
            current_level=level,
            mastery_score=score,
            consecutive_correct=consecutive_correct,
            consecutive_incorrect=consecutive_incorrect,
            last_response_time_ms=performance.response_time_ms,
            last_attempt_at=now,
            last_demoted_at=last_demoted_at,
        )

    def next_score(self, score: float, correct: bool) -> float:
        """EWMA update: score + alpha * (outcome - score), clamped to [0, 1]."""
        outcome = 1.0 if correct else 0.0
        updated = score + self.tuning.mastery_alpha * (outcome - score)
        return min(1.0, max(0.0, updated))

    def _should_promote(self, level: int, consecutive_correct: int, response_time_ms: int) -> bool:
        if level >= MAX_LEVEL:
            return False
        if consecutive_correct < self.tuning.promote_threshold:
            return False
        return response_time_ms < self.tuning.level_response_ceilings_ms[level]

    def _should_demote(
        self,
        level: int,
        consecutive_incorrect: int,
        last_demoted_at: datetime | None,
        now: datetime,
    ) -> bool:
        if level <= MIN_LEVEL:
            return False
        if consecutive_incorrect < self.tuning.demote_threshold:
            return False
        if last_demoted_at is None:
            return True
        dwell = timedelta(seconds=self.tuning.demotion_dwell_seconds)
        return now - last_demoted_at >= dwell

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def check_record(record: UserFactMastery) -> None:
        """Raise InvariantViolation if a record breaks the level/score/counter bounds."""
        if not MIN_LEVEL <= record.current_level <= MAX_LEVEL:
            raise InvariantViolation(
                f"Level {record.current_level} out of range for {record.user_id}/{record.fact_id}"
            )
        if not 0.0 <= record.mastery_score <= 1.0:
            raise InvariantViolation(
                f"Mastery score {record.mastery_score} out of range for {record.user_id}/{record.fact_id}"
            )
        if record.consecutive_correct < 0 or record.consecutive_incorrect < 0:
            raise InvariantViolation(
                f"Negative streak counter for {record.user_id}/{record.fact_id}"
            )

    @staticmethod
    def _validate_user(user_id: str) -> None:
        if not isinstance(user_id, str) or not user_id.strip():
            raise UserNotFound(user_id)
