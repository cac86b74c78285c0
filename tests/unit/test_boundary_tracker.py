"""
Unit tests for the BoundaryTracker promotion/demotion state machine.

The tracker is stateless; each test works on a fresh MasteryStore.
"""

import pytest

from zenjin.core.errors import (
    AlreadyInitialized,
    FactNotFound,
    InvalidLevel,
    InvalidPerformance,
    NoMasteryData,
    UserNotFound,
)
from zenjin.core.models import AnswerPerformance
from zenjin.mastery import BoundaryTracker, MasteryStore

FAST = 1000
SLOW = 6000


def correct(ms: int = FAST) -> AnswerPerformance:
    return AnswerPerformance(correct_first_attempt=True, response_time_ms=ms)


def wrong(ms: int = FAST) -> AnswerPerformance:
    return AnswerPerformance(correct_first_attempt=False, response_time_ms=ms)


@pytest.fixture
def tracker(tuning, facts, clock):
    return BoundaryTracker(tuning, facts, clock)


@pytest.fixture
def store():
    return MasteryStore("u1")


class TestInitialize:
    def test_new_record_starts_at_category_level(self, tracker, store):
        record = tracker.initialize(store, "mult-7-8")

        assert record.current_level == 1
        assert record.mastery_score == pytest.approx(0.5)
        assert record.consecutive_correct == 0
        assert tracker.get_level(store, "mult-7-8") == 1

    def test_initial_level_can_be_chosen(self, tracker, store):
        tracker.initialize(store, "mult-7-8", initial_level=4)
        assert tracker.get_level(store, "mult-7-8") == 4

    def test_double_initialize_rejected(self, tracker, store):
        tracker.initialize(store, "mult-7-8")
        with pytest.raises(AlreadyInitialized):
            tracker.initialize(store, "mult-7-8")

    def test_unknown_fact_rejected(self, tracker, store):
        with pytest.raises(FactNotFound):
            tracker.initialize(store, "mult-99-99")
        assert len(store) == 0

    @pytest.mark.parametrize("level", [0, 6, True, "3"])
    def test_out_of_range_level_rejected(self, tracker, store, level):
        with pytest.raises(InvalidLevel):
            tracker.initialize(store, "mult-7-8", initial_level=level)

    def test_blank_user_rejected(self, tracker):
        with pytest.raises(UserNotFound):
            tracker.initialize(MasteryStore("  "), "mult-7-8")


class TestReads:
    def test_missing_record_raises(self, tracker, store):
        with pytest.raises(NoMasteryData) as exc_info:
            tracker.get_level(store, "add-1-1")
        assert exc_info.value.code == "NO_MASTERY_DATA"

    def test_get_mastery_returns_copy(self, tracker, store):
        tracker.initialize(store, "add-1-1")
        record = tracker.get_mastery(store, "add-1-1")
        record.current_level = 5

        assert tracker.get_level(store, "add-1-1") == 1


class TestPromotion:
    def test_three_fast_correct_answers_promote(self, tracker, store):
        """mult-7-8 at level 1: three correct answers at 1000ms reach level 2."""
        tracker.initialize(store, "mult-7-8")

        first = tracker.update(store, "mult-7-8", correct())
        second = tracker.update(store, "mult-7-8", correct())
        third = tracker.update(store, "mult-7-8", correct())

        assert not first.changed and not second.changed
        assert third.changed
        assert (third.previous_level, third.new_level) == (1, 2)
        assert tracker.get_mastery(store, "mult-7-8").consecutive_correct == 0

    def test_streak_resets_so_next_promotion_needs_full_streak(self, tracker, store):
        tracker.initialize(store, "mult-7-8")
        for _ in range(3):
            tracker.update(store, "mult-7-8", correct())

        tracker.update(store, "mult-7-8", correct())
        tracker.update(store, "mult-7-8", correct())
        assert tracker.get_level(store, "mult-7-8") == 2

        tracker.update(store, "mult-7-8", correct())
        assert tracker.get_level(store, "mult-7-8") == 3

    def test_slow_correct_answers_do_not_promote(self, tracker, store):
        tracker.initialize(store, "add-2-3")
        for _ in range(3):
            result = tracker.update(store, "add-2-3", correct(SLOW))
            assert not result.changed

        record = tracker.get_mastery(store, "add-2-3")
        assert record.current_level == 1
        assert record.consecutive_correct == 3

        # The streak survives, so the next fast answer promotes
        assert tracker.update(store, "add-2-3", correct()).new_level == 2

    def test_ceiling_tightens_with_level(self, tracker, store):
        """3000ms is fast enough at level 2 (4000ms) but not at level 3 (3000ms)."""
        tracker.initialize(store, "add-2-3", initial_level=2)
        for _ in range(3):
            tracker.update(store, "add-2-3", correct(3000))
        assert tracker.get_level(store, "add-2-3") == 3

        for _ in range(3):
            tracker.update(store, "add-2-3", correct(3000))
        assert tracker.get_level(store, "add-2-3") == 3

    def test_level_five_is_terminal(self, tracker, store):
        tracker.initialize(store, "add-2-3", initial_level=5)
        for _ in range(10):
            result = tracker.update(store, "add-2-3", correct(500))
            assert result.new_level == 5


class TestDemotion:
    def test_two_misses_demote_one_level(self, tracker, store):
        tracker.initialize(store, "div-56-8", initial_level=3)

        assert not tracker.update(store, "div-56-8", wrong()).changed
        result = tracker.update(store, "div-56-8", wrong())

        assert (result.previous_level, result.new_level) == (3, 2)
        record = tracker.get_mastery(store, "div-56-8")
        assert record.consecutive_incorrect == 0
        assert record.last_demoted_at is not None

    def test_dwell_window_blocks_second_demotion(self, tracker, store, clock):
        tracker.initialize(store, "div-56-8", initial_level=3)
        tracker.update(store, "div-56-8", wrong())
        tracker.update(store, "div-56-8", wrong())

        clock.advance(seconds=60)
        tracker.update(store, "div-56-8", wrong())
        tracker.update(store, "div-56-8", wrong())
        assert tracker.get_level(store, "div-56-8") == 2

        clock.advance(seconds=600)
        result = tracker.update(store, "div-56-8", wrong())
        assert result.new_level == 1

    def test_level_one_is_floor(self, tracker, store):
        tracker.initialize(store, "div-56-8")
        for _ in range(6):
            assert tracker.update(store, "div-56-8", wrong()).new_level == 1

    def test_alternating_answers_never_change_level(self, tracker, store):
        tracker.initialize(store, "mult-6-7", initial_level=3)
        for index in range(20):
            performance = correct() if index % 2 == 0 else wrong()
            assert not tracker.update(store, "mult-6-7", performance).changed
        assert tracker.get_level(store, "mult-6-7") == 3


class TestMasteryScore:
    def test_ewma_moves_toward_outcome(self, tracker, store):
        tracker.initialize(store, "add-1-1")

        assert tracker.update(store, "add-1-1", correct()).mastery_score == pytest.approx(0.6)
        assert tracker.update(store, "add-1-1", correct()).mastery_score == pytest.approx(0.68)
        assert tracker.update(store, "add-1-1", wrong()).mastery_score == pytest.approx(0.544)

    def test_score_stays_within_unit_interval(self, tracker, store):
        tracker.initialize(store, "add-1-1")
        for _ in range(100):
            score = tracker.update(store, "add-1-1", correct()).mastery_score
            assert 0.0 <= score <= 1.0
        for _ in range(100):
            score = tracker.update(store, "add-1-1", wrong()).mastery_score
            assert 0.0 <= score <= 1.0


class TestValidation:
    @pytest.mark.parametrize(
        "performance",
        [
            AnswerPerformance(correct_first_attempt=True, response_time_ms=0),
            AnswerPerformance(correct_first_attempt=True, response_time_ms=-5),
            AnswerPerformance(correct_first_attempt="yes", response_time_ms=1000),
            AnswerPerformance(correct_first_attempt=True, response_time_ms=1000, consecutive_correct=-1),
        ],
    )
    def test_malformed_performance_rejected_without_mutation(self, tracker, store, performance):
        tracker.initialize(store, "add-1-1")
        before = tracker.get_mastery(store, "add-1-1")

        with pytest.raises(InvalidPerformance):
            tracker.update(store, "add-1-1", performance)

        assert tracker.get_mastery(store, "add-1-1") == before

    def test_update_without_record_raises(self, tracker, store):
        with pytest.raises(NoMasteryData):
            tracker.update(store, "add-1-1", correct())

    def test_level_never_moves_more_than_one_step(self, tracker, store):
        tracker.initialize(store, "mult-3-4", initial_level=3)
        previous = 3
        for index in range(60):
            performance = correct() if index % 7 < 4 else wrong()
            level = tracker.update(store, "mult-3-4", performance).new_level
            assert abs(level - previous) <= 1
            assert 1 <= level <= 5
            previous = level
