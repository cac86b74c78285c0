"""
Unit tests for the triple helix PathRotator.
"""

import pytest

from zenjin.content.curriculum import DEFAULT_PATHS
from zenjin.core.errors import (
    AlreadyInitialized,
    InvalidDifficulty,
    InvalidInput,
    InvariantViolation,
    NoTripleHelixState,
    PathNotFound,
)
from zenjin.core.models import HelixPath, PathStatus, RotationTrigger, TripleHelixState
from zenjin.helix import PathRotator, PathState
from zenjin.helix.path_rotator import last_rotation_age_seconds
from zenjin.helix.path_state import check_helix


@pytest.fixture
def rotator(tuning, clock):
    return PathRotator(tuning, clock)


@pytest.fixture
def path_state(rotator):
    state = PathState("u1")
    rotator.initialize(state, DEFAULT_PATHS)
    return state


class TestInitialize:
    def test_first_path_active_others_preparing(self, rotator, path_state):
        helix = path_state.snapshot()

        assert helix.rotation_count == 0
        assert [path.status for path in helix.paths] == [
            PathStatus.ACTIVE,
            PathStatus.PREPARING,
            PathStatus.PREPARING,
        ]
        assert rotator.get_active(path_state).path_id == "addition"
        assert {path.path_id for path in rotator.get_preparing(path_state)} == {"multiplication", "division"}

    def test_initial_difficulty_applies_to_all_paths(self, rotator):
        state = PathState("u2")
        helix = rotator.initialize(state, DEFAULT_PATHS, initial_difficulty=3)
        assert [path.difficulty for path in helix.paths] == [3, 3, 3]

    def test_double_initialize_rejected(self, rotator, path_state):
        with pytest.raises(AlreadyInitialized):
            rotator.initialize(path_state, DEFAULT_PATHS)

    def test_requires_three_paths(self, rotator):
        with pytest.raises(InvalidInput):
            rotator.initialize(PathState("u2"), DEFAULT_PATHS[:2])

    @pytest.mark.parametrize("difficulty", [0, 6, True])
    def test_invalid_initial_difficulty(self, rotator, difficulty):
        with pytest.raises(InvalidDifficulty):
            rotator.initialize(PathState("u2"), DEFAULT_PATHS, initial_difficulty=difficulty)


class TestRotate:
    def test_rotation_swaps_exactly_one_path(self, rotator, path_state):
        result = rotator.rotate(path_state)

        assert result.previous_active.path_id == "addition"
        assert result.previous_active.status is PathStatus.PREPARING
        assert result.new_active.status is PathStatus.ACTIVE
        assert result.rotation_count == 1
        assert sum(path.is_active for path in path_state.snapshot().paths) == 1

    def test_three_rotations_visit_every_path(self, rotator, path_state):
        visited = [rotator.rotate(path_state).new_active.path_id for _ in range(3)]

        assert sorted(visited) == ["addition", "division", "multiplication"]
        assert visited[-1] == "addition"
        assert path_state.snapshot().rotation_count == 3

    def test_longest_waiting_path_is_promoted(self, rotator, path_state):
        assert rotator.rotate(path_state).new_active.path_id == "division"
        assert rotator.rotate(path_state).new_active.path_id == "multiplication"

    def test_rotation_records_time_and_resets_cadence(self, rotator, path_state, clock):
        rotator.record_answer(path_state)
        rotator.record_answer(path_state)

        rotator.rotate(path_state)

        helix = path_state.snapshot()
        assert helix.last_rotation_at == clock.now
        assert helix.answers_since_rotation == 0

    def test_pointers_follow_the_swap(self, rotator, path_state):
        rotator.refresh_pointers(path_state, "addition", ["add-s01", "add-s02"])
        rotator.refresh_pointers(path_state, "division", ["div-s01", "div-s02"])

        result = rotator.rotate(path_state)

        assert result.new_active.current_stitch_id == "div-s01"
        assert result.previous_active.current_stitch_id is None
        assert result.previous_active.next_stitch_id == "add-s01"

    def test_rotate_without_helix_raises(self, rotator):
        with pytest.raises(NoTripleHelixState):
            rotator.rotate(PathState("ghost"))

    def test_last_rotation_age(self, rotator, path_state, clock):
        assert last_rotation_age_seconds(path_state.snapshot(), clock.now) is None
        rotator.rotate(path_state)
        assert last_rotation_age_seconds(path_state.snapshot(), clock.advance(seconds=90)) == pytest.approx(90)


class TestShouldRotate:
    def test_cadence_waits_for_enough_answers(self, rotator, path_state):
        for _ in range(4):
            rotator.record_answer(path_state)
        assert rotator.should_rotate(path_state, RotationTrigger.CADENCE) is False

        rotator.record_answer(path_state)
        assert rotator.should_rotate(path_state, RotationTrigger.CADENCE) is True

    @pytest.mark.parametrize("trigger", [RotationTrigger.MANUAL, RotationTrigger.STITCH_COMPLETED])
    def test_explicit_triggers_always_rotate(self, rotator, path_state, trigger):
        assert rotator.should_rotate(path_state, trigger) is True

    def test_unknown_trigger_ignored(self, rotator, path_state):
        assert rotator.should_rotate(path_state, "whenever") is False


class TestDifficulty:
    def test_setting_one_path_leaves_others_unchanged(self, rotator, path_state):
        updated = rotator.set_difficulty(path_state, "multiplication", 4)

        assert updated.difficulty == 4
        difficulties = {path.path_id: path.difficulty for path in path_state.snapshot().paths}
        assert difficulties == {"addition": 1, "multiplication": 4, "division": 1}

    @pytest.mark.parametrize("difficulty", [0, 6, -1, 2.5])
    def test_out_of_range_rejected(self, rotator, path_state, difficulty):
        with pytest.raises(InvalidDifficulty):
            rotator.set_difficulty(path_state, "addition", difficulty)
        assert path_state.find("addition").difficulty == 1

    def test_unknown_path_rejected(self, rotator, path_state):
        with pytest.raises(PathNotFound):
            rotator.set_difficulty(path_state, "subtraction", 2)


class TestHelixInvariants:
    def _helix(self, *statuses):
        return TripleHelixState(
            user_id="u1",
            paths=[HelixPath(f"p{i}", f"Path {i}", status) for i, status in enumerate(statuses)],
        )

    def test_two_active_paths_rejected(self):
        with pytest.raises(InvariantViolation):
            check_helix(self._helix(PathStatus.ACTIVE, PathStatus.ACTIVE, PathStatus.PREPARING))

    def test_no_active_path_rejected(self):
        with pytest.raises(InvariantViolation):
            check_helix(self._helix(PathStatus.PREPARING, PathStatus.PREPARING, PathStatus.PREPARING))

    def test_snapshot_round_trip(self, rotator, path_state):
        rotator.rotate(path_state)
        restored = PathState.from_dict("u1", path_state.to_dict())
        assert restored.snapshot() == path_state.snapshot()

    def test_snapshot_for_other_user_rejected(self, path_state):
        with pytest.raises(InvariantViolation):
            PathState.from_dict("u2", path_state.to_dict())
