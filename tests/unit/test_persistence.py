"""
Unit tests for the JSON and SQL state stores.

The SQL store runs against a throwaway SQLite file.
"""

import pytest

from zenjin.core.models import AnswerPerformance, Stitch, StitchPerformance
from zenjin.persistence import JsonStateStore, SqlStateStore


@pytest.fixture
def snapshot(facade, learner, clock):
    """State of a learner after a few answers, stitch edits and one rotation."""
    facade.add_stitch(learner, Stitch("mult-s13", "multiplication", "Squares", ("mult-3-3", "mult-4-4")))
    facade.remove_stitch(learner, "division", "div-s07")
    facade.update_stitch_progress(
        learner, "multiplication", "mult-s02", StitchPerformance(correct_count=7, total_count=9, average_response_time_ms=1400)
    )
    facade.update_stitch_progress(
        learner, "addition", "add-s04", StitchPerformance(correct_count=5, total_count=5, average_response_time_ms=900)
    )
    for index in range(6):
        source = facade.next_question_source(learner)
        facade.record_answer(
            learner,
            source.path_id,
            source.stitch_id,
            source.fact_id,
            AnswerPerformance(correct_first_attempt=index % 3 != 0, response_time_ms=1200 + index * 300),
        )
        clock.advance(seconds=20)
    facade.rotate(learner)
    return facade.get_state(learner)


@pytest.fixture
def sql_store(tmp_path):
    store = SqlStateStore(f"sqlite:///{tmp_path / 'zenjin.db'}")
    store.init_db()
    return store


class TestJsonStateStore:
    def test_round_trip(self, tmp_path, snapshot, learner):
        store = JsonStateStore(tmp_path / "states")

        path = store.save(learner, snapshot)

        assert path.exists()
        assert store.load(learner) == snapshot
        assert store.list_users() == [learner]

    def test_missing_user_returns_none(self, tmp_path):
        assert JsonStateStore(tmp_path).load("nobody") is None

    def test_corrupted_file_returns_none(self, tmp_path):
        store = JsonStateStore(tmp_path)
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")

        assert store.load("broken") is None
        assert store.list_users() == []

    def test_unsafe_user_id_stays_in_directory(self, tmp_path, snapshot):
        store = JsonStateStore(tmp_path)
        path = store.save("../evil/user", snapshot)
        assert path.parent == tmp_path

    def test_delete(self, tmp_path, snapshot, learner):
        store = JsonStateStore(tmp_path)
        store.save(learner, snapshot)

        assert store.delete(learner) is True
        assert store.delete(learner) is False
        assert store.load(learner) is None


class TestSqlStateStore:
    def test_round_trip(self, sql_store, snapshot, learner):
        sql_store.save(learner, snapshot)
        assert sql_store.load(learner) == snapshot

    def test_save_replaces_previous_records(self, sql_store, facade, learner, snapshot):
        sql_store.save(learner, snapshot)

        facade.set_difficulty(learner, "addition", 4)
        updated = facade.get_state(learner)
        sql_store.save(learner, updated)

        loaded = sql_store.load(learner)
        assert loaded == updated
        assert loaded["helix"]["paths"][0]["difficulty"] == 4

    def test_loaded_snapshot_rehydrates_engine(self, sql_store, snapshot, learner, facade):
        sql_store.save(learner, snapshot)
        facade.unload_user(learner)

        facade.load_state(sql_store.load(learner))

        assert facade.get_state(learner) == snapshot

    def test_queued_facts_and_progress_stored(self, sql_store, snapshot, learner):
        sql_store.save(learner, snapshot)

        loaded = sql_store.load(learner)

        squares = next(row for row in loaded["queues"]["multiplication"] if row["stitch_id"] == "mult-s13")
        assert squares == {"stitch_id": "mult-s13", "position": 12, "fact_ids": ["mult-3-3", "mult-4-4"]}
        assert len(loaded["queues"]["division"]) == 11
        assert [(row["path_id"], row["stitch_id"]) for row in loaded["progress"]] == [
            ("addition", "add-s04"),
            ("multiplication", "mult-s02"),
        ]
        assert loaded["progress"][1]["mastery_level"] == pytest.approx(7 / 9)

    def test_missing_user_returns_none(self, sql_store):
        assert sql_store.load("nobody") is None

    def test_delete(self, sql_store, snapshot, learner):
        sql_store.save(learner, snapshot)

        assert sql_store.delete(learner) is True
        assert sql_store.load(learner) is None
        assert sql_store.delete(learner) is False
