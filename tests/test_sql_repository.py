"""Tests for the SQLAlchemy repository against SQLite."""

from datetime import timedelta

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from alignmatch.config import Settings
from alignmatch.errors import InvalidPayloadError
from alignmatch.generation.generator import MatchGenerator
from alignmatch.profile.models import MatchPreferences, PollVote
from alignmatch.storage.database import create_db_engine, init_db
from alignmatch.storage.models import DealbreakerDeclaration, ExtractionData, ProfileData
from alignmatch.storage.repository import MatchRecord, RunStatus, UserStatus
from alignmatch.storage.sql import SqlRepository

from conftest import T0, dealbreaker, make_user, must_have


def record(a, b, created_at=T0, run_id=None, score=80):
    return MatchRecord(
        user_a_id=a,
        user_b_id=b,
        overall_score=score,
        dimension_scores={"psychological": 90, "values_vision": 70},
        confidence=0.6,
        breakdown={"details": {"summary": "test"}},
        generation_run_id=run_id,
        algorithm_version="2.0",
        created_at=created_at,
    )


def corrupt(repo, table, user_id, values):
    with Session(repo.engine) as session:
        session.execute(update(table).where(table.user_id == user_id).values(**values))
        session.commit()


class TestUsers:
    def test_save_and_load_round_trip(self, sql_repo):
        user = make_user(
            "a",
            dealbreakers=[dealbreaker("Smoking"), must_have("Pets")],
            poll_votes=[PollVote(poll_id="p1", selected_options=["x", "y"])],
        )
        sql_repo.save_user(user, MatchPreferences(min_age=25, require_same_city=True))

        loaded = sql_repo.get_signals("a")
        assert loaded == user.model_copy(update={"completed_content": sorted(user.completed_content)})
        assert sql_repo.get_preferences("a").min_age == 25
        assert sql_repo.active_user_ids() == ["a"]

    def test_save_user_replaces_previous_data(self, sql_repo):
        sql_repo.save_user(make_user("a", dealbreakers=[dealbreaker("Smoking")]))
        sql_repo.save_user(make_user("a", extraction=False), status=UserStatus.PAUSED)

        loaded = sql_repo.get_signals("a")
        assert loaded.dealbreakers == []
        assert loaded.extraction is None
        assert sql_repo.active_user_ids() == []

    def test_unknown_user(self, sql_repo):
        assert sql_repo.get_signals("nobody") is None
        assert sql_repo.get_preferences("nobody") == MatchPreferences()

    @pytest.mark.parametrize(
        "table, values",
        [
            (ProfileData, {"payload": {"user_id": "a", "age": 7}}),
            (ExtractionData, {"payload": ["garbage"]}),
            (DealbreakerDeclaration, {"response": "maybe"}),
        ],
    )
    def test_malformed_payload_raises(self, sql_repo, table, values):
        sql_repo.save_user(make_user("a", dealbreakers=[dealbreaker("Smoking")]))
        corrupt(sql_repo, table, "a", values)

        with pytest.raises(InvalidPayloadError) as excinfo:
            sql_repo.get_signals("a")
        assert excinfo.value.user_id == "a"

    def test_blocks_are_bidirectional(self, sql_repo):
        for user_id in ("a", "b", "c"):
            sql_repo.save_user(make_user(user_id))
        sql_repo.add_block("a", "b")
        sql_repo.add_block("a", "b")

        assert sql_repo.blocked_user_ids("a") == {"b"}
        assert sql_repo.blocked_user_ids("b") == {"a"}
        assert sql_repo.blocked_user_ids("c") == set()


class TestMatches:
    def test_insert_if_absent(self, sql_repo):
        for user_id in ("a", "b"):
            sql_repo.save_user(make_user(user_id))

        assert sql_repo.insert_match_if_absent(record("b", "a")) is True
        assert sql_repo.insert_match_if_absent(record("a", "b")) is False

        matches = sql_repo.list_matches()
        assert len(matches) == 1
        assert matches[0].pair == ("a", "b")
        assert matches[0].dimension_scores["psychological"] == 90
        assert matches[0].dimension_scores["astrological"] == 0
        assert sql_repo.paired_user_ids("b") == {"a"}

    def test_other_integrity_errors_propagate(self, sql_repo):
        for user_id in ("a", "b"):
            sql_repo.save_user(make_user(user_id))
        reversed_pair = record("a", "b")
        reversed_pair.user_a_id, reversed_pair.user_b_id = "b", "a"

        with pytest.raises(IntegrityError):
            sql_repo.insert_match_if_absent(reversed_pair)
        assert sql_repo.list_matches() == []

    def test_count_matches_since(self, sql_repo):
        for user_id in ("a", "b", "c"):
            sql_repo.save_user(make_user(user_id))
        sql_repo.insert_match_if_absent(record("a", "b", created_at=T0 - timedelta(days=10)))
        sql_repo.insert_match_if_absent(record("a", "c", created_at=T0))

        assert sql_repo.count_matches_since("a", T0 - timedelta(days=7)) == 1
        assert sql_repo.count_matches_since("a", T0 - timedelta(days=30)) == 2
        assert sql_repo.count_matches_since("b", T0 - timedelta(days=7)) == 0


class TestRuns:
    def test_run_lifecycle(self, sql_repo):
        run_id = sql_repo.create_run(T0)
        assert sql_repo.get_run(run_id).status == RunStatus.RUNNING

        sql_repo.finalize_run(run_id, RunStatus.PARTIAL, 3, 1, [("u2", "boom")], T0 + timedelta(minutes=1))

        run = sql_repo.get_run(run_id)
        assert run.status == RunStatus.PARTIAL
        assert run.users_evaluated == 3
        assert run.matches_generated == 1
        assert run.errors == [("u2", "boom")]
        assert run.completed_at == T0 + timedelta(minutes=1)

    def test_unknown_run(self, sql_repo):
        assert sql_repo.get_run("missing") is None


def test_generator_end_to_end(tmp_path, engine, clock):
    db_engine = create_db_engine(f"sqlite:///{tmp_path / 'matches.db'}")
    init_db(db_engine)
    repo = SqlRepository(db_engine)
    for user_id in ("u1", "u2", "u3", "u4"):
        repo.save_user(make_user(user_id))

    generator = MatchGenerator(repo, engine, Settings(max_workers=1), clock)
    first = generator.run()
    second = generator.run()

    assert first.status == RunStatus.COMPLETED
    assert first.matches_generated == len(repo.list_matches(first.run_id)) > 0
    assert second.matches_generated == 0
    for user_id in ("u1", "u2", "u3", "u4"):
        assert repo.count_matches_since(user_id, clock.now - timedelta(days=7)) <= 2
    db_engine.dispose()


@pytest.mark.parametrize(
    "table, values",
    [
        (ExtractionData, {"payload": ["garbage"]}),
        (DealbreakerDeclaration, {"response": "maybe"}),
    ],
)
def test_generator_excludes_only_the_malformed_candidate(sql_repo, engine, clock, caplog, table, values):
    for user_id in ("u1", "u2", "u3"):
        sql_repo.save_user(make_user(user_id))
    sql_repo.save_user(make_user("bad", dealbreakers=[dealbreaker("Smoking")]))
    corrupt(sql_repo, table, "bad", values)

    summary = MatchGenerator(sql_repo, engine, Settings(max_workers=1), clock).run()

    assert [user_id for user_id, _ in summary.errors] == ["bad"]
    assert summary.status == RunStatus.PARTIAL
    assert summary.matches_generated > 0
    assert all(not m.involves("bad") for m in sql_repo.list_matches())
    assert "Cannot score" in caplog.text
