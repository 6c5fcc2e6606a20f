"""Tests for batch match generation."""

import threading
from datetime import timedelta

import pytest

from alignmatch.config import Settings
from alignmatch.errors import InvalidPayloadError, RepositoryError
from alignmatch.generation.candidates import CandidatePool
from alignmatch.generation.generator import MatchGenerator, QuotaLedger
from alignmatch.profile.models import ChildrenIntent, MatchPreferences
from alignmatch.storage.memory import MemoryRepository
from alignmatch.storage.repository import MatchStatus, RunStatus

from conftest import dealbreaker, make_user, must_have

USER_IDS = ["u1", "u2", "u3", "u4", "u5"]


def seed_compatible(repo, ids=USER_IDS, preferences=None):
    for user_id in ids:
        repo.save_user(make_user(user_id), (preferences or {}).get(user_id))


def assert_within_cap(repo, now, cap=2, ids=USER_IDS):
    since = now - timedelta(days=7)
    for user_id in ids:
        assert repo.count_matches_since(user_id, since) <= cap


class TestRun:
    def test_creates_pending_matches(self, memory_repo, engine, settings, clock):
        seed_compatible(memory_repo)
        summary = MatchGenerator(memory_repo, engine, settings, clock).run()

        assert summary.status == RunStatus.COMPLETED
        assert summary.users_evaluated == 5
        assert summary.matches_generated > 0

        matches = memory_repo.list_matches(summary.run_id)
        assert len(matches) == summary.matches_generated
        for match in matches:
            assert match.status == MatchStatus.PENDING
            assert match.user_a_id < match.user_b_id
            assert match.overall_score >= settings.min_overall_score
            assert match.algorithm_version == settings.algorithm_version
            assert match.created_at == clock.now
            assert set(match.dimension_scores) == {
                "psychological", "behavioral", "values_vision", "interests",
                "lifestyle", "dealbreakers", "astrological",
            }
            assert match.breakdown["details"]["summary"]

        run = memory_repo.get_run(summary.run_id)
        assert run.status == RunStatus.COMPLETED
        assert run.matches_generated == summary.matches_generated
        assert run.completed_at is not None

    def test_second_run_is_idempotent(self, memory_repo, engine, clock):
        seed_compatible(memory_repo)
        generator = MatchGenerator(memory_repo, engine, Settings(weekly_cap=10, max_workers=1), clock)

        first = generator.run()
        second = generator.run()

        assert first.matches_generated == 10
        assert second.matches_generated == 0
        assert second.status == RunStatus.COMPLETED
        assert len(memory_repo.list_matches()) == 10

    def test_weekly_cap_holds_across_runs(self, memory_repo, engine, settings, clock):
        seed_compatible(memory_repo)
        generator = MatchGenerator(memory_repo, engine, settings, clock)

        generator.run()
        assert_within_cap(memory_repo, clock.now)

        clock.now += timedelta(days=1)
        assert generator.run().matches_generated == 0
        assert_within_cap(memory_repo, clock.now)

        clock.now += timedelta(days=7)
        assert generator.run().matches_generated > 0
        assert_within_cap(memory_repo, clock.now)

    def test_weekly_cap_holds_with_parallel_workers(self, memory_repo, engine, clock):
        ids = [f"u{i:02d}" for i in range(12)]
        seed_compatible(memory_repo, ids)
        summary = MatchGenerator(memory_repo, engine, Settings(max_workers=4), clock).run()

        assert summary.status == RunStatus.COMPLETED
        assert_within_cap(memory_repo, clock.now, ids=ids)
        pairs = [m.pair for m in memory_repo.list_matches()]
        assert len(pairs) == len(set(pairs))

    def test_user_override_of_cap(self, memory_repo, engine, clock):
        seed_compatible(memory_repo, preferences={"u1": MatchPreferences(max_matches_per_week=1)})
        MatchGenerator(memory_repo, engine, Settings(weekly_cap=4, max_workers=1), clock).run()

        assert memory_repo.count_matches_since("u1", clock.now - timedelta(days=7)) == 1

    def test_dealbreaker_veto(self, memory_repo, engine, settings, clock):
        memory_repo.save_user(make_user("a", dealbreakers=[dealbreaker("Smoking")]))
        memory_repo.save_user(make_user("b", dealbreakers=[must_have("Smoking")]))

        summary = MatchGenerator(memory_repo, engine, settings, clock).run()

        assert summary.matches_generated == 0

    def test_below_threshold_dropped(self, memory_repo, engine, settings, clock):
        memory_repo.save_user(make_user("a", wants_children=ChildrenIntent.YES))
        memory_repo.save_user(make_user("b", wants_children=ChildrenIntent.NO))

        assert MatchGenerator(memory_repo, engine, settings, clock).run().matches_generated == 0

    def test_failed_when_users_cannot_be_listed(self, engine, settings, clock):
        class BrokenRepository(MemoryRepository):
            def active_user_ids(self):
                raise RepositoryError("database unreachable")

        repo = BrokenRepository()
        summary = MatchGenerator(repo, engine, settings, clock).run()

        assert summary.status == RunStatus.FAILED
        assert summary.errors == [("system", "database unreachable")]
        assert repo.list_matches() == []
        assert repo.get_run(summary.run_id).status == RunStatus.FAILED

    def test_per_user_failure_makes_run_partial(self, engine, settings, clock):
        class FlakyRepository(MemoryRepository):
            def paired_user_ids(self, user_id):
                if user_id == "u3":
                    raise RuntimeError("timeout")
                return super().paired_user_ids(user_id)

        repo = FlakyRepository()
        seed_compatible(repo)
        summary = MatchGenerator(repo, engine, Settings(weekly_cap=10, max_workers=1), clock).run()

        assert summary.status == RunStatus.PARTIAL
        assert summary.errors == [("u3", "timeout")]
        assert summary.users_evaluated == 5
        assert summary.matches_generated > 0
        assert repo.get_run(summary.run_id).errors == [("u3", "timeout")]

    def test_malformed_candidate_is_skipped(self, engine, settings, clock, caplog):
        class CorruptRepository(MemoryRepository):
            def get_signals(self, user_id):
                if user_id == "u5":
                    raise InvalidPayloadError("u5", "age: Input should be greater than or equal to 18")
                return super().get_signals(user_id)

        repo = CorruptRepository()
        seed_compatible(repo)
        summary = MatchGenerator(repo, engine, settings, clock).run()

        assert all(not m.involves("u5") for m in repo.list_matches())
        assert summary.matches_generated > 0
        assert [user_id for user_id, _ in summary.errors] == ["u5"]
        assert "Cannot score" in caplog.text

    def test_cancelled_run_is_partial(self, memory_repo, engine, settings, clock):
        seed_compatible(memory_repo)
        cancel = threading.Event()
        cancel.set()

        summary = MatchGenerator(memory_repo, engine, settings, clock).run(cancel)

        assert summary.status == RunStatus.PARTIAL
        assert summary.cancelled
        assert summary.users_evaluated == 0
        assert memory_repo.list_matches() == []


class TestGenerateForUser:
    def test_ranked_best_first(self, memory_repo, engine, settings, clock):
        memory_repo.save_user(make_user("a"))
        memory_repo.save_user(make_user("far", city="Lisbon", country="Portugal"))
        memory_repo.save_user(make_user("near"))

        generator = MatchGenerator(memory_repo, engine, settings, clock)
        ranked = generator.rank_candidates("a")

        assert [s.user_b_id for s in ranked] == ["near", "far"]
        assert ranked[0].overall >= ranked[1].overall

        created = generator.generate_for_user("a")
        assert [m.pair for m in created] == [("a", "near"), ("a", "far")]

    def test_unknown_user(self, memory_repo, engine, settings):
        assert MatchGenerator(memory_repo, engine, settings).generate_for_user("ghost") == []

    def test_duplicate_insert_is_noop(self, memory_repo, engine, settings, clock):
        memory_repo.save_user(make_user("a"))
        memory_repo.save_user(make_user("b"))
        generator = MatchGenerator(memory_repo, engine, settings, clock)

        record = generator.generate_for_user("a")[0]
        assert memory_repo.insert_match_if_absent(record) is False

        # Pretend another worker already created the pair
        generator.finder.find = lambda user, active_ids=None: CandidatePool(
            user_id="a", candidates=[memory_repo.get_signals("b")]
        )
        assert generator.generate_for_user("a") == []
        assert len(memory_repo.list_matches()) == 1


class TestQuotaLedger:
    def test_reserve_consumes_both_sides(self, memory_repo, clock):
        memory_repo.save_user(make_user("a"))
        memory_repo.save_user(make_user("b"), MatchPreferences(max_matches_per_week=1))
        ledger = QuotaLedger(memory_repo, Settings(weekly_cap=2), clock.now)

        assert ledger.reserve("a", "b") is True
        assert ledger.remaining("a") == 1
        assert ledger.remaining("b") == 0
        assert ledger.reserve("a", "b") is False

        ledger.release("a", "b")
        assert ledger.remaining("b") == 1

    @pytest.mark.parametrize("cap", [0, 3])
    def test_default_cap(self, memory_repo, clock, cap):
        memory_repo.save_user(make_user("a"))
        assert QuotaLedger(memory_repo, Settings(weekly_cap=cap), clock.now).remaining("a") == cap
