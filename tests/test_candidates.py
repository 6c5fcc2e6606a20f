"""Tests for candidate pool selection."""

from alignmatch.generation.candidates import CandidateFinder
from alignmatch.profile.models import MatchPreferences
from alignmatch.storage.repository import MatchRecord, UserStatus

from conftest import make_user


def seed(repo, *users, preferences=None):
    for user in users:
        repo.save_user(user, (preferences or {}).get(user.user_id))


def pair_record(a, b):
    return MatchRecord(
        user_a_id=a,
        user_b_id=b,
        overall_score=80,
        dimension_scores={},
        confidence=0.5,
        breakdown={},
        generation_run_id=None,
        algorithm_version="2.0",
    )


def test_excludes_self_and_inactive(memory_repo):
    seed(memory_repo, make_user("a"), make_user("b"))
    memory_repo.save_user(make_user("c"), status=UserStatus.PAUSED)

    pool = CandidateFinder(memory_repo).find(make_user("a"))

    assert pool.candidate_ids == ["b"]


def test_excludes_existing_pairs_any_direction(memory_repo):
    seed(memory_repo, make_user("a"), make_user("b"), make_user("c"))
    memory_repo.insert_match_if_absent(pair_record("b", "a"))

    pool = CandidateFinder(memory_repo).find(make_user("a"))

    assert pool.candidate_ids == ["c"]
    assert pool.excluded == {"already_matched": 1}


def test_blocks_are_bidirectional(memory_repo):
    seed(memory_repo, make_user("a"), make_user("b"), make_user("c"))
    memory_repo.add_block("b", "a")

    finder = CandidateFinder(memory_repo)

    assert finder.find(make_user("a")).candidate_ids == ["c"]
    assert finder.find(make_user("b")).candidate_ids == ["c"]


def test_age_range_filter(memory_repo):
    seed(
        memory_repo,
        make_user("a"),
        make_user("young", age=22),
        make_user("match", age=33),
        make_user("unknown", age=None),
        preferences={"a": MatchPreferences(min_age=28, max_age=40)},
    )

    pool = CandidateFinder(memory_repo).find(memory_repo.get_signals("a"))

    assert pool.candidate_ids == ["match"]
    assert pool.excluded["age"] == 2


def test_locality_filters(memory_repo):
    seed(
        memory_repo,
        make_user("a", city="Austin", country="USA"),
        make_user("local", city=" austin ", country="usa"),
        make_user("dallas", city="Dallas", country="USA"),
        make_user("lisbon", city="Lisbon", country="Portugal"),
        preferences={"a": MatchPreferences(require_same_country=True)},
    )
    finder = CandidateFinder(memory_repo)
    user = memory_repo.get_signals("a")

    assert sorted(finder.find(user).candidate_ids) == ["dallas", "local"]

    memory_repo.save_user(user, MatchPreferences(require_same_city=True))
    assert finder.find(user).candidate_ids == ["local"]


def test_preferences_can_be_ignored(memory_repo):
    seed(
        memory_repo,
        make_user("a"),
        make_user("b", age=None),
        preferences={"a": MatchPreferences(min_age=30)},
    )

    pool = CandidateFinder(memory_repo, respect_user_preferences=False).find(make_user("a"))

    assert pool.candidate_ids == ["b"]
