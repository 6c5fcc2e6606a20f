"""Shared fixtures: profile builders and repositories."""

from datetime import datetime
from typing import Iterable, Optional

import pytest

from alignmatch.config import Settings
from alignmatch.matching.aggregator import CompatibilityEngine
from alignmatch.matching.base import PairContext
from alignmatch.matching.signals import SignalResolver
from alignmatch.profile.models import (
    ActivityLevel,
    AttachmentStyle,
    BigFive,
    ChildrenIntent,
    CommunicationPreference,
    ConflictStyle,
    DealbreakerItem,
    DealbreakerResponse,
    DecisionSpeed,
    LifestyleIndicators,
    PlanningStyle,
    PollVote,
    Profile,
    RelationshipIndicators,
    SocialPreference,
    TraitExtraction,
    UserSignals,
)
from alignmatch.storage.database import create_db_engine, init_db
from alignmatch.storage.memory import MemoryRepository
from alignmatch.storage.sql import SqlRepository

T0 = datetime(2026, 3, 2, 9, 0, 0)


def make_extraction(user_id: str, **overrides) -> TraitExtraction:
    data = dict(
        user_id=user_id,
        attachment_secure=0.8,
        attachment_confidence=0.7,
        decision_speed=DecisionSpeed.QUICK,
        risk_tolerance=0.6,
        persistence_score=0.7,
        creativity_score=0.5,
        values_hierarchy=["Family", "Growth", "Honesty"],
        interests={"travel": 0.9, "hiking": 0.8, "cooking": 0.7},
        indicators_confidence=0.8,
        total_games_played=10,
        total_discussions_joined=5,
    )
    data.update(overrides)
    return TraitExtraction(**data)


def make_user(
    user_id: str,
    *,
    age: Optional[int] = 30,
    city: Optional[str] = "Austin",
    country: Optional[str] = "USA",
    core_values: Iterable[str] = ("Family", "Adventure", "Growth"),
    attachment: Optional[AttachmentStyle] = AttachmentStyle.SECURE,
    big_five: Optional[BigFive] = None,
    wants_children: Optional[ChildrenIntent] = ChildrenIntent.YES,
    extraction: bool = True,
    extraction_overrides: Optional[dict] = None,
    dealbreakers: Iterable[DealbreakerItem] = (),
    poll_votes: Iterable[PollVote] = (),
    content: Iterable[str] = ("article-1", "article-2"),
    lifestyle: Optional[LifestyleIndicators] = None,
    relationship: Optional[RelationshipIndicators] = None,
    **profile_overrides,
) -> UserSignals:
    """A well-rounded user; two users built with defaults are highly compatible."""
    profile = Profile(
        user_id=user_id,
        age=age,
        location_city=city,
        location_country=country,
        core_values=list(core_values),
        attachment_style=attachment,
        big_five=big_five or BigFive(
            openness=70, conscientiousness=65, extraversion=55, agreeableness=75, neuroticism=30
        ),
        wants_children=wants_children,
        lifestyle=lifestyle or LifestyleIndicators(
            social_preference=SocialPreference.AMBIVERT,
            activity_level=ActivityLevel.MODERATE,
            planning_style=PlanningStyle.FLEXIBLE,
        ),
        relationship=relationship or RelationshipIndicators(
            communication_preference=CommunicationPreference.DIRECT,
            conflict_style=ConflictStyle.COLLABORATIVE,
        ),
        **profile_overrides,
    )
    return UserSignals(
        profile=profile,
        extraction=make_extraction(user_id, **(extraction_overrides or {})) if extraction else None,
        dealbreakers=list(dealbreakers),
        poll_votes=list(poll_votes),
        completed_content=list(content),
    )


def dealbreaker(item: str) -> DealbreakerItem:
    return DealbreakerItem(item=item, response=DealbreakerResponse.DEALBREAKER)


def must_have(item: str) -> DealbreakerItem:
    return DealbreakerItem(item=item, response=DealbreakerResponse.MUST_HAVE)


def context_for(user_a: UserSignals, user_b: UserSignals, resolver: Optional[SignalResolver] = None) -> PairContext:
    resolver = resolver or SignalResolver()
    return PairContext(
        user_a=user_a,
        user_b=user_b,
        traits_a=resolver.resolve_user(user_a),
        traits_b=resolver.resolve_user(user_b),
    )


class FixedClock:
    """Settable clock for quota-window tests."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def engine() -> CompatibilityEngine:
    return CompatibilityEngine()


@pytest.fixture
def settings() -> Settings:
    return Settings(max_workers=1)


@pytest.fixture
def memory_repo() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def sql_repo() -> SqlRepository:
    db_engine = create_db_engine("sqlite://")
    init_db(db_engine)
    yield SqlRepository(db_engine)
    db_engine.dispose()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()
