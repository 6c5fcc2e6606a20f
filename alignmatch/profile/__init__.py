"""Profile data model: self-report, extraction and declarations."""

from alignmatch.profile.models import (
    AttachmentStyle,
    BigFive,
    ChildrenIntent,
    DealbreakerItem,
    DealbreakerResponse,
    LifestyleIndicators,
    MatchPreferences,
    PollVote,
    Profile,
    RelationshipIndicators,
    TraitExtraction,
    UserSignals,
)

__all__ = [
    "AttachmentStyle",
    "BigFive",
    "ChildrenIntent",
    "DealbreakerItem",
    "DealbreakerResponse",
    "LifestyleIndicators",
    "MatchPreferences",
    "PollVote",
    "Profile",
    "RelationshipIndicators",
    "TraitExtraction",
    "UserSignals",
]
