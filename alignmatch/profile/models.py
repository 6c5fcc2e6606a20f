"""Pydantic models for profile, extraction and declaration data."""

from enum import Enum
from typing import Annotated, ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class AttachmentStyle(str, Enum):
    """Attachment style options."""

    SECURE = "secure"
    ANXIOUS = "anxious"
    AVOIDANT = "avoidant"
    DISORGANIZED = "disorganized"


class ChildrenIntent(str, Enum):
    """Whether the user wants children."""

    YES = "yes"
    NO = "no"
    OPEN = "open"


class GeographicFlexibility(str, Enum):
    """Willingness to relocate for a relationship."""

    FLEXIBLE = "flexible"
    OPEN_TO_MOVING = "open_to_moving"
    MUST_STAY_LOCAL = "must_stay_local"


class ReligionImportance(str, Enum):
    """How much religion matters in a partner."""

    ESSENTIAL = "essential"
    IMPORTANT = "important"
    NOT_IMPORTANT = "not_important"


class DecisionSpeed(str, Enum):
    """Decision-making pace observed in games."""

    IMPULSIVE = "impulsive"
    QUICK = "quick"
    DELIBERATE = "deliberate"
    SLOW = "slow"


class SocialPreference(str, Enum):
    INTROVERTED = "introverted"
    AMBIVERT = "ambivert"
    EXTROVERTED = "extroverted"


class ActivityLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class PlanningStyle(str, Enum):
    PLANNER = "planner"
    FLEXIBLE = "flexible"
    SPONTANEOUS = "spontaneous"


class CommunicationPreference(str, Enum):
    DIRECT = "direct"
    DIPLOMATIC = "diplomatic"
    EXPRESSIVE = "expressive"
    RESERVED = "reserved"


class ConflictStyle(str, Enum):
    COLLABORATIVE = "collaborative"
    COMPROMISING = "compromising"
    ACCOMMODATING = "accommodating"
    COMPETING = "competing"
    AVOIDING = "avoiding"


class DealbreakerResponse(str, Enum):
    """Swipe response to a dealbreaker item."""

    DEALBREAKER = "dealbreaker"
    NICE_TO_HAVE = "nice_to_have"
    MUST_HAVE = "must_have"
    NEUTRAL = "neutral"


class BigFive(BaseModel):
    """Self-reported Big Five scores (0-100)."""

    openness: Optional[float] = Field(None, ge=0, le=100)
    conscientiousness: Optional[float] = Field(None, ge=0, le=100)
    extraversion: Optional[float] = Field(None, ge=0, le=100)
    agreeableness: Optional[float] = Field(None, ge=0, le=100)
    neuroticism: Optional[float] = Field(None, ge=0, le=100)

    def is_complete(self) -> bool:
        return all(value is not None for value in self.model_dump().values())


class LifestyleIndicators(BaseModel):
    """Day-to-day lifestyle categories."""

    social_preference: Optional[SocialPreference] = None
    activity_level: Optional[ActivityLevel] = None
    planning_style: Optional[PlanningStyle] = None


class RelationshipIndicators(BaseModel):
    """How the user communicates and handles conflict."""

    communication_preference: Optional[CommunicationPreference] = None
    conflict_style: Optional[ConflictStyle] = None


class Profile(BaseModel):
    """Self-reported profile produced by the onboarding conversation."""

    user_id: str
    age: Optional[int] = Field(None, ge=18, le=120)
    location_city: Optional[str] = None
    location_country: Optional[str] = None
    core_values: List[str] = Field(default_factory=list)
    attachment_style: Optional[AttachmentStyle] = None
    big_five: BigFive = Field(default_factory=BigFive)
    wants_children: Optional[ChildrenIntent] = None
    geographic_flexibility: Optional[GeographicFlexibility] = None
    religion: Optional[str] = None
    religion_importance: Optional[ReligionImportance] = None
    lifestyle: LifestyleIndicators = Field(default_factory=LifestyleIndicators)
    relationship: RelationshipIndicators = Field(default_factory=RelationshipIndicators)


class TraitExtraction(BaseModel):
    """Behaviorally-validated traits derived from mini-games and discussions.

    Big Five values share the 0-100 scale of the self-report; every other
    continuous trait is in [0, 1]. Confidences are in [0, 1].
    """

    user_id: str

    openness: Optional[float] = Field(None, ge=0, le=100)
    openness_confidence: float = Field(0.0, ge=0, le=1)
    conscientiousness: Optional[float] = Field(None, ge=0, le=100)
    conscientiousness_confidence: float = Field(0.0, ge=0, le=1)
    extraversion: Optional[float] = Field(None, ge=0, le=100)
    extraversion_confidence: float = Field(0.0, ge=0, le=1)
    agreeableness: Optional[float] = Field(None, ge=0, le=100)
    agreeableness_confidence: float = Field(0.0, ge=0, le=1)
    neuroticism: Optional[float] = Field(None, ge=0, le=100)
    neuroticism_confidence: float = Field(0.0, ge=0, le=1)

    attachment_secure: float = Field(0.0, ge=0, le=1)
    attachment_anxious: float = Field(0.0, ge=0, le=1)
    attachment_avoidant: float = Field(0.0, ge=0, le=1)
    attachment_confidence: float = Field(0.0, ge=0, le=1)

    decision_speed: Optional[DecisionSpeed] = None
    risk_tolerance: Optional[float] = Field(None, ge=0, le=1)
    persistence_score: Optional[float] = Field(None, ge=0, le=1)
    creativity_score: Optional[float] = Field(None, ge=0, le=1)

    values_hierarchy: List[str] = Field(default_factory=list)
    interests: Dict[str, Annotated[float, Field(ge=0, le=1)]] = Field(
        default_factory=dict, description='Weighted interests, e.g. {"travel": 0.9}'
    )
    lifestyle: LifestyleIndicators = Field(default_factory=LifestyleIndicators)
    relationship: RelationshipIndicators = Field(default_factory=RelationshipIndicators)
    indicators_confidence: float = Field(0.0, ge=0, le=1)

    total_games_played: int = Field(0, ge=0)
    total_discussions_joined: int = Field(0, ge=0)

    # Engagement needed for a fully-trusted extraction
    FULL_GAMES: ClassVar[int] = 10
    FULL_DISCUSSIONS: ClassVar[int] = 5

    def profile_completeness(self) -> float:
        """Engagement-based completeness in [0, 1]."""
        games = min(self.total_games_played, self.FULL_GAMES) / self.FULL_GAMES
        discussions = min(self.total_discussions_joined, self.FULL_DISCUSSIONS) / self.FULL_DISCUSSIONS
        return round(games * 0.7 + discussions * 0.3, 3)


class DealbreakerItem(BaseModel):
    """One (item, response) pair from the dealbreaker swipe deck."""

    item: str
    response: DealbreakerResponse


class MatchPreferences(BaseModel):
    """Hard filters and quota override a user set for their matches."""

    min_age: Optional[int] = Field(None, ge=18, le=120)
    max_age: Optional[int] = Field(None, ge=18, le=120)
    require_same_city: bool = False
    require_same_country: bool = False
    max_matches_per_week: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_age_range(self) -> "MatchPreferences":
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError(f"min_age {self.min_age} is above max_age {self.max_age}")
        return self


class PollVote(BaseModel):
    """A user's answer to a community poll."""

    poll_id: str
    selected_options: List[str] = Field(default_factory=list)


class UserSignals(BaseModel):
    """Everything the scorers know about one user."""

    profile: Profile
    extraction: Optional[TraitExtraction] = None
    dealbreakers: List[DealbreakerItem] = Field(default_factory=list)
    poll_votes: List[PollVote] = Field(default_factory=list)
    completed_content: List[str] = Field(default_factory=list)

    @property
    def user_id(self) -> str:
        return self.profile.user_id

    def data_completeness(self) -> float:
        """Fraction of signal sources populated, in [0, 1]."""
        filled = 0.0
        total = 7

        if self.profile.big_five.is_complete():
            filled += 1
        if self.profile.attachment_style is not None:
            filled += 1
        if self.profile.core_values:
            filled += 1
        if self.extraction is not None:
            filled += self.extraction.profile_completeness()
        if self.dealbreakers:
            filled += 1
        if self.poll_votes:
            filled += 1
        if self.completed_content:
            filled += 1

        return round(filled / total, 3)
