"""Base scorer interface shared by every compatibility dimension."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from alignmatch.matching.signals import ResolvedTraits
from alignmatch.profile.models import UserSignals

NEUTRAL_SCORE = 50


class Dimension(str, Enum):
    """Compatibility dimensions, keyed like the weight table."""
    PSYCHOLOGICAL = "psychological"
    BEHAVIORAL = "behavioral"
    VALUES_VISION = "values_vision"
    INTERESTS = "interests"
    LIFESTYLE = "lifestyle"
    DEALBREAKERS = "dealbreakers"
    ASTROLOGICAL = "astrological"


def clamp_score(value: float) -> int:
    """Round and clamp a raw score into the integer range [0, 100]."""
    return int(max(0, min(100, round(value))))


@dataclass
class DimensionResult:
    """Sub-score for one dimension plus its human-readable notes."""
    dimension: Dimension
    score: int
    strengths: List[str] = field(default_factory=list)
    considerations: List[str] = field(default_factory=list)
    deal_breakers: List[str] = field(default_factory=list)
    shared_interests: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dimension": self.dimension.value,
            "score": self.score,
            "strengths": list(self.strengths),
            "considerations": list(self.considerations),
            "deal_breakers": list(self.deal_breakers),
            "shared_interests": list(self.shared_interests),
        }


@dataclass
class PairContext:
    """Both users' raw signals and resolved traits, as seen by the scorers."""
    user_a: UserSignals
    user_b: UserSignals
    traits_a: ResolvedTraits
    traits_b: ResolvedTraits


class DimensionScorer(ABC):
    """Abstract base class for dimension scorers.

    A scorer is a pure function of the pair context. It must not raise on
    missing data; absent signals degrade to a neutral score with a note.
    """

    @property
    @abstractmethod
    def dimension(self) -> Dimension:
        """Return the dimension this scorer produces."""
        pass

    @abstractmethod
    def score(self, context: PairContext) -> DimensionResult:
        """Score the pair.

        Args:
            context: Signals and resolved traits for both users

        Returns:
            DimensionResult with a sub-score in [0, 100]
        """
        pass

    def result(self, raw_score: float, **notes: List[str]) -> DimensionResult:
        """Build a clamped result for this scorer's dimension."""
        return DimensionResult(dimension=self.dimension, score=clamp_score(raw_score), **notes)
