"""Values and life-vision compatibility.

Combines declared core values, game-validated value priorities, children
intent, community poll agreement and a small set of absolute conflicts.
Absolute conflicts are returned as deal-breaker strings; they lower this
sub-score heavily but do not zero the overall score on their own.
"""

import logging
from typing import Dict, List, Set

from alignmatch.matching.base import NEUTRAL_SCORE, Dimension, DimensionResult, DimensionScorer, PairContext
from alignmatch.profile.models import (
    ChildrenIntent,
    GeographicFlexibility,
    PollVote,
    ReligionImportance,
)

logger = logging.getLogger(__name__)

CHILDREN_CONFLICT = "Fundamental disagreement about having children"
RELIGION_CONFLICT = "Both consider religion essential but follow different faiths"
LOCATION_CONFLICT = "Both must stay local but live in different cities"


class ValuesVisionScorer(DimensionScorer):
    """Scores alignment of values, family plans and worldview."""

    POINTS_PER_SHARED_VALUE = 9
    SHARED_VALUES_CAP = 25
    NO_SHARED_VALUES_PENALTY = 10
    REINFORCEMENT_BONUS = 10
    REINFORCEMENT_MIN_SHARED = 2
    CHILDREN_ALIGNED_BONUS = 15
    CHILDREN_MISMATCH_PENALTY = 80
    CONFLICT_PENALTY = 40
    POLL_MAX_POINTS = 10
    POLL_STRONG_AGREEMENT = 0.7
    POLL_WEAK_AGREEMENT = 0.3

    def __init__(self, min_poll_sample: int = 3):
        """Initialize the scorer.

        Args:
            min_poll_sample: Polls both users answered before agreement counts
        """
        self.min_poll_sample = min_poll_sample

    @property
    def dimension(self) -> Dimension:
        return Dimension.VALUES_VISION

    def score(self, context: PairContext) -> DimensionResult:
        profile1 = context.user_a.profile
        profile2 = context.user_b.profile
        score = float(NEUTRAL_SCORE)
        strengths: List[str] = []
        considerations: List[str] = []
        deal_breakers: List[str] = []

        # Declared core values
        if profile1.core_values and profile2.core_values:
            shared = sorted(self._normalized(profile1.core_values) & self._normalized(profile2.core_values))
            if shared:
                score += min(self.SHARED_VALUES_CAP, len(shared) * self.POINTS_PER_SHARED_VALUE)
                strengths.append(f"{len(shared)} shared core values: {', '.join(shared)}")
            else:
                score -= self.NO_SHARED_VALUES_PENALTY
                considerations.append(
                    "No overlapping core values - explore whether this matters in practice"
                )

        # Game-validated value priorities reinforce the declared ones
        extraction1 = context.user_a.extraction
        extraction2 = context.user_b.extraction
        if extraction1 and extraction2 and extraction1.values_hierarchy and extraction2.values_hierarchy:
            shared_game_values = self._normalized(extraction1.values_hierarchy) & self._normalized(
                extraction2.values_hierarchy
            )
            if len(shared_game_values) >= self.REINFORCEMENT_MIN_SHARED:
                score += self.REINFORCEMENT_BONUS
                strengths.append("Games confirm shared value priorities")

        # Children intent
        wants1 = profile1.wants_children
        wants2 = profile2.wants_children
        if wants1 is not None and wants2 is not None:
            if {wants1, wants2} == {ChildrenIntent.YES, ChildrenIntent.NO}:
                score -= self.CHILDREN_MISMATCH_PENALTY
                deal_breakers.append(CHILDREN_CONFLICT)
            elif wants1 == wants2:
                score += self.CHILDREN_ALIGNED_BONUS
                strengths.append("Aligned on family planning")

        # Other absolute conflicts
        if (
            profile1.religion_importance == ReligionImportance.ESSENTIAL
            and profile2.religion_importance == ReligionImportance.ESSENTIAL
            and profile1.religion
            and profile2.religion
            and profile1.religion.strip().lower() != profile2.religion.strip().lower()
        ):
            score -= self.CONFLICT_PENALTY
            deal_breakers.append(RELIGION_CONFLICT)

        if (
            profile1.geographic_flexibility == GeographicFlexibility.MUST_STAY_LOCAL
            and profile2.geographic_flexibility == GeographicFlexibility.MUST_STAY_LOCAL
            and profile1.location_city
            and profile2.location_city
            and profile1.location_city.strip().lower() != profile2.location_city.strip().lower()
        ):
            score -= self.CONFLICT_PENALTY
            deal_breakers.append(LOCATION_CONFLICT)

        # Community polls
        rate = self.poll_agreement(context.user_a.poll_votes, context.user_b.poll_votes)
        if rate is not None:
            score += round(self.POLL_MAX_POINTS * (2 * rate - 1))
            if rate > self.POLL_STRONG_AGREEMENT:
                strengths.append("Strong agreement on values polls")
            elif rate < self.POLL_WEAK_AGREEMENT:
                considerations.append("Different perspectives on key issues")

        return self.result(
            score,
            strengths=strengths,
            considerations=considerations,
            deal_breakers=sorted(deal_breakers),
        )

    def poll_agreement(self, votes1: List[PollVote], votes2: List[PollVote]) -> float | None:
        """Share of commonly-answered polls where the two users overlap.

        Returns:
            Agreement rate in [0, 1], or None below the minimum sample size
        """
        answers1: Dict[str, Set[str]] = {v.poll_id: set(v.selected_options) for v in votes1}
        answers2: Dict[str, Set[str]] = {v.poll_id: set(v.selected_options) for v in votes2}
        common = answers1.keys() & answers2.keys()

        if len(common) < self.min_poll_sample:
            logger.debug(f"Only {len(common)} shared polls, skipping poll agreement")
            return None

        agreed = sum(1 for poll_id in common if answers1[poll_id] & answers2[poll_id])
        return agreed / len(common)

    @staticmethod
    def _normalized(values: List[str]) -> Set[str]:
        return {value.strip().title() for value in values if value and value.strip()}
