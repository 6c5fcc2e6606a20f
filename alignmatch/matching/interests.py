"""Interests compatibility from weighted interest maps and content overlap."""

from typing import List

from alignmatch.matching.base import NEUTRAL_SCORE, Dimension, DimensionResult, DimensionScorer, PairContext


class InterestsScorer(DimensionScorer):
    """Scores strongly shared interests and commonly finished content."""

    SHARED_STRENGTH = 0.6         # Average strength needed to count as shared
    POINTS_PER_INTEREST = 10
    MANY_SHARED = 3
    POINTS_PER_CONTENT = 5
    CONTENT_CAP = 15

    @property
    def dimension(self) -> Dimension:
        return Dimension.INTERESTS

    def score(self, context: PairContext) -> DimensionResult:
        score = float(NEUTRAL_SCORE)
        strengths: List[str] = []
        shared_interests: List[str] = []

        extraction1 = context.user_a.extraction
        extraction2 = context.user_b.extraction
        if extraction1 and extraction2:
            # Matched case-insensitively, reported with user A's label
            interests1 = {k.strip().lower(): (k.strip(), v) for k, v in extraction1.interests.items()}
            interests2 = {k.strip().lower(): v for k, v in extraction2.interests.items()}

            for key in sorted(interests1.keys() & interests2.keys()):
                label, strength = interests1[key]
                if (strength + interests2[key]) / 2 > self.SHARED_STRENGTH:
                    score += self.POINTS_PER_INTEREST
                    shared_interests.append(label)

            if len(shared_interests) >= self.MANY_SHARED:
                strengths.append(f"{len(shared_interests)} strong shared interests")

        common_content = set(context.user_a.completed_content) & set(context.user_b.completed_content)
        if common_content:
            score += min(self.CONTENT_CAP, len(common_content) * self.POINTS_PER_CONTENT)
            strengths.append("Read similar content - intellectual overlap")

        return self.result(score, strengths=strengths, shared_interests=shared_interests)
