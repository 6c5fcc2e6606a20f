"""Behavioral compatibility from game-derived extraction data."""

from typing import List

from alignmatch.matching.base import NEUTRAL_SCORE, Dimension, DimensionResult, DimensionScorer, PairContext
from alignmatch.matching.signals import trait_closeness
from alignmatch.profile.models import DecisionSpeed

LIMITED_DATA_NOTE = "Limited behavioral data"


class BehavioralScorer(DimensionScorer):
    """Scores decision speed, risk tolerance, persistence and creativity.

    Only extraction data is used here; there is no self-reported
    counterpart, so a missing extraction on either side yields a neutral
    score.
    """

    DECISION_MATCH_POINTS = 15
    DECISION_CLASH_PENALTY = 5
    RISK_POINTS = 15
    RISK_FLAG_DIFF = 0.5
    RISK_STRENGTH_DIFF = 0.2
    PERSISTENCE_POINTS = 10
    CREATIVITY_POINTS = 10
    CREATIVITY_STRENGTH_DIFF = 0.2

    FAST = {DecisionSpeed.IMPULSIVE}
    SLOW = {DecisionSpeed.SLOW, DecisionSpeed.DELIBERATE}

    @property
    def dimension(self) -> Dimension:
        return Dimension.BEHAVIORAL

    def score(self, context: PairContext) -> DimensionResult:
        extraction1 = context.user_a.extraction
        extraction2 = context.user_b.extraction

        if extraction1 is None or extraction2 is None:
            return self.result(NEUTRAL_SCORE, considerations=[LIMITED_DATA_NOTE])

        score = float(NEUTRAL_SCORE)
        strengths: List[str] = []
        considerations: List[str] = []

        speed1 = extraction1.decision_speed
        speed2 = extraction2.decision_speed
        if speed1 is not None and speed2 is not None:
            if speed1 == speed2:
                score += self.DECISION_MATCH_POINTS
                strengths.append(f"Both {speed1.value} decision makers")
            elif {speed1, speed2} & self.FAST and {speed1, speed2} & self.SLOW:
                score -= self.DECISION_CLASH_PENALTY
                considerations.append("Different decision-making paces")

        # Risk tolerance is continuous, scored by closeness rather than category
        if extraction1.risk_tolerance is not None and extraction2.risk_tolerance is not None:
            risk_diff = abs(extraction1.risk_tolerance - extraction2.risk_tolerance)
            score += trait_closeness(
                extraction1.risk_tolerance, extraction2.risk_tolerance, self.RISK_POINTS, scale=1.0
            )
            if risk_diff < self.RISK_STRENGTH_DIFF:
                strengths.append("Similar risk tolerance")
            elif risk_diff > self.RISK_FLAG_DIFF:
                considerations.append("Different comfort levels with risk")

        if extraction1.persistence_score is not None and extraction2.persistence_score is not None:
            score += trait_closeness(
                extraction1.persistence_score,
                extraction2.persistence_score,
                self.PERSISTENCE_POINTS,
                scale=1.0,
            )

        if extraction1.creativity_score is not None and extraction2.creativity_score is not None:
            score += trait_closeness(
                extraction1.creativity_score,
                extraction2.creativity_score,
                self.CREATIVITY_POINTS,
                scale=1.0,
            )
            if abs(extraction1.creativity_score - extraction2.creativity_score) < self.CREATIVITY_STRENGTH_DIFF:
                strengths.append("Similar creative expression")

        return self.result(score, strengths=strengths, considerations=considerations)
