"""Psychological compatibility: Big Five similarity and attachment styles."""

from typing import FrozenSet, List, Optional, Tuple

from alignmatch.matching.base import NEUTRAL_SCORE, Dimension, DimensionResult, DimensionScorer, PairContext
from alignmatch.matching.signals import trait_closeness
from alignmatch.profile.models import AttachmentStyle


class PsychologicalScorer(DimensionScorer):
    """Scores personality fit from resolved Big Five traits and attachment."""

    CLOSENESS_POINTS = 10          # Per similarity-scored trait
    STABILITY_BONUS = 10
    STABILITY_NEUROTICISM = 40     # Average neuroticism below this is "stable"
    OPENNESS_BONUS = 5
    OPENNESS_MAX_DIFF = 20
    EXTRAVERSION_FLAG_DIFF = 40
    CLOSE_TRAIT_DIFF = 15          # Both traits this close earns a strength note

    SECURE_PAIR = frozenset({AttachmentStyle.SECURE})
    ANXIOUS_AVOIDANT = frozenset({AttachmentStyle.ANXIOUS, AttachmentStyle.AVOIDANT})

    @property
    def dimension(self) -> Dimension:
        return Dimension.PSYCHOLOGICAL

    def score(self, context: PairContext) -> DimensionResult:
        traits1 = context.traits_a.big_five
        traits2 = context.traits_b.big_five
        score = float(NEUTRAL_SCORE)
        strengths: List[str] = []
        considerations: List[str] = []

        # Conscientiousness and agreeableness: similar is better
        score += trait_closeness(
            traits1["conscientiousness"], traits2["conscientiousness"], self.CLOSENESS_POINTS
        )
        score += trait_closeness(
            traits1["agreeableness"], traits2["agreeableness"], self.CLOSENESS_POINTS
        )
        consc_diff = abs(traits1["conscientiousness"] - traits2["conscientiousness"])
        agree_diff = abs(traits1["agreeableness"] - traits2["agreeableness"])
        if consc_diff < self.CLOSE_TRAIT_DIFF and agree_diff < self.CLOSE_TRAIT_DIFF:
            strengths.append("Highly compatible personality traits")

        neuro_avg = (traits1["neuroticism"] + traits2["neuroticism"]) / 2
        if neuro_avg < self.STABILITY_NEUROTICISM:
            score += self.STABILITY_BONUS
            strengths.append("Both emotionally stable")

        if abs(traits1["openness"] - traits2["openness"]) < self.OPENNESS_MAX_DIFF:
            score += self.OPENNESS_BONUS

        # Extraversion is complementary, only extreme gaps are noted
        if abs(traits1["extraversion"] - traits2["extraversion"]) > self.EXTRAVERSION_FLAG_DIFF:
            considerations.append("Different social energy levels")

        attachment_points, note, is_strength = self._attachment(
            context.traits_a.attachment_style, context.traits_b.attachment_style
        )
        score += attachment_points
        if note:
            (strengths if is_strength else considerations).append(note)

        return self.result(score, strengths=strengths, considerations=considerations)

    def _attachment(
        self,
        style1: Optional[AttachmentStyle],
        style2: Optional[AttachmentStyle],
    ) -> Tuple[int, Optional[str], bool]:
        """Look up the attachment pairing.

        Returns:
            (points, note, note_is_strength)
        """
        if style1 is None or style2 is None:
            return 0, None, False

        pair: FrozenSet[AttachmentStyle] = frozenset({style1, style2})

        if pair == self.SECURE_PAIR:
            return 15, "Both have secure attachment style", True
        if AttachmentStyle.SECURE in pair:
            return 8, "One secure attachment provides stability", True
        if pair == self.ANXIOUS_AVOIDANT:
            return -10, "Anxious-avoidant dynamic requires awareness", False
        if style1 == style2:
            return 5, "Similar attachment styles - understand each other but may reinforce patterns", False
        return 0, None, False
