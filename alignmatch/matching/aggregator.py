"""Weighted aggregation of dimension sub-scores into one compatibility score.

overall = round(sum(weight_d * score_d) / 100 - penalty * len(deal_breakers))

Every listed deal-breaker deducts a fixed number of points from the
weighted sum. There is no separate short-circuit: a pair with deal-breakers
is still scored, and the batch generator decides what to do with it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from alignmatch.config import DimensionWeights, Settings
from alignmatch.errors import ConfigurationError, ScoringError
from alignmatch.matching.astrological import AstroSystem, AstrologicalScorer
from alignmatch.matching.base import Dimension, DimensionResult, DimensionScorer, PairContext, clamp_score
from alignmatch.matching.behavioral import BehavioralScorer
from alignmatch.matching.dealbreakers import DealbreakerScorer
from alignmatch.matching.interests import InterestsScorer
from alignmatch.matching.lifestyle import LifestyleScorer
from alignmatch.matching.psychological import PsychologicalScorer
from alignmatch.matching.signals import SignalResolver
from alignmatch.matching.values import ValuesVisionScorer
from alignmatch.profile.models import UserSignals

logger = logging.getLogger(__name__)

SUMMARY_BANDS = [
    (85, "Exceptional compatibility across all dimensions"),
    (75, "Strong potential for a deeply fulfilling relationship"),
    (65, "Good compatibility with room for growth together"),
    (60, "Moderate compatibility worth exploring"),
]
LOW_SUMMARY = "Limited compatibility based on current data"


def summarize(overall: int) -> str:
    """One-line description of an overall score."""
    for floor, text in SUMMARY_BANDS:
        if overall >= floor:
            return text
    return LOW_SUMMARY


def _dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


@dataclass
class CompatibilityBreakdown:
    """Merged notes from every dimension."""
    strengths: List[str] = field(default_factory=list)
    considerations: List[str] = field(default_factory=list)
    deal_breakers: List[str] = field(default_factory=list)
    shared_interests: List[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strengths": list(self.strengths),
            "considerations": list(self.considerations),
            "deal_breakers": list(self.deal_breakers),
            "shared_interests": list(self.shared_interests),
            "summary": self.summary,
        }


@dataclass
class CompatibilityScore:
    """Complete compatibility score for a pair, with breakdown."""
    user_a_id: str
    user_b_id: str
    overall: int                             # 0-100
    dimension_scores: Dict[Dimension, int]   # Sub-score per dimension
    details: CompatibilityBreakdown
    confidence: float                        # 0-1
    data_completeness: Dict[str, float]      # Per user id

    @property
    def has_deal_breakers(self) -> bool:
        return bool(self.details.deal_breakers)

    def score_for(self, dimension: Dimension) -> int:
        return self.dimension_scores[dimension]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "breakdown": {d.value: s for d, s in self.dimension_scores.items()},
            "details": self.details.to_dict(),
            "confidence": round(self.confidence, 3),
            "data_completeness": dict(self.data_completeness),
        }


def default_scorers(
    min_poll_sample: int = 3,
    astro_systems: Optional[Sequence[AstroSystem]] = None,
) -> List[DimensionScorer]:
    """The standard set of seven dimension scorers."""
    return [
        PsychologicalScorer(),
        BehavioralScorer(),
        ValuesVisionScorer(min_poll_sample=min_poll_sample),
        InterestsScorer(),
        LifestyleScorer(),
        DealbreakerScorer(),
        AstrologicalScorer(astro_systems),
    ]


class CompatibilityEngine:
    """Runs every dimension scorer and combines the results."""

    def __init__(
        self,
        weights: Optional[Mapping[str, int] | DimensionWeights] = None,
        scorers: Optional[Sequence[DimensionScorer]] = None,
        resolver: Optional[SignalResolver] = None,
        dealbreaker_penalty: int = 25,
    ):
        """Initialize the engine.

        Args:
            weights: Weight per dimension; must sum to 100 and cover exactly
                the dimensions produced by `scorers`
            scorers: Dimension scorers to run (default: all seven)
            resolver: Trait resolver (default: confidence threshold 0.5)
            dealbreaker_penalty: Points deducted per listed deal-breaker

        Raises:
            ConfigurationError: If the weight table does not fit the scorers
        """
        if weights is None:
            weights = DimensionWeights()
        if isinstance(weights, DimensionWeights):
            weights = weights.as_dict()

        self.scorers: List[DimensionScorer] = list(scorers) if scorers is not None else default_scorers()
        self.resolver = resolver or SignalResolver()
        self.dealbreaker_penalty = dealbreaker_penalty
        self.weights: Dict[Dimension, int] = self._validate_weights(weights)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        astro_systems: Optional[Sequence[AstroSystem]] = None,
    ) -> "CompatibilityEngine":
        return cls(
            weights=settings.weights,
            scorers=default_scorers(settings.min_poll_sample, astro_systems),
            resolver=SignalResolver(settings.extraction_confidence_threshold),
            dealbreaker_penalty=settings.dealbreaker_penalty,
        )

    def _validate_weights(self, weights: Mapping[str, int]) -> Dict[Dimension, int]:
        try:
            table = {Dimension(name): int(value) for name, value in weights.items()}
        except ValueError as e:
            raise ConfigurationError(f"Unknown dimension in weight table: {e}") from e

        total = sum(table.values())
        if total != 100:
            raise ConfigurationError(f"Dimension weights must sum to 100, got {total}")

        scored = [scorer.dimension for scorer in self.scorers]
        if len(set(scored)) != len(scored):
            raise ConfigurationError("Each dimension may only have one scorer")
        if set(scored) != set(table):
            missing = sorted(d.value for d in set(table) ^ set(scored))
            raise ConfigurationError(f"Weight table and scorers disagree on: {', '.join(missing)}")

        return table

    def build_context(self, user_a: UserSignals, user_b: UserSignals) -> PairContext:
        return PairContext(
            user_a=user_a,
            user_b=user_b,
            traits_a=self.resolver.resolve_user(user_a),
            traits_b=self.resolver.resolve_user(user_b),
        )

    def score_dimensions(self, context: PairContext) -> List[DimensionResult]:
        """Run every scorer on the pair.

        Raises:
            ScoringError: If a scorer fails
        """
        results = []
        for scorer in self.scorers:
            try:
                results.append(scorer.score(context))
            except Exception as e:
                raise ScoringError(
                    context.user_a.user_id,
                    context.user_b.user_id,
                    f"{scorer.dimension.value} scorer failed: {e}",
                ) from e
        return results

    def score(self, user_a: UserSignals, user_b: UserSignals) -> CompatibilityScore:
        """Calculate the compatibility score for a pair of users.

        Args:
            user_a: Signals for the first user
            user_b: Signals for the second user

        Returns:
            CompatibilityScore with per-dimension breakdown
        """
        context = self.build_context(user_a, user_b)
        results = self.score_dimensions(context)

        details = CompatibilityBreakdown(
            strengths=_dedupe(note for r in results for note in r.strengths),
            considerations=_dedupe(note for r in results for note in r.considerations),
            deal_breakers=sorted(set(note for r in results for note in r.deal_breakers)),
            shared_interests=sorted(set(label for r in results for label in r.shared_interests)),
        )

        weighted = sum(self.weights[r.dimension] * r.score for r in results) / 100
        overall = clamp_score(weighted - self.dealbreaker_penalty * len(details.deal_breakers))
        details.summary = summarize(overall)

        completeness = {
            user_a.user_id: user_a.data_completeness(),
            user_b.user_id: user_b.data_completeness(),
        }
        confidence = max(0.0, min(1.0, sum(completeness.values()) / 2))

        logger.debug(
            f"Scored {user_a.user_id} <-> {user_b.user_id}: overall={overall} "
            f"deal_breakers={len(details.deal_breakers)}"
        )

        return CompatibilityScore(
            user_a_id=user_a.user_id,
            user_b_id=user_b.user_id,
            overall=overall,
            dimension_scores={r.dimension: r.score for r in results},
            details=details,
            confidence=confidence,
            data_completeness=completeness,
        )
