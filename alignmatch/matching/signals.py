"""Reconciles self-reported and behaviorally-extracted traits.

Each trait can come from the onboarding profile or from the game-derived
extraction. The extraction wins when its confidence clears the threshold;
otherwise the self-report is used. Missing data never raises, it degrades
to a neutral value.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, TypeVar

from alignmatch.profile.models import (
    AttachmentStyle,
    LifestyleIndicators,
    RelationshipIndicators,
    UserSignals,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NEUTRAL_TRAIT = 50.0
BIG_FIVE_TRAITS = ("openness", "conscientiousness", "extraversion", "agreeableness", "neuroticism")


class SignalSource(str, Enum):
    """Where a resolved trait value came from."""
    EXTRACTION = "extraction"
    PROFILE = "profile"
    DEFAULT = "default"


def trait_closeness(x: float, y: float, max_points: float, scale: float = 100.0) -> float:
    """Points for two values being close: max_points * (1 - |x-y|/scale), never negative."""
    return max(0.0, max_points * (1 - abs(x - y) / scale))


@dataclass
class ResolvedTraits:
    """Best-available trait values for one user."""
    user_id: str
    big_five: Dict[str, float]
    attachment_style: Optional[AttachmentStyle]
    lifestyle: LifestyleIndicators
    relationship: RelationshipIndicators
    sources: Dict[str, SignalSource] = field(default_factory=dict)

    def source_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for source in self.sources.values():
            counts[source.value] = counts.get(source.value, 0) + 1
        return counts


class SignalResolver:
    """Chooses between profile and extraction values trait by trait."""

    # Dominant attachment weight required before a game-derived style counts
    ATTACHMENT_DOMINANCE = 0.6

    def __init__(self, confidence_threshold: float = 0.5, neutral: float = NEUTRAL_TRAIT):
        """Initialize the resolver.

        Args:
            confidence_threshold: Extraction confidence above which the
                extraction is preferred (default: 0.5)
            neutral: Value used when neither source has data
        """
        self.confidence_threshold = confidence_threshold
        self.neutral = neutral

    def resolve(
        self,
        profile_value: Optional[float],
        extraction_value: Optional[float],
        extraction_confidence: Optional[float],
    ) -> Tuple[float, SignalSource]:
        """Resolve a 0-100 scaled trait.

        Returns:
            (value, source) where source tells which input was used
        """
        value, source = self.resolve_category(profile_value, extraction_value, extraction_confidence)
        if value is None:
            return self.neutral, SignalSource.DEFAULT
        return float(value), source

    def resolve_category(
        self,
        profile_value: Optional[T],
        extraction_value: Optional[T],
        extraction_confidence: Optional[float],
    ) -> Tuple[Optional[T], SignalSource]:
        """Resolve a categorical trait; None is the neutral category."""
        confident = (
            extraction_confidence is not None
            and extraction_confidence > self.confidence_threshold
        )

        if confident and extraction_value is not None:
            return extraction_value, SignalSource.EXTRACTION
        if profile_value is not None:
            return profile_value, SignalSource.PROFILE
        if extraction_value is not None:
            # Low-confidence extraction still beats a neutral guess
            return extraction_value, SignalSource.EXTRACTION
        return None, SignalSource.DEFAULT

    def resolve_user(self, signals: UserSignals) -> ResolvedTraits:
        """Resolve every trait the scorers need for one user."""
        profile = signals.profile
        extraction = signals.extraction
        sources: Dict[str, SignalSource] = {}

        big_five: Dict[str, float] = {}
        for trait in BIG_FIVE_TRAITS:
            value, source = self.resolve(
                getattr(profile.big_five, trait),
                getattr(extraction, trait) if extraction else None,
                getattr(extraction, f"{trait}_confidence") if extraction else None,
            )
            big_five[trait] = value
            sources[trait] = source

        attachment, source = self.resolve_category(
            profile.attachment_style,
            self._extracted_attachment(signals),
            extraction.attachment_confidence if extraction else None,
        )
        sources["attachment_style"] = source

        indicators_confidence = extraction.indicators_confidence if extraction else None
        lifestyle_values = {}
        for name in LifestyleIndicators.model_fields:
            value, source = self.resolve_category(
                getattr(profile.lifestyle, name),
                getattr(extraction.lifestyle, name) if extraction else None,
                indicators_confidence,
            )
            lifestyle_values[name] = value
            sources[name] = source

        relationship_values = {}
        for name in RelationshipIndicators.model_fields:
            value, source = self.resolve_category(
                getattr(profile.relationship, name),
                getattr(extraction.relationship, name) if extraction else None,
                indicators_confidence,
            )
            relationship_values[name] = value
            sources[name] = source

        resolved = ResolvedTraits(
            user_id=signals.user_id,
            big_five=big_five,
            attachment_style=attachment,
            lifestyle=LifestyleIndicators(**lifestyle_values),
            relationship=RelationshipIndicators(**relationship_values),
            sources=sources,
        )
        logger.debug(f"Resolved traits for {signals.user_id}: {resolved.source_counts()}")
        return resolved

    def _extracted_attachment(self, signals: UserSignals) -> Optional[AttachmentStyle]:
        """Dominant game-derived attachment style, if one clearly dominates."""
        extraction = signals.extraction
        if extraction is None:
            return None

        weights = {
            AttachmentStyle.SECURE: extraction.attachment_secure,
            AttachmentStyle.ANXIOUS: extraction.attachment_anxious,
            AttachmentStyle.AVOIDANT: extraction.attachment_avoidant,
        }
        style, weight = max(weights.items(), key=lambda item: item[1])
        if weight > self.ATTACHMENT_DOMINANCE:
            return style
        return None
