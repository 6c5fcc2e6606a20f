"""Astrological compatibility as an optional capability.

Chart calculators live outside this package. Each is wrapped in an
`AstroSystem` that returns a 0-100 sub-score or None when unavailable.
With no systems configured, or none available for the pair, the dimension
is a neutral 50. Astrology never vetoes a match.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

from alignmatch.matching.base import NEUTRAL_SCORE, Dimension, DimensionResult, DimensionScorer, PairContext

logger = logging.getLogger(__name__)

UNAVAILABLE_NOTE = "Astrological compatibility not calculated (missing birth data)"

# Relative weight of each supported system in the blend
SYSTEM_WEIGHTS: Dict[str, int] = {
    "bazi": 40,
    "vedic": 35,
    "nine_star_ki": 25,
}

STRONG_NOTES: Dict[str, str] = {
    "bazi": "Strong BaZi (Chinese astrology) harmony",
    "vedic": "Excellent Vedic astrology compatibility",
    "nine_star_ki": "Nine Star Ki indicates natural harmony",
}


class AstroSystem(ABC):
    """One external astrology calculator."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the system key, e.g. "bazi"."""
        pass

    @property
    def weight(self) -> int:
        return SYSTEM_WEIGHTS.get(self.name, 0)

    @abstractmethod
    def compatibility(self, user_a_id: str, user_b_id: str) -> Optional[int]:
        """Return a 0-100 sub-score, or None if the system cannot score the pair."""
        pass


class CallableAstroSystem(AstroSystem):
    """Adapts a plain function to the AstroSystem interface."""

    def __init__(self, name: str, func: Callable[[str, str], Optional[int]], weight: Optional[int] = None):
        self._name = name
        self._func = func
        self._weight = weight

    @property
    def name(self) -> str:
        return self._name

    @property
    def weight(self) -> int:
        if self._weight is not None:
            return self._weight
        return super().weight

    def compatibility(self, user_a_id: str, user_b_id: str) -> Optional[int]:
        return self._func(user_a_id, user_b_id)


class AstrologicalScorer(DimensionScorer):
    """Blends whatever astrology systems are available for the pair."""

    STRONG_THRESHOLD = 75
    WEAK_THRESHOLD = 40
    MAX_SYSTEMS = 3

    def __init__(self, systems: Optional[Sequence[AstroSystem]] = None):
        """Initialize the scorer.

        Args:
            systems: Configured astrology systems (at most three); empty or
                None means the capability is absent
        """
        systems = list(systems or [])
        if len(systems) > self.MAX_SYSTEMS:
            raise ValueError(f"At most {self.MAX_SYSTEMS} astrology systems are supported")
        self.systems: List[AstroSystem] = systems

    @property
    def dimension(self) -> Dimension:
        return Dimension.ASTROLOGICAL

    def score(self, context: PairContext) -> DimensionResult:
        available: Dict[str, int] = {}
        weights: Dict[str, int] = {}

        for system in self.systems:
            sub_score = self._safe_compatibility(system, context.user_a.user_id, context.user_b.user_id)
            if sub_score is None or system.weight <= 0:
                continue
            available[system.name] = sub_score
            weights[system.name] = system.weight

        if not available:
            return self.result(NEUTRAL_SCORE, considerations=[UNAVAILABLE_NOTE])

        total_weight = sum(weights.values())
        blended = sum(available[name] * weights[name] for name in available) / total_weight

        strengths: List[str] = []
        considerations: List[str] = []
        for name in sorted(available):
            if available[name] >= self.STRONG_THRESHOLD:
                strengths.append(STRONG_NOTES.get(name, f"Strong {name} compatibility"))
            elif available[name] < self.WEAK_THRESHOLD:
                considerations.append(f"{name} suggests some challenges to navigate")

        return self.result(blended, strengths=strengths, considerations=considerations)

    def _safe_compatibility(self, system: AstroSystem, user_a_id: str, user_b_id: str) -> Optional[int]:
        """Query a system, treating any failure or non-numeric answer as unavailable.

        Sub-scores are requested with ids in sorted order so the pair is
        scored the same way from either side, and clamped to 0-100.
        """
        first, second = sorted((user_a_id, user_b_id))
        try:
            sub_score = system.compatibility(first, second)
        except Exception as e:
            logger.warning(f"Astrology system {system.name} failed for {first}/{second}: {e}")
            return None

        if sub_score is None:
            return None
        try:
            return max(0, min(100, int(sub_score)))
        except (TypeError, ValueError):
            logger.warning(f"Astrology system {system.name} returned {sub_score!r} for {first}/{second}")
            return None
