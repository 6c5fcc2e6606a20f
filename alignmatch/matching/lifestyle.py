"""Lifestyle compatibility: day-to-day categories and location."""

from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from alignmatch.matching.base import NEUTRAL_SCORE, Dimension, DimensionResult, DimensionScorer, PairContext
from alignmatch.profile.models import (
    ActivityLevel,
    CommunicationPreference,
    ConflictStyle,
    GeographicFlexibility,
    PlanningStyle,
    SocialPreference,
)

SAME_CITY_NOTE = "Same city - easy to meet"
LONG_DISTANCE_NOTE = "Long-distance relationship"


def _pairs(*pairs: Tuple[object, object]) -> Set[FrozenSet[object]]:
    return {frozenset(pair) for pair in pairs}


class LifestyleScorer(DimensionScorer):
    """Scores categorical lifestyle fit and geographic proximity."""

    # (points when equal, points when different but compatible)
    CATEGORY_POINTS: Dict[str, Tuple[int, int]] = {
        "social_preference": (8, 4),
        "activity_level": (8, 4),
        "planning_style": (6, 3),
        "communication_preference": (8, 4),
        "conflict_style": (6, 3),
    }

    COMPATIBLE: Dict[str, Set[FrozenSet[object]]] = {
        "social_preference": _pairs(
            (SocialPreference.AMBIVERT, SocialPreference.INTROVERTED),
            (SocialPreference.AMBIVERT, SocialPreference.EXTROVERTED),
        ),
        "activity_level": _pairs(
            (ActivityLevel.MODERATE, ActivityLevel.LOW),
            (ActivityLevel.MODERATE, ActivityLevel.HIGH),
        ),
        "planning_style": _pairs(
            (PlanningStyle.FLEXIBLE, PlanningStyle.PLANNER),
            (PlanningStyle.FLEXIBLE, PlanningStyle.SPONTANEOUS),
        ),
        "communication_preference": _pairs(
            (CommunicationPreference.DIRECT, CommunicationPreference.DIPLOMATIC),
            (CommunicationPreference.EXPRESSIVE, CommunicationPreference.DIPLOMATIC),
        ),
        "conflict_style": _pairs(
            (ConflictStyle.COLLABORATIVE, ConflictStyle.COMPROMISING),
            (ConflictStyle.COLLABORATIVE, ConflictStyle.ACCOMMODATING),
            (ConflictStyle.COMPROMISING, ConflictStyle.ACCOMMODATING),
        ),
    }

    SAME_CITY_BONUS = 14
    SAME_COUNTRY_BONUS = 5

    @property
    def dimension(self) -> Dimension:
        return Dimension.LIFESTYLE

    def score(self, context: PairContext) -> DimensionResult:
        score = float(NEUTRAL_SCORE)
        strengths: List[str] = []
        considerations: List[str] = []

        categories1 = {
            **context.traits_a.lifestyle.model_dump(),
            **context.traits_a.relationship.model_dump(),
        }
        categories2 = {
            **context.traits_b.lifestyle.model_dump(),
            **context.traits_b.relationship.model_dump(),
        }

        for name, (equal_points, compatible_points) in self.CATEGORY_POINTS.items():
            value1 = categories1.get(name)
            value2 = categories2.get(name)
            if value1 is None or value2 is None:
                continue

            if value1 == value2:
                score += equal_points
                strengths.append(self._equal_note(name, value1))
            elif frozenset({value1, value2}) in self.COMPATIBLE[name]:
                score += compatible_points
            elif name == "planning_style":
                considerations.append("Different planning approaches")

        location_points, location_note, is_strength = self._location(context)
        score += location_points
        if location_note:
            (strengths if is_strength else considerations).append(location_note)

        return self.result(score, strengths=strengths, considerations=considerations)

    EQUAL_NOTES = {
        "social_preference": "Both {label}",
        "activity_level": "Compatible activity levels",
        "planning_style": "Same approach to planning ({label})",
        "communication_preference": "Compatible communication styles",
        "conflict_style": "Both use {label} conflict resolution",
    }

    def _equal_note(self, name: str, value: object) -> str:
        label = getattr(value, "value", value)
        return self.EQUAL_NOTES[name].format(label=label)

    def _location(self, context: PairContext) -> Tuple[int, Optional[str], bool]:
        """Tiered location score.

        Returns:
            (points, note, note_is_strength)
        """
        profile1 = context.user_a.profile
        profile2 = context.user_b.profile

        city1 = self._clean(profile1.location_city)
        city2 = self._clean(profile2.location_city)
        country1 = self._clean(profile1.location_country)
        country2 = self._clean(profile2.location_country)

        if city1 and city1 == city2 and (country1 == country2 or not country1 or not country2):
            return self.SAME_CITY_BONUS, SAME_CITY_NOTE, True
        if country1 and country1 == country2:
            return self.SAME_COUNTRY_BONUS, None, False
        if not (city1 or country1) or not (city2 or country2):
            return 0, None, False

        flexible = {GeographicFlexibility.FLEXIBLE, GeographicFlexibility.OPEN_TO_MOVING}
        if profile1.geographic_flexibility in flexible or profile2.geographic_flexibility in flexible:
            return 0, "Geographic flexibility for relationship", True
        return 0, LONG_DISTANCE_NOTE, False

    @staticmethod
    def _clean(value: Optional[str]) -> str:
        return value.strip().lower() if value else ""
