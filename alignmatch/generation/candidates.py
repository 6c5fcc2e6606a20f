"""Candidate pool selection for one user.

Applies the hard rules that must hold before any scoring: no self-matches,
no repeat pairs, no blocked users, and the user's own preference filters.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from alignmatch.errors import InvalidPayloadError, ScoringError
from alignmatch.profile.models import MatchPreferences, UserSignals
from alignmatch.storage.repository import MatchRepository

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> str:
    return value.strip().lower() if value else ""


@dataclass
class CandidatePool:
    """Eligible counterparts for one user, plus why the others were dropped."""
    user_id: str
    candidates: List[UserSignals] = field(default_factory=list)
    excluded: Dict[str, int] = field(default_factory=dict)   # Reason -> count

    def exclude(self, reason: str) -> None:
        self.excluded[reason] = self.excluded.get(reason, 0) + 1

    @property
    def candidate_ids(self) -> List[str]:
        return [c.user_id for c in self.candidates]


class CandidateFinder:
    """Finds the users a given user may be matched with. Does not score."""

    def __init__(self, repository: MatchRepository, respect_user_preferences: bool = True):
        """Initialize the finder.

        Args:
            repository: Source of users, existing matches and blocks
            respect_user_preferences: Apply age and locality filters
        """
        self.repository = repository
        self.respect_user_preferences = respect_user_preferences

    def find(self, user: UserSignals, active_ids: Optional[List[str]] = None) -> CandidatePool:
        """Build the candidate pool for `user`.

        Args:
            user: The user looking for matches
            active_ids: Active user ids, if the caller already loaded them

        Returns:
            CandidatePool in repository order
        """
        user_id = user.user_id
        pool = CandidatePool(user_id=user_id)

        if active_ids is None:
            active_ids = self.repository.active_user_ids()
        paired = self.repository.paired_user_ids(user_id)
        blocked = self.repository.blocked_user_ids(user_id)
        preferences = self.repository.get_preferences(user_id)

        for other_id in active_ids:
            if other_id == user_id:
                continue
            if other_id in paired:
                pool.exclude("already_matched")
                continue
            if other_id in blocked:
                pool.exclude("blocked")
                continue

            try:
                other = self.repository.get_signals(other_id)
            except InvalidPayloadError as e:
                error = ScoringError(user_id, other_id, e.reason)
                logger.warning(str(error))
                pool.exclude("invalid_payload")
                continue
            if other is None:
                pool.exclude("no_profile")
                continue

            if self.respect_user_preferences:
                reason = self.filter_reason(user, other, preferences)
                if reason:
                    pool.exclude(reason)
                    continue

            pool.candidates.append(other)

        logger.debug(
            f"Candidates for {user_id}: {len(pool.candidates)} eligible, excluded {pool.excluded}"
        )
        return pool

    @staticmethod
    def filter_reason(
        user: UserSignals, other: UserSignals, preferences: MatchPreferences
    ) -> Optional[str]:
        """Return why `other` fails the user's hard filters, or None if it passes.

        A candidate with unknown age fails any age bound. Locality filters
        compare case-insensitively; a missing value never matches.
        """
        age = other.profile.age
        if preferences.min_age is not None and (age is None or age < preferences.min_age):
            return "age"
        if preferences.max_age is not None and (age is None or age > preferences.max_age):
            return "age"

        if preferences.require_same_country:
            country = _clean(user.profile.location_country)
            if not country or country != _clean(other.profile.location_country):
                return "country"

        if preferences.require_same_city:
            city = _clean(user.profile.location_city)
            if not city or city != _clean(other.profile.location_city):
                return "city"

        return None
