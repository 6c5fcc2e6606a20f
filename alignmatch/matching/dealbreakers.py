"""Dealbreaker hard filter.

A user's "dealbreaker" item is violated when the other user declared the
same item as something they have or want ("must_have" / "nice_to_have").
The check runs in both directions. Violations pull this dimension toward
zero; the aggregator additionally deducts a fixed penalty per violation.
"""

from typing import List

from alignmatch.matching.base import Dimension, DimensionResult, DimensionScorer, PairContext
from alignmatch.profile.models import DealbreakerResponse, UserSignals

CLAIMED = {DealbreakerResponse.MUST_HAVE, DealbreakerResponse.NICE_TO_HAVE}


def find_violations(owner: UserSignals, other: UserSignals) -> List[str]:
    """Items `owner` marked as dealbreakers that `other` claims.

    Returns:
        Descriptions naming the owner and the item
    """
    claimed = {
        declaration.item.strip().lower()
        for declaration in other.dealbreakers
        if declaration.response in CLAIMED
    }

    violations = []
    for declaration in owner.dealbreakers:
        if declaration.response != DealbreakerResponse.DEALBREAKER:
            continue
        if declaration.item.strip().lower() in claimed:
            violations.append(f"{owner.user_id}'s dealbreaker: {declaration.item.strip()}")
    return violations


class DealbreakerScorer(DimensionScorer):
    """Symmetric check of both users' dealbreaker declarations."""

    PERFECT_SCORE = 100
    PENALTY_PER_VIOLATION = 50

    @property
    def dimension(self) -> Dimension:
        return Dimension.DEALBREAKERS

    def score(self, context: PairContext) -> DimensionResult:
        violations = find_violations(context.user_a, context.user_b)
        violations += find_violations(context.user_b, context.user_a)
        violations = sorted(set(violations))

        score = self.PERFECT_SCORE - self.PENALTY_PER_VIOLATION * len(violations)
        return self.result(score, deal_breakers=violations)
