"""Repository interface the engine depends on, plus its record types.

The batch generator never talks to a database client directly; it is
handed a `MatchRepository`. `MemoryRepository` backs tests and dry runs,
`SqlRepository` backs real deployments.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from alignmatch.profile.models import MatchPreferences, UserSignals


class MatchStatus(str, Enum):
    """Review status of a match; transitions belong to the review flow."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class RunStatus(str, Enum):
    """Lifecycle of a match generation run."""
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class UserStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    DELETED = "deleted"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every table."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def canonical_pair(user_a_id: str, user_b_id: str) -> Tuple[str, str]:
    """Order a pair so (a, b) and (b, a) map to the same key."""
    if user_a_id == user_b_id:
        raise ValueError(f"A user cannot be matched with themselves: {user_a_id}")
    return (user_a_id, user_b_id) if user_a_id < user_b_id else (user_b_id, user_a_id)


@dataclass
class MatchRecord:
    """A proposed or reviewed match for an unordered pair."""
    user_a_id: str
    user_b_id: str
    overall_score: int
    dimension_scores: Dict[str, int]
    confidence: float
    breakdown: Dict[str, Any]
    generation_run_id: Optional[str]
    algorithm_version: str
    status: MatchStatus = MatchStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[int] = None

    def __post_init__(self) -> None:
        self.user_a_id, self.user_b_id = canonical_pair(self.user_a_id, self.user_b_id)

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.user_a_id, self.user_b_id)

    def involves(self, user_id: str) -> bool:
        return user_id in self.pair

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_a_id": self.user_a_id,
            "user_b_id": self.user_b_id,
            "overall_score": self.overall_score,
            "dimension_scores": dict(self.dimension_scores),
            "confidence": self.confidence,
            "breakdown": self.breakdown,
            "status": self.status.value,
            "algorithm_version": self.algorithm_version,
            "generation_run_id": self.generation_run_id,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class RunRecord:
    """Bookkeeping row for one batch execution."""
    id: str
    status: RunStatus
    started_at: datetime
    users_evaluated: int = 0
    matches_generated: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)
    completed_at: Optional[datetime] = None


class MatchRepository(ABC):
    """Storage operations used by candidate finding and match generation."""

    # Reads

    @abstractmethod
    def active_user_ids(self) -> List[str]:
        """Ids of every user eligible for matching."""

    @abstractmethod
    def get_signals(self, user_id: str) -> Optional[UserSignals]:
        """Profile, extraction, declarations, polls and content for one user.

        Returns None if the user has no profile. Raises InvalidPayloadError
        if a stored payload no longer decodes.
        """

    @abstractmethod
    def get_preferences(self, user_id: str) -> MatchPreferences:
        """Hard filters for the user (defaults if none were set)."""

    @abstractmethod
    def paired_user_ids(self, user_id: str) -> Set[str]:
        """Users already in a match with `user_id`, any status."""

    @abstractmethod
    def blocked_user_ids(self, user_id: str) -> Set[str]:
        """Users blocked by, or blocking, `user_id`."""

    @abstractmethod
    def count_matches_since(self, user_id: str, since: datetime) -> int:
        """Matches involving `user_id` created at or after `since`."""

    @abstractmethod
    def list_matches(self, run_id: Optional[str] = None) -> List[MatchRecord]:
        """All matches, or those created by one run."""

    @abstractmethod
    def get_run(self, run_id: str) -> Optional[RunRecord]:
        """Load a run by id."""

    # Writes

    @abstractmethod
    def insert_match_if_absent(self, match: MatchRecord) -> bool:
        """Insert the match unless its pair already exists.

        Returns:
            True if a row was created, False if the pair was already taken
        """

    @abstractmethod
    def create_run(self, started_at: Optional[datetime] = None) -> str:
        """Create a run in `running` state and return its id."""

    @abstractmethod
    def finalize_run(
        self,
        run_id: str,
        status: RunStatus,
        users_evaluated: int,
        matches_generated: int,
        errors: List[Tuple[str, str]],
        completed_at: Optional[datetime] = None,
    ) -> None:
        """Record the outcome of a run."""

    # Imports from the onboarding and game subsystems

    @abstractmethod
    def save_user(
        self,
        signals: UserSignals,
        preferences: Optional[MatchPreferences] = None,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> None:
        """Create or replace everything stored for one user."""

    @abstractmethod
    def add_block(self, blocking_user_id: str, blocked_user_id: str) -> None:
        """Record that one user blocked another."""
