"""Batch match generation.

One run walks every active user with quota left, scores their candidate
pool, and persists the best pairs as pending matches. Users are processed
in parallel; pair uniqueness is enforced by the repository and the weekly
cap by a run-scoped quota ledger shared between workers.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from alignmatch.config import Settings
from alignmatch.errors import ScoringError
from alignmatch.generation.candidates import CandidateFinder
from alignmatch.matching.aggregator import CompatibilityEngine, CompatibilityScore
from alignmatch.storage.repository import (
    MatchRecord,
    MatchRepository,
    MatchStatus,
    RunStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

SYSTEM_ERROR_KEY = "system"


@dataclass
class RunSummary:
    """Outcome of one generation run."""
    run_id: str
    status: RunStatus
    users_evaluated: int = 0
    matches_generated: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)
    matches: List[MatchRecord] = field(default_factory=list)
    cancelled: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "users_evaluated": self.users_evaluated,
            "matches_generated": self.matches_generated,
            "errors": [list(e) for e in self.errors],
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class QuotaLedger:
    """Remaining weekly match slots per user for the duration of one run.

    Counts are loaded lazily from the repository the first time a user is
    seen, then decremented in memory as pairs are reserved. Both sides of a
    pair consume a slot.
    """

    def __init__(self, repository: MatchRepository, settings: Settings, now: datetime):
        self.repository = repository
        self.default_cap = settings.weekly_cap
        self.window_start = now - timedelta(days=settings.quota_window_days)
        self._remaining: Dict[str, int] = {}
        self._lock = threading.Lock()

    def cap_for(self, user_id: str) -> int:
        override = self.repository.get_preferences(user_id).max_matches_per_week
        return self.default_cap if override is None else override

    def _load(self, user_id: str) -> int:
        if user_id not in self._remaining:
            used = self.repository.count_matches_since(user_id, self.window_start)
            self._remaining[user_id] = self.cap_for(user_id) - used
        return self._remaining[user_id]

    def remaining(self, user_id: str) -> int:
        with self._lock:
            return self._load(user_id)

    def reserve(self, user_id: str, other_id: str) -> bool:
        """Take one slot from each user, or neither if either is at cap."""
        with self._lock:
            if self._load(user_id) <= 0 or self._load(other_id) <= 0:
                return False
            self._remaining[user_id] -= 1
            self._remaining[other_id] -= 1
            return True

    def release(self, user_id: str, other_id: str) -> None:
        with self._lock:
            self._remaining[user_id] += 1
            self._remaining[other_id] += 1


class MatchGenerator:
    """Proposes new pending matches for every active user."""

    def __init__(
        self,
        repository: MatchRepository,
        engine: CompatibilityEngine,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the generator.

        Args:
            repository: Storage for users, matches and runs
            engine: Pairwise compatibility engine
            settings: Thresholds, quota and worker count (default settings if omitted)
            clock: Returns the current naive UTC time
        """
        self.repository = repository
        self.engine = engine
        self.settings = settings or Settings()
        self.clock = clock
        self.finder = CandidateFinder(repository, self.settings.respect_user_preferences)

    def rank_candidates(self, user_id: str, active_ids: Optional[List[str]] = None) -> List[CompatibilityScore]:
        """Score a user's candidate pool and keep the acceptable pairs, best first.

        Candidates whose breakdown lists any deal-breaker, or whose overall
        score is below the threshold, are dropped. Ties are broken by
        candidate id so runs are reproducible.
        """
        user = self.repository.get_signals(user_id)
        if user is None:
            logger.debug(f"User {user_id} has no profile, skipping")
            return []

        pool = self.finder.find(user, active_ids)
        accepted: List[CompatibilityScore] = []

        for candidate in pool.candidates:
            try:
                score = self.engine.score(user, candidate)
            except ScoringError as e:
                logger.warning(str(e))
                continue

            if score.has_deal_breakers:
                logger.debug(f"Vetoed {user_id} <-> {candidate.user_id}: {score.details.deal_breakers}")
                continue
            if score.overall < self.settings.min_overall_score:
                continue
            accepted.append(score)

        accepted.sort(key=lambda s: (-s.overall, s.user_b_id))
        return accepted

    def generate_for_user(
        self,
        user_id: str,
        run_id: Optional[str] = None,
        ledger: Optional[QuotaLedger] = None,
        active_ids: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> List[MatchRecord]:
        """Create new pending matches for one user.

        Args:
            user_id: User to generate matches for
            run_id: Generation run the matches belong to
            ledger: Run-scoped quota ledger (a fresh one if omitted)
            active_ids: Active user ids, if already loaded
            now: Creation timestamp for new matches

        Returns:
            The match records actually inserted
        """
        now = now or self.clock()
        ledger = ledger or QuotaLedger(self.repository, self.settings, now)

        if ledger.remaining(user_id) <= 0:
            logger.debug(f"User {user_id} has no quota left this week")
            return []

        created: List[MatchRecord] = []
        for score in self.rank_candidates(user_id, active_ids):
            if ledger.remaining(user_id) <= 0:
                break

            other_id = score.user_b_id
            if not ledger.reserve(user_id, other_id):
                logger.debug(f"Skipping {user_id} <-> {other_id}: counterpart at weekly cap")
                continue

            record = MatchRecord(
                user_a_id=user_id,
                user_b_id=other_id,
                overall_score=score.overall,
                dimension_scores={d.value: s for d, s in score.dimension_scores.items()},
                confidence=round(score.confidence, 3),
                breakdown=score.to_dict(),
                generation_run_id=run_id,
                algorithm_version=self.settings.algorithm_version,
                status=MatchStatus.PENDING,
                created_at=now,
            )
            if self.repository.insert_match_if_absent(record):
                created.append(record)
            else:
                ledger.release(user_id, other_id)

        if created:
            logger.info(f"Created {len(created)} match(es) for {user_id}")
        return created

    def run(self, cancel_event: Optional[threading.Event] = None) -> RunSummary:
        """Execute one batch run over all active users.

        Args:
            cancel_event: When set, users not yet started are skipped and the
                run is recorded as partial

        Returns:
            RunSummary matching the persisted run row
        """
        started_at = self.clock()
        run_id = self.repository.create_run(started_at)
        summary = RunSummary(run_id=run_id, status=RunStatus.RUNNING, started_at=started_at)
        logger.info(f"Match generation run {run_id} started")

        try:
            active_ids = self.repository.active_user_ids()
        except Exception as e:
            logger.error(f"Run {run_id} failed: could not load active users: {e}")
            summary.errors.append((SYSTEM_ERROR_KEY, str(e)))
            return self._finalize(summary, RunStatus.FAILED)

        ledger = QuotaLedger(self.repository, self.settings, started_at)

        def process(user_id: str) -> Optional[List[MatchRecord]]:
            if cancel_event is not None and cancel_event.is_set():
                return None
            return self.generate_for_user(user_id, run_id, ledger, active_ids, started_at)

        with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
            future_to_user = {executor.submit(process, user_id): user_id for user_id in active_ids}

            for future in as_completed(future_to_user):
                user_id = future_to_user[future]
                try:
                    created = future.result()
                except Exception as e:
                    logger.error(f"Match generation failed for {user_id}: {e}")
                    summary.errors.append((user_id, str(e)))
                    summary.users_evaluated += 1
                    continue

                if created is None:
                    summary.cancelled = True
                    continue
                summary.users_evaluated += 1
                summary.matches.extend(created)

        summary.matches_generated = len(summary.matches)
        summary.errors.sort()
        status = RunStatus.PARTIAL if summary.errors or summary.cancelled else RunStatus.COMPLETED
        return self._finalize(summary, status)

    def _finalize(self, summary: RunSummary, status: RunStatus) -> RunSummary:
        summary.status = status
        summary.completed_at = self.clock()
        self.repository.finalize_run(
            summary.run_id,
            status,
            summary.users_evaluated,
            summary.matches_generated,
            summary.errors,
            summary.completed_at,
        )
        logger.info(
            f"Run {summary.run_id} {status.value}: {summary.users_evaluated} users evaluated, "
            f"{summary.matches_generated} matches created, {len(summary.errors)} errors"
        )
        return summary
