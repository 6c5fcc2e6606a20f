"""In-memory repository for tests, fixtures and dry runs."""

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from alignmatch.profile.models import MatchPreferences, UserSignals
from alignmatch.storage.repository import (
    MatchRecord,
    MatchRepository,
    RunRecord,
    RunStatus,
    UserStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


class MemoryRepository(MatchRepository):
    """Dictionary-backed repository.

    A single lock guards every write so the pair-uniqueness rule holds when
    several generator workers insert at once.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._signals: Dict[str, UserSignals] = {}
        self._preferences: Dict[str, MatchPreferences] = {}
        self._status: Dict[str, UserStatus] = {}
        self._blocks: Set[Tuple[str, str]] = set()
        self._matches: Dict[Tuple[str, str], MatchRecord] = {}
        self._runs: Dict[str, RunRecord] = {}
        self._next_match_id = 1

    def active_user_ids(self) -> List[str]:
        return sorted(uid for uid, status in self._status.items() if status == UserStatus.ACTIVE)

    def get_signals(self, user_id: str) -> Optional[UserSignals]:
        return self._signals.get(user_id)

    def get_preferences(self, user_id: str) -> MatchPreferences:
        return self._preferences.get(user_id) or MatchPreferences()

    def paired_user_ids(self, user_id: str) -> Set[str]:
        with self._lock:
            pairs = list(self._matches)
        return {a if b == user_id else b for a, b in pairs if user_id in (a, b)}

    def blocked_user_ids(self, user_id: str) -> Set[str]:
        blocked = set()
        for blocker, blockee in self._blocks:
            if blocker == user_id:
                blocked.add(blockee)
            elif blockee == user_id:
                blocked.add(blocker)
        return blocked

    def count_matches_since(self, user_id: str, since: datetime) -> int:
        with self._lock:
            matches = list(self._matches.values())
        return sum(1 for m in matches if m.involves(user_id) and m.created_at >= since)

    def list_matches(self, run_id: Optional[str] = None) -> List[MatchRecord]:
        with self._lock:
            matches = list(self._matches.values())
        if run_id is not None:
            matches = [m for m in matches if m.generation_run_id == run_id]
        return sorted(matches, key=lambda m: m.id or 0)

    def get_run(self, run_id: str) -> Optional[RunRecord]:
        return self._runs.get(run_id)

    def insert_match_if_absent(self, match: MatchRecord) -> bool:
        with self._lock:
            if match.pair in self._matches:
                logger.debug(f"Pair {match.pair} already matched, skipping insert")
                return False
            stored = replace(match, id=self._next_match_id)
            self._next_match_id += 1
            self._matches[match.pair] = stored
            return True

    def create_run(self, started_at: Optional[datetime] = None) -> str:
        run_id = str(uuid.uuid4())
        with self._lock:
            self._runs[run_id] = RunRecord(
                id=run_id,
                status=RunStatus.RUNNING,
                started_at=started_at or utcnow(),
            )
        return run_id

    def finalize_run(
        self,
        run_id: str,
        status: RunStatus,
        users_evaluated: int,
        matches_generated: int,
        errors: List[Tuple[str, str]],
        completed_at: Optional[datetime] = None,
    ) -> None:
        with self._lock:
            run = self._runs[run_id]
            run.status = status
            run.users_evaluated = users_evaluated
            run.matches_generated = matches_generated
            run.errors = list(errors)
            run.completed_at = completed_at or utcnow()

    def save_user(
        self,
        signals: UserSignals,
        preferences: Optional[MatchPreferences] = None,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> None:
        with self._lock:
            self._signals[signals.user_id] = signals
            self._preferences[signals.user_id] = preferences or MatchPreferences()
            self._status[signals.user_id] = status

    def add_block(self, blocking_user_id: str, blocked_user_id: str) -> None:
        with self._lock:
            self._blocks.add((blocking_user_id, blocked_user_id))
