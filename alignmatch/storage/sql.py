"""SQLAlchemy-backed repository."""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Set, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from alignmatch.errors import InvalidPayloadError, RepositoryError
from alignmatch.profile.models import (
    DealbreakerItem,
    MatchPreferences,
    PollVote,
    Profile,
    TraitExtraction,
    UserSignals,
)
from alignmatch.storage.models import (
    ContentInteraction,
    DealbreakerDeclaration,
    ExtractionData,
    Match,
    MatchGenerationRun,
    PollVoteRecord,
    PreferenceData,
    ProfileData,
    UserAccount,
    UserBlock,
)
from alignmatch.storage.repository import (
    MatchRecord,
    MatchRepository,
    MatchStatus,
    RunRecord,
    RunStatus,
    UserStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

DIMENSION_COLUMNS = (
    "psychological",
    "behavioral",
    "values_vision",
    "interests",
    "lifestyle",
    "dealbreakers",
    "astrological",
)


class SqlRepository(MatchRepository):
    """Repository over the tables in `alignmatch.storage.models`.

    Every call uses its own short-lived session, so one instance can be
    shared by generator worker threads.
    """

    def __init__(self, engine: Engine):
        """Initialize the repository.

        Args:
            engine: Engine whose schema was created with `init_db`
        """
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # Reads

    def active_user_ids(self) -> List[str]:
        try:
            with self._session() as session:
                rows = session.scalars(
                    select(UserAccount.id)
                    .where(UserAccount.status == UserStatus.ACTIVE.value)
                    .order_by(UserAccount.id)
                )
                return list(rows)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to load active users: {e}") from e

    def get_signals(self, user_id: str) -> Optional[UserSignals]:
        with self._session() as session:
            profile_row = session.get(ProfileData, user_id)
            if profile_row is None:
                return None

            extraction_row = session.get(ExtractionData, user_id)
            dealbreakers = session.scalars(
                select(DealbreakerDeclaration)
                .where(DealbreakerDeclaration.user_id == user_id)
                .order_by(DealbreakerDeclaration.id)
            ).all()
            votes = session.scalars(
                select(PollVoteRecord)
                .where(PollVoteRecord.user_id == user_id)
                .order_by(PollVoteRecord.id)
            ).all()
            content = session.scalars(
                select(ContentInteraction.article_id).where(
                    ContentInteraction.user_id == user_id,
                    ContentInteraction.read_completed.is_(True),
                )
            ).all()

            try:
                return UserSignals(
                    profile=Profile.model_validate({**profile_row.payload, "user_id": user_id}),
                    extraction=(
                        TraitExtraction.model_validate({**extraction_row.payload, "user_id": user_id})
                        if extraction_row is not None
                        else None
                    ),
                    dealbreakers=[
                        DealbreakerItem.model_validate({"item": row.item_text, "response": row.response})
                        for row in dealbreakers
                    ],
                    poll_votes=[
                        PollVote.model_validate(
                            {"poll_id": row.poll_id, "selected_options": row.selected_options or []}
                        )
                        for row in votes
                    ],
                    completed_content=sorted(set(content)),
                )
            except (TypeError, ValueError) as e:
                # pydantic's ValidationError is a ValueError
                raise InvalidPayloadError(user_id, next(iter(str(e).splitlines()), type(e).__name__)) from e

    def get_preferences(self, user_id: str) -> MatchPreferences:
        with self._session() as session:
            row = session.get(PreferenceData, user_id)
            if row is None:
                return MatchPreferences()
            return MatchPreferences.model_validate(row.payload)

    def paired_user_ids(self, user_id: str) -> Set[str]:
        with self._session() as session:
            rows = session.execute(
                select(Match.user_a_id, Match.user_b_id).where(
                    or_(Match.user_a_id == user_id, Match.user_b_id == user_id)
                )
            ).all()
        return {b if a == user_id else a for a, b in rows}

    def blocked_user_ids(self, user_id: str) -> Set[str]:
        with self._session() as session:
            rows = session.execute(
                select(UserBlock.blocking_user_id, UserBlock.blocked_user_id).where(
                    or_(UserBlock.blocking_user_id == user_id, UserBlock.blocked_user_id == user_id)
                )
            ).all()
        return {blocked if blocker == user_id else blocker for blocker, blocked in rows}

    def count_matches_since(self, user_id: str, since: datetime) -> int:
        with self._session() as session:
            count = session.scalar(
                select(func.count(Match.id)).where(
                    or_(Match.user_a_id == user_id, Match.user_b_id == user_id),
                    Match.created_at >= since,
                )
            )
        return int(count or 0)

    def list_matches(self, run_id: Optional[str] = None) -> List[MatchRecord]:
        with self._session() as session:
            query = select(Match).order_by(Match.id)
            if run_id is not None:
                query = query.where(Match.generation_run_id == run_id)
            return [self._to_record(row) for row in session.scalars(query)]

    def get_run(self, run_id: str) -> Optional[RunRecord]:
        with self._session() as session:
            row = session.get(MatchGenerationRun, run_id)
            if row is None:
                return None
            return RunRecord(
                id=row.id,
                status=RunStatus(row.status),
                started_at=row.started_at,
                users_evaluated=row.users_evaluated,
                matches_generated=row.matches_generated,
                errors=[(user_id, message) for user_id, message in (row.errors or [])],
                completed_at=row.completed_at,
            )

    # Writes

    def insert_match_if_absent(self, match: MatchRecord) -> bool:
        row = Match(
            user_a_id=match.user_a_id,
            user_b_id=match.user_b_id,
            overall_score=match.overall_score,
            confidence=match.confidence,
            breakdown=match.breakdown,
            status=match.status.value,
            algorithm_version=match.algorithm_version,
            generation_run_id=match.generation_run_id,
            created_at=match.created_at,
            **{
                f"{name}_score": int(match.dimension_scores.get(name, 0))
                for name in DIMENSION_COLUMNS
            },
        )
        try:
            with self._session() as session:
                session.add(row)
        except IntegrityError:
            if not self._pair_exists(match.user_a_id, match.user_b_id):
                raise
            logger.debug(f"Pair {match.pair} already matched, skipping insert")
            return False
        return True

    def _pair_exists(self, user_a_id: str, user_b_id: str) -> bool:
        with self._session() as session:
            found = session.scalar(
                select(Match.id).where(Match.user_a_id == user_a_id, Match.user_b_id == user_b_id)
            )
        return found is not None

    def create_run(self, started_at: Optional[datetime] = None) -> str:
        run_id = str(uuid.uuid4())
        try:
            with self._session() as session:
                session.add(
                    MatchGenerationRun(
                        id=run_id,
                        status=RunStatus.RUNNING.value,
                        started_at=started_at or utcnow(),
                    )
                )
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to create match generation run: {e}") from e
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
        with self._session() as session:
            row = session.get(MatchGenerationRun, run_id)
            if row is None:
                raise RepositoryError(f"Unknown match generation run: {run_id}")
            row.status = status.value
            row.users_evaluated = users_evaluated
            row.matches_generated = matches_generated
            row.errors = [[user_id, message] for user_id, message in errors] or None
            row.completed_at = completed_at or utcnow()

    def save_user(
        self,
        signals: UserSignals,
        preferences: Optional[MatchPreferences] = None,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> None:
        user_id = signals.user_id
        with self._session() as session:
            account = session.get(UserAccount, user_id)
            if account is None:
                session.add(UserAccount(id=user_id, status=status.value))
            else:
                account.status = status.value

            session.merge(ProfileData(user_id=user_id, payload=signals.profile.model_dump(mode="json")))

            if signals.extraction is not None:
                session.merge(
                    ExtractionData(user_id=user_id, payload=signals.extraction.model_dump(mode="json"))
                )
            else:
                session.execute(delete(ExtractionData).where(ExtractionData.user_id == user_id))

            session.merge(
                PreferenceData(
                    user_id=user_id,
                    payload=(preferences or MatchPreferences()).model_dump(mode="json"),
                )
            )

            session.execute(delete(DealbreakerDeclaration).where(DealbreakerDeclaration.user_id == user_id))
            session.execute(delete(PollVoteRecord).where(PollVoteRecord.user_id == user_id))
            session.execute(delete(ContentInteraction).where(ContentInteraction.user_id == user_id))

            for declaration in signals.dealbreakers:
                session.add(
                    DealbreakerDeclaration(
                        user_id=user_id,
                        item_text=declaration.item,
                        response=declaration.response.value,
                    )
                )
            for vote in signals.poll_votes:
                session.add(
                    PollVoteRecord(user_id=user_id, poll_id=vote.poll_id, selected_options=vote.selected_options)
                )
            for article_id in signals.completed_content:
                session.add(ContentInteraction(user_id=user_id, article_id=article_id, read_completed=True))

    def add_block(self, blocking_user_id: str, blocked_user_id: str) -> None:
        try:
            with self._session() as session:
                session.add(UserBlock(blocking_user_id=blocking_user_id, blocked_user_id=blocked_user_id))
        except IntegrityError:
            logger.debug(f"{blocking_user_id} already blocked {blocked_user_id}")

    @staticmethod
    def _to_record(row: Match) -> MatchRecord:
        return MatchRecord(
            id=row.id,
            user_a_id=row.user_a_id,
            user_b_id=row.user_b_id,
            overall_score=row.overall_score,
            dimension_scores={name: getattr(row, f"{name}_score") for name in DIMENSION_COLUMNS},
            confidence=row.confidence,
            breakdown=row.breakdown or {},
            generation_run_id=row.generation_run_id,
            algorithm_version=row.algorithm_version,
            status=MatchStatus(row.status),
            created_at=row.created_at,
        )
