"""SQLAlchemy models for the AlignMatch database."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from alignmatch.storage.repository import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class UserAccount(Base):
    """A platform user; only `active` users are matched."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<UserAccount(id={self.id!r}, status={self.status!r})>"


class ProfileData(Base):
    """Self-reported profile, stored as a validated Profile payload."""

    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class ExtractionData(Base):
    """Game-derived trait extraction, stored as a TraitExtraction payload."""

    __tablename__ = "profile_extractions"

    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class PreferenceData(Base):
    """Match preferences (hard filters and weekly quota override)."""

    __tablename__ = "user_match_preferences"

    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)


class DealbreakerDeclaration(Base):
    """One swipe on the dealbreaker deck."""

    __tablename__ = "dealbreaker_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    item_text: Mapped[str] = mapped_column(String(200), nullable=False)
    response: Mapped[str] = mapped_column(String(20), nullable=False)  # dealbreaker, must_have, ...

    __table_args__ = (
        UniqueConstraint("user_id", "item_text", name="uq_dealbreaker_user_item"),
    )


class PollVoteRecord(Base):
    """A community poll answer."""

    __tablename__ = "poll_votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    poll_id: Mapped[str] = mapped_column(String(64), nullable=False)
    selected_options: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("user_id", "poll_id", name="uq_poll_vote_user_poll"),
    )


class ContentInteraction(Base):
    """A content item a user opened; only completed reads count."""

    __tablename__ = "content_interactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    article_id: Mapped[str] = mapped_column(String(64), nullable=False)
    read_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class UserBlock(Base):
    """One user blocking another."""

    __tablename__ = "user_blocks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    blocking_user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    blocked_user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("blocking_user_id", "blocked_user_id", name="uq_user_block"),
    )


class MatchGenerationRun(Base):
    """One batch execution of the match generator."""

    __tablename__ = "match_generation_runs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="running", index=True)
    users_evaluated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    matches_generated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[Optional[list]] = mapped_column(JSON)  # [[user_id, message], ...]
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    def __repr__(self) -> str:
        return f"<MatchGenerationRun(id={self.id!r}, status={self.status!r})>"


class Match(Base):
    """A proposed match. At most one row per unordered pair, stored with user_a_id < user_b_id."""

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_a_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    user_b_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    overall_score: Mapped[int] = mapped_column(Integer, nullable=False)
    psychological_score: Mapped[int] = mapped_column(Integer, nullable=False)
    behavioral_score: Mapped[int] = mapped_column(Integer, nullable=False)
    values_vision_score: Mapped[int] = mapped_column(Integer, nullable=False)
    interests_score: Mapped[int] = mapped_column(Integer, nullable=False)
    lifestyle_score: Mapped[int] = mapped_column(Integer, nullable=False)
    dealbreakers_score: Mapped[int] = mapped_column(Integer, nullable=False)
    astrological_score: Mapped[int] = mapped_column(Integer, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    breakdown: Mapped[Optional[dict]] = mapped_column(JSON)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    algorithm_version: Mapped[str] = mapped_column(String(20), nullable=False)
    generation_run_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("match_generation_runs.id"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("user_a_id", "user_b_id", name="uq_match_pair"),
        CheckConstraint("user_a_id < user_b_id", name="ck_match_pair_order"),
    )

    def __repr__(self) -> str:
        return f"<Match(id={self.id}, a={self.user_a_id!r}, b={self.user_b_id!r}, score={self.overall_score})>"
