"""Storage module for users, matches and generation runs."""

from alignmatch.storage.database import create_db_engine, init_db
from alignmatch.storage.memory import MemoryRepository
from alignmatch.storage.repository import (
    MatchRecord,
    MatchRepository,
    MatchStatus,
    RunRecord,
    RunStatus,
    UserStatus,
    canonical_pair,
    utcnow,
)
from alignmatch.storage.sql import SqlRepository

__all__ = [
    "MatchRecord",
    "MatchRepository",
    "MatchStatus",
    "MemoryRepository",
    "RunRecord",
    "RunStatus",
    "SqlRepository",
    "UserStatus",
    "canonical_pair",
    "create_db_engine",
    "init_db",
    "utcnow",
]
