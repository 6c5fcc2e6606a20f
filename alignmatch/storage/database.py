"""Database connection management and initialization."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from alignmatch.config import DATA_DIR
from alignmatch.storage.models import Base


def create_db_engine(database_url: str) -> Engine:
    """Create a new SQLAlchemy engine for the given URL.

    SQLite connections may be shared by generator worker threads; an
    in-memory SQLite database is pinned to one connection so every session
    sees the same data.

    Args:
        database_url: SQLAlchemy database URL.

    Returns:
        SQLAlchemy Engine instance.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=False, pool_pre_ping=True)

    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return create_engine(
        database_url,
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )


def init_db(engine: Engine) -> Engine:
    """Initialize the database by creating all tables.

    Args:
        engine: Engine to initialize.

    Returns:
        The initialized engine.
    """
    Base.metadata.create_all(engine)
    return engine
