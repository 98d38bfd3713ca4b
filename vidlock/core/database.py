"""
Database Configuration
SQLAlchemy engine and session factory for the optional SQL record store.
Supports both SQLite (local dev) and PostgreSQL (production).
"""

from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

# Base class for models
Base = declarative_base()


def create_store_engine(database_url: str) -> Engine:
    """Create an engine with settings appropriate for the backend."""
    if database_url.startswith("sqlite"):
        # Make sure the directory holding a file-backed SQLite database exists
        db_path = database_url.split("///", 1)[-1]
        if db_path and db_path != ":memory:" and "///" in database_url:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},  # Needed for SQLite
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def init_db(engine: Engine):
    """Initialize database tables."""
    from vidlock.models import StoredRecord  # noqa
    Base.metadata.create_all(bind=engine)


def make_session_factory(engine: Engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
