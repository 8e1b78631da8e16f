"""tvbingefriend_watch_history/models/database.py"""
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from tvbingefriend_watch_history.config import get_database_url


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Create the engine on first use from the configured DATABASE_URL."""
    database_url = get_database_url()

    # Validate database URL is provided
    if database_url is None:
        raise ValueError("DATABASE_URL is not configured. Set the DATABASE_URL environment variable.")

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=False  # Set to True for SQL debugging
    )


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    """Session factory bound to the configured engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db():
    """Dependency to get database session"""
    db: Session = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
