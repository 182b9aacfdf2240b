"""Database session management with connection pooling"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from finance_tracker.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """SQLite gets a thread-shareable connection, everything else a sized pool"""
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 10,
        "max_overflow": 10,
        "pool_recycle": 3600,
    }


engine = create_engine(settings.database_url, **engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Unit of work: commit everything done inside the block, or nothing.

    Ledger writes touch a posting and its account balance together; any
    exception rolls both back.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
