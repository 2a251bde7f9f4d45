"""Database engine and session factory"""

from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from finance_tracker.config import settings


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    PostgreSQL gets a bounded pool (max 20 connections, recycled hourly);
    SQLite, used in tests and local runs, only needs to allow cross-thread use.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Request-scoped session; routes commit, the session is always closed"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
