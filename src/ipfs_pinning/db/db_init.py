"""Database initialization helpers."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db_models import Base


def init_db(engine: Engine) -> None:
    """Create the queue tables when missing."""
    Base.metadata.create_all(engine)


def create_engine_and_sessions(database_url: str) -> tuple[Engine, sessionmaker[Session]]:
    """Build the engine and session factory for ``database_url`` and create tables."""
    engine = create_engine(database_url, future=True)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)
    init_db(engine)
    return engine, session_factory
