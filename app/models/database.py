"""Database setup and session management using SQLAlchemy 2.0.

This module configures the engine that stores fill sessions and submitted
responses, the session factory, and the declarative base for ORM models.
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import get_settings


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


settings = get_settings()

engine_kwargs = {
    "pool_pre_ping": True,
    "echo": False,
}

if settings.database_url.startswith("sqlite"):
    # Request handlers run in a threadpool; SQLite connections must be shareable
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs["pool_size"] = settings.database_pool_size
    engine_kwargs["max_overflow"] = settings.database_max_overflow

engine = create_engine(settings.database_url, **engine_kwargs)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def init_db() -> None:
    """Create any missing tables.

    Called at application startup; safe to call repeatedly.
    """
    # Imported for their side effect of registering tables on Base.metadata
    from app.models import response, session  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency function for FastAPI to provide database sessions.

    Yields:
        Session: SQLAlchemy database session

    Note:
        The session is automatically closed after the request completes,
        even if an exception occurs.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
