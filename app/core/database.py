"""Database connection and session management."""

from collections.abc import Generator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.core.config import settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class."""

    pass


@lru_cache
def get_engine() -> Engine:
    """Create the sync engine on first use."""
    return create_engine(
        settings.DATABASE_URL,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the application engine."""
    return sessionmaker(
        bind=get_engine(),
        class_=Session,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# Type alias for dependency injection
DbSession = Annotated[Session, Depends(get_db)]
