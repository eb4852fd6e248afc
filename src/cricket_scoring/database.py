"""Database connection and session management."""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import settings


# Global engine instance
_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def _build_engine(url: str, echo: bool) -> Engine:
    if url.startswith("sqlite") and (url.endswith(":memory:") or url in ("sqlite://", "sqlite:///")):
        # One shared connection so every session sees the same in-memory database
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo,
    )


def get_database_engine() -> Engine:
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        _engine = _build_engine(settings.database.url, settings.database.echo)
    return _engine


def get_session_local() -> sessionmaker:
    """Get or create the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=get_database_engine()
        )
    return _SessionLocal


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get a database session with automatic cleanup."""
    session_local = get_session_local()
    session = session_local()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def reset_engine(url: Optional[str] = None) -> Engine:
    """Dispose the current engine and bind a new one, optionally to another URL."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    if url is not None:
        settings.database.url = url
    _engine = None
    _SessionLocal = None
    return get_database_engine()


def create_tables() -> None:
    """Create all database tables."""
    from .models import Base
    Base.metadata.create_all(bind=get_database_engine())


def drop_tables() -> None:
    """Drop all database tables."""
    from .models import Base
    Base.metadata.drop_all(bind=get_database_engine())
