from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from core.dependencies import get_settings
from core.settings import Settings
from db.models import Base

_engine = None

SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def reset_engines():
    """Dispose the engine singleton. Used for testing."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def _engine_options(settings: Settings) -> dict[str, Any]:
    if settings.DATABASE_URL.startswith("postgresql"):
        return {
            "poolclass": QueuePool,
            "pool_size": settings.DATABASE_POOL_SIZE,
            "max_overflow": settings.DATABASE_MAX_OVERFLOW,
            "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
            "pool_recycle": settings.DATABASE_POOL_RECYCLE,
            "pool_pre_ping": True,
        }
    # SQLite: one shared connection so :memory: survives across sessions
    return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}


def get_engine(settings: Settings = Depends(get_settings)):
    """Get or create the engine behind the pending redirect store."""
    global _engine
    if _engine is None:
        _engine = create_engine(
            settings.DATABASE_URL, future=True, **_engine_options(settings)
        )
    return _engine


def get_db(settings: Settings = Depends(get_settings)) -> Generator[Session, None, None]:
    """FastAPI dependency that yields a database session."""
    db = SessionLocal(bind=get_engine(settings))
    try:
        yield db
    finally:
        db.close()


def init_db(settings: Settings) -> None:
    """Create tables that do not exist yet. Alembic owns schema changes."""
    Base.metadata.create_all(get_engine(settings))


@contextmanager
def manual_session(settings: Settings) -> Generator[Session, None, None]:
    """Session for scripts: commits on success, rolls back on error."""
    with SessionLocal(bind=get_engine(settings)) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
