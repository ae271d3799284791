"""
Engine construction and transactional scope.

Every public engine operation runs inside exactly one session_scope():
read current state, compute next state, write next state, commit.
Store errors surface as PersistenceFailure after a rollback.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from practice_engine.config import Settings, get_settings
from practice_engine.db.models import Base
from practice_engine.exceptions import PersistenceFailure

_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    In-memory SQLite gets a StaticPool so every session sees the same database.
    SQLite connections enforce foreign keys.
    """
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory used by session_scope()."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def get_engine(settings: Settings | None = None) -> Engine:
    """Get the process-wide engine (lazy initialization from settings)."""
    global _engine
    if _engine is None:
        settings = settings or get_settings()
        _engine = build_engine(settings.database_url, echo=settings.log_level == "DEBUG")
    return _engine


def get_session_factory(settings: Settings | None = None) -> sessionmaker:
    """Get the process-wide session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = build_session_factory(get_engine(settings))
    return _SessionLocal


def init_db(engine: Engine | None = None) -> None:
    """Create all tables if they don't exist."""
    engine = engine or get_engine()
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        raise PersistenceFailure(f"Could not initialize schema: {e}") from e
    logger.info("Database tables initialized")


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = factory()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Transaction rolled back: {e}")
        raise PersistenceFailure(str(e)) from e
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()
