"""Persistence layer: models, engine/transaction scope and the Progress Store."""

from practice_engine.db.database import (
    build_engine,
    build_session_factory,
    get_engine,
    get_session_factory,
    init_db,
    session_scope,
)
from practice_engine.db.progress_store import ProgressStore

__all__ = [
    "ProgressStore",
    "build_engine",
    "build_session_factory",
    "get_engine",
    "get_session_factory",
    "init_db",
    "session_scope",
]
