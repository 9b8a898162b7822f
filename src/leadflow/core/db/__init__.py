"""Database utilities - engine, session, migrations."""

from src.leadflow.core.db.engine import dispose_engine, get_engine, init_models
from src.leadflow.core.db.migrations import run_migrations_async, run_migrations_sync
from src.leadflow.core.db.session import get_session, get_session_factory

__all__ = [
    # Engine
    "dispose_engine",
    "get_engine",
    "init_models",
    # Session
    "get_session",
    "get_session_factory",
    # Migrations
    "run_migrations_async",
    "run_migrations_sync",
]
