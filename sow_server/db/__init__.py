"""Database helpers and SQLAlchemy session management."""

from .session import Base, create_db_engine, create_session_factory, session_scope

__all__ = [
    "Base",
    "create_db_engine",
    "create_session_factory",
    "session_scope",
]
