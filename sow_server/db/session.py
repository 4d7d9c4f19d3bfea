"""SQLAlchemy engine and session configuration."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from ..core.errors import PersistenceError, ServiceError


class Base(DeclarativeBase):
    pass


# Pool sizing only applies to server databases; SQLite uses its own pool.
_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "3"))
_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "2"))
_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))  # seconds to wait for a connection
_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))  # seconds before recycling a connection


def create_db_engine(dsn: str) -> Engine:
    if not dsn:
        raise RuntimeError("DATABASE_DSN must be set to initialise the database layer")
    if dsn.startswith("sqlite"):
        # Generation workers share the engine across threads
        return create_engine(dsn, connect_args={"check_same_thread": False})
    return create_engine(
        dsn,
        pool_pre_ping=True,
        pool_size=_POOL_SIZE,
        max_overflow=_MAX_OVERFLOW,
        pool_timeout=_POOL_TIMEOUT,
        pool_recycle=_POOL_RECYCLE,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on error.

    Database failures surface as ``PersistenceError``; service errors raised
    inside the block propagate unchanged after the rollback.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except ServiceError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        raise PersistenceError(f"Database operation failed: {exc.__class__.__name__}") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
