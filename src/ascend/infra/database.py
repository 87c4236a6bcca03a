"""Database infrastructure: engine, schema and session factories."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig


def create_db_engine(config: BaseConfig):
    """Create SQLModel engine from configuration."""
    return create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())


def init_database(engine) -> None:
    """Initialize database schema."""
    # Import all models to ensure they're registered
    from .. import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def create_session_factory(engine):
    """Create a factory yielding transactional sessions.

    The session commits when the ``with`` block exits cleanly and rolls back
    on error.
    """

    @contextmanager
    def factory() -> Iterator[Session]:
        session = Session(engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory
