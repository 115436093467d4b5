"""
Database connection and session management.
"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from flagkeeper.core.config import DatabaseSettings


def create_db_engine(settings: DatabaseSettings) -> Engine:
    """Create an engine from database settings."""
    options = {"echo": settings.echo}

    # SQLite uses a single-connection pool that rejects sizing options
    if not settings.url.startswith("sqlite"):
        options.update(
            pool_size=settings.pool_size,
            max_overflow=settings.pool_overflow,
            pool_timeout=settings.pool_timeout,
        )

    return create_engine(settings.url, **options)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory bound to an engine."""
    return sessionmaker(engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Initialize database (create tables)."""
    from .base import Base
    from flagkeeper.core.features import models  # noqa: F401  (registers the features table)

    Base.metadata.create_all(engine)


def close_db(engine: Engine) -> None:
    """Close database connections."""
    engine.dispose()
