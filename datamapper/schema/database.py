"""Database schema initialization."""

from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from datamapper.schema.models import Base, DocumentBase


def _create_engine(database_url: str, echo: bool = False) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            # Ensure parent directory exists
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        else:
            # In-memory sqlite must share one connection across sessions
            return create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
    return create_engine(database_url, echo=echo)


def init_database(database_url: str, echo: bool = False) -> Engine:
    """
    Initialize the target database and create the unified tables.

    Args:
        database_url: SQLAlchemy database URL
        echo: Whether to echo SQL queries (for debugging)
    """
    engine = _create_engine(database_url, echo=echo)
    Base.metadata.create_all(engine)
    return engine


def init_document_database(database_url: str, echo: bool = False) -> Engine:
    """Initialize the source document database."""
    engine = _create_engine(database_url, echo=echo)
    DocumentBase.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine):
    """
    Get session factory for database operations.

    Args:
        engine: SQLAlchemy engine

    Returns:
        Session factory
    """
    return sessionmaker(bind=engine)


@contextmanager
def session_scope(session_factory, commit: bool = True):
    """
    Context manager for database sessions.

    Args:
        session_factory: Factory returned by get_session_factory
        commit: Whether to commit on successful exit (default: True)
    """
    session = session_factory()
    try:
        yield session
        if commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
