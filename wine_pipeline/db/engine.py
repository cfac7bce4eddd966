"""Database engine and session management."""

import os
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

# Used when DATABASE_URL is not set
DEFAULT_DB_PATH = Path.home() / ".wine_pipeline" / "wine_pipeline.db"

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def _database_url() -> str:
    """
    Resolve DATABASE_URL, which may be a full SQLAlchemy URL or a SQLite file path.

    A file path has its parent directory created so the first connection works.
    """
    configured = os.environ.get("DATABASE_URL", "").strip()
    if "://" in configured:
        return configured

    path = Path(configured).expanduser() if configured else DEFAULT_DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def _get_engine() -> Engine:
    global _engine, _session_factory
    if _engine is None:
        url = _database_url()
        # Web handlers and enrichment worker threads share the SQLite connection pool
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        _engine = create_engine(url, connect_args=connect_args)
        _session_factory = sessionmaker(bind=_engine, autoflush=False)
    return _engine


def reset_engine() -> None:
    """Dispose of the shared engine so the next session re-reads DATABASE_URL."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_session() as session:
            WineRepository(session).list_needing_enrichment(15)
    """
    _get_engine()
    session = _session_factory()
    try:
        yield session
    finally:
        session.close()


def init_db() -> None:
    """Create any missing tables."""
    from wine_pipeline.db.models import Base

    Base.metadata.create_all(bind=_get_engine())
