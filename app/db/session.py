"""Engine and unit-of-work helpers for the training log store.

The engine is created on first use so importing the app (and the test
suite) never opens a connection. Request handlers open one ``get_session()``
per request: a mutation and the renumbering it triggers share that
transaction and are committed or rolled back together.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from fastapi import HTTPException
from loguru import logger
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from app.config.settings import settings

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def is_postgresql_url(url: str) -> bool:
    """Return True when the database URL points at PostgreSQL."""
    return url.lower().startswith(("postgresql", "postgres"))


def _connect_args(url: str) -> dict:
    if is_postgresql_url(url):
        return {"connect_timeout": 10, "application_name": "training-log-api"}
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def _get_engine() -> Engine:
    global _engine
    if _engine is None:
        url = settings.database_url
        backend = make_url(url).get_backend_name()
        if backend == "sqlite":
            logger.warning("[DB] Using SQLite; concurrent writers are serialized by the file lock")
        logger.info(f"[DB] Creating engine backend={backend}")
        _engine = create_engine(
            url,
            connect_args=_connect_args(url),
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return _engine


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first call."""
    return _get_engine()


def _get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        # Services flush explicitly before renumbering.
        _session_factory = sessionmaker(bind=_get_engine(), autoflush=False, expire_on_commit=False)
    return _session_factory


def check_database_connection() -> None:
    """Run a trivial query so startup fails fast on a bad DATABASE_URL."""
    try:
        with _get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"[DB] Connection check failed: {e}")
        raise
    logger.info("[DB] Connection check passed")


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Open a unit of work.

    Commits when the block exits normally. Any exception rolls the whole
    transaction back (including renumbering done inside it) and is re-raised.
    HTTPException is an expected API outcome and is not logged as an error.
    """
    session = _get_session_factory()()
    try:
        yield session
        session.commit()
    except HTTPException:
        session.rollback()
        raise
    except Exception as e:
        logger.bind(error_type=type(e).__name__).error(f"[DB] Rolling back unit of work: {e}")
        session.rollback()
        raise
    finally:
        session.close()
