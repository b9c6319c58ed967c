"""Shared fixtures: an isolated SQLite store per test and a fixed user."""

from contextlib import contextmanager

import pytest
from sqlalchemy import event
from sqlalchemy.engine import Engine

from tests.factories import in_memory_session


@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    """Enforce the plan_session_id foreign key on SQLite connections."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture(scope="function")
def db_session(monkeypatch):
    """In-memory database session, also served to the API by ``get_session()``.

    Everything written in a test is rolled back when it ends.
    """
    with in_memory_session() as session:

        @contextmanager
        def test_get_session():
            yield session

        import app.api.sessions as sessions_api
        import app.db.session as session_module

        # The router imports get_session by name, so both references are replaced.
        monkeypatch.setattr(session_module, "get_session", test_get_session)
        monkeypatch.setattr(sessions_api, "get_session", test_get_session)

        yield session


@pytest.fixture
def user_id() -> str:
    return "user-1"
