"""
Pytest configuration and fixtures

Every test gets a private in-memory SQLite database, so nothing persists
between tests. API tests talk to the real FastAPI app with `get_db` and the
application state swapped for test doubles.
"""
import pytest
import sys
import os
from datetime import date

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.app_state import AppState
from core.database import Base, get_db
import models  # noqa: F401  (registers tables)

# Calendar day the API believes it is, unless a test passes an explicit date.
TEST_TODAY = date(2024, 1, 2)


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database shared by every session in the test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def app_state():
    return AppState(today=lambda: TEST_TODAY)


@pytest.fixture(scope="function")
def client(session_factory, app_state):
    from main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    previous_state = app.state.kickup
    app.dependency_overrides[get_db] = override_get_db
    app.state.kickup = app_state
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.kickup = previous_state
