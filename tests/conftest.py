"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database with the full schema
(tables, indexes and the reviews_assigned triggers). Row locks and statement
timeouts compile to nothing on SQLite, so these tests cover behaviour, not
lock contention.
"""
import os

# Must be set before anything imports app.core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_SCHEMA"] = "false"

import pytest
from fastapi.testclient import TestClient

from app.core.auth import create_access_token
from app.db import postgres
from app.db.postgres import get_db_session
from app.db.schema import init_schema
from app.schemas.schemas import ApplicationUpdate, UserRole
from app.services.application_service import ApplicationService
from app.services.settings_service import SettingsStore
from app.services.user_service import UserService


COMPLETE_APPLICATION = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "age": 21,
    "university": "University of Test",
    "major": "Computer Science",
    "country_of_residence": "US",
    "ack_application": True,
    "ack_code_of_conduct": True,
    "ack_privacy": True,
}


@pytest.fixture(autouse=True)
def test_db():
    """Fresh database per test."""
    engine = postgres.init_engine("sqlite://")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def client(test_db):
    from app.main import app
    return TestClient(app)


@pytest.fixture
def create_user():
    """Factory: create_user("a@test.com", "admin") -> user id."""
    def _create(email: str, role: str = "hacker") -> str:
        with get_db_session() as db:
            return UserService(db).create(email, UserRole(role)).id
    return _create


@pytest.fixture
def submitted_application(create_user):
    """Factory: a submitted application by a fresh hacker -> (application id, author id)."""
    counter = {"n": 0}

    def _submit(email: str = None):
        counter["n"] += 1
        author_id = create_user(email or f"hacker{counter['n']}@test.com")
        with get_db_session() as db:
            service = ApplicationService(db)
            service.get_or_create_for_user(author_id)
            service.update(author_id, ApplicationUpdate(**COMPLETE_APPLICATION))
            app = service.submit(author_id)
        return app.id, author_id
    return _submit


@pytest.fixture
def complete_application():
    return dict(COMPLETE_APPLICATION)


@pytest.fixture
def set_quota():
    def _set(value: int):
        with get_db_session() as db:
            SettingsStore(db).set_reviews_per_application(value)
    return _set


@pytest.fixture
def auth_headers():
    """Factory: auth_headers(user_id) -> bearer header dict."""
    def _headers(user_id: str) -> dict:
        token = create_access_token(data={"sub": user_id})
        return {"Authorization": f"Bearer {token}"}
    return _headers
